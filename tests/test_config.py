"""Tests for env-driven settings and port probing."""

import socket

import pytest
from pydantic import ValidationError

from recording_merge.__main__ import find_available_port
from recording_merge.config import ReencodeProfile, Settings, get_settings


def test_defaults() -> None:
    s = Settings()
    assert s.public_prefix == "/uploads"
    assert s.speed_multipliers == [2, 5, 10]
    assert s.tempo_threshold == 2.0
    assert s.media_extensions == [".webm", ".mp4", ".mkv"]
    assert s.port == 8080


def test_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("RECORDING_MERGE_STORAGE_ROOT", str(tmp_path / "media"))
    monkeypatch.setenv("RECORDING_MERGE_SPEED_MULTIPLIERS", "[10, 4, 4, 2]")
    monkeypatch.setenv("RECORDING_MERGE_MEDIA_EXTENSIONS", '["WEBM", "mov"]')
    monkeypatch.setenv("RECORDING_MERGE_PUBLIC_PREFIX", "media/")
    s = get_settings()
    assert s.resolved_storage_root() == (tmp_path / "media").resolve()
    assert s.speed_multipliers == [2, 4, 10]
    assert s.media_extensions == [".webm", ".mov"]
    assert s.public_prefix == "/media"


def test_multiplier_of_one_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RECORDING_MERGE_SPEED_MULTIPLIERS", "[1, 2]")
    with pytest.raises(ValidationError):
        Settings()


def test_empty_public_prefix_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(public_prefix="/")


def test_plain_port_is_used_when_prefixed_port_is_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RECORDING_MERGE_PORT", raising=False)
    monkeypatch.setenv("PORT", "9123")
    assert get_settings().port == 9123
    monkeypatch.setenv("RECORDING_MERGE_PORT", "9200")
    assert get_settings().port == 9200


def test_reencode_profile_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RECORDING_MERGE_REENCODE_CRF", "30")
    monkeypatch.setenv("RECORDING_MERGE_REENCODE_PRESET", "ultrafast")
    opts = ReencodeProfile().output_options()
    assert opts[opts.index("-crf") + 1] == "30"
    assert opts[opts.index("-preset") + 1] == "ultrafast"


def test_find_available_port_skips_busy_port() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
        busy.bind(("127.0.0.1", 0))
        busy.listen()
        port = busy.getsockname()[1]
        found = find_available_port(port, max_attempts=5, host="127.0.0.1")
    assert found != port
    assert port < found < port + 5


def test_find_available_port_falls_back_to_start() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
        busy.bind(("127.0.0.1", 0))
        busy.listen()
        port = busy.getsockname()[1]
        assert find_available_port(port, max_attempts=1, host="127.0.0.1") == port
