"""Pytest fixtures: temp-rooted settings and store, fake encoder, app client."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from recording_merge.api import create_app
from recording_merge.config import Settings
from recording_merge.segment_store import SegmentStore
from tests.helpers import FakeEncoder


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(storage_root=tmp_path / "uploads")


@pytest.fixture
def store(settings: Settings) -> SegmentStore:
    return SegmentStore(
        settings.resolved_storage_root(),
        media_extensions=settings.media_extensions,
        segment_pad_width=settings.segment_pad_width,
    )


@pytest.fixture
def fake_encoder() -> FakeEncoder:
    return FakeEncoder()


@pytest.fixture
def client(settings: Settings, fake_encoder: FakeEncoder) -> TestClient:
    """TestClient for an app rooted at a temp dir, using the fake encoder."""
    return TestClient(create_app(settings, encoder=fake_encoder))
