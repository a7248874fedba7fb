"""Tests for the concatenation engine: ordering, manifest, stream copy and re-encode fallback."""

import asyncio

import pytest

from recording_merge.concat import ConcatenationEngine, write_manifest
from recording_merge.config import ReencodeProfile
from recording_merge.errors import EncodingFailure, EncodingTimeout, NoSegmentsFound
from recording_merge.models import BucketRef, ConcatStrategy, EncodeFailure, EncodeSuccess
from recording_merge.segment_store import SegmentStore
from tests.helpers import FakeEncoder, read_manifest

PROFILE = ReencodeProfile().output_options()


def _bucket_with_segments(store: SegmentStore, segments: dict[str, bytes]) -> BucketRef:
    for seg, data in segments.items():
        store.save_segment("proj", "cam", "2024-01-01", seg, ".webm", data)
    return store.bucket("proj", "cam", "2024-01-01")


def test_write_manifest_orders_and_escapes(tmp_path) -> None:
    a = tmp_path / "a.webm"
    b = tmp_path / "it's b.webm"
    manifest = write_manifest([a, b], tmp_path / "concat.txt")
    assert read_manifest(manifest) == [a.resolve(), b.resolve()]
    assert "it'\\''s b.webm" in manifest.read_text()


def test_concatenate_stream_copy_in_filename_order(store: SegmentStore) -> None:
    bucket = _bucket_with_segments(store, {"2": b"B", "10": b"C", "1": b"A"})
    encoder = FakeEncoder()
    result = asyncio.run(ConcatenationEngine(store, encoder, PROFILE).concatenate(bucket))

    assert result.strategy == ConcatStrategy.STREAM_COPY
    assert result.output == store.bucket_dir(bucket) / "final.mp4"
    assert result.output.read_bytes() == b"ABC"
    assert [p.name for p in result.segments] == [
        "cam_0000000000001.webm",
        "cam_0000000000002.webm",
        "cam_0000000000010.webm",
    ]
    assert len(result.attempts) == 1 and isinstance(result.attempts[0], EncodeSuccess)
    manifest = store.bucket_dir(bucket) / "concat.txt"
    assert read_manifest(manifest) == result.segments
    assert [c[0] for c in encoder.calls] == ["copy", "verify"]
    assert encoder.calls[1][1] == encoder.calls[0][2]


def test_concatenate_falls_back_to_reencode(store: SegmentStore) -> None:
    bucket = _bucket_with_segments(store, {"1": b"A", "2": b"B"})
    encoder = FakeEncoder(fail_copy=True)
    result = asyncio.run(ConcatenationEngine(store, encoder, PROFILE).concatenate(bucket))

    assert result.strategy == ConcatStrategy.REENCODE
    # The stream-copy garbage was discarded; the fallback output is authoritative
    assert result.output.read_bytes() == b"reencoded:AB"
    assert [type(a) for a in result.attempts] == [EncodeFailure, EncodeSuccess]
    reencode_call = encoder.calls[1]
    assert reencode_call[0] == "reencode"
    assert reencode_call[3] == PROFILE
    assert reencode_call[4] is True
    assert reencode_call[1] == encoder.calls[0][1]  # same manifest


def test_reencode_profile_options() -> None:
    assert PROFILE == [
        "-c:v", "libx264", "-preset", "veryfast", "-crf", "23", "-pix_fmt", "yuv420p",
        "-c:a", "aac", "-b:a", "128k",
    ]


def test_concatenate_both_paths_fail_keeps_previous_output(store: SegmentStore) -> None:
    bucket = _bucket_with_segments(store, {"1": b"A"})
    final = store.bucket_dir(bucket) / "final.mp4"
    final.write_bytes(b"previous merge")
    encoder = FakeEncoder(fail_copy=True, fail_reencode_concat=True)

    with pytest.raises(EncodingFailure, match="Concatenation failed"):
        asyncio.run(ConcatenationEngine(store, encoder, PROFILE).concatenate(bucket))

    assert final.read_bytes() == b"previous merge"
    leftovers = [p.name for p in store.bucket_dir(bucket).iterdir() if p.name.startswith(".")]
    assert leftovers == []


def test_concatenate_fallback_timeout_raises_encoding_timeout(store: SegmentStore) -> None:
    bucket = _bucket_with_segments(store, {"1": b"A"})
    encoder = FakeEncoder(fail_copy=True, timeout_reencode_concat=True)
    with pytest.raises(EncodingTimeout):
        asyncio.run(ConcatenationEngine(store, encoder, PROFILE).concatenate(bucket))
    assert not (store.bucket_dir(bucket) / "final.mp4").exists()


def test_concatenate_missing_bucket_raises_no_segments(store: SegmentStore) -> None:
    bucket = BucketRef(project="proj", tool="cam", date="1999-01-01")
    with pytest.raises(NoSegmentsFound):
        asyncio.run(ConcatenationEngine(store, FakeEncoder(), PROFILE).concatenate(bucket))


def test_concatenate_bucket_without_media_raises_no_segments(store: SegmentStore) -> None:
    d = store.ensure_bucket_dir("proj", "cam", "2024-01-01")
    (d / "notes.txt").write_text("not media")
    bucket = store.bucket("proj", "cam", "2024-01-01")
    encoder = FakeEncoder()
    with pytest.raises(NoSegmentsFound):
        asyncio.run(ConcatenationEngine(store, encoder, PROFILE).concatenate(bucket))
    assert encoder.calls == []


def test_concatenate_rerun_ignores_previous_outputs(store: SegmentStore) -> None:
    bucket = _bucket_with_segments(store, {"1": b"A", "2": b"B"})
    engine = ConcatenationEngine(store, FakeEncoder(), PROFILE)
    first = asyncio.run(engine.concatenate(bucket))
    (store.bucket_dir(bucket) / "final_2x.mp4").write_bytes(b"variant")
    second = asyncio.run(engine.concatenate(bucket))
    assert first.segments == second.segments
    assert second.output.read_bytes() == b"AB"


def test_undecodable_stream_copy_falls_back_to_reencode(store: SegmentStore) -> None:
    bucket = _bucket_with_segments(store, {"1": b"A", "2": b"B"})
    encoder = FakeEncoder(fail_verify=True)
    result = asyncio.run(ConcatenationEngine(store, encoder, PROFILE).concatenate(bucket))

    assert result.strategy == ConcatStrategy.REENCODE
    assert result.output.read_bytes() == b"reencoded:AB"
    assert [c[0] for c in encoder.calls] == ["copy", "verify", "reencode"]
    assert [type(a) for a in result.attempts] == [EncodeSuccess, EncodeFailure, EncodeSuccess]
    assert "Invalid NAL unit size" in result.attempts[1].cause


def test_decode_check_can_be_disabled(store: SegmentStore) -> None:
    bucket = _bucket_with_segments(store, {"1": b"A"})
    encoder = FakeEncoder(fail_verify=True)
    engine = ConcatenationEngine(store, encoder, PROFILE, verify_stream_copy=False)
    result = asyncio.run(engine.concatenate(bucket))
    assert result.strategy == ConcatStrategy.STREAM_COPY
    assert [c[0] for c in encoder.calls] == ["copy"]
