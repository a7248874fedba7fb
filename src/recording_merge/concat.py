"""
Concatenate every segment of a bucket into final.mp4.

Segments are ordered lexicographically by full path (no in-file timestamps are
consulted), written to a concat.txt manifest, then joined with a stream-copy
pass whose output is decoded once, since a copy of mismatched segments can exit 0
and still be unplayable. If that fails the same manifest is re-encoded with a
uniform profile. Output goes to a hidden partial file and is renamed to
final.mp4 only on success.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from pathlib import Path

from .errors import EncodingFailure, EncodingTimeout, NoSegmentsFound, StorageFailure
from .interfaces import Encoder
from .layout import BASE_OUTPUT_NAME, MANIFEST_NAME, manifest_line, temp_output_name
from .models import BucketRef, ConcatResult, ConcatStrategy, EncodeFailure, EncodeSuccess
from .segment_store import SegmentStore

logger = logging.getLogger(__name__)


def write_manifest(segment_paths: list[Path], manifest_path: Path) -> Path:
    """Write the ffmpeg concat list (absolute paths, quotes escaped); overwrites."""
    try:
        with open(manifest_path, "w", encoding="utf-8") as f:
            for p in segment_paths:
                f.write(manifest_line(p.resolve()))
    except OSError as e:
        raise StorageFailure(f"Cannot write manifest {manifest_path}: {e}") from e
    return manifest_path


class ConcatenationEngine:
    """Builds the base ("1x") rendition of a bucket."""

    def __init__(
        self,
        store: SegmentStore,
        encoder: Encoder,
        reencode_options: Sequence[str],
        *,
        verify_stream_copy: bool = True,
    ) -> None:
        self.store = store
        self.encoder = encoder
        self.reencode_options = list(reencode_options)
        self.verify_stream_copy = verify_stream_copy

    async def concatenate(self, bucket: BucketRef) -> ConcatResult:
        """
        Produce <bucket>/final.mp4 from all segments of the bucket.

        Raises:
            NoSegmentsFound: bucket absent or without recognized media files.
            EncodingFailure: stream copy and re-encode both failed.
            EncodingTimeout: the re-encode pass exceeded the encoder time bound.
        """
        segments = self.store.list_segments(bucket)
        if not segments:
            logger.warning("concat: bucket=%s no segments found", bucket.label)
            raise NoSegmentsFound()

        base_dir = self.store.bucket_dir(bucket)
        manifest = write_manifest(segments, base_dir / MANIFEST_NAME)
        final_path = base_dir / BASE_OUTPUT_NAME
        partial = base_dir / temp_output_name(BASE_OUTPUT_NAME)
        logger.info(
            "concat: bucket=%s %s segments -> %s", bucket.label, len(segments), final_path.name
        )

        attempts: list[EncodeSuccess | EncodeFailure] = []
        try:
            fast = await self.encoder.stream_copy_concat(manifest, partial)
            attempts.append(fast)
            if isinstance(fast, EncodeSuccess) and self.verify_stream_copy:
                check = await self.encoder.verify(partial)
                if isinstance(check, EncodeFailure):
                    attempts.append(check)
                    fast = check
            strategy = ConcatStrategy.STREAM_COPY
            outcome = fast
            if isinstance(fast, EncodeFailure):
                logger.info(
                    "concat: bucket=%s stream copy failed, re-encoding: %s",
                    bucket.label,
                    fast.cause.splitlines()[-1] if fast.cause else "",
                )
                partial.unlink(missing_ok=True)
                outcome = await self.encoder.reencode(
                    manifest, partial, self.reencode_options, source_is_manifest=True
                )
                attempts.append(outcome)
                strategy = ConcatStrategy.REENCODE

            if isinstance(outcome, EncodeFailure):
                logger.error("concat: bucket=%s re-encode failed: %s", bucket.label, outcome.cause)
                if outcome.timed_out:
                    raise EncodingTimeout(f"Concatenation timed out: {outcome.cause}")
                raise EncodingFailure(f"Concatenation failed: {outcome.cause}")
            os.replace(partial, final_path)
        except OSError as e:
            raise StorageFailure(f"Cannot finalize {final_path}: {e}") from e
        finally:
            partial.unlink(missing_ok=True)

        logger.info("concat: bucket=%s done via %s", bucket.label, strategy.value)
        return ConcatResult(
            bucket=bucket,
            output=final_path,
            strategy=strategy,
            segments=segments,
            attempts=attempts,
        )
