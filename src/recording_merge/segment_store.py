"""
Filesystem segment store: <root>/<project>/<tool>/<date>/<segment files>.

Writes are atomic (temp file in the bucket dir, then os.replace) so readers never
see a half-written segment. Any OSError on create/write becomes StorageFailure.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from .errors import StorageFailure
from .layout import (
    bucket_dir,
    build_segment_filename,
    clean_extension,
    is_output_or_temp,
    pad_discriminator,
    sanitize_component,
    sanitize_date,
)
from .models import BucketRef, StoredSegment

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1024 * 1024


def today_iso() -> str:
    """Today's UTC date as YYYY-MM-DD."""
    return datetime.now(timezone.utc).date().isoformat()


def now_millis() -> str:
    return str(int(time.time() * 1000))


class SegmentStore:
    """Hierarchical segment storage rooted at a single directory."""

    def __init__(
        self,
        root: str | Path,
        *,
        media_extensions: list[str] | tuple[str, ...] = (".webm", ".mp4", ".mkv"),
        segment_pad_width: int = 13,
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        self.media_extensions = tuple(e.lower() for e in media_extensions)
        self.segment_pad_width = segment_pad_width

    def bucket(
        self,
        project: str | None,
        tool: str | None,
        date: str | None,
    ) -> BucketRef:
        """Sanitize raw identifiers into a BucketRef (defaults: unknown, unknown, today)."""
        return BucketRef(
            project=sanitize_component(project),
            tool=sanitize_component(tool),
            date=sanitize_date(date, today_iso()),
        )

    def _inside_root(self, path: Path) -> Path:
        resolved = path.resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise StorageFailure(f"Path escapes storage root: {path}")
        return resolved

    def project_dir(self, project: str) -> Path:
        return self._inside_root(self.root / sanitize_component(project))

    def bucket_dir(self, bucket: BucketRef) -> Path:
        return self._inside_root(bucket_dir(self.root, bucket))

    def ensure_bucket_dir(self, project: str | None, tool: str | None, date: str | None) -> Path:
        """Create <root>/<project>/<tool>/<date> if absent (idempotent) and return it."""
        path = self.bucket_dir(self.bucket(project, tool, date))
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("store: cannot create bucket dir %s: %s", path, e)
            raise StorageFailure(f"Cannot create directory {path}: {e}") from e
        return path

    def save_segment(
        self,
        project: str | None,
        tool: str | None,
        date: str | None,
        discriminator: str | None,
        extension: str,
        data: bytes | BinaryIO,
    ) -> StoredSegment:
        """
        Persist one segment as <tool>_<discriminator><ext> in its bucket dir.

        Empty discriminator is replaced with the current time in milliseconds;
        numeric discriminators are zero padded. An existing segment with the same
        name is replaced (last write wins).

        Raises:
            StorageFailure: the bucket dir cannot be created or the file cannot be written.
        """
        bucket = self.bucket(project, tool, date)
        seg = sanitize_component(discriminator, default="") or now_millis()
        seg = pad_discriminator(seg, self.segment_pad_width)
        filename = build_segment_filename(
            bucket.tool, seg, clean_extension(extension, self.media_extensions[0])
        )
        target_dir = self.ensure_bucket_dir(bucket.project, bucket.tool, bucket.date)
        target = self._inside_root(target_dir / filename)
        if target.parent != target_dir:
            raise StorageFailure(f"Segment path escapes bucket: {filename}")

        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".upload_", suffix=".part", dir=target_dir)
        except OSError as e:
            raise StorageFailure(f"Cannot write to {target_dir}: {e}") from e
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as out:
                if isinstance(data, (bytes, bytearray, memoryview)):
                    out.write(data)
                else:
                    if hasattr(data, "seek"):
                        data.seek(0)
                    shutil.copyfileobj(data, out, length=COPY_CHUNK_SIZE)
            os.replace(tmp_path, target)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            logger.error("store: bucket=%s write %s failed: %s", bucket.label, filename, e)
            raise StorageFailure(f"Cannot write {target}: {e}") from e

        size = target.stat().st_size
        logger.info("store: bucket=%s saved %s (%s bytes)", bucket.label, filename, size)
        return StoredSegment(bucket=bucket, filename=filename, path=target, size=size)

    def list_segments(self, bucket: BucketRef) -> list[Path]:
        """
        Return recognized media segments of a bucket sorted by full path.

        Merge outputs, partial files and the manifest are excluded. A missing
        bucket dir yields an empty list.
        """
        path = self.bucket_dir(bucket)
        if not path.is_dir():
            return []
        segments = [
            p
            for p in path.iterdir()
            if p.is_file()
            and p.suffix.lower() in self.media_extensions
            and not is_output_or_temp(p.name)
        ]
        return sorted(segments, key=lambda p: str(p))
