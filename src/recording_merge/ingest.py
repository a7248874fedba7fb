"""
Ingestion: accept one uploaded segment plus metadata and place it in the store.

Never reads existing segments; only creates/extends the bucket directory.
"""

import logging
from typing import BinaryIO

from .errors import MissingFileError
from .layout import sanitize_extension
from .models import UploadResponse
from .segment_store import SegmentStore

logger = logging.getLogger(__name__)


def ingest_segment(
    store: SegmentStore,
    data: bytes | BinaryIO | None,
    *,
    original_filename: str | None = None,
    project_id: str | None = None,
    tool: str | None = None,
    date: str | None = None,
    segment: str | None = None,
    default_extension: str = ".webm",
) -> UploadResponse:
    """
    Store one segment and return the acknowledgement.

    Raises:
        MissingFileError: no payload was provided.
        StorageFailure: the store could not create or write the file.
    """
    if data is None:
        logger.warning("ingest: request without file payload")
        raise MissingFileError()
    extension = sanitize_extension(original_filename, default=default_extension)
    stored = store.save_segment(project_id, tool, date, segment, extension, data)
    logger.info(
        "ingest: bucket=%s filename=%s size=%s",
        stored.bucket.label,
        stored.filename,
        stored.size,
    )
    return UploadResponse(
        filename=stored.filename,
        path=str(stored.path),
        size=stored.size,
        project_id=stored.bucket.project,
        tool=stored.bucket.tool,
        date=stored.bucket.date,
    )
