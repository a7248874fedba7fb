"""Recording routes: upload one segment, merge a bucket, list merged sessions."""

import logging

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.concurrency import run_in_threadpool

from ...config import Settings
from ...errors import MissingFileError, MissingParameterError, StorageFailure
from ...ingest import ingest_segment
from ...listing import SessionListingService
from ...merge import MergeService
from ...models import (
    ErrorResponse,
    MergeRequest,
    MergeResponse,
    SessionsResponse,
    UploadResponse,
)
from ...segment_store import SegmentStore
from ..deps import get_app_settings, get_listing_service, get_merge_service, get_segment_store

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post("/upload", response_model=UploadResponse, responses=ERROR_RESPONSES)
async def upload(
    file: UploadFile | None = File(None),
    project_id: str | None = Form(None, alias="projectId"),
    tool: str | None = Form(None),
    date: str | None = Form(None),
    segment: str | None = Form(None),
    store: SegmentStore = Depends(get_segment_store),
    settings: Settings = Depends(get_app_settings),
) -> UploadResponse:
    """Receive one recording segment (multipart field "file") and store it in its bucket."""
    if file is None:
        raise MissingFileError()
    # Copying the spooled upload is blocking file I/O
    try:
        return await run_in_threadpool(
            ingest_segment,
            store,
            file.file,
            original_filename=file.filename,
            project_id=project_id,
            tool=tool,
            date=date,
            segment=segment,
            default_extension=settings.default_extension,
        )
    except StorageFailure as e:
        # The framework discards the spooled upload after the response
        logger.error(
            "upload: dropped filename=%s size=%s project=%s tool=%s date=%s segment=%s: %s",
            file.filename,
            file.size,
            project_id,
            tool,
            date,
            segment,
            e.message,
        )
        raise


@router.post("/merge", response_model=MergeResponse, responses=ERROR_RESPONSES)
async def merge(
    body: MergeRequest,
    store: SegmentStore = Depends(get_segment_store),
    merge_service: MergeService = Depends(get_merge_service),
) -> MergeResponse:
    """Concatenate all segments of (projectId, tool, date) and render speed variants."""
    bucket = store.bucket(body.project_id, body.tool, body.date)
    outcome = await merge_service.merge(bucket)
    return MergeResponse(outputs=outcome.outputs, failed=outcome.failures)


@router.get("/sessions", response_model=SessionsResponse, responses=ERROR_RESPONSES)
async def sessions(
    project_id: str | None = Query(None, alias="projectId"),
    listing: SessionListingService = Depends(get_listing_service),
) -> SessionsResponse:
    """List (tool, date) buckets of a project with their finished renditions."""
    if not project_id:
        raise MissingParameterError("Missing projectId")
    return SessionsResponse(sessions=listing.list_sessions(project_id))
