"""Dependencies for FastAPI routes: components built by create_app() on app.state."""

from fastapi import Request

from ..config import Settings
from ..listing import SessionListingService
from ..merge import MergeService
from ..segment_store import SegmentStore


def get_app_settings(request: Request) -> Settings:
    """Return Settings from app state (set in create_app before including routers)."""
    return request.app.state.settings


def get_segment_store(request: Request) -> SegmentStore:
    return request.app.state.segment_store


def get_merge_service(request: Request) -> MergeService:
    """
    Return the MergeService from app state. One instance per app so the
    per-bucket locks are shared by every request of this process.
    """
    return request.app.state.merge_service


def get_listing_service(request: Request) -> SessionListingService:
    return request.app.state.listing_service
