"""
Session listing: which (tool, date) buckets of a project have finished renditions.

Pure projection over the storage layout, rebuilt on every call. Partial files
never match the output naming, so an in-progress merge is simply absent.
"""

import logging

from .layout import output_label, public_path
from .models import BucketRef, SessionEntry
from .segment_store import SegmentStore

logger = logging.getLogger(__name__)


def _sorted_dirs(path):
    return sorted((p for p in path.iterdir() if p.is_dir()), key=lambda p: p.name)


class SessionListingService:
    """Scans <root>/<project>/<tool>/<date>/ for final*.mp4 outputs."""

    def __init__(self, store: SegmentStore, public_prefix: str) -> None:
        self.store = store
        self.public_prefix = public_prefix

    def list_sessions(self, project: str) -> list[SessionEntry]:
        """Return one entry per bucket with at least one output; [] for an unknown project."""
        project_dir = self.store.project_dir(project)
        if not project_dir.is_dir():
            logger.debug("listing: project=%s not found", project_dir.name)
            return []
        sessions: list[SessionEntry] = []
        for tool_dir in _sorted_dirs(project_dir):
            for date_dir in _sorted_dirs(tool_dir):
                bucket = BucketRef(
                    project=project_dir.name, tool=tool_dir.name, date=date_dir.name
                )
                paths: dict[str, str] = {}
                for f in sorted(date_dir.iterdir(), key=lambda p: p.name):
                    label = output_label(f.name)
                    if label is None or not f.is_file():
                        continue
                    paths[label] = public_path(self.public_prefix, bucket, f.name)
                if paths:
                    sessions.append(SessionEntry(tool=bucket.tool, date=bucket.date, paths=paths))
        logger.info("listing: project=%s sessions=%s", project_dir.name, len(sessions))
        return sessions
