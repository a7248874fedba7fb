"""Upload, merge and speed-variant pipeline for screen-recording segments."""

from .concat import ConcatenationEngine
from .config import Settings, get_settings
from .encoder import FfmpegEncoder
from .errors import (
    EncodingFailure,
    EncodingTimeout,
    MissingFileError,
    MissingParameterError,
    NoSegmentsFound,
    RecordingMergeError,
    StorageFailure,
)
from .ingest import ingest_segment
from .interfaces import Encoder
from .listing import SessionListingService
from .logging_config import configure_logging
from .merge import BucketLocks, MergeService
from .models import (
    BucketRef,
    ConcatResult,
    ConcatStrategy,
    EncodeFailure,
    EncodeSuccess,
    MergeOutcome,
    SessionEntry,
    StoredSegment,
    VariantResults,
)
from .segment_store import SegmentStore
from .variants import SpeedVariantGenerator

__version__ = "0.1.0"
__all__ = [
    "BucketLocks",
    "BucketRef",
    "ConcatResult",
    "ConcatStrategy",
    "ConcatenationEngine",
    "EncodeFailure",
    "EncodeSuccess",
    "Encoder",
    "EncodingFailure",
    "EncodingTimeout",
    "FfmpegEncoder",
    "MergeOutcome",
    "MergeService",
    "MissingFileError",
    "MissingParameterError",
    "NoSegmentsFound",
    "RecordingMergeError",
    "SegmentStore",
    "SessionEntry",
    "SessionListingService",
    "Settings",
    "SpeedVariantGenerator",
    "StorageFailure",
    "StoredSegment",
    "VariantResults",
    "configure_logging",
    "get_settings",
    "ingest_segment",
]
