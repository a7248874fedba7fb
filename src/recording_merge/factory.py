"""
Build pipeline components from Settings.

Apps import from this module so wiring lives in one place; tests pass their
own Settings (e.g. a tmp_path storage root) and a fake Encoder.
"""

from .concat import ConcatenationEngine
from .config import Settings
from .encoder import FfmpegEncoder
from .interfaces import Encoder
from .listing import SessionListingService
from .merge import MergeService
from .segment_store import SegmentStore
from .variants import SpeedVariantGenerator


def segment_store_from_settings(settings: Settings) -> SegmentStore:
    return SegmentStore(
        settings.resolved_storage_root(),
        media_extensions=settings.media_extensions,
        segment_pad_width=settings.segment_pad_width,
    )


def encoder_from_settings(settings: Settings) -> FfmpegEncoder:
    return FfmpegEncoder(settings.ffmpeg_binary, timeout_sec=settings.encoder_timeout_sec)


def merge_service_from_settings(
    settings: Settings,
    store: SegmentStore,
    encoder: Encoder | None = None,
) -> MergeService:
    """MergeService over store; encoder defaults to ffmpeg from settings."""
    encoder = encoder or encoder_from_settings(settings)
    engine = ConcatenationEngine(
        store,
        encoder,
        settings.reencode.output_options(),
        verify_stream_copy=settings.verify_stream_copy,
    )
    variants = SpeedVariantGenerator(
        encoder,
        tempo_threshold=settings.tempo_threshold,
        concurrency=settings.variant_concurrency,
    )
    return MergeService(
        engine,
        variants,
        speed_multipliers=settings.speed_multipliers,
        public_prefix=settings.public_prefix,
    )


def listing_service_from_settings(settings: Settings, store: SegmentStore) -> SessionListingService:
    return SessionListingService(store, settings.public_prefix)
