"""
Narrow interfaces the merge pipeline depends on.

The pipeline receives an Encoder implementation (ffmpeg in production, a fake
in tests) so the concat/variant logic never spawns processes directly.
"""

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from .models import EncodeOutcome


@runtime_checkable
class Encoder(Protocol):
    """Media encoder: stream-copy concat, re-encode, and a decode check."""

    async def stream_copy_concat(self, manifest: Path, output: Path) -> EncodeOutcome:
        """Concatenate the files listed in a concat manifest without re-encoding."""
        ...

    async def verify(self, media: Path) -> EncodeOutcome:
        """Decode media end to end; EncodeFailure when the decoder reports errors."""
        ...

    async def reencode(
        self,
        source: Path,
        output: Path,
        output_options: Sequence[str],
        *,
        source_is_manifest: bool = False,
    ) -> EncodeOutcome:
        """
        Re-encode source into output with the given ffmpeg output options.
        When source_is_manifest is True, source is a concat manifest.
        """
        ...
