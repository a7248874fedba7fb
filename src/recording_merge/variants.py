"""
Speed variants derived from final.mp4.

For multiplier S the video is retimed with setpts=(1/S)*PTS. Audio is kept with
atempo=S while S is within the single-step tempo limit (tempo_threshold);
beyond it the output is silent (-an) instead of chaining atempo filters.

Each variant is an independent encoder invocation writing its own hidden
partial file; a failure never touches the base output or other variants.
"""

import asyncio
import logging
import os
from collections.abc import Iterable
from pathlib import Path

from .interfaces import Encoder
from .layout import temp_output_name, variant_label, variant_output_name
from .models import BucketRef, EncodeFailure, VariantResults

logger = logging.getLogger(__name__)


def variant_output_options(multiplier: int, tempo_threshold: float) -> list[str]:
    """ffmpeg output options for one speed multiplier."""
    opts = ["-filter:v", f"setpts={1 / multiplier:.3f}*PTS"]
    if multiplier <= tempo_threshold:
        opts.extend(["-filter:a", f"atempo={float(multiplier):.1f}"])
    else:
        opts.append("-an")
    return opts


class SpeedVariantGenerator:
    """Renders final_<N>x.mp4 files next to the base output."""

    def __init__(
        self,
        encoder: Encoder,
        *,
        tempo_threshold: float = 2.0,
        concurrency: int = 3,
    ) -> None:
        self.encoder = encoder
        self.tempo_threshold = tempo_threshold
        self.concurrency = concurrency

    async def generate(
        self,
        base_output: Path,
        bucket: BucketRef,
        multipliers: Iterable[int],
    ) -> VariantResults:
        """
        Produce every requested variant; collect successes and failures per label.

        Never raises for an individual variant failure.
        """
        semaphore = asyncio.Semaphore(self.concurrency)
        multipliers = list(multipliers)

        async def one(multiplier: int) -> tuple[str, Path | None, str | None]:
            async with semaphore:
                return await self._render(base_output, bucket, multiplier)

        results = await asyncio.gather(*(one(s) for s in multipliers))
        out = VariantResults()
        for label, path, error in results:
            if path is not None:
                out.outputs[label] = path
            else:
                out.failures[label] = error or "unknown error"
        logger.info(
            "variants: bucket=%s ok=%s failed=%s",
            bucket.label,
            sorted(out.outputs),
            sorted(out.failures),
        )
        return out

    async def _render(
        self,
        base_output: Path,
        bucket: BucketRef,
        multiplier: int,
    ) -> tuple[str, Path | None, str | None]:
        label = variant_label(multiplier)
        final_path = base_output.parent / variant_output_name(multiplier)
        partial = base_output.parent / temp_output_name(final_path.name)
        options = variant_output_options(multiplier, self.tempo_threshold)
        logger.debug("variants: bucket=%s %s options=%s", bucket.label, label, options)
        try:
            outcome = await self.encoder.reencode(base_output, partial, options)
            if isinstance(outcome, EncodeFailure):
                logger.warning(
                    "variants: bucket=%s %s failed (timed_out=%s)",
                    bucket.label,
                    label,
                    outcome.timed_out,
                )
                prefix = "timed out" if outcome.timed_out else "failed"
                return label, None, f"{label} {prefix}: {outcome.cause}"
            os.replace(partial, final_path)
        except OSError as e:
            logger.warning("variants: bucket=%s %s cannot finalize: %s", bucket.label, label, e)
            return label, None, f"{label} failed: {e}"
        finally:
            partial.unlink(missing_ok=True)
        return label, final_path, None
