"""
Merge request: lock bucket, concatenate segments, render speed variants.

Base concatenation strictly precedes variant generation. Merges of the same
bucket are serialized by an in-process lock keyed by (project, tool, date);
there is no coordination across processes, so run a single worker process.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from .concat import ConcatenationEngine
from .layout import BASE_LABEL, public_path, variant_label
from .models import BucketRef, MergeOutcome
from .variants import SpeedVariantGenerator

logger = logging.getLogger(__name__)


class BucketLocks:
    """Per-bucket asyncio locks, created lazily and dropped when released uncontended."""

    def __init__(self) -> None:
        self._locks: dict[BucketRef, asyncio.Lock] = {}
        self._waiters: dict[BucketRef, int] = {}

    def is_locked(self, bucket: BucketRef) -> bool:
        lock = self._locks.get(bucket)
        return lock is not None and lock.locked()

    async def acquire(self, bucket: BucketRef) -> None:
        lock = self._locks.setdefault(bucket, asyncio.Lock())
        self._waiters[bucket] = self._waiters.get(bucket, 0) + 1
        try:
            await lock.acquire()
        except BaseException:
            self._release_waiter(bucket)
            raise

    def release(self, bucket: BucketRef) -> None:
        self._locks[bucket].release()
        self._release_waiter(bucket)

    def _release_waiter(self, bucket: BucketRef) -> None:
        remaining = self._waiters.get(bucket, 1) - 1
        if remaining <= 0:
            self._waiters.pop(bucket, None)
            self._locks.pop(bucket, None)
        else:
            self._waiters[bucket] = remaining


class MergeService:
    """Runs one merge for a bucket and maps renditions to public paths."""

    def __init__(
        self,
        engine: ConcatenationEngine,
        variants: SpeedVariantGenerator,
        *,
        speed_multipliers: Sequence[int],
        public_prefix: str,
        locks: BucketLocks | None = None,
    ) -> None:
        self.engine = engine
        self.variants = variants
        self.speed_multipliers = list(speed_multipliers)
        self.public_prefix = public_prefix
        self.locks = locks or BucketLocks()

    async def merge(self, bucket: BucketRef) -> MergeOutcome:
        """
        Concatenate the bucket and derive its speed variants.

        Concatenation errors (NoSegmentsFound, EncodingFailure, StorageFailure)
        propagate. Variant failures are reported in MergeOutcome.failures while
        the base output and successful variants are kept.
        """
        if self.locks.is_locked(bucket):
            logger.info("merge: bucket=%s waiting for running merge", bucket.label)
        await self.locks.acquire(bucket)
        try:
            logger.info("merge: bucket=%s start", bucket.label)
            concat = await self.engine.concatenate(bucket)
            rendered = await self.variants.generate(
                concat.output, bucket, self.speed_multipliers
            )
        finally:
            self.locks.release(bucket)

        outputs = {BASE_LABEL: public_path(self.public_prefix, bucket, concat.output.name)}
        for multiplier in self.speed_multipliers:
            label = variant_label(multiplier)
            path = rendered.outputs.get(label)
            if path is not None:
                outputs[label] = public_path(self.public_prefix, bucket, path.name)
        logger.info(
            "merge: bucket=%s done strategy=%s outputs=%s failed=%s",
            bucket.label,
            concat.strategy.value,
            list(outputs),
            list(rendered.failures),
        )
        return MergeOutcome(
            bucket=bucket,
            strategy=concat.strategy,
            outputs=outputs,
            failures=rendered.failures,
        )
