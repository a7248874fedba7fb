"""
ffmpeg-backed Encoder.

Each operation is one `ffmpeg -y ...` subprocess awaited with a time bound.
Failures are returned as EncodeFailure (never raised) so callers can decide
whether to fall back; on timeout the process is killed and reaped.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from pathlib import Path

from .models import EncodeFailure, EncodeOutcome, EncodeSuccess

logger = logging.getLogger(__name__)

STDERR_TAIL_CHARS = 2000
CONCAT_INPUT_OPTIONS = ["-f", "concat", "-safe", "0"]


def _tail(stderr: bytes | None) -> str:
    if not stderr:
        return ""
    return stderr.decode("utf-8", errors="replace")[-STDERR_TAIL_CHARS:].strip()


class FfmpegEncoder:
    """Runs ffmpeg as an asyncio subprocess."""

    def __init__(self, binary: str = "ffmpeg", *, timeout_sec: float = 3600.0) -> None:
        self.binary = binary
        self.timeout_sec = timeout_sec

    def build_stream_copy_cmd(self, manifest: Path, output: Path) -> list[str]:
        return [
            self.binary,
            "-y",
            *CONCAT_INPUT_OPTIONS,
            "-i",
            str(manifest),
            "-c",
            "copy",
            str(output),
        ]

    def build_reencode_cmd(
        self,
        source: Path,
        output: Path,
        output_options: Sequence[str],
        *,
        source_is_manifest: bool = False,
    ) -> list[str]:
        cmd = [self.binary, "-y"]
        if source_is_manifest:
            cmd.extend(CONCAT_INPUT_OPTIONS)
        cmd.extend(["-i", str(source), *output_options, str(output)])
        return cmd

    def build_verify_cmd(self, media: Path) -> list[str]:
        return [self.binary, "-v", "error", "-i", str(media), "-f", "null", "-"]

    async def stream_copy_concat(self, manifest: Path, output: Path) -> EncodeOutcome:
        return await self.run(self.build_stream_copy_cmd(manifest, output), output)

    async def verify(self, media: Path) -> EncodeOutcome:
        """Decode media fully; any decoder error output counts as a failure."""
        return await self.run(self.build_verify_cmd(media), media, strict=True)

    async def reencode(
        self,
        source: Path,
        output: Path,
        output_options: Sequence[str],
        *,
        source_is_manifest: bool = False,
    ) -> EncodeOutcome:
        cmd = self.build_reencode_cmd(
            source, output, output_options, source_is_manifest=source_is_manifest
        )
        return await self.run(cmd, output)

    async def run(self, cmd: list[str], output: Path, *, strict: bool = False) -> EncodeOutcome:
        """
        Run one ffmpeg command; return EncodeSuccess only on exit 0.
        With strict=True any stderr output is also a failure (used with -v error).
        """
        logger.debug("encoder: %s", " ".join(cmd))
        start = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            # e.g. ffmpeg not installed
            logger.error("encoder: cannot start %s: %s", self.binary, e)
            return EncodeFailure(cause=f"Cannot start {self.binary}: {e}")

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_sec)
        except asyncio.TimeoutError:
            if proc.returncode is None:
                proc.kill()
            await proc.wait()
            logger.warning(
                "encoder: killed after %.0fs -> %s", self.timeout_sec, output.name
            )
            return EncodeFailure(
                cause=f"{self.binary} timed out after {self.timeout_sec:g}s",
                returncode=proc.returncode,
                timed_out=True,
            )
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise

        elapsed = time.monotonic() - start
        if proc.returncode != 0:
            cause = _tail(stderr) or f"{self.binary} exited with code {proc.returncode}"
            logger.warning(
                "encoder: exit=%s after %.1fs -> %s: %s",
                proc.returncode,
                elapsed,
                output.name,
                cause,
            )
            return EncodeFailure(cause=cause, returncode=proc.returncode)
        if strict and _tail(stderr):
            logger.warning("encoder: errors reported for %s: %s", output.name, _tail(stderr))
            return EncodeFailure(cause=_tail(stderr), returncode=proc.returncode)
        logger.debug("encoder: completed in %.1fs -> %s", elapsed, output.name)
        return EncodeSuccess(output=output, elapsed_sec=elapsed)
