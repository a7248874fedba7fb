"""Shared test helpers: fake encoder and manifest parsing."""

import asyncio
from collections.abc import Sequence
from pathlib import Path

from recording_merge.models import EncodeFailure, EncodeSuccess


def read_manifest(manifest: Path) -> list[Path]:
    """Parse an ffmpeg concat manifest back into paths (undoing quote escaping)."""
    paths = []
    for line in manifest.read_text(encoding="utf-8").splitlines():
        assert line.startswith("file '") and line.endswith("'")
        paths.append(Path(line[len("file '") : -1].replace("'\\''", "'")))
    return paths


class FakeEncoder:
    """
    Encoder for tests: no subprocess. Concat writes the segment bytes in manifest
    order; variants write the base bytes plus their options. Failures are chosen
    per operation or per variant label.
    """

    def __init__(
        self,
        *,
        fail_copy: bool = False,
        fail_verify: bool = False,
        fail_reencode_concat: bool = False,
        timeout_reencode_concat: bool = False,
        fail_variants: Sequence[str] = (),
        timeout_variants: Sequence[str] = (),
        delay_sec: float = 0.0,
    ) -> None:
        self.fail_copy = fail_copy
        self.fail_verify = fail_verify
        self.fail_reencode_concat = fail_reencode_concat
        self.timeout_reencode_concat = timeout_reencode_concat
        self.fail_variants = set(fail_variants)
        self.timeout_variants = set(timeout_variants)
        self.delay_sec = delay_sec
        self.calls: list[tuple] = []
        self.active = 0
        self.max_active_concat = 0

    async def stream_copy_concat(self, manifest: Path, output: Path):
        self.calls.append(("copy", manifest, output))
        self.active += 1
        self.max_active_concat = max(self.max_active_concat, self.active)
        try:
            if self.delay_sec:
                await asyncio.sleep(self.delay_sec)
            if self.fail_copy:
                output.write_bytes(b"half-written garbage")
                return EncodeFailure(cause="Non-monotonous DTS in output stream", returncode=1)
            output.write_bytes(b"".join(p.read_bytes() for p in read_manifest(manifest)))
            return EncodeSuccess(output=output)
        finally:
            self.active -= 1

    async def verify(self, media: Path):
        self.calls.append(("verify", media))
        if self.fail_verify:
            return EncodeFailure(cause="Invalid NAL unit size")
        return EncodeSuccess(output=media)

    async def reencode(
        self,
        source: Path,
        output: Path,
        output_options: Sequence[str],
        *,
        source_is_manifest: bool = False,
    ):
        self.calls.append(("reencode", source, output, list(output_options), source_is_manifest))
        if source_is_manifest:
            if self.timeout_reencode_concat:
                return EncodeFailure(cause="ffmpeg timed out after 1s", timed_out=True)
            if self.fail_reencode_concat:
                return EncodeFailure(cause="Invalid data found when processing input", returncode=1)
            body = b"".join(p.read_bytes() for p in read_manifest(source))
            output.write_bytes(b"reencoded:" + body)
            return EncodeSuccess(output=output)
        label = output.name.removeprefix(".final_").removesuffix(".partial.mp4")
        if label in self.timeout_variants:
            return EncodeFailure(cause="ffmpeg timed out after 1s", timed_out=True)
        if label in self.fail_variants:
            output.write_bytes(b"partial")
            return EncodeFailure(cause="Conversion failed!", returncode=1)
        output.write_bytes(source.read_bytes() + b"|" + " ".join(output_options).encode())
        return EncodeSuccess(output=output)

    def variant_calls(self) -> list[tuple]:
        return [c for c in self.calls if c[0] == "reencode" and not c[4]]
