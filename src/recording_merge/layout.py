"""
Storage layout, sanitization and output naming.

Single source of truth: the store, merge pipeline and listing build and parse
names using only these functions.

Bucket dir:     <root>/<project>/<tool>/<date>/
Segment file:   <tool>_<discriminator><ext>
Manifest:       concat.txt
Base output:    final.mp4                 (label "1x")
Variant output: final_<N>x.mp4            (label "<N>x")
Public path:    <public_prefix>/<project>/<tool>/<date>/<file>

Sanitization replaces every character outside the allow-list with "_". The
allow-lists contain no "." or "/" so no sanitized component can traverse.

Segment ordering is lexicographic on filename. Callers must use discriminators
that sort in capture order; purely numeric ones are zero padded here so "9"
sorts before "10".
"""

import re
from pathlib import Path

from .models import BucketRef

UNKNOWN = "unknown"
MANIFEST_NAME = "concat.txt"
BASE_OUTPUT_NAME = "final.mp4"
BASE_LABEL = "1x"

_COMPONENT_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9_\-]")
_DATE_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9_:\-]")
_EXTENSION_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9]")
_NUMERIC_RE = re.compile(r"^\d+$")
_VARIANT_OUTPUT_RE = re.compile(r"^final_(\d+)x\.mp4$")


def sanitize_component(value: str | None, default: str = UNKNOWN) -> str:
    """Sanitize a project, tool or discriminator component; empty input yields default."""
    if value is None or value == "":
        return default
    return _COMPONENT_UNSAFE_RE.sub("_", str(value))


def sanitize_date(value: str | None, default: str) -> str:
    """Sanitize a capture date (ISO characters allowed: digits, letters, '-', ':')."""
    if value is None or value == "":
        return default
    return _DATE_UNSAFE_RE.sub("_", str(value))


def sanitize_extension(filename: str | None, default: str = ".webm") -> str:
    """Take the extension of an uploaded filename, keep [a-zA-Z0-9], lower-case it."""
    return clean_extension(Path(filename or "").suffix, default)


def clean_extension(extension: str | None, default: str = ".webm") -> str:
    """Reduce an extension to ".<[a-z0-9]+>"; default when nothing remains."""
    cleaned = _EXTENSION_UNSAFE_RE.sub("", extension or "").lower()
    if not cleaned:
        return default
    return f".{cleaned}"


def pad_discriminator(discriminator: str, width: int) -> str:
    """Zero-pad a purely numeric discriminator so lexicographic order equals numeric order."""
    if _NUMERIC_RE.match(discriminator):
        return discriminator.zfill(width)
    return discriminator


def build_segment_filename(tool: str, discriminator: str, extension: str) -> str:
    """Segment filename: <tool>_<discriminator><ext>."""
    return f"{tool}_{discriminator}{extension}"


def bucket_dir(root: Path, bucket: BucketRef) -> Path:
    return root / bucket.project / bucket.tool / bucket.date


def variant_label(multiplier: int) -> str:
    return f"{multiplier}x"


def variant_output_name(multiplier: int) -> str:
    """Derived rendition filename, e.g. final_2x.mp4."""
    return f"final_{multiplier}x.mp4"


def temp_output_name(final_name: str) -> str:
    """
    Hidden in-progress name for an output (e.g. .final.partial.mp4).
    Never matches output_label(), so the listing cannot report it.
    """
    stem, _, ext = final_name.rpartition(".")
    return f".{stem}.partial.{ext}"


def output_label(filename: str) -> str | None:
    """
    Classify a bucket filename as a finished rendition.

    Returns "1x" for final.mp4, "<N>x" for final_<N>x.mp4, otherwise None.
    """
    if filename == BASE_OUTPUT_NAME:
        return BASE_LABEL
    match = _VARIANT_OUTPUT_RE.match(filename)
    if not match:
        return None
    return f"{int(match.group(1))}x"


def is_output_or_temp(filename: str) -> bool:
    """True for merge artifacts (outputs, partial files, manifest) that are never segments."""
    return (
        output_label(filename) is not None
        or filename.startswith(".")
        or filename == MANIFEST_NAME
    )


def public_path(public_prefix: str, bucket: BucketRef, filename: str) -> str:
    """Client-facing path of a stored file under the static prefix."""
    prefix = "/" + public_prefix.strip("/") if public_prefix.strip("/") else ""
    return f"{prefix}/{bucket.project}/{bucket.tool}/{bucket.date}/{filename}"


def manifest_line(path: Path) -> str:
    """ffmpeg concat demuxer line: file '<path>' with single quotes escaped."""
    path_str = str(path).replace("'", "'\\''")
    return f"file '{path_str}'\n"
