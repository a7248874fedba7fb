"""Pydantic models for buckets, encoder outcomes, merge results, and API DTOs."""

from enum import Enum
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class BucketRef(BaseModel):
    """Sanitized (project, tool, date) identity of a bucket: the unit of merge."""

    model_config = ConfigDict(frozen=True)

    project: str
    tool: str
    date: str

    @property
    def label(self) -> str:
        """Short form for logs, e.g. proj/cam/2024-01-01."""
        return f"{self.project}/{self.tool}/{self.date}"


class StoredSegment(BaseModel):
    """A segment persisted by the store."""

    bucket: BucketRef
    filename: str
    path: Path
    size: int = Field(..., ge=0)


# --- Encoder outcomes (tagged by kind) ---


class EncodeSuccess(BaseModel):
    """One encoder invocation that exited 0 and produced its output."""

    kind: Literal["success"] = "success"
    output: Path
    elapsed_sec: float = 0.0


class EncodeFailure(BaseModel):
    """One encoder invocation that failed: non-zero exit, spawn error, or timeout."""

    kind: Literal["failure"] = "failure"
    cause: str
    returncode: int | None = None
    timed_out: bool = False


EncodeOutcome = Annotated[EncodeSuccess | EncodeFailure, Field(discriminator="kind")]


class ConcatStrategy(str, Enum):
    """Which concatenation path produced the base output."""

    STREAM_COPY = "stream_copy"
    REENCODE = "reencode"


class ConcatResult(BaseModel):
    """Result of concatenating a bucket: attempts taken and the path that won."""

    bucket: BucketRef
    output: Path
    strategy: ConcatStrategy
    segments: list[Path]
    attempts: list[EncodeOutcome] = Field(default_factory=list)


class VariantResults(BaseModel):
    """Outcome of speed-variant generation: label -> path for successes, label -> error."""

    outputs: dict[str, Path] = Field(default_factory=dict)
    failures: dict[str, str] = Field(default_factory=dict)


class MergeOutcome(BaseModel):
    """Full merge result: public paths of every usable rendition."""

    bucket: BucketRef
    strategy: ConcatStrategy
    outputs: dict[str, str]
    failures: dict[str, str] = Field(default_factory=dict)


# --- API DTOs ---


class UploadResponse(BaseModel):
    """Acknowledgement for POST /upload."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    filename: str
    path: str = Field(..., description="Full stored path on the server")
    size: int
    project_id: str = Field(..., alias="projectId")
    tool: str
    date: str


class MergeRequest(BaseModel):
    """Request body for POST /merge."""

    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(..., alias="projectId", min_length=1)
    tool: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)


class MergeResponse(BaseModel):
    """Response for POST /merge: variant label -> public path."""

    ok: bool = True
    outputs: dict[str, str]
    failed: dict[str, str] = Field(
        default_factory=dict, description="Variant label -> error for variants that failed"
    )


class SessionEntry(BaseModel):
    """One bucket with at least one finished rendition."""

    tool: str
    date: str
    paths: dict[str, str]


class SessionsResponse(BaseModel):
    """Response for GET /sessions."""

    ok: bool = True
    sessions: list[SessionEntry]


class HealthResponse(BaseModel):
    """Response for GET /health."""

    ok: bool = True
    service: str
    timestamp: str


class ErrorResponse(BaseModel):
    """Uniform error body."""

    ok: Literal[False] = False
    error: str
