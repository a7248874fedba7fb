"""
App config from environment with defaults.
Single place for env-derived values used by the store, encoder, merge pipeline and API.
Uses pydantic-settings so all env vars are validated and documented in one model.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReencodeProfile(BaseSettings):
    """Uniform output profile used when stream-copy concatenation is not possible."""

    model_config = SettingsConfigDict(env_prefix="RECORDING_MERGE_REENCODE_", extra="ignore")

    video_codec: str = "libx264"
    preset: str = "veryfast"
    crf: int = Field(23, ge=0, le=51)
    pixel_format: str = "yuv420p"
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"

    def output_options(self) -> list[str]:
        """ffmpeg output arguments for this profile."""
        return [
            "-c:v",
            self.video_codec,
            "-preset",
            self.preset,
            "-crf",
            str(self.crf),
            "-pix_fmt",
            self.pixel_format,
            "-c:a",
            self.audio_codec,
            "-b:a",
            self.audio_bitrate,
        ]


class Settings(BaseSettings):
    """
    All environment variables used by the service.
    Env vars are read from os.environ as RECORDING_MERGE_<FIELD> (upper case).
    """

    model_config = SettingsConfigDict(
        env_prefix="RECORDING_MERGE_",
        env_file=None,  # .env is loaded by bootstrap_env() so env is ready
        extra="ignore",
    )

    # Storage layout: <storage_root>/<project>/<tool>/<date>/
    storage_root: Path = Path("uploads")
    public_prefix: str = "/uploads"
    media_extensions: list[str] = Field(default_factory=lambda: [".webm", ".mp4", ".mkv"])
    default_extension: str = ".webm"
    # Numeric discriminators are zero padded to this width (13 = epoch milliseconds)
    segment_pad_width: int = Field(13, ge=1, le=32)

    # Speed variants
    speed_multipliers: list[int] = Field(default_factory=lambda: [2, 5, 10])
    tempo_threshold: float = Field(2.0, gt=0)
    variant_concurrency: int = Field(3, ge=1)

    # Encoder subprocess
    ffmpeg_binary: str = "ffmpeg"
    encoder_timeout_sec: float = Field(3600.0, gt=0)
    # Decode the stream-copy output once and fall back to re-encode on decoder errors
    verify_stream_copy: bool = True
    reencode: ReencodeProfile = Field(default_factory=ReencodeProfile)

    # HTTP server
    service_name: str = "recording-merge"
    host: str = "0.0.0.0"
    port: int = 8080
    port_probe_attempts: int = Field(10, ge=1)
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @field_validator("media_extensions", mode="after")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        out = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            out.append(ext if ext.startswith(".") else f".{ext}")
        if not out:
            raise ValueError("media_extensions must not be empty")
        return out

    @field_validator("public_prefix", mode="after")
    @classmethod
    def normalize_prefix(cls, v: str) -> str:
        stripped = v.strip().strip("/")
        if not stripped:
            raise ValueError("public_prefix must name a path, e.g. /uploads")
        return f"/{stripped}"

    @field_validator("speed_multipliers", mode="after")
    @classmethod
    def check_multipliers(cls, v: list[int]) -> list[int]:
        if any(s <= 1 for s in v):
            raise ValueError("speed multipliers must be greater than 1 (1x is the base output)")
        return sorted(set(v))

    def resolved_storage_root(self) -> Path:
        return self.storage_root.expanduser().resolve()


def get_settings() -> Settings:
    """Return validated settings from current environment."""
    settings = Settings()
    # Plain PORT (e.g. set by a PaaS) is honoured when no prefixed value is given
    if "RECORDING_MERGE_PORT" not in os.environ and os.environ.get("PORT"):
        settings = settings.model_copy(update={"port": int(os.environ["PORT"])})
    return settings


def bootstrap_env() -> None:
    """
    Load .env from the path in RECORDING_MERGE_ENV_FILE, or ./.env when present.
    Call once at startup before get_settings() so vars from the file are in os.environ.
    """
    import dotenv

    path = os.environ.get("RECORDING_MERGE_ENV_FILE")
    if path:
        dotenv.load_dotenv(Path(path).resolve())
        return
    local = Path.cwd() / ".env"
    if local.exists():
        dotenv.load_dotenv(local)
