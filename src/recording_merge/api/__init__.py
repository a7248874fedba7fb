"""HTTP API for the recording-merge service."""

from .main import app_from_env, create_app

__all__ = ["app_from_env", "create_app"]
