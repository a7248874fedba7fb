"""
Entrypoint: run the API with uvicorn.

If the configured port is busy the next ports are probed; after
port_probe_attempts the configured port is used anyway.
"""

import argparse
import errno
import logging
import socket

import uvicorn

from .config import bootstrap_env, get_settings
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def find_available_port(start: int, max_attempts: int = 10, host: str = "0.0.0.0") -> int:
    """Return the first bindable port in [start, start + max_attempts), else start."""
    port = start
    for _ in range(max_attempts):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            try:
                sock.bind((host, port))
            except OSError as e:
                if e.errno != errno.EADDRINUSE:
                    return start
                logger.warning("Port %s in use. Retrying on %s...", port, port + 1)
                port += 1
                continue
        return port
    return start


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Recording upload/merge service")
    parser.add_argument("--host", help="Bind address (default from RECORDING_MERGE_HOST)")
    parser.add_argument("--port", type=int, help="Port (default from RECORDING_MERGE_PORT/PORT)")
    args = parser.parse_args(argv)

    bootstrap_env()
    settings = get_settings()
    configure_logging(settings.log_level)
    host = args.host or settings.host
    port = find_available_port(
        args.port or settings.port, settings.port_probe_attempts, host=host
    )
    logger.info("%s listening on %s:%s", settings.service_name, host, port)
    uvicorn.run(
        "recording_merge.api.main:app_from_env",
        factory=True,
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
