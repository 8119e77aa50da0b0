from __future__ import annotations

import argparse
import logging
import socket
import sys
from typing import List, Optional

import uvicorn

from actionsboard.service.app import create_app
from actionsboard.settings import Settings
from actionsboard.telemetry.logging import configure_logging

logger = logging.getLogger("actionsboard")


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind the listening socket up front so a busy port fails fast and loudly."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    return sock


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="actionsboard", description="GitHub Actions / deployment dashboard server")
    parser.add_argument("--host", default=None, help="Listen address (default: ACTIONSBOARD_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Listen port (default: ACTIONSBOARD_PORT or 3001)")
    args = parser.parse_args(argv)

    s = Settings()
    if args.host:
        s.host = args.host
    if args.port:
        s.port = args.port
    configure_logging(s.log_level)

    try:
        sock = bind_socket(s.host, int(s.port))
    except OSError as e:
        logger.error("Cannot listen on %s:%s (%s). Is another instance running?", s.host, s.port, e)
        return 1

    app = create_app(s)
    logger.info("WebSocket server running on port %s", s.port)
    logger.info("Health check available at http://localhost:%s/health", s.port)
    server = uvicorn.Server(uvicorn.Config(app, log_level=s.log_level.lower()))
    server.run(sockets=[sock])
    return 0


if __name__ == "__main__":
    sys.exit(main())
