from __future__ import annotations

import logging


def configure_logging(level: str) -> None:
    """Configure root logging for the dashboard server."""

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )
