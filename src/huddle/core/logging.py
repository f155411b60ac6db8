"""Logging setup shared by the API process and the helper scripts."""

from __future__ import annotations

import logging

from huddle.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install a stream handler on the root logger at the configured level."""
    resolved = (level or settings.log_level).upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger("huddle").setLevel(resolved)
