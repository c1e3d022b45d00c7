from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_LEVEL_ENV = "SAFETY_AGGREGATES_LOG_LEVEL"


def configure_logging(level: str | None = None) -> None:
    resolved = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    # matplotlib logs font discovery at INFO.
    logging.getLogger("matplotlib").setLevel(max(logging.WARNING, logging.getLogger().level))
