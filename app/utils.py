from __future__ import annotations

import logging
import math
import os
from typing import Optional

LOGGER_NAME = "pi_valuation"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Configure process-wide logging once and return the application logger.

    The level comes from the explicit argument, then ``LOG_LEVEL``, then INFO.
    Calling this repeatedly is safe; handlers are only installed the first time.
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=numeric_level, format=LOG_FORMAT)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)
    return logger


def to_number(value, default: Optional[float] = 0.0) -> Optional[float]:
    """Coerce a form/JSON value to a finite float, falling back to ``default``.

    None, empty strings, non-numeric strings, NaN and infinities all map to the
    default so downstream arithmetic never sees them.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number
