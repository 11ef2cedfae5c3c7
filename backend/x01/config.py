import logging
import os

from x01.scoring.models import OpenerPolicy

logger = logging.getLogger(__name__)


def _log_level(val):
    """
    Accept level names (case-insensitive) or numbers; default to INFO.
    """
    val = (val or "INFO").strip().upper()
    if val.isdigit():
        return int(val)
    level = logging.getLevelName(val)
    if isinstance(level, int):
        return level
    logger.warning("X01_LOG_LEVEL %r is not a logging level; defaulting to INFO", val)
    return logging.INFO


def _opener_policy(val):
    val = (val or OpenerPolicy.ROTATE.value).strip().lower()
    try:
        return OpenerPolicy(val)
    except ValueError:
        logger.warning(
            "X01_DEFAULT_OPENER_POLICY %r is not one of %s; defaulting to %s",
            val,
            [p.value for p in OpenerPolicy],
            OpenerPolicy.ROTATE.value,
        )
        return OpenerPolicy.ROTATE


def _positive_int(env_var, default):
    raw_value = os.getenv(env_var)
    if raw_value is None or not raw_value.strip():
        return default
    try:
        value = int(raw_value)
    except ValueError:
        logger.warning("%s is not a valid integer (got %r); defaulting to %d", env_var, raw_value, default)
        return default
    if value <= 1:
        logger.warning("%s must be greater than 1; defaulting to %d", env_var, default)
        return default
    return value


LOG_LEVEL = _log_level(os.getenv("X01_LOG_LEVEL"))
DEFAULT_OPENER_POLICY = _opener_policy(os.getenv("X01_DEFAULT_OPENER_POLICY"))
DEFAULT_STARTING_SCORE = _positive_int("X01_DEFAULT_STARTING_SCORE", 501)
