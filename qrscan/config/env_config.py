"""Environment variable overrides for configuration.

Every override uses the ``QRSCAN_`` prefix, e.g. ``QRSCAN_MODEL_PATH`` or
``QRSCAN_DEVICE``. Values are validated before they replace file settings;
invalid values are logged and ignored.
"""
import os
import logging
from typing import Any, Callable, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = "QRSCAN_"

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
VALID_FACINGS = {"front", "back"}


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _parse_log_level(value: str) -> str:
    level = value.strip().upper()
    if level not in VALID_LOG_LEVELS:
        raise ValueError(f"unknown log level {value!r}")
    return level


def _parse_facing(value: str) -> str:
    facing = value.strip().lower()
    if facing not in VALID_FACINGS:
        raise ValueError(f"facing must be one of {sorted(VALID_FACINGS)}")
    return facing


def _parse_path(value: str) -> str:
    path = value.strip()
    if not path:
        raise ValueError("path cannot be empty")
    return os.path.normpath(path)


# config key -> parser
ENV_OVERRIDES: Dict[str, Callable[[str], Any]] = {
    "model_path": _parse_path,
    "device": str.strip,
    "detection_threshold": float,
    "default_facing": _parse_facing,
    "back_camera_index": int,
    "front_camera_index": int,
    "enhance_contrast": _parse_bool,
    "open_urls": _parse_bool,
    "log_level": _parse_log_level,
    "log_dir": _parse_path,
}


def load_environment_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Collect validated configuration overrides from the environment.

    Args:
        environ: Mapping to read from (defaults to ``os.environ``)

    Returns:
        dict of config key -> parsed value for every valid override found
    """
    environ = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}

    for key, parser in ENV_OVERRIDES.items():
        var_name = ENV_PREFIX + key.upper()
        raw = environ.get(var_name)
        if raw is None:
            continue
        try:
            overrides[key] = parser(raw)
        except ValueError as e:
            logger.warning(f"Ignoring invalid environment variable {var_name}: {e}")

    if overrides:
        logger.debug(f"Environment overrides: {sorted(overrides)}")
    return overrides
