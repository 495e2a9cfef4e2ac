import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .core_math.entry_window import SubmissionWindow
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    window: SubmissionWindow
    time_constraints_enabled: bool
    auto_acknowledgement_enabled: bool
    conflict_span_minutes: int = 10
    fetch_timeout_s: float = 2.0


def _required(env: Mapping[str, str], key: str) -> str:
    value = env.get(key)
    if value is None or value.strip() == "":
        raise ConfigurationError(f"{key} environment variable is required")
    return value.strip()


def _as_int(key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from None


def _as_bool(key: str, value: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigurationError(f"{key} must be a boolean flag, got {value!r}")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Read window bounds and feature flags. With no mapping given, .env is
    loaded into the process environment first.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    lower = _as_int("RCL_LOWER_LIMIT", _required(env, "RCL_LOWER_LIMIT"))
    upper = _as_int("RCL_UPPER_LIMIT", _required(env, "RCL_UPPER_LIMIT"))
    try:
        window = SubmissionWindow(lower_bound_minutes=lower, upper_bound_minutes=upper)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    span = _as_int("RCL_CONFLICT_SPAN_MINUTES", env.get("RCL_CONFLICT_SPAN_MINUTES", "10"))
    if span < 0:
        raise ConfigurationError(f"RCL_CONFLICT_SPAN_MINUTES must be >= 0, got {span}")

    timeout_raw = env.get("RCL_FETCH_TIMEOUT_S", "2.0")
    try:
        timeout = float(timeout_raw)
    except ValueError:
        raise ConfigurationError(f"RCL_FETCH_TIMEOUT_S must be a number, got {timeout_raw!r}") from None

    settings = Settings(
        window=window,
        time_constraints_enabled=_as_bool("RCL_TIME_CONSTRAINTS_ENABLED", _required(env, "RCL_TIME_CONSTRAINTS_ENABLED")),
        auto_acknowledgement_enabled=_as_bool("RCL_AUTO_ACKNOWLEDGEMENT_ENABLED", _required(env, "RCL_AUTO_ACKNOWLEDGEMENT_ENABLED")),
        conflict_span_minutes=span,
        fetch_timeout_s=timeout,
    )
    logger.info(f"Settings loaded (window={lower}-{upper} min, time constraints={settings.time_constraints_enabled}, "
                f"auto ack={settings.auto_acknowledgement_enabled})")
    return settings
