"""Engine settings model.

Tunable constants for drag projection, marquee selection, auto-scroll,
history coalescing and outbound debouncing. Values come from the ``engine``
configuration section; anything missing falls back to the defaults below.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional

from taskpad.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

__all__ = ["EngineSettings", "DEFAULT_SETTINGS", "load_engine_settings"]


@dataclass(frozen=True)
class EngineSettings:
    """Configuration values consumed by the editing controller."""

    indent_width: int = 24
    marquee_threshold: float = 5.0
    autoscroll_margin: float = 50.0
    autoscroll_step: float = 15.0
    frame_interval: float = 1.0 / 60.0
    coalesce_window: float = 1.0
    persist_debounce: float = 2.0
    sync_settle_delay: float = 0.15
    keep_placeholder: bool = True
    max_history: Optional[int] = None

    def __post_init__(self) -> None:
        if self.indent_width <= 0:
            raise ConfigError("indent_width must be positive", key="indent_width")
        if self.max_history is not None and self.max_history < 1:
            raise ConfigError("max_history must be >= 1 when set", key="max_history")

    @classmethod
    def from_config(cls, section: Optional[Mapping[str, Any]]) -> "EngineSettings":
        """Build settings from a config mapping, ignoring unknown keys."""
        known = {f.name: f for f in fields(cls)}
        values = {}
        for key, value in (section or {}).items():
            if key not in known:
                logger.warning("Ignoring unknown engine setting '%s'", key)
                continue
            values[key] = value
        try:
            return replace(DEFAULT_SETTINGS, **values)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid engine settings: {exc}", cause=exc) from exc


DEFAULT_SETTINGS = EngineSettings()


def load_engine_settings() -> EngineSettings:
    """Return settings from the process configuration, or defaults on error."""
    from taskpad.config import ConfigManager

    section = ConfigManager().get_engine_config()
    try:
        return EngineSettings.from_config(section)
    except ConfigError as exc:
        logger.error("Engine config rejected, using defaults: %s", exc)
        return DEFAULT_SETTINGS
