from __future__ import annotations

"""YAML configuration sections for taskpad.

Each section is a packaged ``*.yml`` file in this folder. A user copy of the
same file, when present, is deep-merged on top of it so that overriding one
nested key (a single handler level, say) leaves its siblings intact.

User files live in:

* ``$TASKPAD_CONFIG_DIR`` when the variable is set (tests use this);
* ``%LOCALAPPDATA%\\Taskpad\\config`` on Windows;
* ``~/.taskpad`` elsewhere.

Missing user files are seeded from the packaged defaults on first load.
"""

import copy
import importlib.resources as pkg_resources
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)

__all__ = ["ConfigManager"]

# section key -> packaged file name
SECTIONS: Dict[str, str] = {
    "engine": "engine.yml",
    "logging": "logging.yml",
}


def user_config_dir() -> Path:
    env_dir = os.environ.get("TASKPAD_CONFIG_DIR")
    if env_dir:
        return Path(env_dir)
    if os.name != "nt":
        return Path.home() / ".taskpad"
    base = os.environ.get("LOCALAPPDATA")
    root = Path(base) if base else Path.home() / "AppData" / "Local"
    return root / "Taskpad" / "config"


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Return *base* updated with *override*, recursing into nested mappings."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _packaged_text(filename: str) -> str:
    return pkg_resources.files(__package__).joinpath(filename).read_text(encoding="utf-8")


def _parse_mapping(text: str, origin: str) -> Optional[Dict[str, Any]]:
    """Parse *text* as a YAML mapping; ``None`` (logged) when it is not one."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        logger.error("Config %s is not valid YAML: %s", origin, exc)
        return None
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.error("Config %s must be a mapping, got %s", origin, type(data).__name__)
        return None
    return data


def _seed_user_file(target: Path, filename: str) -> None:
    if target.exists():
        return
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(_packaged_text(filename), encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not seed user config %s: %s", target, exc)
    else:
        logger.info("Seeded user config %s", target)


class _Singleton(type):
    _instance: "ConfigManager" | None = None

    def __call__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__call__(*args, **kwargs)
        return cls._instance


class ConfigManager(metaclass=_Singleton):
    """Process-wide holder of the merged configuration sections.

    Sections are read once, on first construction. Accessors hand out deep
    copies, so callers may adjust what they receive (``setup_logging`` fills
    in the log file path) without touching the shared state.
    """

    def __init__(self) -> None:
        self.user_dir = user_config_dir()
        self._sections: Dict[str, Dict[str, Any]] = {}
        statuses = [f"{key}: {self._load_section(key, filename)}" for key, filename in SECTIONS.items()]
        logger.info("Config loaded from %s (%s)", self.user_dir, ", ".join(statuses))

    def get(self, section: str) -> Dict[str, Any]:
        return copy.deepcopy(self._sections.get(section, {}))

    def get_engine_config(self) -> Dict[str, Any]:
        return self.get("engine")

    def get_logging_config(self) -> Dict[str, Any]:
        return self.get("logging")

    @classmethod
    def reset(cls) -> None:
        """Forget the shared instance; the next ``ConfigManager()`` rereads disk."""
        cls._instance = None

    def _load_section(self, key: str, filename: str) -> str:
        try:
            packaged = _parse_mapping(_packaged_text(filename), f"package:{filename}")
        except OSError as exc:
            logger.error("Packaged config %s unavailable: %s", filename, exc)
            packaged = None
        status = "defaults" if packaged is not None else "no defaults"
        section = packaged or {}

        user_path = self.user_dir / filename
        _seed_user_file(user_path, filename)
        if user_path.exists():
            try:
                user_text = user_path.read_text(encoding="utf-8")
            except OSError as exc:
                logger.error("Could not read user config %s: %s", user_path, exc)
                user_text = None
            overrides = _parse_mapping(user_text, str(user_path)) if user_text is not None else None
            if overrides:
                section = deep_merge(section, overrides)
                status += "+user"

        self._sections[key] = section
        return status
