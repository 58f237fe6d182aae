# src/markup_auditor/managers/config_manager.py
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from markup_auditor.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

_MISSING = object()
_TRUE_STRINGS = ("1", "true", "yes", "on")


def _coerce(original: Any, value: Any, key_path: str) -> Any:
    """Casts `value` to the type of the setting it replaces, when that is a scalar."""
    if original is None or isinstance(original, (dict, list)):
        return value
    if isinstance(original, bool):
        return value.strip().lower() in _TRUE_STRINGS if isinstance(value, str) else bool(value)
    try:
        return type(original)(value)
    except (ValueError, TypeError):
        logger.warning("Could not cast '%s' for %s to %s; keeping it as given.",
                       value, key_path, type(original).__name__)
        return value


class ConfigManager:
    """
    Singleton holding the auditor settings (engine, scoring and rule thresholds).

    Values come from the bundled settings.json, or from the file named by the
    MARKUP_AUDITOR_SETTINGS environment variable. Rules read their thresholds
    at evaluation time, so in-memory changes apply to the next audit.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._config = {}
            cls._instance.source = None
            cls._instance.reset()
        return cls._instance

    @staticmethod
    def _load(path: Path) -> Dict[str, Any]:
        if not path.exists():
            logger.warning("Settings file not found at %s. Using built-in defaults.", path)
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load settings from %s: %s", path, e, exc_info=True)
            return {}
        if not isinstance(data, dict):
            logger.error("Settings file %s does not contain a JSON object.", path)
            return {}
        return data

    def reset(self) -> None:
        """Discards in-memory changes and reloads the settings file."""
        self.source: Optional[Path] = PathUtils.get_settings_file()
        self._config = self._load(self.source)
        logger.debug("Settings loaded from %s", self.source)

    def get_all(self) -> Dict[str, Any]:
        return self._config

    def _walk(self, key_path: str) -> Any:
        node: Any = self._config
        for key in key_path.split("."):
            if not isinstance(node, dict) or key not in node:
                return _MISSING
            node = node[key]
        return node

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """Dotted lookup, e.g. 'engine.max_workers'. Missing or null values give `default`."""
        value = self._walk(key_path)
        return default if value is _MISSING or value is None else value

    def rule_option(self, rule: str, option: str, default: Any) -> Any:
        """Threshold of one rule from the 'rules' section, cast to the type of `default`."""
        value = self.get_nested(f"rules.{rule}.{option}", default)
        return _coerce(default, value, f"rules.{rule}.{option}")

    def set_nested(self, key_path: str, value: Any) -> bool:
        """
        Changes one setting in memory, creating intermediate sections.
        Returns False when the path runs through a non-section value.
        """
        *parents, leaf = key_path.split(".")
        section = self._config
        for key in parents:
            section = section.setdefault(key, {})
            if not isinstance(section, dict):
                logger.error("Cannot set %s: '%s' is not a section.", key_path, key)
                return False

        section[leaf] = _coerce(section.get(leaf), value, key_path)
        logger.info("Setting updated: %s = %s", key_path, section[leaf])
        return True


# Shared by the engine, the scoring policy and every rule module.
config_manager = ConfigManager()
