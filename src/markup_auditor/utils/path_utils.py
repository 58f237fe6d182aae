# src/markup_auditor/utils/path_utils.py
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "MARKUP_AUDITOR_SETTINGS"


class PathUtils:
    """
    A central utility for reliably retrieving important package and user paths.
    """

    @staticmethod
    def get_package_root() -> Path:
        """Returns the absolute path of the installed 'markup_auditor' package."""
        return Path(__file__).resolve().parent.parent

    @staticmethod
    def get_default_settings_file() -> Path:
        return PathUtils.get_package_root() / "settings.json"

    @staticmethod
    def get_settings_file() -> Path:
        """
        Returns the settings file to load.
        The MARKUP_AUDITOR_SETTINGS environment variable overrides the bundled file.
        """
        override = os.environ.get(SETTINGS_ENV_VAR)
        if override:
            logger.debug("Using settings override from %s: %s", SETTINGS_ENV_VAR, override)
            return Path(override).expanduser()
        return PathUtils.get_default_settings_file()
