# src/markup_auditor/utils/configure_logging.py
import logging
import sys
from typing import Dict, Optional, Union

from tqdm import tqdm

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s"

Level = Union[int, str]


class LogWithTqdm(logging.Handler):
    """Routes log records through `tqdm.write()` so batch progress bars stay intact."""

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=sys.stderr)
            self.flush()
        except Exception:
            self.handleError(record)


def _resolve_level(level: Level, fallback: int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), fallback)
    return level


def _apply_levels(levels: Optional[Dict[str, Level]], fallback: int) -> None:
    for name, level in (levels or {}).items():
        logging.getLogger(name).setLevel(_resolve_level(level, fallback))


def configure_logger(general_level: Level = "INFO",
                     module_specific_levels: Optional[Dict[str, Level]] = None,
                     silenced_loggers: Optional[Dict[str, Level]] = None) -> logging.Handler:
    """
    Replaces the root handlers with a single tqdm-aware handler.

    The library itself never calls this on import; a CLI or batch runner opts in.
    `silenced_loggers` default to CRITICAL when a level name is not recognised.
    """
    handler = LogWithTqdm()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(_resolve_level(general_level, logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)

    _apply_levels(module_specific_levels, logging.INFO)
    _apply_levels(silenced_loggers, logging.CRITICAL)
    return handler


def configure_from_settings(config) -> logging.Handler:
    """Applies the 'logging' section of the settings (level, module_levels, silenced)."""
    return configure_logger(
        general_level=config.get_nested("logging.level", "INFO"),
        module_specific_levels=config.get_nested("logging.module_levels", {}),
        silenced_loggers=config.get_nested("logging.silenced", {}),
    )
