"""Logging for a release-linker run.

One run logs discovery progress and one line per Linear issue at INFO;
per-commit API traffic is DEBUG. Set logging.level / logging.format in
config.yaml or LOGGING_LEVEL / LOGGING_FORMAT in the environment.
"""

import logging

from release_linker.config import LoggingConfig

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

DEFAULT_LEVEL = "INFO"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# requests/urllib3 logs every connection at DEBUG; keep it at WARNING
NOISY_LOGGERS = ("urllib3",)


def _resolve_level(level: str) -> int:
    """Map a level name to its logging constant; unknown names give DEFAULT_LEVEL."""
    return LEVELS.get(level.upper().strip(), LEVELS[DEFAULT_LEVEL])


class ReleaseLinkerLogging:
    """Configures the root logger for one run from LoggingConfig."""

    def __init__(self, config: LoggingConfig) -> None:
        self._level = _resolve_level(config.level)
        self._format = config.format or DEFAULT_FORMAT

    def setup(self) -> None:
        """Apply level and format to the root logger and quiet HTTP internals."""
        logging.basicConfig(level=self._level, format=self._format, force=True)
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(self._level, logging.WARNING))

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(name)
