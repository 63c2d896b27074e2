import logging
from logging import Logger


"""
Logger setup for SectionSource.
Every module logs through the one package logger; call setup() once from
an entry point (the CLI does) to get console output.

date: 2026-10-19
version: 0.1.0
"""

# LOGGER_NAME is used to identify the logger.
LOGGER_NAME = "sectionsource"

logger: Logger = logging.getLogger(LOGGER_NAME)  # import this anywhere


def setup(level: str = "INFO") -> None:
    """
    Setup the logger.
    """
    if logger.handlers:
        return  # already configured
    logger.setLevel(level.upper())

    fmt = "%(asctime)s %(levelname)s %(name)s %(message)s"
    h = logging.StreamHandler()
    h.setFormatter(logging.Formatter(fmt))
    logger.addHandler(h)


class DeprecationNotices:
    """
    Logs each deprecated alias once per datasource invocation.

    One instance is created per execute() call, so a second run of the
    same datasource logs its deprecations again.
    """

    def __init__(self, log: Logger = logger):
        self._log = log
        self._seen: set[tuple[str, str]] = set()

    def warn(self, alias: str, replacement: str, usage: str) -> None:
        key = (alias, usage)
        if key in self._seen:
            return
        self._seen.add(key)
        self._log.warning(
            "The `%s` data source %s is deprecated; use `%s` instead.",
            alias,
            usage,
            replacement,
        )

    @property
    def seen(self) -> set[tuple[str, str]]:
        return set(self._seen)
