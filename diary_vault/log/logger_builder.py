"""Logger builder pattern"""

from pathlib import Path
from typing import List, Optional

from diary_vault.log.formatters import BaseFormatter
from diary_vault.log.log_level import LogLevel
from diary_vault.log.logger import Logger
from diary_vault.log.writers import ConsoleWriter, FileWriter


class LoggerBuilder:
    """Builder pattern for logger construction."""

    def __init__(self):
        self._name = "diary_vault"
        self._level = LogLevel.INFO
        self._async = False
        self._queue_size = 10000
        self._console_enabled = False
        self._colored = True
        self._file_path: Optional[Path] = None
        self._formatter: Optional[BaseFormatter] = None
        self._writers: List = []
        self._filters: List = []

    def with_name(self, name: str) -> "LoggerBuilder":
        self._name = name
        return self

    def with_level(self, level: LogLevel) -> "LoggerBuilder":
        self._level = level
        return self

    def with_async(self, enabled: bool = True, queue_size: int = 10000) -> "LoggerBuilder":
        """Deliver entries from a background thread instead of the caller's."""
        self._async = enabled
        self._queue_size = queue_size
        return self

    def with_console(self, colored: bool = True) -> "LoggerBuilder":
        self._console_enabled = True
        self._colored = colored
        return self

    def with_file(self, filepath: str) -> "LoggerBuilder":
        self._file_path = Path(filepath)
        return self

    def with_formatter(self, formatter: BaseFormatter) -> "LoggerBuilder":
        """Formatter applied to console and file output."""
        self._formatter = formatter
        return self

    def with_filter(self, log_filter) -> "LoggerBuilder":
        """
        Add a filter.

        Example:
            logger = (LoggerBuilder()
                .with_filter(lambda e: "user_id" in e.extra)
                .build())
        """
        self._filters.append(log_filter)
        return self

    def add_writer(self, writer) -> "LoggerBuilder":
        self._writers.append(writer)
        return self

    def build(self) -> Logger:
        logger = Logger(
            name=self._name,
            min_level=self._level,
            async_mode=self._async,
            queue_size=self._queue_size,
        )

        if self._console_enabled:
            logger.add_writer(ConsoleWriter(colored=self._colored, formatter=self._formatter))
        if self._file_path:
            logger.add_writer(FileWriter(str(self._file_path), formatter=self._formatter))
        for writer in self._writers:
            logger.add_writer(writer)
        for log_filter in self._filters:
            logger.add_filter(log_filter)

        return logger
