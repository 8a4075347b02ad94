"""
Log formatters

Convert LogEntry objects into lines of text for writers.
"""

import json
from abc import ABC, abstractmethod

from diary_vault.log.log_entry import LogEntry


class BaseFormatter(ABC):
    """Abstract base class for log formatters."""

    @abstractmethod
    def format(self, entry: LogEntry) -> str:
        """
        Format a log entry into a string.

        Args:
            entry: The log entry to format

        Returns:
            Formatted string representation of the log entry
        """

    def __call__(self, entry: LogEntry) -> str:
        return self.format(entry)


class TextFormatter(BaseFormatter):
    """
    Template based formatter.

    Placeholders: {timestamp}, {level}, {message}, {thread}, {logger},
    {context}. ``{context}`` renders ``extra`` as ``key=value`` pairs.
    """

    DEFAULT_TEMPLATE = "[{timestamp}] [{level:8}] [{logger}] {message} {context}"

    def __init__(self, template: str = None, timestamp_format: str = "%Y-%m-%d %H:%M:%S.%f"):
        self.template = template or self.DEFAULT_TEMPLATE
        self.timestamp_format = timestamp_format

    def format(self, entry: LogEntry) -> str:
        values = {
            "timestamp": entry.timestamp.strftime(self.timestamp_format)[:-3],
            "level": entry.level.name,
            "message": entry.message,
            "thread": entry.thread_name,
            "logger": entry.logger_name,
            "context": " ".join(f"{k}={v}" for k, v in entry.extra.items()),
        }

        try:
            return self.template.format(**values).rstrip()
        except KeyError as e:
            return f"[FORMAT ERROR: {e}] {entry.message}"

    def __repr__(self) -> str:
        return f"TextFormatter(template='{self.template}')"


class JSONFormatter(BaseFormatter):
    """One JSON object per entry, suitable for log aggregation."""

    def __init__(self, include_thread_info: bool = False, ensure_ascii: bool = False):
        self.include_thread_info = include_thread_info
        self.ensure_ascii = ensure_ascii

    def format(self, entry: LogEntry) -> str:
        log_dict = {
            "timestamp": entry.timestamp.isoformat(),
            "level": entry.level.name,
            "message": entry.message,
        }
        if entry.logger_name:
            log_dict["logger"] = entry.logger_name
        if self.include_thread_info:
            log_dict["thread_name"] = entry.thread_name
        for key, value in entry.extra.items():
            log_dict.setdefault(key, value)

        return json.dumps(log_dict, ensure_ascii=self.ensure_ascii, default=str)
