"""Log writers - where entries end up"""

import sys
import threading
from pathlib import Path
from typing import List

from diary_vault.log.log_entry import LogEntry
from diary_vault.log.log_level import LogLevel


class ConsoleWriter:
    """Write logs to a console stream with optional colors."""

    def __init__(self, colored: bool = True, stream=None, formatter=None):
        """
        Initialize console writer.

        Args:
            colored: Use ANSI color codes
            stream: Output stream (default: sys.stderr)
            formatter: Log formatter (default: uses entry's __str__)
        """
        self.colored = colored
        self.stream = stream or sys.stderr
        self.formatter = formatter

    def write(self, entry: LogEntry):
        msg = self.formatter.format(entry) if self.formatter else str(entry)
        if self.colored and not self.formatter:
            msg = f"{entry.level.color_code}{msg}{entry.level.reset_code}"
        self.stream.write(msg + "\n")
        self.stream.flush()

    def flush(self):
        self.stream.flush()


class FileWriter:
    """Append logs to a file."""

    def __init__(self, filepath: str, encoding: str = "utf-8", formatter=None):
        self.filepath = Path(filepath)
        self.encoding = encoding
        self.formatter = formatter
        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.filepath, "a", encoding=self.encoding)

    def write(self, entry: LogEntry):
        if self._file:
            msg = self.formatter.format(entry) if self.formatter else str(entry)
            self._file.write(msg + "\n")

    def flush(self):
        if self._file:
            self._file.flush()

    def close(self):
        if self._file:
            self._file.close()
            self._file = None


class MemoryWriter:
    """Keep entries in memory. Used by tests and by callers that surface logs."""

    def __init__(self):
        self.entries: List[LogEntry] = []
        self._lock = threading.Lock()

    def write(self, entry: LogEntry):
        with self._lock:
            self.entries.append(entry)

    def messages(self, level: LogLevel = None) -> List[str]:
        with self._lock:
            return [
                e.message for e in self.entries if level is None or e.level == level
            ]

    def clear(self):
        with self._lock:
            self.entries.clear()
