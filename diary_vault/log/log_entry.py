"""Log entry data structure"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict
import threading

from diary_vault.log.log_level import LogLevel


@dataclass
class LogEntry:
    """
    A single vault log record.

    Structured context (user id, blob identifier, outcome) travels in
    ``extra`` so formatters can render it without parsing the message.
    Key material must never be placed in a log entry.
    """

    level: LogLevel
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    thread_name: str = field(default_factory=lambda: threading.current_thread().name)
    logger_name: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.level, LogLevel):
            raise TypeError("level must be LogLevel enum")
        if not isinstance(self.message, str):
            self.message = str(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.name,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "thread_name": self.thread_name,
            "logger_name": self.logger_name,
            "extra": dict(self.extra),
        }

    def __str__(self) -> str:
        context = " ".join(f"{k}={v}" for k, v in self.extra.items())
        line = (
            f"[{self.timestamp.strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]}] "
            f"[{self.level.name:8}] "
            f"[{self.logger_name or self.thread_name}] "
            f"{self.message}"
        )
        return f"{line} {context}" if context else line
