"""
Log level enumeration for vault diagnostics
"""

from enum import IntEnum


class LogLevel(IntEnum):
    """
    Severity of a vault log entry.

    Values line up with the standard library's logging levels so the
    two can be mixed in one deployment.
    """

    TRACE = 5
    DEBUG = 10
    INFO = 20
    WARN = 30
    ERROR = 40
    CRITICAL = 50
    OFF = 100

    def __str__(self) -> str:
        return self.name

    @classmethod
    def from_string(cls, level_str: str) -> "LogLevel":
        """
        Convert a level name to LogLevel.

        Args:
            level_str: Level name (case-insensitive, "WARNING" accepted)

        Returns:
            LogLevel enum value

        Raises:
            ValueError: If level_str is not a known level
        """
        name = level_str.strip().upper()
        if name == "WARNING":
            name = "WARN"
        if name in cls.__members__:
            return cls[name]
        raise ValueError(f"Invalid log level: {level_str}")

    @property
    def color_code(self) -> str:
        """ANSI color used by the console writer."""
        colors = {
            LogLevel.TRACE: "\033[37m",
            LogLevel.DEBUG: "\033[36m",
            LogLevel.INFO: "\033[32m",
            LogLevel.WARN: "\033[33m",
            LogLevel.ERROR: "\033[31m",
            LogLevel.CRITICAL: "\033[35m",
        }
        return colors.get(self, "\033[0m")

    @property
    def reset_code(self) -> str:
        return "\033[0m"
