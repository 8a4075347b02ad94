"""
Logging for the vault

Provides:
- Logger / LoggerBuilder: structured loggers with pluggable writers
- TextFormatter / JSONFormatter: output formats
- ConsoleWriter / FileWriter / MemoryWriter: destinations
- get_logger / configure_logging: process-wide registry

Example:
    from diary_vault.log import LoggerBuilder, LogLevel, JSONFormatter

    logger = (LoggerBuilder()
        .with_name("diary_vault")
        .with_level(LogLevel.DEBUG)
        .with_console(colored=False)
        .with_formatter(JSONFormatter())
        .build())

    logger.warn("Serving image without decryption", filename="1700000000000-cat.png")
"""

from diary_vault.log.log_level import LogLevel
from diary_vault.log.log_entry import LogEntry
from diary_vault.log.logger import Logger
from diary_vault.log.logger_builder import LoggerBuilder
from diary_vault.log.formatters import BaseFormatter, TextFormatter, JSONFormatter
from diary_vault.log.writers import ConsoleWriter, FileWriter, MemoryWriter
from diary_vault.log.factory import (
    configure_logging,
    get_logger,
    get_root_logger,
    set_root_logger,
)

__all__ = [
    "LogLevel",
    "LogEntry",
    "Logger",
    "LoggerBuilder",
    "BaseFormatter",
    "TextFormatter",
    "JSONFormatter",
    "ConsoleWriter",
    "FileWriter",
    "MemoryWriter",
    "configure_logging",
    "get_logger",
    "get_root_logger",
    "set_root_logger",
]
