"""
Process-wide logger registry

Components ask for ``get_logger("rotation")`` and receive a child of the
root logger installed by ``configure_logging``. Until a root is
installed, a console logger at WARN is used.
"""

import atexit
import threading
from typing import Optional, TYPE_CHECKING

from diary_vault.log.log_level import LogLevel
from diary_vault.log.logger import Logger
from diary_vault.log.logger_builder import LoggerBuilder

if TYPE_CHECKING:
    from diary_vault.config import VaultConfig

ROOT_NAME = "diary_vault"

_root: Optional[Logger] = None
_root_lock = threading.Lock()


def configure_logging(config: "VaultConfig", *extra_writers) -> Logger:
    """
    Install the root logger described by ``config``.

    A previously installed root is shut down and its files closed.

    Args:
        config: Vault configuration (log_level, log_file)
        extra_writers: Additional writers, e.g. a MemoryWriter

    Returns:
        The new root logger
    """
    global _root

    builder = LoggerBuilder().with_name(ROOT_NAME).with_level(config.log_level).with_console()
    if config.log_file:
        builder.with_file(str(config.log_file))
    for writer in extra_writers:
        builder.add_writer(writer)

    with _root_lock:
        previous, _root = _root, builder.build()
    if previous is not None:
        previous.shutdown()
        atexit.unregister(previous.shutdown)
    return _root


def set_root_logger(logger: Optional[Logger]) -> None:
    """Replace the root logger; ``None`` restores the default."""
    global _root
    with _root_lock:
        _root = logger


def get_root_logger() -> Logger:
    global _root
    with _root_lock:
        if _root is None:
            _root = (LoggerBuilder()
                .with_name(ROOT_NAME)
                .with_level(LogLevel.WARN)
                .with_console()
                .build())
        return _root


def get_logger(component: str) -> Logger:
    """Logger named ``diary_vault.<component>`` writing to the root's writers."""
    return get_root_logger().child(component)
