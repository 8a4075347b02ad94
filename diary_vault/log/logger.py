"""
Vault logger

A small structured logger: entries fan out to writers, optionally via a
background worker thread so slow writers never hold up a rotation sweep.
"""

from __future__ import annotations
from typing import Any, List, Optional
import atexit
import queue
import sys
import threading

from diary_vault.log.log_level import LogLevel
from diary_vault.log.log_entry import LogEntry


class _Sink:
    """Writers, filters and delivery state shared by a logger and its children."""

    def __init__(self, min_level: LogLevel, async_mode: bool, queue_size: int):
        self.min_level = min_level
        self.async_mode = async_mode
        self.writers: List[Any] = []
        self.filters: List[Any] = []
        self.metrics = {"logged": 0, "dropped": 0, "processed": 0}
        self._lock = threading.Lock()
        self._queue: Optional[queue.Queue] = None
        self._worker: Optional[threading.Thread] = None
        self.running = False

        if async_mode:
            self._queue = queue.Queue(maxsize=queue_size)
            self.running = True
            self._worker = threading.Thread(
                target=self._drain, name="diary-vault-log-worker", daemon=True
            )
            self._worker.start()

    def _drain(self) -> None:
        while self.running or not self._queue.empty():
            try:
                entry = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                self.deliver(entry)
            finally:
                self._queue.task_done()

    def deliver(self, entry: LogEntry) -> None:
        with self._lock:
            for writer in self.writers:
                try:
                    writer.write(entry)
                except Exception as e:
                    print(f"Writer error: {e}", file=sys.stderr)
            self.metrics["processed"] += 1

    def submit(self, entry: LogEntry) -> None:
        for f in self.filters:
            if not f(entry):
                return

        if self.async_mode:
            try:
                self._queue.put_nowait(entry)
                self.metrics["logged"] += 1
            except queue.Full:
                self.metrics["dropped"] += 1
        else:
            self.deliver(entry)
            self.metrics["logged"] += 1

    def flush(self) -> None:
        if self._queue is not None:
            self._queue.join()
        for writer in self.writers:
            if hasattr(writer, "flush"):
                writer.flush()

    def shutdown(self) -> None:
        if self.running:
            self.running = False
            if self._worker:
                self._worker.join(timeout=5.0)
        for writer in self.writers:
            if hasattr(writer, "close"):
                writer.close()


class Logger:
    """
    Named logger.

    Loggers created through ``child()`` share writers, filters and
    metrics with their parent and differ only in name.
    """

    def __init__(
        self,
        name: str = "diary_vault",
        min_level: LogLevel = LogLevel.INFO,
        async_mode: bool = False,
        queue_size: int = 10000,
        _sink: Optional[_Sink] = None,
    ):
        self.name = name
        self._sink = _sink or _Sink(min_level, async_mode, queue_size)
        if _sink is None:
            atexit.register(self.shutdown)

    @property
    def min_level(self) -> LogLevel:
        return self._sink.min_level

    def child(self, suffix: str) -> "Logger":
        """Return a logger named ``<name>.<suffix>`` sharing this logger's output."""
        return Logger(name=f"{self.name}.{suffix}", _sink=self._sink)

    def add_writer(self, writer: Any) -> None:
        self._sink.writers.append(writer)

    def add_filter(self, log_filter) -> None:
        """
        Add a filter.

        Args:
            log_filter: Callable taking a LogEntry, returning False to drop it
        """
        self._sink.filters.append(log_filter)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self._sink.min_level

    def log(self, level: LogLevel, message: str, **extra) -> None:
        if not self.is_enabled_for(level):
            return
        self._sink.submit(
            LogEntry(level=level, message=message, logger_name=self.name, extra=extra)
        )

    def trace(self, message: str, **extra) -> None:
        self.log(LogLevel.TRACE, message, **extra)

    def debug(self, message: str, **extra) -> None:
        self.log(LogLevel.DEBUG, message, **extra)

    def info(self, message: str, **extra) -> None:
        self.log(LogLevel.INFO, message, **extra)

    def warn(self, message: str, **extra) -> None:
        self.log(LogLevel.WARN, message, **extra)

    def error(self, message: str, **extra) -> None:
        self.log(LogLevel.ERROR, message, **extra)

    def critical(self, message: str, **extra) -> None:
        self.log(LogLevel.CRITICAL, message, **extra)

    def flush(self) -> None:
        self._sink.flush()

    def shutdown(self) -> None:
        self._sink.shutdown()

    def get_metrics(self) -> dict:
        return self._sink.metrics.copy()
