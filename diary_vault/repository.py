"""
Database collaborator

The vault never issues queries itself. The application adapts its own
data layer to ``DiaryRepository``.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple


class DiaryRepository(ABC):
    """Access to user keys and diary content needed by the vault."""

    @abstractmethod
    def get_user_wrapped_key(self, user_id: str) -> Optional[str]:
        """Current WrappedKey, or None if the user never set a key."""

    @abstractmethod
    def set_user_wrapped_key(self, user_id: str, wrapped_key: str) -> None:
        """Persist a new WrappedKey."""

    @abstractmethod
    def list_diary_contents(self, user_id: str) -> Iterable[str]:
        """Content of every diary entry of the user, secret or not."""

    @abstractmethod
    def list_secret_entries(self, user_id: str) -> Iterable[Tuple[str, str]]:
        """``(entry_id, content)`` for every secret entry of the user."""

    @abstractmethod
    def update_entry_content(self, entry_id: str, content: str) -> None:
        """Replace the stored content of one entry."""


@dataclass
class DiaryEntry:
    entry_id: str
    user_id: str
    content: str
    is_secret: bool = False


class InMemoryDiaryRepository(DiaryRepository):
    """Repository kept in dictionaries, for tests and scripts."""

    def __init__(self):
        self._keys: Dict[str, Optional[str]] = {}
        self._entries: Dict[str, DiaryEntry] = {}
        self._lock = threading.Lock()
        self.key_writes: List[Tuple[str, str]] = []

    def add_user(self, user_id: str, wrapped_key: Optional[str] = None) -> None:
        with self._lock:
            self._keys[user_id] = wrapped_key

    def add_entry(self, entry_id: str, user_id: str, content: str, is_secret: bool = False) -> DiaryEntry:
        entry = DiaryEntry(entry_id, user_id, content, is_secret)
        with self._lock:
            self._entries[entry_id] = entry
        return entry

    def get_entry(self, entry_id: str) -> DiaryEntry:
        with self._lock:
            return self._entries[entry_id]

    def get_user_wrapped_key(self, user_id: str) -> Optional[str]:
        with self._lock:
            return self._keys.get(user_id)

    def set_user_wrapped_key(self, user_id: str, wrapped_key: str) -> None:
        with self._lock:
            self._keys[user_id] = wrapped_key
            self.key_writes.append((user_id, wrapped_key))

    def list_diary_contents(self, user_id: str) -> List[str]:
        with self._lock:
            return [e.content for e in self._entries.values() if e.user_id == user_id]

    def list_secret_entries(self, user_id: str) -> List[Tuple[str, str]]:
        with self._lock:
            return [
                (e.entry_id, e.content)
                for e in self._entries.values()
                if e.user_id == user_id and e.is_secret
            ]

    def update_entry_content(self, entry_id: str, content: str) -> None:
        with self._lock:
            self._entries[entry_id].content = content
