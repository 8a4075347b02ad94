"""
User key presence

A user either has a security key or does not. ``UserKey`` makes that
explicit instead of passing empty strings around.
"""

import os
from dataclasses import dataclass, field
from typing import Union

from diary_vault.errors import MissingKeyError

RAW_KEY_BYTES = 32


@dataclass(frozen=True)
class NoKey:
    """The account has no usable security key."""

    reason: str = "no security key set"

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class Key:
    """A user's RawKey, held only for the duration of a request."""

    raw: str = field(repr=False)

    def __post_init__(self):
        if not isinstance(self.raw, str) or not self.raw:
            raise ValueError("RawKey must be a non-empty string")

    def __bool__(self) -> bool:
        return True


UserKey = Union[NoKey, Key]


def generate_user_key() -> Key:
    """New random RawKey: 32 random bytes as 64 hex characters."""
    return Key(os.urandom(RAW_KEY_BYTES).hex())


def require_raw_key(user_key: Union[UserKey, str]) -> str:
    """
    Return the RawKey string.

    Raises:
        MissingKeyError: If ``user_key`` is NoKey or an empty string
    """
    if isinstance(user_key, Key):
        return user_key.raw
    if isinstance(user_key, NoKey):
        raise MissingKeyError(user_key.reason)
    if isinstance(user_key, str) and user_key:
        return user_key
    raise MissingKeyError("no security key set")
