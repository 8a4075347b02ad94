"""
Key derivation

Every working key in the vault is scrypt(secret, fixed salt) truncated to
32 bytes. The salt selects the namespace, so the same RawKey yields
unrelated text and image keys.
"""

import hashlib
import threading
from collections import OrderedDict
from dataclasses import dataclass

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

KEY_LENGTH = 32

# Fixed salts. Changing any of these makes existing data unreadable.
SERVER_KEY_SALT = "salt"
TEXT_SALT = "text-salt"
IMAGE_SALT = "image-salt"


@dataclass(frozen=True)
class ScryptParams:
    """scrypt cost parameters. Defaults match Node's ``crypto.scryptSync``."""

    n: int = 2 ** 14
    r: int = 8
    p: int = 1

    @classmethod
    def from_config(cls, config) -> "ScryptParams":
        return cls(n=config.kdf_n, r=config.kdf_r, p=config.kdf_p)


def derive_key(secret: str, salt: str, params: ScryptParams = ScryptParams()) -> bytes:
    """
    Derive a 256-bit working key.

    Args:
        secret: Server secret or user RawKey
        salt: One of the fixed namespace salts
        params: scrypt cost parameters

    Returns:
        32 bytes, identical for identical inputs
    """
    kdf = Scrypt(
        salt=salt.encode("utf-8"),
        length=KEY_LENGTH,
        n=params.n,
        r=params.r,
        p=params.p,
        backend=default_backend(),
    )
    return kdf.derive(secret.encode("utf-8"))


class KeyDerivation:
    """
    scrypt with a small LRU cache.

    A rotation sweep derives the same two keys for every blob; caching
    them keeps the sweep from paying the KDF cost per blob. Cache slots
    are addressed by a digest of the secret, never the secret itself.
    """

    def __init__(self, params: ScryptParams = ScryptParams(), cache_size: int = 16):
        self.params = params
        self.cache_size = cache_size
        self._cache: "OrderedDict[bytes, bytes]" = OrderedDict()
        self._lock = threading.Lock()

    def derive(self, secret: str, salt: str) -> bytes:
        slot = hashlib.sha256(f"{salt}\x00{secret}".encode("utf-8")).digest()

        with self._lock:
            key = self._cache.get(slot)
            if key is not None:
                self._cache.move_to_end(slot)
                return key

        key = derive_key(secret, salt, self.params)

        if self.cache_size > 0:
            with self._lock:
                self._cache[slot] = key
                while len(self._cache) > self.cache_size:
                    self._cache.popitem(last=False)
        return key

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
