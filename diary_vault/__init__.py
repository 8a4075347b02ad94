"""
BSD 3-Clause License

Copyright (c) 2021, 🍀☀🌕🌥 🌊
All rights reserved.

Diary Vault - at-rest encryption for secret diary entries and images
"""

__version__ = "1.0.0"
__author__ = "kcenon"
__email__ = "kcenon@naver.com"

from diary_vault.config import VaultConfig
from diary_vault.errors import (
    VaultError,
    ConfigurationError,
    DecryptionError,
    KeyFormatError,
    MissingKeyError,
    StorageError,
    BlobNotFoundError,
    InvalidIdentifierError,
    InvalidImageError,
)
from diary_vault.security import (
    ImageCipher,
    Key,
    KeyCodec,
    NoKey,
    TextCipher,
    UserKey,
    generate_user_key,
)
from diary_vault.rotation import KeyRotationCoordinator, RotationReport
from diary_vault.vault import DiaryVault

# Import submodules (not all classes by default)
from diary_vault import log
from diary_vault import services
from diary_vault import storage

__all__ = [
    "VaultConfig",
    "VaultError",
    "ConfigurationError",
    "DecryptionError",
    "KeyFormatError",
    "MissingKeyError",
    "StorageError",
    "BlobNotFoundError",
    "InvalidIdentifierError",
    "InvalidImageError",
    "ImageCipher",
    "Key",
    "KeyCodec",
    "NoKey",
    "TextCipher",
    "UserKey",
    "generate_user_key",
    "KeyRotationCoordinator",
    "RotationReport",
    "DiaryVault",
    "log",
    "services",
    "storage",
]
