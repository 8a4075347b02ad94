"""
Security module - ciphers and key handling for secret diary data

Provides:
- KeyCodec: wraps user keys with the server secret for storage
- TextCipher: envelopes for secret entry text
- ImageCipher: encrypted image blobs
- UserKey (NoKey | Key) and generate_user_key

Example:
    from diary_vault.config import VaultConfig
    from diary_vault.security import KeyCodec, TextCipher, generate_user_key

    config = VaultConfig.from_env()
    codec = KeyCodec.from_config(config)

    key = generate_user_key()
    wrapped = codec.wrap(key)          # persist on the user record

    cipher = TextCipher()
    envelope = cipher.encrypt("hello diary", codec.unwrap_key(wrapped))
"""

from diary_vault.security.kdf import (
    IMAGE_SALT,
    SERVER_KEY_SALT,
    TEXT_SALT,
    KeyDerivation,
    ScryptParams,
    derive_key,
)
from diary_vault.security.user_key import (
    Key,
    NoKey,
    UserKey,
    generate_user_key,
    require_raw_key,
)
from diary_vault.security.key_codec import KeyCodec
from diary_vault.security.text_cipher import TextCipher
from diary_vault.security.image_cipher import (
    IMAGE_SIGNATURES,
    ImageCipher,
    is_image,
    sniff_image,
)

__all__ = [
    "IMAGE_SALT",
    "SERVER_KEY_SALT",
    "TEXT_SALT",
    "KeyDerivation",
    "ScryptParams",
    "derive_key",
    "Key",
    "NoKey",
    "UserKey",
    "generate_user_key",
    "require_raw_key",
    "KeyCodec",
    "TextCipher",
    "IMAGE_SIGNATURES",
    "ImageCipher",
    "is_image",
    "sniff_image",
]
