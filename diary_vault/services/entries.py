"""Secret entry content"""

from typing import Optional

from diary_vault.errors import DecryptionError, MissingKeyError
from diary_vault.log import Logger, get_logger
from diary_vault.security.text_cipher import TextCipher
from diary_vault.security.user_key import Key, UserKey

DECRYPTION_PLACEHOLDER = "[This secret entry could not be decrypted with the current security key]"
MISSING_KEY_PLACEHOLDER = "[This secret entry is locked. Restore your security key to read it]"


class SecretEntryService:
    """Seals entry content on write and reveals it on read."""

    def __init__(self, cipher: TextCipher = None, logger: Optional[Logger] = None):
        self.cipher = cipher or TextCipher()
        self.logger = logger or get_logger("entries")

    def seal(self, content: str, user_key: UserKey, is_secret: bool) -> str:
        """
        Content to store for an entry.

        Raises:
            MissingKeyError: Secret entry requested without a key.
                Nothing should be written in that case.
        """
        if not is_secret:
            return content
        if not isinstance(user_key, Key):
            raise MissingKeyError("Set a security key before writing secret entries")
        return self.cipher.encrypt(content, user_key)

    def reveal(self, content: str, user_key: UserKey, is_secret: bool, entry_id: str = "") -> str:
        """Content to show for an entry. Never raises for a bad ciphertext."""
        if not is_secret:
            return content
        if not isinstance(user_key, Key):
            return MISSING_KEY_PLACEHOLDER

        try:
            return self.cipher.decrypt(content, user_key)
        except DecryptionError as e:
            self.logger.warn("Secret entry not decryptable", entry_id=entry_id, reason=str(e))
            return DECRYPTION_PLACEHOLDER
