"""Security key lifecycle of an account"""

import hmac
from typing import Optional, Tuple

from diary_vault.errors import DecryptionError, MissingKeyError
from diary_vault.log import Logger, get_logger
from diary_vault.repository import DiaryRepository
from diary_vault.rotation.coordinator import KeyRotationCoordinator
from diary_vault.rotation.report import RotationReport
from diary_vault.security.key_codec import KeyCodec
from diary_vault.security.user_key import Key, NoKey, UserKey, generate_user_key


class AccountKeyService:
    """
    Issue, rotate, restore and verify a user's security key.

    Every key change goes through the rotation coordinator, so existing
    images and secret entries follow the account to its new key.
    """

    def __init__(
        self,
        codec: KeyCodec,
        repository: DiaryRepository,
        coordinator: KeyRotationCoordinator,
        logger: Optional[Logger] = None,
    ):
        self.codec = codec
        self.repository = repository
        self.coordinator = coordinator
        self.logger = logger or get_logger("accounts")

    def session_key(self, user_id: str) -> UserKey:
        """
        Key to hold for the user's session, resolved at login.

        A key that cannot be unwrapped yields NoKey so the login itself
        still succeeds.
        """
        wrapped = self.repository.get_user_wrapped_key(user_id)
        if not wrapped:
            return NoKey()
        try:
            return self.codec.unwrap_key(wrapped)
        except DecryptionError as e:
            self.logger.error("Failed to unwrap security key", user_id=user_id, reason=str(e))
            return NoKey("security key could not be unwrapped")

    def issue_key(self, user_id: str) -> Tuple[Key, RotationReport]:
        """
        Generate a fresh random key and switch the account to it.

        Returns:
            The new key (shown to the user once) and the rotation report
        """
        key = generate_user_key()
        return key, self.coordinator.rotate(user_id, key)

    rotate_key = issue_key

    def restore_key(self, user_id: str, supplied_key: str) -> RotationReport:
        """
        Switch the account to a key the user supplies.

        Raises:
            MissingKeyError: If the supplied key is blank
        """
        supplied_key = (supplied_key or "").strip()
        if not supplied_key:
            raise MissingKeyError("A security key is required")
        return self.coordinator.rotate(user_id, Key(supplied_key))

    def verify_key(self, user_id: str, supplied_key: str) -> bool:
        """
        Check a supplied security key against the account's key.

        Used to authorize password resets. Surrounding whitespace in the
        supplied key is ignored.

        Raises:
            MissingKeyError: The account has no security key
            DecryptionError: The stored key cannot be unwrapped
        """
        wrapped = self.repository.get_user_wrapped_key(user_id)
        if not wrapped:
            raise MissingKeyError("No security key is set on this account")

        current = self.codec.unwrap(wrapped)
        return hmac.compare_digest(
            current.encode("utf-8"), (supplied_key or "").strip().encode("utf-8")
        )
