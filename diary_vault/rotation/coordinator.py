"""
Key rotation

Replacing a user's RawKey means every blob (and secret entry) encrypted
under the old key must be rewritten under the new one, or it becomes
unreadable. The sweep is best effort: items that cannot be migrated are
logged, reported and left exactly as they were, and the new key is
persisted regardless. There is no rollback.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

from diary_vault.errors import DecryptionError, StorageError
from diary_vault.log import Logger, get_logger
from diary_vault.repository import DiaryRepository
from diary_vault.rotation.locks import KeyedLocks
from diary_vault.rotation.report import (
    ItemKind,
    ItemOutcome,
    RotationPhase,
    RotationReport,
)
from diary_vault.rotation.scanner import ImageReferenceScanner, ReferenceScanner
from diary_vault.security.image_cipher import ImageCipher
from diary_vault.security.key_codec import KeyCodec
from diary_vault.security.text_cipher import TextCipher
from diary_vault.security.user_key import require_raw_key
from diary_vault.storage.base import BlobStorage


class KeyRotationCoordinator:
    """
    Migrates a user's encrypted data from their current key to a new one.

    Thread Safety:
        Blob rewrites hold the per-identifier lock shared with uploads.
        Two rotations for the same user at once are not coordinated
        beyond that; callers should serialize them per user.
    """

    def __init__(
        self,
        codec: KeyCodec,
        repository: DiaryRepository,
        storage: BlobStorage,
        image_cipher: ImageCipher = None,
        text_cipher: TextCipher = None,
        scanner: ReferenceScanner = None,
        locks: KeyedLocks = None,
        max_workers: int = 4,
        reencrypt_text: bool = True,
        logger: Optional[Logger] = None,
    ):
        """
        Initialize coordinator.

        Args:
            codec: Wraps the new key for persistence
            repository: User keys and diary content
            storage: Image blobs
            image_cipher: Cipher for blobs
            text_cipher: Cipher for secret entry text
            scanner: Finds blob identifiers in diary content
            locks: Per-identifier locks shared with the upload path
            max_workers: Size of the sweep's worker pool
            reencrypt_text: Also migrate secret entry text
            logger: Defaults to the "rotation" component logger
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.codec = codec
        self.repository = repository
        self.storage = storage
        self.image_cipher = image_cipher or ImageCipher()
        self.text_cipher = text_cipher or TextCipher()
        self.scanner = scanner or ImageReferenceScanner()
        self.locks = locks or KeyedLocks()
        self.max_workers = max_workers
        self.reencrypt_text = reencrypt_text
        self.logger = logger or get_logger("rotation")

    def rotate(self, user_id: str, new_raw_key) -> RotationReport:
        """
        Switch ``user_id`` to ``new_raw_key``.

        Args:
            user_id: Owner of the data
            new_raw_key: RawKey string or Key to migrate to

        Returns:
            Report listing every item touched and the final phase

        Raises:
            MissingKeyError: If new_raw_key is empty or NoKey
            DecryptionError: If the current WrappedKey cannot be unwrapped;
                nothing has been written in that case

        An unexpected collaborator error that escapes the sweep is
        re-raised, after persisting the new key if any item had already
        been rewritten under it.
        """
        new_key = require_raw_key(new_raw_key)
        report = RotationReport(user_id=user_id)

        current = self.repository.get_user_wrapped_key(user_id)
        if not current:
            report.first_key = True
            self._persist(report, new_key)
            report.phase = RotationPhase.DONE
            self.logger.info("Security key set for the first time", user_id=user_id)
            return report

        old_key = self.codec.unwrap(current)
        report.phase = RotationPhase.KEY_UNWRAPPED
        self.logger.debug("Current key unwrapped", user_id=user_id)

        report.phase = RotationPhase.SCANNING
        # Secret entries hold ciphertext; their images only show up once decrypted.
        entries = self._open_secret_entries(user_id, old_key)
        contents = list(self.repository.list_diary_contents(user_id))
        contents.extend(plain for _, plain, _ in entries if plain is not None)
        identifiers = self.scanner.scan_all(contents)
        self.logger.info(
            "Key rotation started",
            user_id=user_id,
            images=len(identifiers),
            entries=len(entries),
        )

        report.phase = RotationPhase.REWRITING
        rewritten: List[str] = []
        try:
            report.outcomes.extend(self._sweep_images(identifiers, old_key, new_key, rewritten))
            if self.reencrypt_text:
                for entry_id, plain, failure in entries:
                    report.outcomes.append(self._migrate_entry(entry_id, plain, failure, new_key, rewritten))
        except Exception:
            # Rewritten items only open under the new key now.
            if rewritten:
                self.logger.error(
                    "Key rotation interrupted, persisting new key",
                    user_id=user_id,
                    rewritten=len(rewritten),
                )
                self._persist(report, new_key)
            raise

        for outcome in report.skipped():
            self.logger.warn(
                "Item left under previous key",
                user_id=user_id,
                kind=outcome.kind.value,
                identifier=outcome.identifier,
                reason=outcome.reason,
            )

        self._persist(report, new_key)
        report.phase = RotationPhase.DONE
        self.logger.info(
            "Key rotation finished",
            user_id=user_id,
            migrated=len(report.migrated()),
            skipped=len(report.skipped()),
        )
        return report

    def _persist(self, report: RotationReport, new_key: str) -> None:
        self.repository.set_user_wrapped_key(report.user_id, self.codec.wrap(new_key))
        report.phase = RotationPhase.KEY_PERSISTED

    def _sweep_images(
        self, identifiers: List[str], old_key: str, new_key: str, rewritten: List[str]
    ) -> List[ItemOutcome]:
        if not identifiers:
            return []
        if self.max_workers == 1 or len(identifiers) == 1:
            return [self._migrate_blob(i, old_key, new_key, rewritten) for i in identifiers]

        workers = min(self.max_workers, len(identifiers))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="diary-vault-rotate") as pool:
            return list(pool.map(lambda i: self._migrate_blob(i, old_key, new_key, rewritten), identifiers))

    def _migrate_blob(self, identifier: str, old_key: str, new_key: str, rewritten: List[str]) -> ItemOutcome:
        with self.locks.hold(identifier):
            try:
                if not self.storage.exists(identifier):
                    return ItemOutcome.skipped(ItemKind.IMAGE, identifier, "missing")
                data = self.storage.read(identifier)
            except StorageError as e:
                return ItemOutcome.skipped(ItemKind.IMAGE, identifier, f"read failed: {e}")

            # Legacy plaintext passes the padding check often enough to matter.
            try:
                plain = self.image_cipher.decrypt_image(data, old_key)
            except DecryptionError as e:
                return ItemOutcome.skipped(ItemKind.IMAGE, identifier, f"not decryptable: {e}")

            try:
                self.storage.write(identifier, self.image_cipher.encrypt(plain, new_key))
            except StorageError as e:
                return ItemOutcome.skipped(ItemKind.IMAGE, identifier, f"write failed: {e}")
            rewritten.append(identifier)

        self.logger.debug("Blob migrated", identifier=identifier)
        return ItemOutcome.migrated(ItemKind.IMAGE, identifier)

    def _open_secret_entries(self, user_id: str, old_key: str) -> List[Tuple[str, Optional[str], Optional[str]]]:
        """``(entry_id, plaintext, failure)`` for each secret entry; plaintext is None on failure."""
        opened = []
        for entry_id, content in self.repository.list_secret_entries(user_id):
            try:
                opened.append((entry_id, self.text_cipher.decrypt(content, old_key), None))
            except DecryptionError as e:
                opened.append((entry_id, None, f"not decryptable: {e}"))
        return opened

    def _migrate_entry(
        self, entry_id: str, plain: Optional[str], failure: Optional[str], new_key: str, rewritten: List[str]
    ) -> ItemOutcome:
        if plain is None:
            return ItemOutcome.skipped(ItemKind.ENTRY, entry_id, failure)

        try:
            self.repository.update_entry_content(entry_id, self.text_cipher.encrypt(plain, new_key))
        except Exception as e:
            return ItemOutcome.skipped(ItemKind.ENTRY, entry_id, f"write failed: {e}")
        rewritten.append(entry_id)
        return ItemOutcome.migrated(ItemKind.ENTRY, entry_id)
