"""
Wiring

``DiaryVault.from_config`` builds every component from one VaultConfig
so that ciphers share a key-derivation cache and uploads share blob
locks with rotation.
"""

from dataclasses import dataclass
from typing import Optional

from diary_vault.config import VaultConfig
from diary_vault.log import Logger, get_logger
from diary_vault.repository import DiaryRepository
from diary_vault.rotation.coordinator import KeyRotationCoordinator
from diary_vault.rotation.locks import KeyedLocks
from diary_vault.rotation.scanner import ImageReferenceScanner
from diary_vault.security.image_cipher import ImageCipher
from diary_vault.security.kdf import KeyDerivation, ScryptParams
from diary_vault.security.key_codec import KeyCodec
from diary_vault.security.text_cipher import TextCipher
from diary_vault.services.accounts import AccountKeyService
from diary_vault.services.entries import SecretEntryService
from diary_vault.services.images import ImageVault
from diary_vault.storage.base import BlobStorage
from diary_vault.storage.file_storage import FileBlobStorage


@dataclass
class DiaryVault:
    config: VaultConfig
    codec: KeyCodec
    text_cipher: TextCipher
    image_cipher: ImageCipher
    coordinator: KeyRotationCoordinator
    accounts: AccountKeyService
    entries: SecretEntryService
    images: ImageVault

    @classmethod
    def from_config(
        cls,
        config: VaultConfig,
        repository: DiaryRepository,
        storage: Optional[BlobStorage] = None,
        logger: Optional[Logger] = None,
    ) -> "DiaryVault":
        """
        Build the vault.

        Args:
            config: Vault configuration
            repository: Application data access
            storage: Blob storage (default: files under config.upload_dir)
            logger: Parent logger (default: the process root logger)
        """
        storage = storage or FileBlobStorage.from_config(config)
        kdf = KeyDerivation(ScryptParams.from_config(config))
        locks = KeyedLocks()

        def component_logger(name: str) -> Logger:
            return logger.child(name) if logger else get_logger(name)

        codec = KeyCodec.from_config(config)
        text_cipher = TextCipher(kdf)
        image_cipher = ImageCipher(kdf)
        coordinator = KeyRotationCoordinator(
            codec,
            repository,
            storage,
            image_cipher=image_cipher,
            text_cipher=text_cipher,
            scanner=ImageReferenceScanner.from_config(config),
            locks=locks,
            max_workers=config.rotation_workers,
            reencrypt_text=config.reencrypt_text_on_rotation,
            logger=component_logger("rotation"),
        )

        return cls(
            config=config,
            codec=codec,
            text_cipher=text_cipher,
            image_cipher=image_cipher,
            coordinator=coordinator,
            accounts=AccountKeyService(
                codec, repository, coordinator, logger=component_logger("accounts")
            ),
            entries=SecretEntryService(text_cipher, logger=component_logger("entries")),
            images=ImageVault(
                storage,
                image_cipher,
                locks=locks,
                url_prefix=config.managed_url_prefix,
                logger=component_logger("images"),
            ),
        )
