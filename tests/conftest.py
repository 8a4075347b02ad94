"""Shared fixtures: cheap scrypt parameters and in-memory collaborators"""

import itertools

import pytest

from diary_vault.config import VaultConfig
from diary_vault.errors import DecryptionError
from diary_vault.log import LoggerBuilder, LogLevel, MemoryWriter
from diary_vault.repository import InMemoryDiaryRepository
from diary_vault.rotation import KeyRotationCoordinator
from diary_vault.security import (
    ImageCipher,
    KeyCodec,
    KeyDerivation,
    ScryptParams,
    TextCipher,
    is_image,
)
from diary_vault.storage import MemoryBlobStorage

# scrypt at production cost is slow; the format does not depend on it.
FAST_PARAMS = ScryptParams(n=16, r=8, p=1)

PNG_BYTES = bytes.fromhex("89504e470d0a1a0a") + b"\x00\x00\x00\x0dIHDR" + bytes(range(65))
JPEG_BYTES = bytes.fromhex("ffd8ffe000104a464946") + b"jpeg-body" * 10


def plaintext_passing_padding(cipher, key, data=PNG_BYTES):
    """A plaintext image blob that happens to pass the padding check under key."""
    head = bytes(data[:16])
    for counter in itertools.count():
        blob = head + counter.to_bytes(48, "big")
        try:
            plain = cipher.decrypt(blob, key)
        except DecryptionError:
            continue
        if not is_image(plain):
            return blob


@pytest.fixture
def config(tmp_path):
    return VaultConfig.testing(upload_dir=tmp_path / "uploads", kdf_n=FAST_PARAMS.n)


@pytest.fixture
def kdf():
    return KeyDerivation(FAST_PARAMS)


@pytest.fixture
def codec():
    return KeyCodec("unit-test-server-secret", FAST_PARAMS)


@pytest.fixture
def text_cipher(kdf):
    return TextCipher(kdf)


@pytest.fixture
def image_cipher(kdf):
    return ImageCipher(kdf)


@pytest.fixture
def log_writer():
    return MemoryWriter()


@pytest.fixture
def logger(log_writer):
    logger = (LoggerBuilder()
        .with_name("test")
        .with_level(LogLevel.DEBUG)
        .add_writer(log_writer)
        .build())
    yield logger
    logger.shutdown()


@pytest.fixture
def repository():
    return InMemoryDiaryRepository()


@pytest.fixture
def storage():
    return MemoryBlobStorage()


@pytest.fixture
def coordinator(codec, repository, storage, image_cipher, text_cipher, logger):
    return KeyRotationCoordinator(
        codec,
        repository,
        storage,
        image_cipher=image_cipher,
        text_cipher=text_cipher,
        max_workers=4,
        logger=logger,
    )
