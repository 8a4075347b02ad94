"""Tests for key rotation"""

import threading

import pytest

from diary_vault.errors import DecryptionError, MissingKeyError, StorageError
from diary_vault.log import LogLevel
from diary_vault.rotation import (
    ItemKind,
    ItemStatus,
    KeyedLocks,
    KeyRotationCoordinator,
    RotationPhase,
)
from diary_vault.repository import InMemoryDiaryRepository
from diary_vault.security import KeyCodec, NoKey, generate_user_key
from diary_vault.storage import FileBlobStorage, MemoryBlobStorage

from conftest import FAST_PARAMS, JPEG_BYTES, PNG_BYTES, plaintext_passing_padding


def _img(name):
    return f'<img src="/api/uploads/{name}">'


def _decrypts_to(cipher, blob, key, expected):
    try:
        return cipher.decrypt(blob, key) == expected
    except DecryptionError:
        return False


@pytest.fixture
def old_key():
    return generate_user_key()


@pytest.fixture
def new_key():
    return generate_user_key()


@pytest.fixture
def user(codec, repository, old_key):
    repository.add_user("alice", codec.wrap(old_key))
    return "alice"


class TestRotation:
    """Test migration of a user's blobs to a new key."""

    def test_migrates_all_blobs(self, coordinator, repository, storage, image_cipher, codec, user, old_key, new_key):
        originals = {f"{i}-photo.png": PNG_BYTES + bytes([i]) for i in range(5)}
        for name, data in originals.items():
            storage.write(name, image_cipher.encrypt(data, old_key))
        repository.add_entry("e1", user, "<p>a</p>" + _img("0-photo.png") + _img("1-photo.png"))
        repository.add_entry("e2", user, _img("2-photo.png") + _img("3-photo.png"))
        repository.add_entry("e3", user, _img("4-photo.png"))

        report = coordinator.rotate(user, new_key)

        assert report.phase is RotationPhase.DONE
        assert not report.partial_failure
        assert sorted(o.identifier for o in report.migrated(ItemKind.IMAGE)) == sorted(originals)
        for name, data in originals.items():
            blob = storage.read(name)
            assert image_cipher.decrypt(blob, new_key) == data
            assert not _decrypts_to(image_cipher, blob, old_key, data)
        assert codec.unwrap(repository.get_user_wrapped_key(user)) == new_key.raw

    def test_includes_images_of_non_secret_entries(self, coordinator, repository, storage, image_cipher, user, old_key, new_key):
        storage.write("plain-entry.png", image_cipher.encrypt(PNG_BYTES, old_key))
        repository.add_entry("e1", user, _img("plain-entry.png"), is_secret=False)

        coordinator.rotate(user, new_key)

        assert image_cipher.decrypt(storage.read("plain-entry.png"), new_key) == PNG_BYTES

    def test_other_users_untouched(self, coordinator, repository, storage, image_cipher, codec, user, old_key, new_key):
        bob_key = generate_user_key()
        repository.add_user("bob", codec.wrap(bob_key))
        bob_blob = image_cipher.encrypt(JPEG_BYTES, bob_key)
        storage.write("bob.jpg", bob_blob)
        repository.add_entry("b1", "bob", _img("bob.jpg"))

        coordinator.rotate(user, new_key)

        assert storage.read("bob.jpg") == bob_blob
        assert codec.unwrap(repository.get_user_wrapped_key("bob")) == bob_key.raw

    def test_survives_partial_corruption(self, coordinator, repository, storage, image_cipher, codec, user, old_key, new_key, log_writer):
        storage.write("good1.png", image_cipher.encrypt(PNG_BYTES, old_key))
        storage.write("good2.png", image_cipher.encrypt(JPEG_BYTES, old_key))
        corrupt = image_cipher.encrypt(PNG_BYTES, old_key)[:-3]
        storage.write("corrupt.png", corrupt)
        repository.add_entry(
            "e1", user, _img("good1.png") + _img("corrupt.png") + _img("missing.png") + _img("good2.png")
        )

        report = coordinator.rotate(user, new_key)

        assert report.partial_failure
        assert report.phase is RotationPhase.DONE
        assert {o.identifier for o in report.migrated()} == {"good1.png", "good2.png"}
        skipped = {o.identifier: o.reason for o in report.skipped()}
        assert set(skipped) == {"corrupt.png", "missing.png"}
        assert skipped["missing.png"] == "missing"
        assert skipped["corrupt.png"].startswith("not decryptable")

        assert storage.read("corrupt.png") == corrupt
        assert not storage.exists("missing.png")
        assert image_cipher.decrypt(storage.read("good1.png"), new_key) == PNG_BYTES
        assert codec.unwrap(repository.get_user_wrapped_key(user)) == new_key.raw

        warnings = [e for e in log_writer.entries if e.level == LogLevel.WARN]
        assert {e.extra["identifier"] for e in warnings} == {"corrupt.png", "missing.png"}

    def test_legacy_plaintext_blob_left_alone(self, coordinator, repository, storage, user, new_key):
        storage.write("legacy.png", PNG_BYTES)
        repository.add_entry("e1", user, _img("legacy.png"))

        report = coordinator.rotate(user, new_key)

        assert storage.read("legacy.png") == PNG_BYTES
        assert [o.identifier for o in report.skipped()] == ["legacy.png"]

    def test_shared_image_migrated_once(self, coordinator, repository, storage, image_cipher, user, old_key, new_key):
        storage.write("shared.png", image_cipher.encrypt(PNG_BYTES, old_key))
        repository.add_entry("e1", user, _img("shared.png"))
        repository.add_entry("e2", user, _img("shared.png") + _img("shared.png"))
        writes_before = storage.write_count

        report = coordinator.rotate(user, new_key)

        assert storage.write_count - writes_before == 1
        assert [o.identifier for o in report.outcomes] == ["shared.png"]
        assert image_cipher.decrypt(storage.read("shared.png"), new_key) == PNG_BYTES

    def test_external_images_ignored(self, coordinator, repository, storage, user, new_key):
        repository.add_entry("e1", user, '<img src="https://example.org/cat.png">')

        report = coordinator.rotate(user, new_key)

        assert report.outcomes == []
        assert storage.write_count == 0

    def test_first_key_is_noop(self, coordinator, repository, storage, image_cipher, codec, new_key):
        repository.add_user("carol")
        storage.write("carol.png", PNG_BYTES)
        repository.add_entry("c1", "carol", _img("carol.png"))

        report = coordinator.rotate("carol", new_key)

        assert report.first_key
        assert report.phase is RotationPhase.DONE
        assert report.outcomes == []
        assert storage.write_count == 1
        assert storage.read("carol.png") == PNG_BYTES
        assert codec.unwrap(repository.get_user_wrapped_key("carol")) == new_key.raw

    def test_accepts_raw_string_key(self, coordinator, repository, codec, user):
        coordinator.rotate(user, "k1" * 16)
        assert codec.unwrap(repository.get_user_wrapped_key(user)) == "k1" * 16

    def test_missing_new_key(self, coordinator, repository, user):
        before = repository.get_user_wrapped_key(user)
        with pytest.raises(MissingKeyError):
            coordinator.rotate(user, NoKey())
        assert repository.get_user_wrapped_key(user) == before

    def test_unwrappable_current_key_writes_nothing(self, coordinator, repository, storage, image_cipher, old_key, new_key):
        foreign = KeyCodec("some-other-secret", FAST_PARAMS).wrap(old_key)
        repository.add_user("dave", foreign)
        blob = image_cipher.encrypt(PNG_BYTES, old_key)
        storage.write("dave.png", blob)
        repository.add_entry("d1", "dave", _img("dave.png"))

        with pytest.raises(DecryptionError):
            coordinator.rotate("dave", new_key)

        assert storage.read("dave.png") == blob
        assert repository.get_user_wrapped_key("dave") == foreign
        assert repository.key_writes == []

    def test_report_to_dict(self, coordinator, repository, storage, image_cipher, user, old_key, new_key):
        storage.write("a.png", image_cipher.encrypt(PNG_BYTES, old_key))
        repository.add_entry("e1", user, _img("a.png") + _img("gone.png"))

        data = coordinator.rotate(user, new_key).to_dict()

        assert data["phase"] == "done"
        assert data["migrated"] == 1
        assert data["skipped"] == [{"kind": "image", "identifier": "gone.png", "reason": "missing"}]

    def test_logs_start_and_finish(self, coordinator, repository, user, new_key, log_writer):
        coordinator.rotate(user, new_key)
        messages = log_writer.messages(LogLevel.INFO)
        assert "Key rotation started" in messages
        assert "Key rotation finished" in messages
        for entry in log_writer.entries:
            assert new_key.raw not in str(entry)

    def test_invalid_worker_count(self, codec, repository, storage):
        with pytest.raises(ValueError):
            KeyRotationCoordinator(codec, repository, storage, max_workers=0)


class TestSecretTextRotation:
    """Secret entry text follows the key."""

    def test_reencrypts_secret_entries(self, coordinator, repository, text_cipher, user, old_key, new_key):
        repository.add_entry("s1", user, text_cipher.encrypt("first secret", old_key), is_secret=True)
        repository.add_entry("s2", user, text_cipher.encrypt("second secret", old_key), is_secret=True)
        repository.add_entry("p1", user, "<p>public</p>")

        report = coordinator.rotate(user, new_key)

        assert {o.identifier for o in report.migrated(ItemKind.ENTRY)} == {"s1", "s2"}
        assert text_cipher.decrypt(repository.get_entry("s1").content, new_key) == "first secret"
        assert text_cipher.decrypt(repository.get_entry("s2").content, new_key) == "second secret"
        assert repository.get_entry("p1").content == "<p>public</p>"

    def test_undecryptable_entry_skipped(self, coordinator, repository, text_cipher, user, old_key, new_key):
        stale = text_cipher.encrypt("older key", generate_user_key())
        repository.add_entry("s1", user, stale, is_secret=True)
        repository.add_entry("s2", user, text_cipher.encrypt("fine", old_key), is_secret=True)

        report = coordinator.rotate(user, new_key)

        assert [o.identifier for o in report.skipped(ItemKind.ENTRY)] == ["s1"]
        assert repository.get_entry("s1").content == stale
        assert text_cipher.decrypt(repository.get_entry("s2").content, new_key) == "fine"

    def test_images_in_secret_entries_are_migrated(self, coordinator, repository, storage, image_cipher, text_cipher, user, old_key, new_key):
        """Images referenced only from secret entries are found by decrypting them."""
        storage.write("hidden.png", image_cipher.encrypt(PNG_BYTES, old_key))
        sealed = text_cipher.encrypt(_img("hidden.png"), old_key)
        repository.add_entry("s1", user, sealed, is_secret=True)

        report = coordinator.rotate(user, new_key)

        assert {o.identifier for o in report.migrated(ItemKind.IMAGE)} == {"hidden.png"}

    def test_text_sweep_can_be_disabled(self, codec, repository, storage, image_cipher, text_cipher, logger, user, old_key, new_key):
        coordinator = KeyRotationCoordinator(
            codec, repository, storage,
            image_cipher=image_cipher, text_cipher=text_cipher,
            reencrypt_text=False, logger=logger,
        )
        sealed = text_cipher.encrypt("left alone", old_key)
        repository.add_entry("s1", user, sealed, is_secret=True)

        report = coordinator.rotate(user, new_key)

        assert report.migrated(ItemKind.ENTRY) == []
        assert repository.get_entry("s1").content == sealed


class TestRotationConcurrency:
    """Test the worker pool and per-identifier locking."""

    def test_many_blobs_in_parallel(self, codec, repository, image_cipher, text_cipher, logger, user, old_key, new_key):
        storage = MemoryBlobStorage()
        names = [f"{i:03d}.png" for i in range(40)]
        for name in names:
            storage.write(name, image_cipher.encrypt(PNG_BYTES + name.encode(), old_key))
        repository.add_entry("e1", user, "".join(_img(n) for n in names))

        coordinator = KeyRotationCoordinator(
            codec, repository, storage,
            image_cipher=image_cipher, text_cipher=text_cipher,
            max_workers=8, logger=logger,
        )
        report = coordinator.rotate(user, new_key)

        assert [o.identifier for o in report.outcomes] == names
        assert all(o.status is ItemStatus.MIGRATED for o in report.outcomes)
        for name in names:
            assert image_cipher.decrypt(storage.read(name), new_key) == PNG_BYTES + name.encode()

    def test_rewrite_holds_identifier_lock(self, codec, repository, image_cipher, text_cipher, logger, user, old_key, new_key):
        locks = KeyedLocks()
        seen = []
        contenders = []

        class RecordingStorage(MemoryBlobStorage):
            def write(self, identifier, data):
                acquired = threading.Event()

                def contend():
                    with locks.hold(identifier):
                        acquired.set()

                contender = threading.Thread(target=contend)
                contender.start()
                contenders.append(contender)
                seen.append(acquired.wait(timeout=0.05))
                super().write(identifier, data)

        storage = RecordingStorage()
        storage._blobs["a.png"] = image_cipher.encrypt(PNG_BYTES, old_key)
        repository.add_entry("e1", user, _img("a.png"))

        coordinator = KeyRotationCoordinator(
            codec, repository, storage,
            image_cipher=image_cipher, text_cipher=text_cipher,
            locks=locks, logger=logger,
        )
        coordinator.rotate(user, new_key)
        for contender in contenders:
            contender.join(timeout=5)

        # The contender could not take the lock while the rewrite was in progress.
        assert seen == [False]
        assert len(locks) == 0

    def test_write_failure_skips_blob(self, codec, repository, image_cipher, text_cipher, logger, user, old_key, new_key):
        class ReadOnlyStorage(MemoryBlobStorage):
            def write(self, identifier, data):
                if identifier == "locked.png":
                    raise StorageError("read-only")
                super().write(identifier, data)

        storage = ReadOnlyStorage()
        locked = image_cipher.encrypt(PNG_BYTES, old_key)
        storage._blobs["locked.png"] = locked
        storage.write("ok.png", image_cipher.encrypt(PNG_BYTES, old_key))
        repository.add_entry("e1", user, _img("locked.png") + _img("ok.png"))

        coordinator = KeyRotationCoordinator(
            codec, repository, storage,
            image_cipher=image_cipher, text_cipher=text_cipher, logger=logger,
        )
        report = coordinator.rotate(user, new_key)

        assert [o.identifier for o in report.skipped()] == ["locked.png"]
        assert report.skipped()[0].reason.startswith("write failed")
        assert storage.read("locked.png") == locked


class TestRotationFailures:
    """A failing item is recorded and the sweep carries on."""

    def test_malformed_src_does_not_block_rotation(self, coordinator, repository, storage, image_cipher, codec, user, old_key, new_key):
        storage.write("a.png", image_cipher.encrypt(PNG_BYTES, old_key))
        repository.add_entry("e1", user, _img("a.png"))
        repository.add_entry("e2", user, '<img src="http://[broken/x.png">')

        report = coordinator.rotate(user, new_key)

        assert [o.identifier for o in report.migrated()] == ["a.png"]
        assert image_cipher.decrypt(storage.read("a.png"), new_key) == PNG_BYTES
        assert codec.unwrap(repository.get_user_wrapped_key(user)) == new_key.raw

    def test_gt_inside_alt_is_migrated(self, coordinator, repository, storage, image_cipher, user, old_key, new_key):
        storage.write("a.png", image_cipher.encrypt(PNG_BYTES, old_key))
        repository.add_entry("e1", user, '<p><img alt="me > you" src="/api/uploads/a.png"></p>')

        report = coordinator.rotate(user, new_key)

        assert [o.identifier for o in report.migrated()] == ["a.png"]

    def test_entry_update_failure_is_skipped(self, codec, storage, image_cipher, text_cipher, logger, old_key, new_key):
        class FlakyRepository(InMemoryDiaryRepository):
            def update_entry_content(self, entry_id, content):
                if entry_id == "s1":
                    raise RuntimeError("db write failed")
                super().update_entry_content(entry_id, content)

        repository = FlakyRepository()
        repository.add_user("alice", codec.wrap(old_key))
        storage.write("a.png", image_cipher.encrypt(PNG_BYTES, old_key))
        sealed = text_cipher.encrypt(_img("a.png"), old_key)
        repository.add_entry("s1", "alice", sealed, is_secret=True)
        repository.add_entry("s2", "alice", text_cipher.encrypt("fine", old_key), is_secret=True)

        coordinator = KeyRotationCoordinator(
            codec, repository, storage,
            image_cipher=image_cipher, text_cipher=text_cipher, logger=logger,
        )
        report = coordinator.rotate("alice", new_key)

        assert report.phase is RotationPhase.DONE
        skipped = report.skipped(ItemKind.ENTRY)
        assert [o.identifier for o in skipped] == ["s1"]
        assert skipped[0].reason == "write failed: db write failed"
        assert repository.get_entry("s1").content == sealed
        assert text_cipher.decrypt(repository.get_entry("s2").content, new_key) == "fine"
        assert image_cipher.decrypt(storage.read("a.png"), new_key) == PNG_BYTES
        assert codec.unwrap(repository.get_user_wrapped_key("alice")) == new_key.raw

    def test_interrupted_sweep_persists_new_key(self, codec, repository, image_cipher, text_cipher, logger, log_writer, user, old_key, new_key):
        class BrokenStorage(MemoryBlobStorage):
            def write(self, identifier, data):
                if identifier == "b.png":
                    raise RuntimeError("disk controller gone")
                super().write(identifier, data)

        storage = BrokenStorage()
        storage._blobs["a.png"] = image_cipher.encrypt(PNG_BYTES, old_key)
        storage._blobs["b.png"] = image_cipher.encrypt(JPEG_BYTES, old_key)
        repository.add_entry("e1", user, _img("a.png") + _img("b.png"))

        coordinator = KeyRotationCoordinator(
            codec, repository, storage,
            image_cipher=image_cipher, text_cipher=text_cipher,
            max_workers=1, logger=logger,
        )
        with pytest.raises(RuntimeError):
            coordinator.rotate(user, new_key)

        assert image_cipher.decrypt(storage.read("a.png"), new_key) == PNG_BYTES
        assert codec.unwrap(repository.get_user_wrapped_key(user)) == new_key.raw
        assert "Key rotation interrupted, persisting new key" in log_writer.messages(LogLevel.ERROR)

    def test_interrupted_before_any_rewrite_keeps_old_key(self, codec, repository, image_cipher, text_cipher, logger, user, old_key, new_key):
        class BrokenStorage(MemoryBlobStorage):
            def write(self, identifier, data):
                raise RuntimeError("disk controller gone")

        storage = BrokenStorage()
        storage._blobs["a.png"] = image_cipher.encrypt(PNG_BYTES, old_key)
        repository.add_entry("e1", user, _img("a.png"))
        before = repository.get_user_wrapped_key(user)

        coordinator = KeyRotationCoordinator(
            codec, repository, storage,
            image_cipher=image_cipher, text_cipher=text_cipher, logger=logger,
        )
        with pytest.raises(RuntimeError):
            coordinator.rotate(user, new_key)

        assert repository.get_user_wrapped_key(user) == before

    def test_plaintext_passing_padding_left_alone(self, coordinator, repository, storage, image_cipher, user, old_key, new_key):
        legacy = plaintext_passing_padding(image_cipher, old_key)
        storage.write("legacy.png", legacy)
        repository.add_entry("e1", user, _img("legacy.png"))

        report = coordinator.rotate(user, new_key)

        assert report.migrated() == []
        skipped = report.skipped()
        assert [o.identifier for o in skipped] == ["legacy.png"]
        assert skipped[0].reason == "not decryptable: not an image after decrypt"
        assert storage.read("legacy.png") == legacy


class TestRotationOnDisk:
    """Rotation against the filesystem storage."""

    def test_file_storage_rotation(self, tmp_path, codec, repository, image_cipher, text_cipher, logger, user, old_key, new_key):
        storage = FileBlobStorage(tmp_path / "uploads")
        storage.write("disk.png", image_cipher.encrypt(PNG_BYTES, old_key))
        repository.add_entry("e1", user, _img("disk.png"))

        coordinator = KeyRotationCoordinator(
            codec, repository, storage,
            image_cipher=image_cipher, text_cipher=text_cipher, logger=logger,
        )
        report = coordinator.rotate(user, new_key)

        assert not report.partial_failure
        assert image_cipher.decrypt((tmp_path / "uploads" / "disk.png").read_bytes(), new_key) == PNG_BYTES
        assert sorted(p.name for p in (tmp_path / "uploads").iterdir()) == ["disk.png"]
