"""Basic usage example: upload, secret entry, key rotation"""

import os
import tempfile

from diary_vault import DiaryVault, VaultConfig
from diary_vault.log import configure_logging
from diary_vault.repository import InMemoryDiaryRepository

PNG_HEADER = bytes.fromhex("89504e470d0a1a0a")

os.environ.setdefault("ENCRYPTION_SECRET", "example-only-secret")

config = VaultConfig.from_env()
configure_logging(config)

repository = InMemoryDiaryRepository()
repository.add_user("alice")

with tempfile.TemporaryDirectory() as upload_dir:
    config.upload_dir = upload_dir
    vault = DiaryVault.from_config(config, repository)

    # First key: nothing to migrate
    key, _ = vault.accounts.issue_key("alice")
    print(f"Security key (keep it safe): {key.raw}")

    upload = vault.images.store_upload(key, "cat.png", PNG_HEADER + b"pixels")
    content = vault.entries.seal(f'<p>dear diary</p><img src="{upload.url}">', key, is_secret=True)
    repository.add_entry("entry-1", "alice", content, is_secret=True)
    repository.add_entry("entry-2", "alice", f'<img src="{upload.url}">')

    new_key, report = vault.accounts.rotate_key("alice")
    print(report.to_dict())

    session_key = vault.accounts.session_key("alice")
    print(vault.entries.reveal(repository.get_entry("entry-1").content, session_key, is_secret=True))
    print(vault.images.open_image(upload.filename, session_key).decrypted)
