"""Services module - operations the web layer calls"""

from diary_vault.services.accounts import AccountKeyService
from diary_vault.services.entries import (
    DECRYPTION_PLACEHOLDER,
    MISSING_KEY_PLACEHOLDER,
    SecretEntryService,
)
from diary_vault.security.image_cipher import IMAGE_SIGNATURES, sniff_image
from diary_vault.services.images import (
    ImageVault,
    ServedImage,
    StoredUpload,
    make_upload_name,
)

__all__ = [
    "AccountKeyService",
    "DECRYPTION_PLACEHOLDER",
    "MISSING_KEY_PLACEHOLDER",
    "SecretEntryService",
    "IMAGE_SIGNATURES",
    "ImageVault",
    "ServedImage",
    "StoredUpload",
    "make_upload_name",
    "sniff_image",
]
