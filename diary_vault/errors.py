"""Exception hierarchy for the diary vault"""


class VaultError(Exception):
    """Base class for all vault errors."""


class ConfigurationError(VaultError, ValueError):
    """Configuration is missing or invalid. Raised at startup."""


class DecryptionError(VaultError):
    """
    Ciphertext could not be decrypted.

    Almost always means the data was encrypted under a different key.
    Text readers show a placeholder; image readers serve the raw bytes.
    """


class KeyFormatError(DecryptionError):
    """A wrapped key or text envelope is not ``<ivHex>:<cipherHex>``."""


class MissingKeyError(VaultError):
    """An operation needs the user's security key and none is set."""


class StorageError(VaultError):
    """Blob storage failure."""


class BlobNotFoundError(StorageError):
    """No blob is stored under the identifier."""


class InvalidIdentifierError(StorageError):
    """Identifier is not a single safe file name."""


class InvalidImageError(VaultError):
    """Uploaded bytes do not start with a known image signature."""
