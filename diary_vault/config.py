"""
Vault configuration

The server secret is loaded once at startup and injected into KeyCodec.
There is deliberately no fallback secret: a missing ENCRYPTION_SECRET
aborts startup.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from diary_vault.errors import ConfigurationError
from diary_vault.log.log_level import LogLevel

SECRET_ENV_VAR = "ENCRYPTION_SECRET"

# Shipped as a default by early deployments; never accept it.
INSECURE_DEFAULT_SECRET = "default-insecure-secret-change-me"


@dataclass
class VaultConfig:
    """
    Configuration for the encryption subsystem.

    Attributes:
        server_secret: Secret used to wrap user keys before storage
        upload_dir: Directory holding uploaded image blobs
        managed_url_prefix: URL path under which uploads are served
        managed_hosts: Hosts whose absolute image URLs count as managed
        kdf_n, kdf_r, kdf_p: scrypt cost parameters
        rotation_workers: Worker threads used by a rotation sweep
        reencrypt_text_on_rotation: Also migrate secret entry text
        log_level: Minimum level for vault logs
        log_file: Optional log file path
    """

    server_secret: str
    upload_dir: Path = Path("public/uploads")
    managed_url_prefix: str = "/api/uploads/"
    managed_hosts: Tuple[str, ...] = ()
    kdf_n: int = 2 ** 14
    kdf_r: int = 8
    kdf_p: int = 1
    rotation_workers: int = 4
    reencrypt_text_on_rotation: bool = True
    log_level: LogLevel = LogLevel.INFO
    log_file: Optional[Path] = None

    def __post_init__(self):
        if not self.server_secret:
            raise ConfigurationError("server_secret is required")
        if self.server_secret == INSECURE_DEFAULT_SECRET:
            raise ConfigurationError("server_secret must not be the insecure default")
        if self.kdf_n < 2 or self.kdf_n & (self.kdf_n - 1):
            raise ConfigurationError("kdf_n must be a power of two greater than 1")
        if self.kdf_r <= 0 or self.kdf_p <= 0:
            raise ConfigurationError("kdf_r and kdf_p must be positive")
        if self.rotation_workers < 1:
            raise ConfigurationError("rotation_workers must be at least 1")
        if not self.managed_url_prefix.startswith("/"):
            raise ConfigurationError("managed_url_prefix must be an absolute path")

        if isinstance(self.upload_dir, str):
            self.upload_dir = Path(self.upload_dir)
        if isinstance(self.log_file, str):
            self.log_file = Path(self.log_file)
        if isinstance(self.log_level, str):
            self.log_level = LogLevel.from_string(self.log_level)
        self.managed_hosts = tuple(h.lower() for h in self.managed_hosts)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> "VaultConfig":
        """
        Build configuration from environment variables.

        Reads ENCRYPTION_SECRET (required), DIARY_UPLOAD_DIR,
        DIARY_MANAGED_HOSTS (comma separated), DIARY_ROTATION_WORKERS,
        DIARY_LOG_LEVEL and DIARY_LOG_FILE.

        Raises:
            ConfigurationError: If the secret is absent or a value is invalid
        """
        env = os.environ if environ is None else environ

        secret = env.get(SECRET_ENV_VAR)
        if not secret:
            raise ConfigurationError(
                f"Encryption secret not found in environment variable: {SECRET_ENV_VAR}"
            )

        kwargs = {"server_secret": secret}
        if env.get("DIARY_UPLOAD_DIR"):
            kwargs["upload_dir"] = Path(env["DIARY_UPLOAD_DIR"])
        if env.get("DIARY_MANAGED_HOSTS"):
            kwargs["managed_hosts"] = tuple(
                h.strip() for h in env["DIARY_MANAGED_HOSTS"].split(",") if h.strip()
            )
        if env.get("DIARY_ROTATION_WORKERS"):
            try:
                kwargs["rotation_workers"] = int(env["DIARY_ROTATION_WORKERS"])
            except ValueError as e:
                raise ConfigurationError("DIARY_ROTATION_WORKERS must be an integer") from e
        if env.get("DIARY_LOG_LEVEL"):
            try:
                kwargs["log_level"] = LogLevel.from_string(env["DIARY_LOG_LEVEL"])
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
        if env.get("DIARY_LOG_FILE"):
            kwargs["log_file"] = Path(env["DIARY_LOG_FILE"])

        return cls(**kwargs)

    @classmethod
    def testing(cls, server_secret: str = "test-server-secret", **overrides) -> "VaultConfig":
        """Configuration with cheap scrypt parameters for test suites."""
        params = dict(kdf_n=2 ** 4, kdf_r=8, kdf_p=1, log_level=LogLevel.DEBUG)
        params.update(overrides)
        return cls(server_secret=server_secret, **params)
