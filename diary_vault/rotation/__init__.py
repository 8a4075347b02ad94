"""
Rotation module - moving a user's data to a new security key

Provides:
- KeyRotationCoordinator: best-effort re-encryption sweep
- ImageReferenceScanner: finds managed image blobs in diary HTML
- RotationReport / ItemOutcome: per-item results
- KeyedLocks: per-blob mutual exclusion shared with uploads
"""

from diary_vault.rotation.coordinator import KeyRotationCoordinator
from diary_vault.rotation.locks import KeyedLocks
from diary_vault.rotation.report import (
    ItemKind,
    ItemOutcome,
    ItemStatus,
    RotationPhase,
    RotationReport,
)
from diary_vault.rotation.scanner import (
    DEFAULT_MANAGED_PREFIX,
    ImageReferenceScanner,
    ReferenceScanner,
)

__all__ = [
    "KeyRotationCoordinator",
    "KeyedLocks",
    "ItemKind",
    "ItemOutcome",
    "ItemStatus",
    "RotationPhase",
    "RotationReport",
    "DEFAULT_MANAGED_PREFIX",
    "ImageReferenceScanner",
    "ReferenceScanner",
]
