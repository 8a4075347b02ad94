"""Per-item outcomes of a rotation sweep"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class RotationPhase(Enum):
    """Where a rotation got to."""

    IDLE = "idle"
    KEY_UNWRAPPED = "key_unwrapped"
    SCANNING = "scanning"
    REWRITING = "rewriting"
    KEY_PERSISTED = "key_persisted"
    DONE = "done"


class ItemKind(Enum):
    IMAGE = "image"
    ENTRY = "entry"


class ItemStatus(Enum):
    MIGRATED = "migrated"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ItemOutcome:
    """
    What happened to one blob or entry.

    Attributes:
        kind: IMAGE (blob identifier) or ENTRY (entry id)
        identifier: Blob file name or entry id
        status: MIGRATED or SKIPPED
        reason: Why a SKIPPED item was left untouched
    """

    kind: ItemKind
    identifier: str
    status: ItemStatus
    reason: Optional[str] = None

    @classmethod
    def migrated(cls, kind: ItemKind, identifier: str) -> "ItemOutcome":
        return cls(kind, identifier, ItemStatus.MIGRATED)

    @classmethod
    def skipped(cls, kind: ItemKind, identifier: str, reason: str) -> "ItemOutcome":
        return cls(kind, identifier, ItemStatus.SKIPPED, reason)


@dataclass
class RotationReport:
    """Result of one rotation. Partial failure still counts as success."""

    user_id: str
    first_key: bool = False
    phase: RotationPhase = RotationPhase.IDLE
    outcomes: List[ItemOutcome] = field(default_factory=list)

    def _filter(self, status: ItemStatus, kind: Optional[ItemKind]) -> List[ItemOutcome]:
        return [
            o for o in self.outcomes
            if o.status is status and (kind is None or o.kind is kind)
        ]

    def migrated(self, kind: Optional[ItemKind] = None) -> List[ItemOutcome]:
        return self._filter(ItemStatus.MIGRATED, kind)

    def skipped(self, kind: Optional[ItemKind] = None) -> List[ItemOutcome]:
        return self._filter(ItemStatus.SKIPPED, kind)

    @property
    def partial_failure(self) -> bool:
        return any(o.status is ItemStatus.SKIPPED for o in self.outcomes)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "first_key": self.first_key,
            "phase": self.phase.value,
            "migrated": len(self.migrated()),
            "skipped": [
                {"kind": o.kind.value, "identifier": o.identifier, "reason": o.reason}
                for o in self.skipped()
            ],
        }
