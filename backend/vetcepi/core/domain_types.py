"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - MedicineId, PetId, OwnerId are string UUIDs as the store returns them
    - Scan phases and record statuses are Enums, no raw string matching
    - Table names live in StoreTable; services never spell them inline

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

MedicineId = NewType("MedicineId", str)
PetId = NewType("PetId", str)
OwnerId = NewType("OwnerId", str)


# ─── Enums ───────────────────────────────────────────────────────

class StoreTable(str, Enum):
    """Tables reachable through the record store contract."""
    MEDICINES = "medicines"
    PETS = "pets"


class ScanPhase(str, Enum):
    """Barcode resolution workflow phases for one interactive session."""
    IDLE = "idle"
    RESOLVING = "resolving"
    FOUND = "found"
    NOT_FOUND = "not_found"
    MULTIPLE_MATCH = "multiple_match"
    ERROR = "error"
    PERMISSION_DENIED = "permission_denied"

    @property
    def is_ready(self) -> bool:
        """Phases from which a new scan may be evaluated."""
        return self in _READY_PHASES


_READY_PHASES = frozenset({
    ScanPhase.IDLE,
    ScanPhase.FOUND,
    ScanPhase.NOT_FOUND,
    ScanPhase.MULTIPLE_MATCH,
    ScanPhase.ERROR,
})


class MedicalHistoryStatus(str, Enum):
    """Read-side status of the encrypted medical history field."""
    OK = "ok"
    UNDECRYPTABLE = "undecryptable"


class QualityBucket(str, Enum):
    """Catalogue completeness buckets."""
    COMPLETE = "complete"       # >= 90
    PARTIAL = "partial"         # 70–89
    INCOMPLETE = "incomplete"   # < 70
