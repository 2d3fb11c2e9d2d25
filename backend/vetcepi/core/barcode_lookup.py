"""Barcode Lookup Rules — closed outcome variants for lookup and registration.

Invariants:
    - Zero rows for a barcode is NotFound, a normal outcome, never an error
    - More than one row is MultipleMatch; one row is never picked silently
    - Registration requires non-blank name and barcode, checked before any store call
    - Text fields are stripped; blank optional fields become None
    - Every error-like variant maps to one exception via to_error()

Design Decisions:
    - Variants are frozen dataclasses matched with isinstance / match: branching
      is over a closed set, not over backend error codes
    - Medicine is a core dataclass; ORM rows reach the core as plain dicts
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Union

from vetcepi.core.domain_types import MedicineId
from vetcepi.core.errors import (
    DatabaseError, DuplicateBarcodeError, ErrorContext, InputValidationError,
    MultipleMatchError, VetcepiError,
)

OPTIONAL_FIELDS = ("dosage", "form", "species", "indication", "manufacturer")
EDITABLE_FIELDS = ("barcode", "name") + OPTIONAL_FIELDS


@dataclass(frozen=True)
class Medicine:
    """A catalogued drug or product."""
    id: MedicineId
    barcode: str
    name: str
    dosage: str | None = None
    form: str | None = None
    species: str | None = None
    indication: str | None = None
    manufacturer: str | None = None
    created_at: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Medicine":
        return cls(
            id=MedicineId(str(row["id"])),
            barcode=row["barcode"],
            name=row["name"],
            created_at=row.get("created_at"),
            **{name: row.get(name) for name in OPTIONAL_FIELDS},
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "barcode": self.barcode,
            "name": self.name,
            **{name: getattr(self, name) for name in OPTIONAL_FIELDS},
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class NewMedicineInput:
    """Manual-entry form for a medicine, typically pre-filled with a scanned barcode."""
    name: str = ""
    barcode: str = ""
    dosage: str | None = None
    form: str | None = None
    species: str | None = None
    indication: str | None = None
    manufacturer: str | None = None


# ─── Lookup outcomes ─────────────────────────────────────────────

@dataclass(frozen=True)
class Found:
    medicine: Medicine


@dataclass(frozen=True)
class NotFound:
    """No record carries this barcode; the code pre-fills manual entry."""
    barcode: str


@dataclass(frozen=True)
class MultipleMatch:
    barcode: str
    count: int
    ids: tuple[str, ...] = ()

    def to_error(self) -> VetcepiError:
        return MultipleMatchError("medicines", "barcode", self.barcode, self.count)


@dataclass(frozen=True)
class LookupFailed:
    """Store failure other than "no match"; the caller may retry."""
    barcode: str
    message: str
    retryable: bool = True


LookupResult = Union[Found, NotFound, MultipleMatch, LookupFailed]


# ─── Registration outcomes ───────────────────────────────────────

@dataclass(frozen=True)
class Registered:
    medicine: Medicine


@dataclass(frozen=True)
class DuplicateBarcode:
    """Create collided with an existing record; existing is the re-queried row."""
    barcode: str
    existing: Medicine | None = None

    @property
    def existing_id(self) -> str | None:
        return self.existing.id if self.existing else None

    def to_error(self) -> VetcepiError:
        return DuplicateBarcodeError(self.barcode, self.existing_id)


@dataclass(frozen=True)
class InvalidInput:
    field: str
    message: str
    details: dict = field(default_factory=dict)

    def to_error(self) -> VetcepiError:
        return InputValidationError(self.message, self.field)


@dataclass(frozen=True)
class RegistrationFailed:
    """Store failure while creating the record; the form can be resubmitted."""
    barcode: str
    message: str
    retryable: bool = True

    def to_error(self) -> VetcepiError:
        return DatabaseError(self.message, "insert", ErrorContext(barcode=self.barcode))


RegistrationResult = Union[Registered, DuplicateBarcode, InvalidInput, RegistrationFailed]


# ─── Pure rules ──────────────────────────────────────────────────

def normalize_barcode(code: str | None) -> str:
    return (code or "").strip()


def classify_lookup(barcode: str, rows: list[Mapping[str, Any]]) -> LookupResult:
    """Map the rows a store returned for an exact barcode match to one outcome."""
    if not rows:
        return NotFound(barcode)
    if len(rows) > 1:
        return MultipleMatch(
            barcode, len(rows), tuple(str(r.get("id")) for r in rows),
        )
    return Found(Medicine.from_row(rows[0]))


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_new_medicine(
    candidate: NewMedicineInput,
) -> dict | InvalidInput:
    """Return the record to insert, or InvalidInput for a missing required field."""
    name = _clean(candidate.name)
    if not name:
        return InvalidInput("name", "Medicine name is required")
    barcode = _clean(candidate.barcode)
    if not barcode:
        return InvalidInput("barcode", "Barcode is required")
    record = {"name": name, "barcode": barcode}
    for name_ in OPTIONAL_FIELDS:
        record[name_] = _clean(getattr(candidate, name_))
    return record


def validate_medicine_update(changes: Mapping[str, Any]) -> dict | InvalidInput:
    """Keep only editable fields; required fields may change but not become blank."""
    unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
    if unknown:
        return InvalidInput(
            unknown[0], f"Field '{unknown[0]}' cannot be updated",
            {"unknown_fields": unknown},
        )
    cleaned: dict = {}
    for key, value in changes.items():
        value = _clean(value)
        if key in ("name", "barcode") and not value:
            return InvalidInput(key, f"Medicine {key} cannot be blank")
        cleaned[key] = value
    return cleaned
