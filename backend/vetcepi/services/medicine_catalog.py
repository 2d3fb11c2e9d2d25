"""Medicine Catalogue — barcode lookup and lookup-or-create registration over the record store.

Invariants:
    - lookup_by_code never raises for store failures: they become LookupFailed
    - Zero rows -> NotFound, one row -> Found, more -> MultipleMatch (logged as integrity error)
    - register_new validates before any store call; InvalidInput means the store was not touched
    - register_new never raises for store failures either: they become RegistrationFailed
    - A barcode Conflict on insert is answered with DuplicateBarcode carrying the
      re-queried existing record
    - Medicines are never deleted here

Design Decisions:
    - Lookup/registration return closed variants (core/barcode_lookup.py) so the
      scan session can turn them into phases; admin operations (get/update) raise
      VetcepiError subclasses like the rest of the API layer
"""

import logging

from vetcepi.core.barcode_lookup import (
    DuplicateBarcode, Found, InvalidInput, LookupFailed, LookupResult, Medicine,
    MultipleMatch, NewMedicineInput, Registered, RegistrationFailed,
    RegistrationResult,
    classify_lookup, normalize_barcode, validate_medicine_update,
    validate_new_medicine,
)
from vetcepi.core.catalog_quality import QualityReport, build_report
from vetcepi.core.domain_types import StoreTable
from vetcepi.core.errors import (
    DatabaseError, DuplicateBarcodeError, ResourceNotFoundError,
)
from vetcepi.core.repository_protocols import Conflict, RecordStore

logger = logging.getLogger(__name__)

TABLE = StoreTable.MEDICINES


class MedicineCatalog:
    """Medicine lookup, registration and maintenance."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def lookup_by_code(self, code: str) -> LookupResult:
        """Exact barcode match against the catalogue."""
        barcode = normalize_barcode(code)
        if not barcode:
            return LookupFailed(barcode, "Invalid barcode format", retryable=False)

        try:
            rows = await self.store.get_by_field(TABLE, "barcode", barcode)
        except (DatabaseError, OSError) as e:
            logger.error(
                f"Medicine lookup failed: {e}",
                extra={"barcode": barcode, "table": TABLE.value},
            )
            return LookupFailed(barcode, "Failed to query medicine database")

        result = classify_lookup(barcode, rows)
        if isinstance(result, MultipleMatch):
            logger.error(
                f"{result.count} medicines share one barcode",
                extra={
                    "barcode": barcode, "table": TABLE.value,
                    "error_code": "MULTIPLE_MATCH",
                },
            )
        elif isinstance(result, Found):
            logger.debug("Medicine found", extra={"barcode": barcode})
        return result

    async def register_new(self, candidate: NewMedicineInput) -> RegistrationResult:
        """Create a catalogue entry from manual input."""
        record = validate_new_medicine(candidate)
        if isinstance(record, InvalidInput):
            return record

        barcode = record["barcode"]
        try:
            result = await self.store.insert(TABLE, record)
            rows = (
                await self.store.get_by_field(TABLE, "barcode", barcode)
                if isinstance(result, Conflict) else None
            )
        except (DatabaseError, OSError) as e:
            logger.error(
                f"Medicine registration failed: {e}",
                extra={"barcode": barcode, "table": TABLE.value},
            )
            return RegistrationFailed(barcode, "Failed to save medicine")

        if isinstance(result, Conflict):
            existing = Medicine.from_row(rows[0]) if rows else None
            logger.info(
                "Duplicate barcode on registration",
                extra={
                    "barcode": barcode,
                    "record_id": existing.id if existing else None,
                },
            )
            return DuplicateBarcode(barcode, existing)

        medicine = Medicine.from_row(result.record)
        logger.info(
            "Medicine registered",
            extra={"barcode": medicine.barcode, "record_id": medicine.id},
        )
        return Registered(medicine)

    async def get_medicine(self, medicine_id: str) -> Medicine:
        rows = await self.store.get_by_field(TABLE, "id", medicine_id)
        if not rows:
            raise ResourceNotFoundError("Medicine", medicine_id)
        return Medicine.from_row(rows[0])

    async def list_medicines(self) -> list[Medicine]:
        rows = await self.store.select_all(TABLE, order_by="name")
        return [Medicine.from_row(r) for r in rows]

    async def update_medicine(self, medicine_id: str, changes: dict) -> Medicine:
        cleaned = validate_medicine_update(changes)
        if isinstance(cleaned, InvalidInput):
            raise cleaned.to_error()
        if not cleaned:
            return await self.get_medicine(medicine_id)

        result = await self.store.update(TABLE, medicine_id, cleaned)
        if result is None:
            raise ResourceNotFoundError("Medicine", medicine_id)
        if isinstance(result, Conflict):
            rows = await self.store.get_by_field(TABLE, "barcode", result.value)
            existing_id = rows[0]["id"] if rows else None
            raise DuplicateBarcodeError(str(result.value), existing_id)
        return Medicine.from_row(result.record)

    async def quality_report(self) -> QualityReport:
        return build_report(await self.store.select_all(TABLE))
