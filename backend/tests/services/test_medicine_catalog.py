"""Medicine Catalogue — tests for lookup, registration and maintenance over a fake store.

Tests cover:
    - lookup_by_code: NotFound / Found / MultipleMatch / LookupFailed
    - register_new: InvalidInput touches no store, DuplicateBarcode carries the existing row
    - get / list / update with their raised errors
    - quality_report over the catalogue
"""

from unittest.mock import AsyncMock

import pytest

from vetcepi.core.barcode_lookup import (
    DuplicateBarcode, Found, InvalidInput, LookupFailed, MultipleMatch,
    NewMedicineInput, NotFound, Registered, RegistrationFailed,
)
from vetcepi.core.errors import (
    DatabaseError, DuplicateBarcodeError, InputValidationError, ResourceNotFoundError,
)
from vetcepi.services.medicine_catalog import MedicineCatalog

from tests.services.fake_store import FakeRecordStore


@pytest.fixture
def store():
    return FakeRecordStore()


@pytest.fixture
def catalog(store):
    return MedicineCatalog(store)


# ─── lookup_by_code ──────────────────────────────────────────────

async def test_unknown_code_is_not_found(catalog):
    result = await catalog.lookup_by_code("0000000000000")
    assert result == NotFound("0000000000000")


async def test_known_code_is_found(catalog, store):
    row = store.seed("medicines", {"barcode": "5012345678900", "name": "Amoxicillin"})
    result = await catalog.lookup_by_code("5012345678900")
    assert isinstance(result, Found)
    assert result.medicine.id == row["id"]


async def test_code_is_trimmed_before_query(catalog, store):
    store.seed("medicines", {"barcode": "123", "name": "Amoxicillin"})
    assert isinstance(await catalog.lookup_by_code(" 123\n"), Found)


async def test_two_rows_is_multiple_match_not_first_row(caplog):
    store = FakeRecordStore(enforce_unique=False)
    store.seed("medicines", {"barcode": "123", "name": "A"})
    store.seed("medicines", {"barcode": "123", "name": "B"})

    result = await MedicineCatalog(store).lookup_by_code("123")

    assert isinstance(result, MultipleMatch)
    assert result.count == 2
    assert any("share one barcode" in r.getMessage() for r in caplog.records)


async def test_store_failure_is_lookup_failed(catalog, store):
    store.fail_with = DatabaseError("connection refused", "execute")
    result = await catalog.lookup_by_code("123")
    assert result == LookupFailed("123", "Failed to query medicine database")
    assert result.retryable


async def test_network_failure_is_lookup_failed(catalog, store):
    store.fail_with = ConnectionResetError("peer reset")
    result = await catalog.lookup_by_code("123")
    assert isinstance(result, LookupFailed)


async def test_blank_code_fails_without_store_call(catalog, store):
    result = await catalog.lookup_by_code("   ")
    assert isinstance(result, LookupFailed)
    assert not result.retryable
    assert store.calls == []


# ─── register_new ────────────────────────────────────────────────

async def test_register_new_creates_record(catalog, store):
    result = await catalog.register_new(NewMedicineInput(
        name="Meloxicam", barcode="4006381333931", dosage="1.5mg/ml",
    ))
    assert isinstance(result, Registered)
    assert result.medicine.name == "Meloxicam"
    assert result.medicine.form is None
    assert len(store.tables["medicines"]) == 1

    lookup = await catalog.lookup_by_code("4006381333931")
    assert lookup == Found(result.medicine)


@pytest.mark.parametrize("candidate,field", [
    (NewMedicineInput(name="", barcode="123"), "name"),
    (NewMedicineInput(name="  ", barcode="123"), "name"),
    (NewMedicineInput(name="Meloxicam", barcode=""), "barcode"),
    (NewMedicineInput(), "name"),
])
async def test_invalid_input_never_reaches_store(catalog, store, candidate, field):
    result = await catalog.register_new(candidate)
    assert isinstance(result, InvalidInput)
    assert result.field == field
    assert store.calls == []


async def test_duplicate_barcode_returns_existing(catalog, store):
    existing = store.seed("medicines", {"barcode": "123", "name": "Amoxicillin"})

    result = await catalog.register_new(NewMedicineInput(name="Other", barcode="123"))

    assert isinstance(result, DuplicateBarcode)
    assert result.existing_id == existing["id"]
    assert result.existing.name == "Amoxicillin"
    assert len(store.tables["medicines"]) == 1


async def test_register_store_failure_is_registration_failed(catalog, store):
    store.fail_with = DatabaseError("disk full", "commit")

    result = await catalog.register_new(NewMedicineInput(name="X", barcode=" 1 "))

    assert result == RegistrationFailed("1", "Failed to save medicine")
    assert result.retryable
    assert isinstance(result.to_error(), DatabaseError)


async def test_failed_requery_after_conflict_is_registration_failed(catalog, store, monkeypatch):
    store.seed("medicines", {"barcode": "123", "name": "Amoxicillin"})
    monkeypatch.setattr(
        store, "get_by_field", AsyncMock(side_effect=ConnectionResetError("peer reset")),
    )

    result = await catalog.register_new(NewMedicineInput(name="Other", barcode="123"))

    assert isinstance(result, RegistrationFailed)
    assert ("insert", "medicines") in store.calls


# ─── maintenance ─────────────────────────────────────────────────

async def test_get_medicine(catalog, store):
    row = store.seed("medicines", {"barcode": "1", "name": "A"})
    assert (await catalog.get_medicine(row["id"])).barcode == "1"
    with pytest.raises(ResourceNotFoundError):
        await catalog.get_medicine("missing")


async def test_list_medicines_sorted_by_name(catalog, store):
    store.seed("medicines", {"barcode": "1", "name": "Meloxicam"})
    store.seed("medicines", {"barcode": "2", "name": "Amoxicillin"})
    names = [m.name for m in await catalog.list_medicines()]
    assert names == ["Amoxicillin", "Meloxicam"]


async def test_update_medicine(catalog, store):
    row = store.seed("medicines", {"barcode": "1", "name": "A"})
    updated = await catalog.update_medicine(row["id"], {"manufacturer": " VetPharm "})
    assert updated.manufacturer == "VetPharm"


async def test_update_with_no_changes_returns_current(catalog, store):
    row = store.seed("medicines", {"barcode": "1", "name": "A"})
    assert (await catalog.update_medicine(row["id"], {})).name == "A"
    assert ("update", "medicines") not in store.calls


async def test_update_errors(catalog, store):
    first = store.seed("medicines", {"barcode": "1", "name": "A"})
    second = store.seed("medicines", {"barcode": "2", "name": "B"})

    with pytest.raises(InputValidationError):
        await catalog.update_medicine(first["id"], {"name": ""})
    with pytest.raises(ResourceNotFoundError):
        await catalog.update_medicine("missing", {"name": "C"})
    with pytest.raises(DuplicateBarcodeError) as exc:
        await catalog.update_medicine(second["id"], {"barcode": "1"})
    assert exc.value.existing_id == first["id"]


async def test_quality_report(catalog, store):
    store.seed("medicines", {"barcode": "12345678", "name": "A"})
    report = await catalog.quality_report()
    assert report.total == 1
    assert report.average_score == 40
