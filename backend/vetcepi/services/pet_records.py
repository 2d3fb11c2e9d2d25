"""Pet Records — pets CRUD with the medical history field encrypted at rest.

Invariants:
    - medical_history is encrypted before every insert/update; an
      EncryptionFailure aborts the operation before the store is called
    - Reads decrypt; a DecryptionFailure is logged and returned as
      medical_history=None with status UNDECRYPTABLE, never as garbled text
    - Plaintext medical history never appears in a log record
    - Pets are listed newest first
"""

import logging

from vetcepi.core.domain_types import MedicalHistoryStatus, OwnerId, PetId, StoreTable
from vetcepi.core.errors import (
    DatabaseError, DecryptionFailure, ErrorContext, ResourceNotFoundError,
)
from vetcepi.core.field_cipher import FieldCipher
from vetcepi.core.repository_protocols import Conflict, RecordStore
from vetcepi.infrastructure.key_management import get_field_cipher
from vetcepi.schemas.pet import PetCreate, PetRecord, PetUpdate

logger = logging.getLogger(__name__)

TABLE = StoreTable.PETS


class PetRecordsService:
    """Data-access layer for pets; the only place medical history crosses the cipher."""

    def __init__(self, store: RecordStore, cipher: FieldCipher | None = None):
        self.store = store
        self.cipher = cipher or get_field_cipher()

    async def insert_pet(self, data: PetCreate) -> PetRecord:
        record = data.model_dump()
        record["medical_history"] = self.cipher.encrypt(data.medical_history)

        result = await self.store.insert(TABLE, record)
        if isinstance(result, Conflict):
            raise DatabaseError(
                f"unexpected conflict on {result.field}", "insert",
                ErrorContext(table=TABLE.value),
            )
        logger.info(
            "Pet created", extra={"pet_id": result.record["id"], "table": TABLE.value},
        )
        return self._reveal(result.record)

    async def get_pet(self, pet_id: PetId) -> PetRecord | None:
        rows = await self.store.get_by_field(TABLE, "id", pet_id)
        return self._reveal(rows[0]) if rows else None

    async def list_pets_by_owner(self, owner_id: OwnerId) -> list[PetRecord]:
        rows = await self.store.get_by_field(TABLE, "owner_id", owner_id)
        rows.sort(key=lambda r: r.get("created_at") or "", reverse=True)
        return [self._reveal(r) for r in rows]

    async def update_pet(self, pet_id: PetId, changes: PetUpdate) -> PetRecord:
        updates = changes.model_dump(exclude_unset=True)
        if updates.get("medical_history") is not None:
            updates["medical_history"] = self.cipher.encrypt(updates["medical_history"])
        elif "medical_history" in updates:
            updates["medical_history"] = ""

        if not updates:
            pet = await self.get_pet(pet_id)
            if pet is None:
                raise ResourceNotFoundError("Pet", pet_id)
            return pet

        result = await self.store.update(TABLE, pet_id, updates)
        if result is None:
            raise ResourceNotFoundError("Pet", pet_id)
        if isinstance(result, Conflict):
            raise DatabaseError(
                f"unexpected conflict on {result.field}", "update",
                ErrorContext(table=TABLE.value, record_id=pet_id),
            )
        return self._reveal(result.record)

    async def delete_pet(self, pet_id: PetId) -> bool:
        return await self.store.delete(TABLE, pet_id)

    def _reveal(self, row: dict) -> PetRecord:
        status = MedicalHistoryStatus.OK
        try:
            history = self.cipher.decrypt(row.get("medical_history") or "")
        except DecryptionFailure as e:
            logger.error(
                f"Medical history could not be decrypted: {e.reason}",
                extra={"pet_id": row.get("id"), "error_code": e.code},
            )
            history = None
            status = MedicalHistoryStatus.UNDECRYPTABLE
        return PetRecord(
            id=str(row["id"]),
            owner_id=row["owner_id"],
            name=row["name"],
            species=row["species"],
            medical_history=history,
            medical_history_status=status,
            created_at=row.get("created_at"),
        )
