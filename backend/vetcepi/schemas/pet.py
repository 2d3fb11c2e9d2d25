"""Pet Schemas — Pydantic models for the pet records data-access boundary.

Invariants:
    - PetCreate / PetUpdate carry plaintext medical history; it is encrypted by
      the service before any store call
    - PetRecord.medical_history is None exactly when medical_history_status is
      UNDECRYPTABLE, never blank or garbled text in place of a failed decrypt
"""

from pydantic import BaseModel, Field, field_validator

from vetcepi.core.domain_types import MedicalHistoryStatus


class PetCreate(BaseModel):
    """New pet with plaintext medical history."""
    owner_id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    species: str = Field(min_length=1, max_length=100)
    medical_history: str = ""

    @field_validator("name", "species")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty or whitespace")
        return v


class PetUpdate(BaseModel):
    """Partial update; only fields explicitly set are written."""
    owner_id: str | None = Field(None, min_length=1, max_length=64)
    name: str | None = Field(None, min_length=1, max_length=255)
    species: str | None = Field(None, min_length=1, max_length=100)
    medical_history: str | None = None


class PetRecord(BaseModel):
    """Read model with decrypted medical history."""
    id: str
    owner_id: str
    name: str
    species: str
    medical_history: str | None
    medical_history_status: MedicalHistoryStatus = MedicalHistoryStatus.OK
    created_at: str | None = None

    @property
    def medical_history_display(self) -> str:
        """Text for a record card: explicit indicator when decryption failed."""
        if self.medical_history_status is MedicalHistoryStatus.UNDECRYPTABLE:
            return "[unable to decrypt medical history]"
        return self.medical_history or ""
