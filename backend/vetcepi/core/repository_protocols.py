"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Uniqueness is enforced by the store; a violated constraint comes back as
      Conflict, never as a backend-specific error code
    - Rows cross the boundary as plain dicts with str ids and ISO timestamps

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Async in Protocol: implementations do network IO; the pure rules in
      barcode_lookup.py never await
"""

from dataclasses import dataclass
from typing import Any, AsyncIterator, Protocol, Union

from vetcepi.core.domain_types import StoreTable
from vetcepi.core.scan_cooldown import ScanEvent


@dataclass(frozen=True)
class Stored:
    record: dict


@dataclass(frozen=True)
class Conflict:
    """Insert/update violated a uniqueness constraint on field."""
    table: str
    field: str
    value: Any = None


WriteResult = Union[Stored, Conflict]


class RecordStore(Protocol):
    """Contract for keyed record persistence, implemented by shell.

    Failures other than uniqueness conflicts raise DatabaseError.
    """
    async def get_by_field(
        self, table: StoreTable, field: str, value: Any,
    ) -> list[dict]: ...
    async def select_all(
        self, table: StoreTable, order_by: str | None = None,
    ) -> list[dict]: ...
    async def insert(self, table: StoreTable, record: dict) -> WriteResult: ...
    async def update(
        self, table: StoreTable, key: str, changes: dict,
    ) -> WriteResult | None: ...
    async def delete(self, table: StoreTable, key: str) -> bool: ...


class CapabilityCheck(Protocol):
    """Scanning hardware permission (e.g. camera), asked before entering Idle."""
    async def is_granted(self) -> bool: ...


class ScanEventSource(Protocol):
    """Decoder callbacks as an async stream of ScanEvent."""
    def __aiter__(self) -> AsyncIterator[ScanEvent]: ...
