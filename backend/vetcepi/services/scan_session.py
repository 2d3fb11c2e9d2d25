"""Scan Session — barcode resolution workflow for one interactive scanning session.

Invariants:
    - One ScanSession per scanning UI instance; never shared across sessions
    - Permission is checked by start(); without it the session sits in
      PERMISSION_DENIED and never issues a lookup
    - Cooldown-rejected events cause no transition, no lookup, no notification
    - Events arriving while RESOLVING are dropped the same way
    - lastAccepted time/code are updated before the lookup is awaited
    - Outcome phases (FOUND, NOT_FOUND, MULTIPLE_MATCH, ERROR) hold until
      reset_session() or the next accepted scan
    - A lookup or registration response that arrives after close() or
      reset_session() is discarded
    - Workflow failures are phases, never exceptions raised to the caller;
      a failed registration moves the session to ERROR like a failed lookup
    - One lookup or registration in flight at a time; scans and registrations
      arriving meanwhile are dropped

Design Decisions:
    - Cooldown decided by the pure core/scan_cooldown.evaluate_scan
    - Lookups and registrations run as an asyncio.Task so close() and
      reset_session() can cancel them; a generation counter catches responses
      that raced the cancel
    - Listener errors are logged and swallowed so one broken subscriber
      cannot stall the session
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Union

from vetcepi.config import get_settings
from vetcepi.core.barcode_lookup import (
    Found, LookupFailed, LookupResult, MultipleMatch, NewMedicineInput, NotFound,
    Registered, RegistrationFailed, RegistrationResult,
)
from vetcepi.core.domain_types import ScanPhase
from vetcepi.core.repository_protocols import CapabilityCheck, ScanEventSource
from vetcepi.core.scan_cooldown import (
    DEFAULT_COOLDOWN_MS, CooldownState, ScanEvent, arm_reset, evaluate_scan,
)

logger = logging.getLogger(__name__)

ScanOutcome = Union[LookupResult, RegistrationFailed]

_OUTCOME_PHASES = {
    Found: ScanPhase.FOUND,
    NotFound: ScanPhase.NOT_FOUND,
    MultipleMatch: ScanPhase.MULTIPLE_MATCH,
    LookupFailed: ScanPhase.ERROR,
    RegistrationFailed: ScanPhase.ERROR,
}


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


@dataclass(frozen=True)
class ScanTransition:
    """Notification payload: phase change plus the outcome that caused it."""
    previous: ScanPhase
    current: ScanPhase
    outcome: ScanOutcome | None = None


Listener = Callable[[ScanTransition], None]


class ScanSession:
    """State machine: Idle -> Resolving -> Found | NotFound | MultipleMatch | Error."""

    def __init__(
        self,
        lookup: Callable[[str], Awaitable[LookupResult]],
        register: Callable[[NewMedicineInput], Awaitable[RegistrationResult]] | None = None,
        permission: CapabilityCheck | None = None,
        cooldown_ms: int = DEFAULT_COOLDOWN_MS,
        clock: Callable[[], int] = monotonic_ms,
        session_id: str | None = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.cooldown_ms = cooldown_ms
        self._lookup = lookup
        self._register = register
        self._permission = permission
        self._clock = clock

        self._phase = ScanPhase.IDLE
        self._started = False
        self._closed = False
        self._cooldown = CooldownState()
        self._outcome: ScanOutcome | None = None
        self._generation = 0
        self._inflight: asyncio.Task | None = None
        self._listeners: list[Listener] = []

    @classmethod
    def for_catalog(cls, catalog, **kwargs) -> "ScanSession":
        """Session wired to a MedicineCatalog's lookup and registration.

        cooldown_ms defaults to the SCAN_COOLDOWN_MS setting.
        """
        kwargs.setdefault("cooldown_ms", get_settings().scan_cooldown_ms)
        return cls(catalog.lookup_by_code, catalog.register_new, **kwargs)

    # ─── read-only state ──────────────────────────────────────────

    @property
    def phase(self) -> ScanPhase:
        return self._phase

    @property
    def outcome(self) -> ScanOutcome | None:
        return self._outcome

    @property
    def cooldown_state(self) -> CooldownState:
        return self._cooldown

    @property
    def closed(self) -> bool:
        return self._closed

    # ─── lifecycle ────────────────────────────────────────────────

    async def start(self) -> ScanPhase:
        """Ask for scanning permission; enter IDLE or PERMISSION_DENIED."""
        granted = await self._permission.is_granted() if self._permission else True
        if granted:
            self._started = True
            self._set_phase(ScanPhase.IDLE)
        else:
            logger.warning(
                "Scanning permission denied",
                extra={"scan_session_id": self.session_id},
            )
            self._set_phase(ScanPhase.PERMISSION_DENIED, force=True)
        return self._phase

    async def retry_permission(self) -> ScanPhase:
        if self._phase is not ScanPhase.PERMISSION_DENIED or self._closed:
            return self._phase
        return await self.start()

    async def close(self) -> None:
        """Tear down: cancel in-flight work, drop listeners, discard late responses."""
        if self._closed:
            return
        self._closed = True
        self._generation += 1
        task, self._inflight = self._inflight, None
        if task and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self._listeners.clear()

    async def __aenter__(self) -> "ScanSession":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    # ─── notifications ────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register listener for phase changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ─── workflow ─────────────────────────────────────────────────

    async def handle_scan(self, code: str, at_ms: int | None = None) -> LookupResult | None:
        """Feed one decoder event. Returns the outcome, or None if the event was dropped."""
        if (
            self._closed or not self._started or not self._phase.is_ready
            or self._inflight is not None
        ):
            logger.debug(
                f"Scan ignored in phase {self._phase.value}",
                extra={"scan_session_id": self.session_id},
            )
            return None

        now = self._clock() if at_ms is None else at_ms
        accepted, self._cooldown = evaluate_scan(
            ScanEvent(code, now), self._cooldown, self.cooldown_ms,
        )
        if not accepted:
            logger.debug(
                "Scan cooldown active, ignoring scan",
                extra={"scan_session_id": self.session_id},
            )
            return None

        barcode = code.strip()
        self._outcome = None
        self._set_phase(ScanPhase.RESOLVING)
        outcome = await self._run(self._lookup(barcode), barcode)
        if outcome is None:
            return None

        self._outcome = outcome
        self._set_phase(_OUTCOME_PHASES[type(outcome)], outcome)
        return outcome

    async def register_new(self, candidate: NewMedicineInput) -> RegistrationResult | None:
        """Manual-entry branch.

        Registered resolves the session to FOUND, RegistrationFailed to ERROR.
        InvalidInput and DuplicateBarcode leave the phase alone so the form can
        be corrected. Returns None when the session is closed, busy, or the
        registration was cancelled by close()/reset_session().
        """
        if self._register is None:
            raise RuntimeError("ScanSession has no registration backend")
        if self._closed or self._inflight is not None:
            logger.debug(
                "Registration ignored while session is closed or busy",
                extra={"scan_session_id": self.session_id},
            )
            return None

        barcode = (candidate.barcode or "").strip()
        result = await self._run(
            self._register(candidate), barcode,
            failed=RegistrationFailed, operation="registration",
        )
        if result is None or self._phase is ScanPhase.PERMISSION_DENIED:
            return result

        if isinstance(result, Registered):
            found = Found(result.medicine)
            self._outcome = found
            self._set_phase(ScanPhase.FOUND, found)
        elif isinstance(result, RegistrationFailed):
            self._outcome = result
            self._set_phase(ScanPhase.ERROR, result)
        return result

    def manual_entry(self) -> NewMedicineInput:
        """Creation form pre-filled with the barcode of a NotFound outcome."""
        barcode = self._outcome.barcode if isinstance(self._outcome, NotFound) else ""
        return NewMedicineInput(barcode=barcode)

    def reset_session(self, at_ms: int | None = None) -> None:
        """Re-arm for a new scan without dropping the cooldown guard."""
        if self._closed or self._phase is ScanPhase.PERMISSION_DENIED:
            return
        now = self._clock() if at_ms is None else at_ms
        self._generation += 1
        task, self._inflight = self._inflight, None
        if task and not task.done():
            task.cancel()
        self._cooldown = arm_reset(self._cooldown, now, self.cooldown_ms)
        self._outcome = None
        self._set_phase(ScanPhase.IDLE)

    async def consume(self, source: ScanEventSource) -> None:
        """Drain a decoder event stream until it ends or the session closes."""
        async for event in source:
            if self._closed:
                break
            await self.handle_scan(event.code, at_ms=event.at_ms)

    # ─── internals ────────────────────────────────────────────────

    async def _run(
        self,
        work: Awaitable,
        barcode: str,
        failed: type = LookupFailed,
        operation: str = "lookup",
    ):
        """Await work as the single in-flight task; None if it went stale."""
        generation = self._generation
        task = asyncio.ensure_future(work)
        self._inflight = task
        try:
            outcome = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                logger.info(
                    f"{operation.capitalize()} cancelled",
                    extra={"scan_session_id": self.session_id, "barcode": barcode},
                )
                return None
            # Caller cancelled us; leave the session scannable
            if self._phase is ScanPhase.RESOLVING:
                self._set_phase(ScanPhase.IDLE)
            raise
        except Exception as e:
            logger.error(
                f"Unexpected error during {operation}: {e}",
                exc_info=True,
                extra={"scan_session_id": self.session_id, "barcode": barcode},
            )
            outcome = failed(barcode, "An unexpected error occurred")
        finally:
            if self._inflight is task:
                self._inflight = None

        if generation != self._generation or self._closed:
            logger.info(
                f"Discarding stale {operation} response",
                extra={"scan_session_id": self.session_id, "barcode": barcode},
            )
            return None
        return outcome

    def _set_phase(
        self, phase: ScanPhase, outcome: ScanOutcome | None = None, force: bool = False,
    ) -> None:
        previous = self._phase
        if previous is phase and not force and outcome is None:
            return
        self._phase = phase
        logger.debug(
            f"Scan phase {previous.value} -> {phase.value}",
            extra={"scan_session_id": self.session_id, "phase": phase.value},
        )
        transition = ScanTransition(previous, phase, outcome)
        for listener in list(self._listeners):
            try:
                listener(transition)
            except Exception:
                logger.error(
                    "Scan listener failed",
                    exc_info=True,
                    extra={"scan_session_id": self.session_id},
                )
