"""Scan Cooldown — pure acceptance filter for barcode decoder events.

Invariants:
    - A candidate is accepted iff its code differs from the last accepted code
      OR at least cooldown_ms elapsed since the last accepted scan
    - Acceptance updates last_accepted_at_ms / last_accepted_code immediately
    - Blank codes are never accepted; codes compare after strip()
    - A reset does not clear last_accepted_code; it schedules the clear at
      reset time + cooldown_ms
    - State is immutable; every transition returns a new CooldownState

Design Decisions:
    - Pure function of (event, prior state) -> (accepted, new state): testable
      without a camera or a clock
    - Times are integer epoch milliseconds supplied by the caller
"""

from dataclasses import dataclass, replace

DEFAULT_COOLDOWN_MS = 2000


@dataclass(frozen=True)
class ScanEvent:
    """One decoder callback: the raw code and when it was read."""
    code: str
    at_ms: int
    symbology: str | None = None


@dataclass(frozen=True)
class CooldownState:
    last_accepted_at_ms: int | None = None
    last_accepted_code: str | None = None
    code_clears_at_ms: int | None = None

    def code_at(self, now_ms: int) -> str | None:
        """Last accepted code as seen at now_ms (None once a reset's clear time passed)."""
        if self.code_clears_at_ms is not None and now_ms >= self.code_clears_at_ms:
            return None
        return self.last_accepted_code


def evaluate_scan(
    event: ScanEvent, state: CooldownState, cooldown_ms: int = DEFAULT_COOLDOWN_MS,
) -> tuple[bool, CooldownState]:
    """Decide whether event is a new logical scan. Returns (accepted, next_state)."""
    code = event.code.strip()
    if not code:
        return False, state

    if state.last_accepted_at_ms is None:
        elapsed_ok = True
    else:
        elapsed_ok = event.at_ms - state.last_accepted_at_ms >= cooldown_ms

    if elapsed_ok or code != state.code_at(event.at_ms):
        return True, CooldownState(
            last_accepted_at_ms=event.at_ms, last_accepted_code=code,
        )
    return False, state


def arm_reset(
    state: CooldownState, now_ms: int, cooldown_ms: int = DEFAULT_COOLDOWN_MS,
) -> CooldownState:
    """Schedule clearing of the last accepted code cooldown_ms after a reset."""
    return replace(state, code_clears_at_ms=now_ms + cooldown_ms)


def remaining_cooldown_ms(
    state: CooldownState, now_ms: int, cooldown_ms: int = DEFAULT_COOLDOWN_MS,
) -> int:
    """Milliseconds until a repeat of the last code would be accepted (0 if none)."""
    if state.last_accepted_at_ms is None:
        return 0
    return max(0, state.last_accepted_at_ms + cooldown_ms - now_ms)
