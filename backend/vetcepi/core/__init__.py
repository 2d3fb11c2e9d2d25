"""Core Layer — pure domain logic, no IO, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Functions are pure given their inputs (the cipher draws its salt and nonce
      from os.urandom, nothing else touches the outside world)

Design Decisions:
    - Functional core separated from imperative shell (ADR: impureim sandwich)
"""
