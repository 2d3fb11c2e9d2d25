"""Schemas — Pydantic models for data-access and API boundaries.

Invariants:
    - Schemas carry data only; no IO, no cipher calls
"""
