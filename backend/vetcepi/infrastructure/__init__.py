"""Infrastructure Layer — database, key management and cross-cutting concerns.

Invariants:
    - Infrastructure may import core types and errors, never services/ or api/
    - All external failures mapped to core/errors.py types
"""
