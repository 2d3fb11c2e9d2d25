"""Database Infrastructure — SQLAlchemy declarative Base.

Invariants:
    - Single async engine per process (initialized via infrastructure.database.init_db)
    - Schema changes are applied outside this service; tests build tables from
      Base.metadata
"""
