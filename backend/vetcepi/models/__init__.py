"""ORM Models — SQLAlchemy declarative models for persisted entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - All models imported here so Base.metadata knows every table before
      create_all or the first query runs
"""

from vetcepi.models.medicine import Medicine  # noqa: F401
from vetcepi.models.pet import Pet  # noqa: F401
