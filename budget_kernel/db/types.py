"""
Module: budget_kernel.db.types
Responsibility: Column types shared by every model.
Architecture position: Kernel > DB.  MUST NOT import from models/, services/,
    or domain/.

Invariants enforced:
    - Money is mapped to Numeric(14, 2) in db/base.py; never float.
    - UTCDateTime stores UTC and always loads timezone-aware values, so
      Python-side comparisons against local-time month boundaries never mix
      naive and aware datetimes (SQLite drops tzinfo on the way back).
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime normalized to UTC on write and read.

    Naive values are rejected on bind; every timestamp entering the store
    comes from an injected Clock and carries a zone.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime not allowed: {value!r}")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @staticmethod
    def now() -> datetime:
        return datetime.now(timezone.utc)
