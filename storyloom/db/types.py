"""
Column types shared by the Storyloom models.

Production runs on PostgreSQL while the test suite and local development use
SQLite, so identifiers go through ``GUID`` which picks the native UUID type
where one exists and a 36-character string otherwise.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.types import CHAR, TypeDecorator


def as_uuid(value: Any) -> uuid.UUID:
    """Coerce a UUID or its string form; raises ``ValueError`` otherwise."""
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str):
        return uuid.UUID(value)
    raise ValueError(f"Invalid UUID value: {value!r}")


class GUID(TypeDecorator):
    """UUID primary/foreign key column, native on Postgres, CHAR(36) elsewhere."""

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value: Any, dialect):
        if value is None:
            return None
        u = as_uuid(value)
        return u if dialect.name == "postgresql" else str(u)

    def process_result_value(self, value: Any, dialect):
        if value is None:
            return None
        return as_uuid(value if isinstance(value, uuid.UUID) else str(value))
