"""
Module: compliance_kernel.db.base
Responsibility: Declarative base shared by the activity, task and movement
    tables.  Fixes how Python types map to columns so the same models run
    on PostgreSQL in production and on SQLite in tests.
Architecture position: Kernel > DB.  Imported by every model module; imports
    nothing from the rest of the kernel.

Invariants enforced:
    - Primary keys are uuid4 values.  Domain ids (``task_id``,
      ``activity_id``) are used as the row ``id`` directly.
    - UUIDs are stored as 36-character strings on every backend.
    - ``TrackedBase`` rows carry created_at / updated_at.
"""

from datetime import date, datetime
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, Date, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID <-> String(36).  Accepts UUIDs or their string form on bind."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(value if isinstance(value, PyUUID) else PyUUID(str(value)))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return PyUUID(value)


class Base(DeclarativeBase):
    """
    Declarative base.

    ``Mapped[...]`` annotations resolve through ``type_annotation_map``:
    datetimes are timezone-aware columns, dates are plain ``DATE`` (due
    dates carry no time), counters are BIGINT.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        date: Date,
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Row timestamps.

    Services set both columns from their injected clock.  The server
    defaults only cover rows written outside the services.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
