from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, String, Enum
from sqlalchemy.sql import func
from sqlalchemy.ext.declarative import declared_attr
from ..db.database import Base
import uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def enum_column_type(enum_cls, name: str) -> Enum:
    """Enum type that persists member values rather than member names."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        validate_strings=True,
    )


class TimestampMixin:
    # Python-side defaults keep the attributes loaded after a flush
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=utcnow)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), default=utcnow, onupdate=utcnow)


class UUIDBaseModel(TimestampMixin, Base):
    """Base model with UUID primary key"""
    __abstract__ = True

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)

    @declared_attr
    def __tablename__(cls):
        return cls.__name__.lower()
