"""
Common mixins for store-scoped models
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoreMixin:
    """Adds the tenant boundary: every row belongs to exactly one store"""

    @declared_attr
    def store_id(cls):
        return Column(
            UUID(as_uuid=True),
            ForeignKey("stores.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )


class TimestampMixin:
    """Mixin for models that need timestamp tracking"""

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)


class BaseMixin(StoreMixin, TimestampMixin):
    """Combines store and timestamp functionality for most business models"""

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4, index=True)
