"""
Common mixins for multi-tenant models
"""
from sqlalchemy import Column, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func


class TenantMixin:
    """Mixin for multi-tenant models: every row belongs to one company"""

    @declared_attr
    def company_id(cls):
        return Column(UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False, index=True)


class TimestampMixin:
    """Mixin for models that need timestamp tracking"""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class ImmutableMixin:
    """Mixin for append-only audit rows (no updated_at)"""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
