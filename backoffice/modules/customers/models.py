from uuid import uuid4

from sqlalchemy import Column, String, Boolean, Text, ForeignKey
from sqlalchemy.dialects.postgresql import UUID

from backoffice.database.database import Base
from backoffice.common.mixins import TenantMixin, TimestampMixin


class Customer(Base, TenantMixin, TimestampMixin):
    __tablename__ = "customers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(200), nullable=False)
    cpf_cnpj = Column(String(14), nullable=True)  # Digits only
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    active = Column(Boolean, default=True, nullable=False)  # Soft delete
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
