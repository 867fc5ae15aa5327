from uuid import uuid4

from sqlalchemy import Column, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from backoffice.database.database import Base
from backoffice.common.mixins import TenantMixin, TimestampMixin


class Vendor(Base, TenantMixin, TimestampMixin):
    __tablename__ = "vendors"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    cnpj = Column(String(14), nullable=False)  # Digits only
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    address = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("company_id", "cnpj", name="uq_vendor_company_cnpj"),
    )
