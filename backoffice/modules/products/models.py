from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Numeric, Enum, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from backoffice.database.database import Base
from backoffice.common.mixins import TenantMixin, TimestampMixin, ImmutableMixin


class MovementType(str, PyEnum):
    ENTRY = "entry"
    EXIT = "exit"
    ADJUSTMENT = "adjustment"


class Product(Base, TenantMixin, TimestampMixin):
    __tablename__ = "products"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    code = Column(Integer, nullable=False)  # Sequential per company
    name = Column(String(200), nullable=False)
    price = Column(Numeric(15, 2), nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=0)  # Never negative
    barcode = Column(String(50), nullable=True)
    active = Column(Boolean, default=True, nullable=False)

    movements = relationship("StockMovement", back_populates="product", order_by="StockMovement.created_at")

    __table_args__ = (
        UniqueConstraint("company_id", "code", name="uq_product_company_code"),
    )


class StockMovement(Base, TenantMixin, ImmutableMixin):
    """Append-only ledger of every quantity change applied to a product"""
    __tablename__ = "stock_movements"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)  # Signed delta
    type = Column(
        Enum(MovementType, name="stock_movement_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    notes = Column(Text, nullable=True)
    nfe_invoice_id = Column(UUID(as_uuid=True), ForeignKey("nfe_invoices.id"), nullable=True, index=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    product = relationship("Product", back_populates="movements")
