from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import Column, String, Text, Date, Integer, ForeignKey, Numeric, Enum, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from backoffice.database.database import Base
from backoffice.common.mixins import TenantMixin, TimestampMixin


class BudgetStatus(str, PyEnum):
    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class BudgetItemType(str, PyEnum):
    PRODUCT = "product"
    CUSTOM = "custom"


class Budget(Base, TenantMixin, TimestampMixin):
    __tablename__ = "budgets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.id"), nullable=True, index=True)
    budget_number = Column(String(20), nullable=False)  # ORC-YYYY-NNNNN

    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(30), nullable=True)
    customer_address = Column(Text, nullable=True)

    issue_date = Column(Date, nullable=False)
    validity_date = Column(Date, nullable=True)

    subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    discount = Column(Numeric(15, 2), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)

    notes = Column(Text, nullable=True)
    status = Column(
        Enum(BudgetStatus, name="budget_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=BudgetStatus.DRAFT,
    )
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    items = relationship(
        "BudgetItem",
        back_populates="budget",
        cascade="all, delete-orphan",
        order_by="BudgetItem.display_order",
    )

    __table_args__ = (
        UniqueConstraint("company_id", "budget_number", name="uq_budget_company_number"),
    )


class BudgetItem(Base):
    __tablename__ = "budget_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    budget_id = Column(UUID(as_uuid=True), ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=True)
    item_type = Column(
        Enum(BudgetItemType, name="budget_item_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=BudgetItemType.CUSTOM,
    )
    description = Column(String(255), nullable=False)
    quantity = Column(Numeric(15, 3), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    total_price = Column(Numeric(15, 2), nullable=False)
    display_order = Column(Integer, nullable=False, default=0)

    budget = relationship("Budget", back_populates="items")
