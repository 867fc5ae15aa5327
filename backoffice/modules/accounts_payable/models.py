from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import Column, String, Text, Date, ForeignKey, Numeric, Enum, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from backoffice.database.database import Base
from backoffice.common.mixins import TenantMixin, TimestampMixin


class PayableStatus(str, PyEnum):
    PENDING = "pending"
    PAID = "paid"
    PARTIALLY_PAID = "partially_paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PayablePriority(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AccountPayable(Base, TenantMixin, TimestampMixin):
    __tablename__ = "accounts_payable"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    vendor_id = Column(UUID(as_uuid=True), ForeignKey("vendors.id"), nullable=True, index=True)
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    status = Column(
        Enum(PayableStatus, name="payable_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=PayableStatus.PENDING,
    )
    priority = Column(
        Enum(PayablePriority, name="payable_priority", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=PayablePriority.MEDIUM,
    )
    category = Column(String(100), nullable=True)
    invoice_number = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    payment_date = Column(Date, nullable=True)
    payment_amount = Column(Numeric(15, 2), nullable=True)

    # Installments generated by an invoice go away with the invoice reversal
    nfe_invoice_id = Column(UUID(as_uuid=True), ForeignKey("nfe_invoices.id"), nullable=True, index=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    vendor = relationship("Vendor")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_accounts_payable_amount_positive"),
    )

    @property
    def vendor_name(self):
        return self.vendor.name if self.vendor else None
