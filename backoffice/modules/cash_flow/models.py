from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import Column, String, Text, Date, ForeignKey, Numeric, Enum, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID

from backoffice.database.database import Base
from backoffice.common.mixins import TenantMixin, TimestampMixin


class TransactionType(str, PyEnum):
    ENTRY = "entry"
    EXIT = "exit"


class CashFlowTransaction(Base, TenantMixin, TimestampMixin):
    __tablename__ = "cash_flow_transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    type = Column(
        Enum(TransactionType, name="transaction_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    category = Column(String(100), nullable=False)
    subcategory = Column(String(100), nullable=True)
    amount = Column(Numeric(15, 2), nullable=False)
    description = Column(String(255), nullable=False)
    transaction_date = Column(Date, nullable=False, index=True)
    payment_method = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    # Receivables: an entry with a customer and amount_received = 0 is a sale
    # on credit, one with amount_received > 0 is a payment from that customer
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.id"), nullable=True, index=True)
    amount_received = Column(Numeric(15, 2), nullable=False, default=0)

    # Set when the row was posted by an invoice; the invoice owns it
    source_invoice_id = Column(UUID(as_uuid=True), ForeignKey("nfe_invoices.id"), nullable=True, index=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_cash_flow_amount_positive"),
        CheckConstraint("amount_received >= 0", name="ck_cash_flow_amount_received_non_negative"),
    )
