"""
NF-e (purchase invoice) models.

An invoice owns its line items. Products, the vendor, generated payables and
the cash flow entry are referenced, never owned.
"""
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import (
    Column, String, Text, Date, DateTime, Integer, Boolean, ForeignKey, Numeric, Enum,
    UniqueConstraint, CheckConstraint
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from backoffice.database.database import Base
from backoffice.common.mixins import TenantMixin, TimestampMixin, ImmutableMixin


class InvoiceStatus(str, PyEnum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class InvoicePaymentStatus(str, PyEnum):
    PENDING = "pending"
    PAID = "paid"
    PARTIALLY_PAID = "partially_paid"
    OVERDUE = "overdue"


class InvoiceState(str, PyEnum):
    """Lifecycle derived from status and the processing flags"""
    DRAFT = "draft"
    PROCESSED = "processed"
    CANCELLED = "cancelled"


class NfeInvoice(Base, TenantMixin, TimestampMixin):
    __tablename__ = "nfe_invoices"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    vendor_id = Column(UUID(as_uuid=True), ForeignKey("vendors.id"), nullable=False, index=True)

    # Identification
    nfe_number = Column(String(20), nullable=False)
    nfe_series = Column(String(5), nullable=False)
    nfe_access_key = Column(String(44), nullable=True)
    nfe_protocol = Column(String(50), nullable=True)
    issue_date = Column(Date, nullable=False)
    receipt_date = Column(Date, nullable=False)

    # Totals
    total_products = Column(Numeric(15, 2), nullable=False, default=0)
    total_tax = Column(Numeric(15, 2), nullable=False, default=0)
    freight_value = Column(Numeric(15, 2), nullable=False, default=0)
    insurance_value = Column(Numeric(15, 2), nullable=False, default=0)
    discount_value = Column(Numeric(15, 2), nullable=False, default=0)
    other_expenses = Column(Numeric(15, 2), nullable=False, default=0)
    total_invoice = Column(Numeric(15, 2), nullable=False)

    # Payment terms
    payment_status = Column(
        Enum(InvoicePaymentStatus, name="nfe_payment_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=InvoicePaymentStatus.PENDING,
    )
    payment_method = Column(String(50), nullable=True)
    payment_category = Column(String(100), nullable=True)
    payment_terms = Column(String(100), nullable=True)
    installments = Column(Integer, nullable=False, default=1)
    first_due_date = Column(Date, nullable=True)

    # Taxes
    icms_value = Column(Numeric(15, 2), nullable=False, default=0)
    ipi_value = Column(Numeric(15, 2), nullable=False, default=0)
    pis_value = Column(Numeric(15, 2), nullable=False, default=0)
    cofins_value = Column(Numeric(15, 2), nullable=False, default=0)

    operation_type = Column(String(30), nullable=False, default="purchase")
    cfop = Column(String(10), nullable=True)
    notes = Column(Text, nullable=True)

    # Processing flags; only a full reversal undoes their effects
    stock_updated = Column(Boolean, nullable=False, default=False)
    stock_updated_at = Column(DateTime(timezone=True), nullable=True)
    stock_updated_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    accounts_payable_created = Column(Boolean, nullable=False, default=False)

    status = Column(
        Enum(InvoiceStatus, name="nfe_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=InvoiceStatus.ACTIVE,
    )
    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    vendor = relationship("Vendor")
    items = relationship(
        "NfeItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="NfeItem.item_number",
    )

    __table_args__ = (
        UniqueConstraint("company_id", "nfe_number", "nfe_series", name="uq_nfe_company_number_series"),
        CheckConstraint("total_invoice > 0", name="ck_nfe_total_positive"),
        CheckConstraint("NOT accounts_payable_created OR stock_updated", name="ck_nfe_payables_after_stock"),
    )

    @property
    def state(self) -> InvoiceState:
        if self.status == InvoiceStatus.CANCELLED:
            return InvoiceState.CANCELLED
        if self.stock_updated:
            return InvoiceState.PROCESSED
        return InvoiceState.DRAFT

    @property
    def vendor_name(self):
        return self.vendor.name if self.vendor else None

    @property
    def vendor_cnpj(self):
        return self.vendor.cnpj if self.vendor else None

    @property
    def number_series(self) -> str:
        return f"{self.nfe_number}/{self.nfe_series}"


class NfeItem(Base, ImmutableMixin):
    __tablename__ = "nfe_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    nfe_invoice_id = Column(
        UUID(as_uuid=True), ForeignKey("nfe_invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=False)
    item_number = Column(Integer, nullable=False)  # 1-based, input order

    product_code = Column(String(60), nullable=True)
    product_description = Column(String(255), nullable=False)
    unit = Column(String(10), nullable=False, default="UN")
    quantity = Column(Numeric(15, 4), nullable=False)
    unit_price = Column(Numeric(15, 4), nullable=False)
    total_price = Column(Numeric(15, 2), nullable=False)
    discount = Column(Numeric(15, 2), nullable=False, default=0)

    icms_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    icms_value = Column(Numeric(15, 2), nullable=False, default=0)
    ipi_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    ipi_value = Column(Numeric(15, 2), nullable=False, default=0)

    ncm = Column(String(10), nullable=True)
    cest = Column(String(10), nullable=True)
    cfop = Column(String(10), nullable=True)
    notes = Column(Text, nullable=True)

    invoice = relationship("NfeInvoice", back_populates="items")
    product = relationship("Product")

    __table_args__ = (
        UniqueConstraint("nfe_invoice_id", "item_number", name="uq_nfe_item_number"),
    )
