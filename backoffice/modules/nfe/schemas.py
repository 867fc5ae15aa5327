from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import Field, field_validator

from backoffice.common.schemas import CamelModel, MoneyOut, clean_optional_str
from backoffice.modules.nfe.models import InvoiceStatus, InvoicePaymentStatus, InvoiceState


class NfeItemIn(CamelModel):
    product_id: Optional[UUID] = None
    product_code: Optional[str] = Field(None, max_length=60)
    product_description: Optional[str] = Field(None, max_length=255)
    unit: str = Field("UN", max_length=10)
    quantity: Optional[Decimal] = None
    unit_price: Decimal = Field(Decimal("0"), ge=0)
    total_price: Optional[Decimal] = Field(None, ge=0, description="quantity * unitPrice when omitted")
    discount: Decimal = Field(Decimal("0"), ge=0)
    icms_percentage: Decimal = Field(Decimal("0"), ge=0)
    icms_value: Decimal = Field(Decimal("0"), ge=0)
    ipi_percentage: Decimal = Field(Decimal("0"), ge=0)
    ipi_value: Decimal = Field(Decimal("0"), ge=0)
    ncm: Optional[str] = Field(None, max_length=10)
    cest: Optional[str] = Field(None, max_length=10)
    cfop: Optional[str] = Field(None, max_length=10)
    notes: Optional[str] = None


class NfeBase(CamelModel):
    """
    Invoice payload. Required fields are checked by the service so that every
    precondition failure carries its own message.
    """
    vendor_id: Optional[UUID] = None
    nfe_number: Optional[str] = Field(None, max_length=20)
    nfe_series: Optional[str] = Field(None, max_length=5)
    nfe_access_key: Optional[str] = Field(None, max_length=44)
    nfe_protocol: Optional[str] = Field(None, max_length=50)
    issue_date: Optional[date] = None
    receipt_date: Optional[date] = None

    total_products: Optional[Decimal] = Field(None, ge=0)
    total_tax: Decimal = Field(Decimal("0"), ge=0)
    freight_value: Decimal = Field(Decimal("0"), ge=0)
    insurance_value: Decimal = Field(Decimal("0"), ge=0)
    discount_value: Decimal = Field(Decimal("0"), ge=0)
    other_expenses: Decimal = Field(Decimal("0"), ge=0)
    total_invoice: Optional[Decimal] = None

    payment_status: InvoicePaymentStatus = InvoicePaymentStatus.PENDING
    payment_method: Optional[str] = Field(None, max_length=50)
    payment_category: Optional[str] = Field(None, max_length=100)
    payment_terms: Optional[str] = Field(None, max_length=100)
    installments: int = Field(1, ge=0, le=360)
    first_due_date: Optional[date] = None

    icms_value: Decimal = Field(Decimal("0"), ge=0)
    ipi_value: Decimal = Field(Decimal("0"), ge=0)
    pis_value: Decimal = Field(Decimal("0"), ge=0)
    cofins_value: Decimal = Field(Decimal("0"), ge=0)

    operation_type: str = Field("purchase", max_length=30)
    cfop: Optional[str] = Field(None, max_length=10)
    notes: Optional[str] = None

    items: List[NfeItemIn] = []

    @field_validator("nfe_number", "nfe_series", "nfe_access_key", "nfe_protocol",
                     "payment_method", "payment_category", "payment_terms", "cfop", "notes")
    @classmethod
    def clean_text(cls, v):
        return clean_optional_str(v)


class NfeCreate(NfeBase):
    process_now: bool = Field(True, description="Update stock and post payables or cash flow right away")


class NfeUpdate(NfeBase):
    pass


class CancelRequest(CamelModel):
    reason: Optional[str] = None


class NfeItemOut(MoneyOut):
    id: UUID
    product_id: UUID
    item_number: int
    product_code: Optional[str] = None
    product_description: str
    unit: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    discount: Decimal
    icms_percentage: Decimal
    icms_value: Decimal
    ipi_percentage: Decimal
    ipi_value: Decimal
    ncm: Optional[str] = None
    cest: Optional[str] = None
    cfop: Optional[str] = None
    notes: Optional[str] = None


class NfeOut(MoneyOut):
    id: UUID
    company_id: UUID
    vendor_id: UUID
    vendor_name: Optional[str] = None
    vendor_cnpj: Optional[str] = None
    nfe_number: str
    nfe_series: str
    nfe_access_key: Optional[str] = None
    nfe_protocol: Optional[str] = None
    issue_date: date
    receipt_date: date
    total_products: Decimal
    total_tax: Decimal
    freight_value: Decimal
    insurance_value: Decimal
    discount_value: Decimal
    other_expenses: Decimal
    total_invoice: Decimal
    payment_status: InvoicePaymentStatus
    payment_method: Optional[str] = None
    payment_category: Optional[str] = None
    payment_terms: Optional[str] = None
    installments: int
    first_due_date: Optional[date] = None
    icms_value: Decimal
    ipi_value: Decimal
    pis_value: Decimal
    cofins_value: Decimal
    operation_type: str
    cfop: Optional[str] = None
    notes: Optional[str] = None
    stock_updated: bool
    stock_updated_at: Optional[datetime] = None
    accounts_payable_created: bool
    status: InvoiceStatus
    state: InvoiceState
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class NfeDetail(NfeOut):
    items: List[NfeItemOut] = []


class NfeList(CamelModel):
    items: List[NfeOut]
    total: int
    limit: int
    offset: int
