from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from backoffice.common.schemas import CamelModel, MoneyOut, clean_optional_str
from backoffice.modules.accounts_payable.models import PayableStatus, PayablePriority


class PayableCreate(CamelModel):
    vendor_id: Optional[UUID] = None
    description: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    issue_date: date
    due_date: date
    priority: PayablePriority = PayablePriority.MEDIUM
    category: Optional[str] = Field(None, max_length=100)
    invoice_number: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None

    @field_validator("category", "invoice_number", "notes")
    @classmethod
    def clean_text(cls, v):
        return clean_optional_str(v)

    @model_validator(mode="after")
    def check_dates(self):
        if self.due_date < self.issue_date:
            raise ValueError("Due date cannot be before issue date")
        return self


class PayableUpdate(CamelModel):
    vendor_id: Optional[UUID] = None
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    priority: Optional[PayablePriority] = None
    status: Optional[PayableStatus] = None
    category: Optional[str] = Field(None, max_length=100)
    invoice_number: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class PaymentRequest(CamelModel):
    paid_amount: Decimal = Field(..., gt=0, decimal_places=2)
    paid_date: Optional[date] = None


class PayableOut(MoneyOut):
    id: UUID
    company_id: UUID
    vendor_id: Optional[UUID] = None
    vendor_name: Optional[str] = None
    description: str
    amount: Decimal
    issue_date: date
    due_date: date
    status: PayableStatus
    priority: PayablePriority
    category: Optional[str] = None
    invoice_number: Optional[str] = None
    notes: Optional[str] = None
    payment_date: Optional[date] = None
    payment_amount: Optional[Decimal] = None
    nfe_invoice_id: Optional[UUID] = None
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class PayableList(CamelModel):
    items: List[PayableOut]
    total: int
    limit: int
    offset: int


class StatusTotal(MoneyOut):
    count: int = 0
    amount: Decimal = Decimal("0.00")


class PayableTotals(CamelModel):
    pending: StatusTotal = StatusTotal()
    paid: StatusTotal = StatusTotal()
    partially_paid: StatusTotal = StatusTotal()
    overdue: StatusTotal = StatusTotal()
    cancelled: StatusTotal = StatusTotal()
