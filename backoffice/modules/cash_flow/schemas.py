from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import Field, field_validator

from backoffice.common.schemas import CamelModel, MoneyOut, clean_optional_str
from backoffice.modules.cash_flow.models import TransactionType


class CashFlowCreate(CamelModel):
    type: TransactionType
    category: str = Field(..., min_length=1, max_length=100)
    subcategory: Optional[str] = Field(None, max_length=100)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    description: str = Field(..., min_length=1, max_length=255)
    transaction_date: date
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    customer_id: Optional[UUID] = None
    amount_received: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)

    @field_validator("subcategory", "payment_method", "notes")
    @classmethod
    def clean_text(cls, v):
        return clean_optional_str(v)


class CashFlowUpdate(CamelModel):
    type: Optional[TransactionType] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    subcategory: Optional[str] = Field(None, max_length=100)
    amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    transaction_date: Optional[date] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    customer_id: Optional[UUID] = None
    amount_received: Optional[Decimal] = Field(None, ge=0, decimal_places=2)


class CashFlowOut(MoneyOut):
    id: UUID
    company_id: UUID
    type: TransactionType
    category: str
    subcategory: Optional[str] = None
    amount: Decimal
    description: str
    transaction_date: date
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    customer_id: Optional[UUID] = None
    amount_received: Decimal
    source_invoice_id: Optional[UUID] = None
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class CashFlowList(CamelModel):
    items: List[CashFlowOut]
    total: int
    limit: int
    offset: int


class CashFlowBalance(MoneyOut):
    entries: Decimal
    exits: Decimal
    total: Decimal
