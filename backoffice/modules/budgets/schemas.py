from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import Field, EmailStr, field_validator, model_validator

from backoffice.common.schemas import CamelModel, MoneyOut, clean_optional_str
from backoffice.modules.budgets.models import BudgetStatus, BudgetItemType


class BudgetItemIn(CamelModel):
    product_id: Optional[UUID] = None
    item_type: BudgetItemType = BudgetItemType.CUSTOM
    description: Optional[str] = Field(None, max_length=255)
    quantity: Decimal = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)

    @model_validator(mode="after")
    def check_item(self):
        if self.item_type == BudgetItemType.PRODUCT and not self.product_id:
            raise ValueError("Product items must reference a product")
        if self.item_type == BudgetItemType.CUSTOM and not clean_optional_str(self.description):
            raise ValueError("Custom items need a description")
        return self


class BudgetBase(CamelModel):
    customer_id: Optional[UUID] = None
    customer_name: Optional[str] = Field(None, max_length=200)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(None, max_length=30)
    customer_address: Optional[str] = None
    issue_date: Optional[date] = None
    validity_date: Optional[date] = None
    discount: Decimal = Field(Decimal("0"), ge=0)
    notes: Optional[str] = None

    @field_validator("customer_name", "customer_phone", "customer_address", "notes")
    @classmethod
    def clean_text(cls, v):
        return clean_optional_str(v)

    @field_validator("customer_email", mode="before")
    @classmethod
    def blank_email(cls, v):
        return clean_optional_str(v) if isinstance(v, str) else v


class BudgetCreate(BudgetBase):
    items: List[BudgetItemIn] = Field(..., min_length=1)


class BudgetUpdate(BudgetBase):
    """Items, when sent, replace the whole set"""
    items: Optional[List[BudgetItemIn]] = None


class BudgetStatusUpdate(CamelModel):
    status: BudgetStatus


class BudgetItemOut(MoneyOut):
    id: UUID
    product_id: Optional[UUID] = None
    item_type: BudgetItemType
    description: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    display_order: int


class BudgetOut(MoneyOut):
    id: UUID
    company_id: UUID
    customer_id: Optional[UUID] = None
    budget_number: str
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    issue_date: date
    validity_date: Optional[date] = None
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    notes: Optional[str] = None
    status: BudgetStatus
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class BudgetDetail(BudgetOut):
    items: List[BudgetItemOut] = []


class BudgetList(CamelModel):
    items: List[BudgetOut]
    total: int
    limit: int
    offset: int
