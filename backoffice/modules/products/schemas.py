from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import Field, field_validator

from backoffice.common.schemas import CamelModel, MoneyOut, clean_optional_str
from backoffice.modules.products.models import MovementType


class ProductCreate(CamelModel):
    code: Optional[int] = Field(None, gt=0, description="Assigned automatically when omitted")
    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    quantity: int = Field(0, ge=0, description="Initial stock")
    barcode: Optional[str] = Field(None, max_length=50)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Product name is required")
        return v

    @field_validator("barcode")
    @classmethod
    def clean_barcode(cls, v):
        return clean_optional_str(v)


class ProductUpdate(CamelModel):
    """Quantity is not editable here; use the stock adjustment endpoint"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    barcode: Optional[str] = Field(None, max_length=50)
    active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Product name cannot be empty")
        return v


class ProductOut(MoneyOut):
    id: UUID
    company_id: UUID
    code: int
    name: str
    price: Decimal
    quantity: int
    barcode: Optional[str] = None
    active: bool
    created_at: datetime
    updated_at: datetime


class ProductList(CamelModel):
    items: List[ProductOut]
    total: int
    limit: int
    offset: int


class StockAdjustment(CamelModel):
    quantity: int = Field(..., description="Signed quantity: positive adds stock, negative removes it")
    notes: str = Field(..., min_length=1, max_length=500)

    @field_validator("quantity")
    @classmethod
    def non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("Adjustment quantity cannot be zero")
        return v


class StockMovementOut(CamelModel):
    id: UUID
    product_id: UUID
    quantity: int
    type: MovementType
    notes: Optional[str] = None
    nfe_invoice_id: Optional[UUID] = None
    created_by: Optional[UUID] = None
    created_at: datetime


class StockMovementList(CamelModel):
    items: List[StockMovementOut]
    total: int
    limit: int
    offset: int
