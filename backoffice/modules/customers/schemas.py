from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import Field, EmailStr, field_validator

from backoffice.common.schemas import CamelModel, MoneyOut, clean_optional_str
from backoffice.common.validators import only_digits, validate_cpf_cnpj


def _check_document(v: Optional[str]) -> Optional[str]:
    v = clean_optional_str(v)
    if v is None:
        return None
    if not validate_cpf_cnpj(v):
        raise ValueError("Invalid CPF/CNPJ")
    return only_digits(v)


class CustomerCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    cpf_cnpj: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    address: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Customer name is required")
        return v

    @field_validator("cpf_cnpj")
    @classmethod
    def check_document(cls, v):
        return _check_document(v)

    @field_validator("email", mode="before")
    @classmethod
    def blank_email(cls, v):
        return clean_optional_str(v) if isinstance(v, str) else v


class CustomerUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    cpf_cnpj: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    active: Optional[bool] = None

    @field_validator("cpf_cnpj")
    @classmethod
    def check_document(cls, v):
        return _check_document(v)


class CustomerOut(CamelModel):
    id: UUID
    company_id: UUID
    name: str
    cpf_cnpj: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    active: bool
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class CustomerBalanceOut(CustomerOut, MoneyOut):
    """
    Customer with receivables: total_debt sums credit sales (entries with
    nothing received), total_paid sums the amounts received, balance is the
    difference.
    """
    total_debt: Decimal = Decimal("0.00")
    total_paid: Decimal = Decimal("0.00")
    balance: Decimal = Decimal("0.00")


class CustomerTransactionOut(MoneyOut):
    id: UUID
    transaction_date: date = Field(..., alias="date")
    type: str  # sale or payment
    description: str
    amount: Decimal
    amount_received: Decimal
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class CustomerList(CamelModel):
    items: List[CustomerBalanceOut]
    total: int
    limit: int
    offset: int
