from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field, EmailStr, field_validator

from backoffice.common.schemas import CamelModel, clean_optional_str
from backoffice.common.validators import only_digits, validate_cnpj


class VendorBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def blank_email(cls, v):
        return clean_optional_str(v) if isinstance(v, str) else v

    @field_validator("phone", "address")
    @classmethod
    def clean_text(cls, v):
        return clean_optional_str(v)


class VendorCreate(VendorBase):
    cnpj: str

    @field_validator("cnpj")
    @classmethod
    def check_cnpj(cls, v: str) -> str:
        if not validate_cnpj(v):
            raise ValueError("Invalid CNPJ")
        return only_digits(v)


class VendorUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        return v


class VendorOut(CamelModel):
    id: UUID
    company_id: UUID
    cnpj: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class VendorList(CamelModel):
    items: List[VendorOut]
    total: int
    limit: int
    offset: int
