from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.database.database import get_db
from backoffice.common.schemas import MessageOut
from backoffice.modules.auth.dependencies import AuthDependencies
from backoffice.modules.vendors.schemas import VendorCreate, VendorUpdate, VendorOut, VendorList
from backoffice.modules.vendors.service import VendorService

vendor_router = APIRouter(prefix="/vendors", tags=["Vendors"])


@vendor_router.get("", response_model=VendorList)
def list_vendors(
    search: Optional[str] = Query(None, description="Name or CNPJ"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    return VendorService(db).list_vendors(auth_context, search, limit, offset)


@vendor_router.post("", response_model=VendorOut, status_code=status.HTTP_201_CREATED)
def create_vendor(
    vendor: VendorCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_manager())
):
    """
    Register a vendor. The CNPJ is validated and must be unique within the company.
    """
    return VendorService(db).create_vendor(vendor, auth_context)


@vendor_router.get("/{vendor_id}", response_model=VendorOut)
def get_vendor(
    vendor_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    return VendorService(db).get_vendor(auth_context, vendor_id)


@vendor_router.put("/{vendor_id}", response_model=VendorOut)
def update_vendor(
    vendor_id: UUID,
    vendor: VendorUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_manager())
):
    return VendorService(db).update_vendor(vendor_id, vendor, auth_context)


@vendor_router.delete("/{vendor_id}", response_model=MessageOut)
def delete_vendor(
    vendor_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_manager())
):
    """Delete a vendor that no invoice or payable references."""
    VendorService(db).delete_vendor(vendor_id, auth_context)
    return MessageOut(message="Vendor deleted")
