import logging
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from backoffice.database.database import get_tenant_query
from backoffice.modules.auth.schemas import AuthContext
from backoffice.modules.vendors.models import Vendor
from backoffice.modules.vendors.schemas import VendorCreate, VendorUpdate, VendorList
from backoffice.modules.accounts_payable.models import AccountPayable
from backoffice.modules.nfe.models import NfeInvoice

logger = logging.getLogger(__name__)


class VendorService:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, auth: AuthContext, vendor_id: UUID) -> Vendor:
        vendor = get_tenant_query(self.db, Vendor, auth).filter(Vendor.id == vendor_id).first()
        if not vendor:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vendor not found")
        return vendor

    def list_vendors(self, auth: AuthContext, search: Optional[str] = None, limit: int = 50, offset: int = 0) -> VendorList:
        query = get_tenant_query(self.db, Vendor, auth)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Vendor.name.ilike(pattern), Vendor.cnpj.ilike(pattern)))

        total = query.count()
        vendors = query.order_by(Vendor.name.asc()).offset(offset).limit(limit).all()
        return VendorList(items=vendors, total=total, limit=limit, offset=offset)

    def get_vendor(self, auth: AuthContext, vendor_id: UUID) -> Vendor:
        return self._get(auth, vendor_id)

    def create_vendor(self, data: VendorCreate, auth: AuthContext) -> Vendor:
        existing = self.db.query(Vendor).filter(
            Vendor.company_id == auth.tenant_id,
            Vendor.cnpj == data.cnpj
        ).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A vendor with this CNPJ already exists"
            )

        try:
            vendor = Vendor(company_id=auth.tenant_id, **data.model_dump())
            self.db.add(vendor)
            self.db.commit()
            self.db.refresh(vendor)
            logger.info(f"Vendor {vendor.id} created for company {auth.tenant_id}")
            return vendor
        except Exception:
            self.db.rollback()
            logger.exception(f"Error creating vendor for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def update_vendor(self, vendor_id: UUID, data: VendorUpdate, auth: AuthContext) -> Vendor:
        vendor = self._get(auth, vendor_id)
        update_data = data.model_dump(exclude_unset=True)
        if not update_data:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

        try:
            for field, value in update_data.items():
                if field == "name" and value is None:
                    continue
                setattr(vendor, field, value)
            self.db.commit()
            self.db.refresh(vendor)
            return vendor
        except Exception:
            self.db.rollback()
            logger.exception(f"Error updating vendor {vendor_id} for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def delete_vendor(self, vendor_id: UUID, auth: AuthContext) -> None:
        vendor = self._get(auth, vendor_id)

        payables = self.db.query(AccountPayable).filter(AccountPayable.vendor_id == vendor.id).count()
        invoices = self.db.query(NfeInvoice).filter(NfeInvoice.vendor_id == vendor.id).count()
        if payables or invoices:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Vendor cannot be deleted: it is referenced by invoices or accounts payable"
            )

        try:
            self.db.delete(vendor)
            self.db.commit()
            logger.info(f"Vendor {vendor_id} deleted for company {auth.tenant_id}")
        except Exception:
            self.db.rollback()
            logger.exception(f"Error deleting vendor {vendor_id} for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )
