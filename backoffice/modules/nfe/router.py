from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.database.database import get_db
from backoffice.modules.auth.dependencies import AuthDependencies
from backoffice.modules.nfe.models import InvoiceStatus
from backoffice.modules.nfe.schemas import NfeCreate, NfeUpdate, CancelRequest, NfeOut, NfeDetail, NfeList
from backoffice.modules.nfe.service import NfeService

nfe_router = APIRouter(prefix="/nfe", tags=["NF-e"])


@nfe_router.get("", response_model=NfeList)
def list_invoices(
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    vendor_id: Optional[UUID] = Query(None, alias="vendorId"),
    start_date: Optional[date] = Query(None, alias="startDate", description="Issue date from"),
    end_date: Optional[date] = Query(None, alias="endDate", description="Issue date until"),
    search: Optional[str] = Query(None, description="Number or access key"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    """List invoices, most recent issue date first."""
    return NfeService(db).list_invoices(
        auth_context, status_filter, vendor_id, start_date, end_date, search, limit, offset
    )


@nfe_router.post("", response_model=NfeDetail, status_code=status.HTTP_201_CREATED)
def create_invoice(
    invoice: NfeCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_manager())
):
    """
    Register a purchase invoice.

    With processNow (default) the stock of every item is increased and, by
    payment status, installments are generated (pending) or a cash flow exit
    is posted (paid). Everything is applied in one transaction.
    """
    return NfeService(db).create_invoice(invoice, auth_context)


@nfe_router.get("/{invoice_id}", response_model=NfeDetail)
def get_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    """Invoice with its items in item order."""
    return NfeService(db).get_invoice(auth_context, invoice_id)


@nfe_router.put("/{invoice_id}", response_model=NfeDetail)
def update_invoice(
    invoice_id: UUID,
    invoice: NfeUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_manager())
):
    """
    Edit a draft invoice. Items are replaced as a whole.
    """
    return NfeService(db).update_invoice(invoice_id, invoice, auth_context)


@nfe_router.post("/{invoice_id}/process", response_model=NfeDetail)
def process_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_manager())
):
    """Process a draft: stock, then installments or cash flow."""
    return NfeService(db).process_invoice(invoice_id, auth_context)


@nfe_router.post("/{invoice_id}/cancel", response_model=NfeOut)
def cancel_invoice(
    invoice_id: UUID,
    request: CancelRequest,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_manager())
):
    """
    Cancel an invoice and reverse its stock, unpaid installments and cash
    flow entry.
    """
    return NfeService(db).cancel_invoice(invoice_id, request.reason, auth_context)


@nfe_router.delete("/{invoice_id}", response_model=NfeOut)
def delete_invoice(
    invoice_id: UUID,
    request: CancelRequest,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_manager())
):
    """Same as cancel; invoices are never physically deleted."""
    return NfeService(db).cancel_invoice(invoice_id, request.reason, auth_context)
