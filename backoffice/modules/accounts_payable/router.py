from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.database.database import get_db
from backoffice.common.schemas import MessageOut
from backoffice.modules.auth.dependencies import AuthDependencies
from backoffice.modules.accounts_payable.models import PayableStatus
from backoffice.modules.accounts_payable.schemas import (
    PayableCreate, PayableUpdate, PaymentRequest, PayableOut, PayableList, PayableTotals
)
from backoffice.modules.accounts_payable.service import AccountsPayableService

accounts_payable_router = APIRouter(prefix="/accounts-payable", tags=["Accounts Payable"])


@accounts_payable_router.get("", response_model=PayableList)
def list_payables(
    status_filter: Optional[PayableStatus] = Query(None, alias="status"),
    vendor_id: Optional[UUID] = Query(None, alias="vendorId"),
    start_date: Optional[date] = Query(None, alias="startDate", description="Due date from"),
    end_date: Optional[date] = Query(None, alias="endDate", description="Due date until"),
    search: Optional[str] = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    """List accounts payable ordered by due date."""
    return AccountsPayableService(db).list_payables(
        auth_context, status_filter, vendor_id, start_date, end_date, search, limit, offset
    )


@accounts_payable_router.get("/totals", response_model=PayableTotals)
def get_totals(
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    """Count and amount per status."""
    return AccountsPayableService(db).totals(auth_context)


@accounts_payable_router.get("/upcoming", response_model=List[PayableOut])
def get_upcoming(
    days: int = Query(7, ge=0, le=365),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    """Pending accounts due in the next days, including overdue ones."""
    return AccountsPayableService(db).upcoming(auth_context, days)


@accounts_payable_router.post("", response_model=PayableOut, status_code=status.HTTP_201_CREATED)
def create_payable(
    payable: PayableCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_permission("create_entries"))
):
    return AccountsPayableService(db).create_payable(payable, auth_context)


@accounts_payable_router.get("/{payable_id}", response_model=PayableOut)
def get_payable(
    payable_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    return AccountsPayableService(db).get_payable(auth_context, payable_id)


@accounts_payable_router.put("/{payable_id}", response_model=PayableOut)
def update_payable(
    payable_id: UUID,
    payable: PayableUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_permission("create_entries"))
):
    return AccountsPayableService(db).update_payable(payable_id, payable, auth_context)


@accounts_payable_router.delete("/{payable_id}", response_model=MessageOut)
def delete_payable(
    payable_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_permission("delete_records"))
):
    """
    Delete a manual account. Installments generated by an invoice are removed
    by cancelling the invoice.
    """
    AccountsPayableService(db).delete_payable(payable_id, auth_context)
    return MessageOut(message="Account payable deleted")


@accounts_payable_router.post("/{payable_id}/pay", response_model=PayableOut)
def pay_payable(
    payment: PaymentRequest,
    payable_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_tenant())
):
    """
    Mark an account as paid (or partially paid). Operational users may only
    pay the accounts they created.
    """
    return AccountsPayableService(db).pay(payable_id, payment, auth_context)
