from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.database.database import get_db
from backoffice.common.schemas import MessageOut
from backoffice.modules.auth.dependencies import AuthDependencies
from backoffice.modules.cash_flow.models import TransactionType
from backoffice.modules.cash_flow.schemas import (
    CashFlowCreate, CashFlowUpdate, CashFlowOut, CashFlowList, CashFlowBalance
)
from backoffice.modules.cash_flow.service import CashFlowService

cash_flow_router = APIRouter(prefix="/cash-flow", tags=["Cash Flow"])


@cash_flow_router.get("", response_model=CashFlowList)
def list_transactions(
    type: Optional[TransactionType] = Query(None, description="entry or exit"),
    category: Optional[str] = Query(None),
    customer_id: Optional[UUID] = Query(None, alias="customerId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    """List cash flow transactions, newest first."""
    return CashFlowService(db).list_transactions(
        auth_context, type, category, customer_id, start_date, end_date, limit, offset
    )


@cash_flow_router.get("/balance", response_model=CashFlowBalance)
def get_balance(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    """Sum of entries, exits and their difference."""
    return CashFlowService(db).balance(auth_context, start_date, end_date)


@cash_flow_router.post("", response_model=CashFlowOut, status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction: CashFlowCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_permission("create_entries"))
):
    return CashFlowService(db).create_transaction(transaction, auth_context)


@cash_flow_router.get("/{transaction_id}", response_model=CashFlowOut)
def get_transaction(
    transaction_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    return CashFlowService(db).get_transaction(auth_context, transaction_id)


@cash_flow_router.put("/{transaction_id}", response_model=CashFlowOut)
def update_transaction(
    transaction_id: UUID,
    transaction: CashFlowUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_permission("create_entries"))
):
    """
    Update a manual transaction. Rows posted by an invoice are read-only.
    """
    return CashFlowService(db).update_transaction(transaction_id, transaction, auth_context)


@cash_flow_router.delete("/{transaction_id}", response_model=MessageOut)
def delete_transaction(
    transaction_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_permission("delete_records"))
):
    CashFlowService(db).delete_transaction(transaction_id, auth_context)
    return MessageOut(message="Transaction deleted")
