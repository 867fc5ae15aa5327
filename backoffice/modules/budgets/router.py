from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.database.database import get_db
from backoffice.common.schemas import MessageOut
from backoffice.modules.auth.dependencies import AuthDependencies
from backoffice.modules.budgets.models import BudgetStatus
from backoffice.modules.budgets.schemas import (
    BudgetCreate, BudgetUpdate, BudgetStatusUpdate, BudgetDetail, BudgetList
)
from backoffice.modules.budgets.service import BudgetService

budget_router = APIRouter(prefix="/budgets", tags=["Budgets"])


@budget_router.get("", response_model=BudgetList)
def list_budgets(
    status_filter: Optional[BudgetStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Budget number or customer name"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    return BudgetService(db).list_budgets(auth_context, status_filter, search, limit, offset)


@budget_router.post("", response_model=BudgetDetail, status_code=status.HTTP_201_CREATED)
def create_budget(
    budget: BudgetCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_permission("create_entries"))
):
    """
    Create a budget in draft. The number is generated per company and year
    (ORC-2024-00001) and totals are computed from the items.
    """
    return BudgetService(db).create_budget(budget, auth_context)


@budget_router.get("/{budget_id}", response_model=BudgetDetail)
def get_budget(
    budget_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    return BudgetService(db).get_budget(auth_context, budget_id)


@budget_router.put("/{budget_id}", response_model=BudgetDetail)
def update_budget(
    budget_id: UUID,
    budget: BudgetUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_permission("create_entries"))
):
    """Approved and rejected budgets are read-only."""
    return BudgetService(db).update_budget(budget_id, budget, auth_context)


@budget_router.patch("/{budget_id}/status", response_model=BudgetDetail)
def change_budget_status(
    budget_id: UUID,
    data: BudgetStatusUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_permission("create_entries"))
):
    return BudgetService(db).change_status(budget_id, data.status, auth_context)


@budget_router.delete("/{budget_id}", response_model=MessageOut)
def delete_budget(
    budget_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_permission("delete_records"))
):
    BudgetService(db).delete_budget(budget_id, auth_context)
    return MessageOut(message="Budget deleted")
