from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.database.database import get_db
from backoffice.common.schemas import MessageOut
from backoffice.modules.auth.dependencies import AuthDependencies
from backoffice.modules.customers.schemas import (
    CustomerCreate, CustomerUpdate, CustomerOut, CustomerBalanceOut, CustomerList, CustomerTransactionOut
)
from backoffice.modules.customers.service import CustomerService

customer_router = APIRouter(prefix="/customers", tags=["Customers"])


@customer_router.get("", response_model=CustomerList)
def list_customers(
    search: Optional[str] = Query(None, description="Name or document"),
    active: bool = Query(False, description="Only active customers"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    return CustomerService(db).list_customers(auth_context, search, active, limit, offset)


@customer_router.post("", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
def create_customer(
    customer: CustomerCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_permission("create_entries"))
):
    return CustomerService(db).create_customer(customer, auth_context)


@customer_router.get("/{customer_id}", response_model=CustomerBalanceOut)
def get_customer(
    customer_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    """Customer with total debt, total paid and balance."""
    return CustomerService(db).get_customer_detail(auth_context, customer_id)


@customer_router.get("/{customer_id}/transactions", response_model=List[CustomerTransactionOut])
def list_customer_transactions(
    customer_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.get_auth_context)
):
    """Sales on credit and payments received, newest first."""
    return CustomerService(db).list_transactions(auth_context, customer_id)


@customer_router.put("/{customer_id}", response_model=CustomerOut)
def update_customer(
    customer_id: UUID,
    customer: CustomerUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_permission("create_entries"))
):
    """Operational users may only edit the customers they created."""
    return CustomerService(db).update_customer(customer_id, customer, auth_context)


@customer_router.delete("/{customer_id}", response_model=MessageOut)
def delete_customer(
    customer_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_permission("delete_records"))
):
    """Deactivate a customer."""
    CustomerService(db).delete_customer(customer_id, auth_context)
    return MessageOut(message="Customer deactivated")
