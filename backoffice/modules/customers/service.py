import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import or_, func, case
from sqlalchemy.orm import Session

from backoffice.common.utils import to_money
from backoffice.database.database import get_tenant_query
from backoffice.modules.auth.schemas import AuthContext
from backoffice.modules.customers.models import Customer
from backoffice.modules.cash_flow.models import CashFlowTransaction, TransactionType
from backoffice.modules.customers.schemas import (
    CustomerCreate, CustomerUpdate, CustomerList, CustomerBalanceOut, CustomerTransactionOut
)

logger = logging.getLogger(__name__)


class CustomerService:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, auth: AuthContext, customer_id: UUID) -> Customer:
        customer = get_tenant_query(self.db, Customer, auth).filter(Customer.id == customer_id).first()
        if not customer:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
        return customer

    def list_customers(
        self,
        auth: AuthContext,
        search: Optional[str] = None,
        active_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> CustomerList:
        query = get_tenant_query(self.db, Customer, auth)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Customer.name.ilike(pattern), Customer.cpf_cnpj.ilike(pattern)))
        if active_only:
            query = query.filter(Customer.active.is_(True))

        total = query.count()
        customers = query.order_by(Customer.name.asc()).offset(offset).limit(limit).all()
        return CustomerList(items=self._with_balance(customers), total=total, limit=limit, offset=offset)

    def get_customer(self, auth: AuthContext, customer_id: UUID) -> Customer:
        return self._get(auth, customer_id)

    def get_customer_detail(self, auth: AuthContext, customer_id: UUID) -> CustomerBalanceOut:
        return self._with_balance([self._get(auth, customer_id)])[0]

    def list_transactions(self, auth: AuthContext, customer_id: UUID) -> List[CustomerTransactionOut]:
        """Sales on credit and payments received from a customer, newest first"""
        customer = self._get(auth, customer_id)
        transactions = self.db.query(CashFlowTransaction).filter(
            CashFlowTransaction.company_id == customer.company_id,
            CashFlowTransaction.customer_id == customer.id,
            CashFlowTransaction.type == TransactionType.ENTRY
        ).order_by(
            CashFlowTransaction.transaction_date.desc(),
            CashFlowTransaction.created_at.desc()
        ).all()

        return [
            CustomerTransactionOut(
                id=t.id,
                transaction_date=t.transaction_date,
                type="payment" if t.amount_received else "sale",
                description=t.description,
                amount=t.amount,
                amount_received=t.amount_received,
                payment_method=t.payment_method,
                notes=t.notes,
            )
            for t in transactions
        ]

    def _receivables(self, customer_ids: List[UUID]) -> Dict[UUID, Tuple[Decimal, Decimal]]:
        """customer_id -> (credit sales not received, amount received)"""
        if not customer_ids:
            return {}
        rows = self.db.query(
            CashFlowTransaction.customer_id,
            func.coalesce(func.sum(case(
                (CashFlowTransaction.amount_received == 0, CashFlowTransaction.amount), else_=0
            )), 0),
            func.coalesce(func.sum(CashFlowTransaction.amount_received), 0),
        ).filter(
            CashFlowTransaction.customer_id.in_(customer_ids),
            CashFlowTransaction.type == TransactionType.ENTRY
        ).group_by(CashFlowTransaction.customer_id).all()
        return {customer_id: (to_money(debt), to_money(paid)) for customer_id, debt, paid in rows}

    def _with_balance(self, customers: List[Customer]) -> List[CustomerBalanceOut]:
        receivables = self._receivables([c.id for c in customers])
        result = []
        for customer in customers:
            debt, paid = receivables.get(customer.id, (Decimal("0.00"), Decimal("0.00")))
            result.append(CustomerBalanceOut.model_validate(customer).model_copy(
                update={"total_debt": debt, "total_paid": paid, "balance": debt - paid}
            ))
        return result

    def create_customer(self, data: CustomerCreate, auth: AuthContext) -> Customer:
        try:
            customer = Customer(
                company_id=auth.tenant_id,
                created_by=auth.user_id,
                **data.model_dump()
            )
            self.db.add(customer)
            self.db.commit()
            self.db.refresh(customer)
            return customer
        except Exception:
            self.db.rollback()
            logger.exception(f"Error creating customer for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def update_customer(self, customer_id: UUID, data: CustomerUpdate, auth: AuthContext) -> Customer:
        customer = self._get(auth, customer_id)
        if not auth.can_edit(customer.created_by):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only edit customers you created"
            )

        try:
            for field, value in data.model_dump(exclude_unset=True).items():
                if field in ("name", "active") and value is None:
                    continue
                setattr(customer, field, value)
            self.db.commit()
            self.db.refresh(customer)
            return customer
        except Exception:
            self.db.rollback()
            logger.exception(f"Error updating customer {customer_id} for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def delete_customer(self, customer_id: UUID, auth: AuthContext) -> None:
        """Soft delete"""
        customer = self._get(auth, customer_id)
        customer.active = False
        self.db.commit()
        logger.info(f"Customer {customer_id} deactivated for company {auth.tenant_id}")
