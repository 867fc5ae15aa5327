import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, case
from sqlalchemy.orm import Session

from backoffice.common.utils import to_money
from backoffice.database.database import get_tenant_query
from backoffice.modules.auth.schemas import AuthContext
from backoffice.modules.cash_flow.models import CashFlowTransaction, TransactionType
from backoffice.modules.cash_flow.schemas import CashFlowCreate, CashFlowUpdate, CashFlowList, CashFlowBalance
from backoffice.modules.customers.models import Customer

logger = logging.getLogger(__name__)


class CashFlowService:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, auth: AuthContext, transaction_id: UUID) -> CashFlowTransaction:
        transaction = get_tenant_query(self.db, CashFlowTransaction, auth).filter(
            CashFlowTransaction.id == transaction_id
        ).first()
        if not transaction:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
        return transaction

    def _ensure_not_invoice_owned(self, transaction: CashFlowTransaction):
        if transaction.source_invoice_id is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This transaction was posted by an invoice; cancel the invoice instead"
            )

    def _check_customer(self, tenant_id: UUID, customer_id: Optional[UUID], type: TransactionType):
        """Only entries (sales and receipts) are linked to a customer of the same company"""
        if customer_id is None:
            return
        if type != TransactionType.ENTRY:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only entries can be linked to a customer"
            )
        exists = self.db.query(Customer.id).filter(
            Customer.id == customer_id,
            Customer.company_id == tenant_id
        ).first()
        if not exists:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Customer not found")

    def list_transactions(
        self,
        auth: AuthContext,
        type: Optional[TransactionType] = None,
        category: Optional[str] = None,
        customer_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> CashFlowList:
        query = get_tenant_query(self.db, CashFlowTransaction, auth)

        if type:
            query = query.filter(CashFlowTransaction.type == type)
        if category:
            query = query.filter(CashFlowTransaction.category == category)
        if customer_id:
            query = query.filter(CashFlowTransaction.customer_id == customer_id)
        if start_date:
            query = query.filter(CashFlowTransaction.transaction_date >= start_date)
        if end_date:
            query = query.filter(CashFlowTransaction.transaction_date <= end_date)

        total = query.count()
        transactions = query.order_by(
            CashFlowTransaction.transaction_date.desc(),
            CashFlowTransaction.created_at.desc()
        ).offset(offset).limit(limit).all()
        return CashFlowList(items=transactions, total=total, limit=limit, offset=offset)

    def get_transaction(self, auth: AuthContext, transaction_id: UUID) -> CashFlowTransaction:
        return self._get(auth, transaction_id)

    def create_transaction(self, data: CashFlowCreate, auth: AuthContext) -> CashFlowTransaction:
        self._check_customer(auth.tenant_id, data.customer_id, data.type)

        try:
            transaction = CashFlowTransaction(
                company_id=auth.tenant_id,
                created_by=auth.user_id,
                **data.model_dump()
            )
            self.db.add(transaction)
            self.db.commit()
            self.db.refresh(transaction)
            logger.info(f"Cash flow {transaction.type.value} {transaction.id} created for company {auth.tenant_id}")
            return transaction
        except Exception:
            self.db.rollback()
            logger.exception(f"Error creating cash flow transaction for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def update_transaction(self, transaction_id: UUID, data: CashFlowUpdate, auth: AuthContext) -> CashFlowTransaction:
        transaction = self._get(auth, transaction_id)
        self._ensure_not_invoice_owned(transaction)
        if not auth.can_edit(transaction.created_by):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only edit transactions you created"
            )

        changes = data.model_dump(exclude_unset=True)
        self._check_customer(
            transaction.company_id,
            changes.get("customer_id", transaction.customer_id),
            changes.get("type") or transaction.type,
        )

        try:
            for field, value in changes.items():
                # Required columns ignore explicit nulls
                if value is None and field in (
                    "type", "category", "amount", "description", "transaction_date", "amount_received"
                ):
                    continue
                setattr(transaction, field, value)
            self.db.commit()
            self.db.refresh(transaction)
            return transaction
        except Exception:
            self.db.rollback()
            logger.exception(f"Error updating cash flow transaction {transaction_id} for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def delete_transaction(self, transaction_id: UUID, auth: AuthContext) -> None:
        transaction = self._get(auth, transaction_id)
        self._ensure_not_invoice_owned(transaction)
        try:
            self.db.delete(transaction)
            self.db.commit()
            logger.info(f"Cash flow transaction {transaction_id} deleted for company {auth.tenant_id}")
        except Exception:
            self.db.rollback()
            logger.exception(f"Error deleting cash flow transaction {transaction_id} for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def sum_by_type(self, query) -> Tuple[Decimal, Decimal]:
        """(entries, exits) of the transactions selected by ``query``"""
        entries, exits = query.with_entities(
            func.coalesce(func.sum(case(
                (CashFlowTransaction.type == TransactionType.ENTRY, CashFlowTransaction.amount), else_=0
            )), 0),
            func.coalesce(func.sum(case(
                (CashFlowTransaction.type == TransactionType.EXIT, CashFlowTransaction.amount), else_=0
            )), 0),
        ).one()
        return to_money(entries), to_money(exits)

    def day_totals(self, tenant_id: UUID, day: date) -> Tuple[Decimal, Decimal]:
        query = self.db.query(CashFlowTransaction).filter(
            CashFlowTransaction.company_id == tenant_id,
            CashFlowTransaction.transaction_date == day
        )
        return self.sum_by_type(query)

    def balance(
        self,
        auth: AuthContext,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> CashFlowBalance:
        query = get_tenant_query(self.db, CashFlowTransaction, auth)
        if start_date:
            query = query.filter(CashFlowTransaction.transaction_date >= start_date)
        if end_date:
            query = query.filter(CashFlowTransaction.transaction_date <= end_date)

        entries, exits = self.sum_by_type(query)
        return CashFlowBalance(entries=entries, exits=exits, total=entries - exits)
