import logging
from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from backoffice.common.utils import local_today, to_money
from backoffice.database.database import get_tenant_query
from backoffice.modules.auth.schemas import AuthContext
from backoffice.modules.vendors.models import Vendor
from backoffice.modules.accounts_payable.models import AccountPayable, PayableStatus
from backoffice.modules.accounts_payable.schemas import (
    PayableCreate, PayableUpdate, PaymentRequest, PayableOut, PayableList, PayableTotals, StatusTotal
)

logger = logging.getLogger(__name__)


def effective_status(payable: AccountPayable, today: date) -> PayableStatus:
    """Pending entries past their due date are reported as overdue"""
    if payable.status == PayableStatus.PENDING and payable.due_date < today:
        return PayableStatus.OVERDUE
    return payable.status


class AccountsPayableService:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, auth: AuthContext, payable_id: UUID) -> AccountPayable:
        payable = get_tenant_query(self.db, AccountPayable, auth).filter(AccountPayable.id == payable_id).first()
        if not payable:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account payable not found")
        return payable

    def _check_vendor(self, tenant_id: UUID, vendor_id: Optional[UUID]):
        if vendor_id is None:
            return
        vendor = self.db.query(Vendor).filter(Vendor.id == vendor_id, Vendor.company_id == tenant_id).first()
        if not vendor:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Vendor not found")

    def list_payables(
        self,
        auth: AuthContext,
        status_filter: Optional[PayableStatus] = None,
        vendor_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> PayableList:
        query = get_tenant_query(self.db, AccountPayable, auth)

        if status_filter:
            query = query.filter(AccountPayable.status == status_filter)
        if vendor_id:
            query = query.filter(AccountPayable.vendor_id == vendor_id)
        if start_date:
            query = query.filter(AccountPayable.due_date >= start_date)
        if end_date:
            query = query.filter(AccountPayable.due_date <= end_date)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                AccountPayable.description.ilike(pattern),
                AccountPayable.invoice_number.ilike(pattern)
            ))

        total = query.count()
        payables = query.order_by(
            AccountPayable.due_date.asc(),
            AccountPayable.created_at.desc()
        ).offset(offset).limit(limit).all()
        return PayableList(items=payables, total=total, limit=limit, offset=offset)

    def get_payable(self, auth: AuthContext, payable_id: UUID) -> AccountPayable:
        return self._get(auth, payable_id)

    def create_payable(self, data: PayableCreate, auth: AuthContext) -> AccountPayable:
        self._check_vendor(auth.tenant_id, data.vendor_id)
        try:
            payable = AccountPayable(
                company_id=auth.tenant_id,
                created_by=auth.user_id,
                status=PayableStatus.PENDING,
                **data.model_dump()
            )
            self.db.add(payable)
            self.db.commit()
            self.db.refresh(payable)
            logger.info(f"Account payable {payable.id} created for company {auth.tenant_id}")
            return payable
        except Exception:
            self.db.rollback()
            logger.exception(f"Error creating account payable for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def update_payable(self, payable_id: UUID, data: PayableUpdate, auth: AuthContext) -> AccountPayable:
        payable = self._get(auth, payable_id)
        if not auth.can_edit(payable.created_by):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only edit accounts you created"
            )

        update_data = {
            field: value for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in ("vendor_id", "category", "invoice_number", "notes")
        }
        if "vendor_id" in update_data:
            self._check_vendor(payable.company_id, update_data["vendor_id"])

        issue_date = update_data.get("issue_date", payable.issue_date)
        due_date = update_data.get("due_date", payable.due_date)
        if due_date < issue_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Due date cannot be before issue date"
            )

        try:
            for field, value in update_data.items():
                setattr(payable, field, value)
            self.db.commit()
            self.db.refresh(payable)
            return payable
        except Exception:
            self.db.rollback()
            logger.exception(f"Error updating account payable {payable_id} for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def delete_payable(self, payable_id: UUID, auth: AuthContext) -> None:
        payable = self._get(auth, payable_id)
        if payable.nfe_invoice_id is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This account was generated by an invoice; cancel the invoice instead"
            )

        try:
            self.db.delete(payable)
            self.db.commit()
            logger.info(f"Account payable {payable_id} deleted for company {auth.tenant_id}")
        except Exception:
            self.db.rollback()
            logger.exception(f"Error deleting account payable {payable_id} for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def pay(self, payable_id: UUID, data: PaymentRequest, auth: AuthContext) -> AccountPayable:
        """
        Register a payment. A payment below the amount leaves the entry
        partially paid.
        """
        payable = self._get(auth, payable_id)

        if not auth.can_edit(payable.created_by):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to pay this account"
            )
        if payable.status == PayableStatus.PAID:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This account is already paid"
            )
        if payable.status == PayableStatus.CANCELLED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This account is cancelled"
            )

        try:
            payable.status = (
                PayableStatus.PAID if data.paid_amount >= payable.amount else PayableStatus.PARTIALLY_PAID
            )
            payable.payment_amount = data.paid_amount
            payable.payment_date = data.paid_date or local_today()
            self.db.commit()
            self.db.refresh(payable)
            logger.info(f"Account payable {payable_id} marked {payable.status.value}")
            return payable
        except Exception:
            self.db.rollback()
            logger.exception(f"Error paying account payable {payable_id} for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def totals(self, auth: AuthContext) -> PayableTotals:
        today = local_today()
        query = get_tenant_query(self.db, AccountPayable, auth)
        rows = query.with_entities(
            AccountPayable.status,
            AccountPayable.due_date < today,
            func.count(AccountPayable.id),
            func.coalesce(func.sum(AccountPayable.amount), 0),
        ).group_by(AccountPayable.status, AccountPayable.due_date < today).all()

        buckets = {s: StatusTotal() for s in PayableStatus}
        for row_status, past_due, count, amount in rows:
            key = PayableStatus.OVERDUE if row_status == PayableStatus.PENDING and past_due else row_status
            bucket = buckets[key]
            buckets[key] = StatusTotal(count=bucket.count + count, amount=to_money(bucket.amount + to_money(amount)))

        return PayableTotals(**{s.value: total for s, total in buckets.items()})

    def upcoming(self, auth: AuthContext, days: int = 7) -> List[PayableOut]:
        """Pending entries due up to ``days`` from today, overdue ones included"""
        today = local_today()
        limit_date = today + timedelta(days=days)

        payables = get_tenant_query(self.db, AccountPayable, auth).filter(
            AccountPayable.status == PayableStatus.PENDING,
            AccountPayable.due_date <= limit_date
        ).order_by(AccountPayable.due_date.asc(), AccountPayable.created_at.desc()).all()

        return [
            PayableOut.model_validate(p).model_copy(update={"status": effective_status(p, today)})
            for p in payables
        ]
