import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from backoffice.common.utils import local_today, to_money
from backoffice.database.database import get_tenant_query
from backoffice.modules.auth.schemas import AuthContext
from backoffice.modules.budgets.models import Budget, BudgetItem, BudgetStatus
from backoffice.modules.budgets.schemas import BudgetCreate, BudgetUpdate, BudgetItemIn, BudgetList
from backoffice.modules.customers.models import Customer
from backoffice.modules.products.models import Product

logger = logging.getLogger(__name__)

LOCKED_STATUSES = (BudgetStatus.APPROVED, BudgetStatus.REJECTED)


class BudgetService:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, auth: AuthContext, budget_id: UUID) -> Budget:
        budget = get_tenant_query(self.db, Budget, auth).options(
            selectinload(Budget.items)
        ).filter(Budget.id == budget_id).first()
        if not budget:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Budget not found")
        return budget

    def _next_number(self, tenant_id: UUID, year: int) -> str:
        """ORC-{year}-{seq}, sequence restarts every year per company"""
        prefix = f"ORC-{year}-"
        last = self.db.query(func.max(Budget.budget_number)).filter(
            Budget.company_id == tenant_id,
            Budget.budget_number.like(f"{prefix}%")
        ).scalar()
        seq = int(last[len(prefix):]) + 1 if last else 1
        return f"{prefix}{seq:05d}"

    def _apply_customer(self, budget: Budget, data, tenant_id: UUID) -> None:
        fields = data.model_dump(exclude_unset=True)
        if data.customer_id:
            customer = self.db.query(Customer).filter(
                Customer.id == data.customer_id,
                Customer.company_id == tenant_id
            ).first()
            if not customer:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Customer not found")
            budget.customer_id = customer.id
            # Snapshot of the customer; explicit values win
            budget.customer_name = data.customer_name or customer.name
            budget.customer_email = data.customer_email or customer.email
            budget.customer_phone = data.customer_phone or customer.phone
            budget.customer_address = data.customer_address or customer.address
            return

        if "customer_id" in fields:
            budget.customer_id = None
        for field in ("customer_name", "customer_email", "customer_phone", "customer_address"):
            if field in fields:
                setattr(budget, field, fields[field])

    def _build_items(self, items: List[BudgetItemIn], tenant_id: UUID) -> List[BudgetItem]:
        result = []
        for order, item in enumerate(items, start=1):
            description = item.description.strip() if item.description else None
            if item.product_id:
                product = self.db.query(Product).filter(
                    Product.id == item.product_id,
                    Product.company_id == tenant_id
                ).first()
                if not product:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Item {order}: product not found"
                    )
                description = description or product.name

            result.append(BudgetItem(
                product_id=item.product_id,
                item_type=item.item_type,
                description=description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=to_money(item.quantity * item.unit_price),
                display_order=order,
            ))
        return result

    def _recalculate(self, budget: Budget) -> None:
        subtotal = to_money(sum((item.total_price for item in budget.items), Decimal("0")))
        discount = to_money(budget.discount or 0)
        if discount > subtotal:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Discount cannot exceed the budget subtotal"
            )
        budget.subtotal = subtotal
        budget.discount = discount
        budget.total = subtotal - discount

    @staticmethod
    def _check_dates(budget: Budget) -> None:
        if budget.validity_date and budget.validity_date < budget.issue_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Validity date cannot be before the issue date"
            )

    def list_budgets(
        self,
        auth: AuthContext,
        status_filter: Optional[BudgetStatus] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> BudgetList:
        query = get_tenant_query(self.db, Budget, auth)
        if status_filter:
            query = query.filter(Budget.status == status_filter)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Budget.budget_number.ilike(pattern), Budget.customer_name.ilike(pattern)))

        total = query.count()
        budgets = query.order_by(Budget.issue_date.desc(), Budget.budget_number.desc()).offset(offset).limit(limit).all()
        return BudgetList(items=budgets, total=total, limit=limit, offset=offset)

    def get_budget(self, auth: AuthContext, budget_id: UUID) -> Budget:
        return self._get(auth, budget_id)

    def create_budget(self, data: BudgetCreate, auth: AuthContext) -> Budget:
        try:
            issue_date = data.issue_date or local_today()
            budget = Budget(
                company_id=auth.tenant_id,
                budget_number=self._next_number(auth.tenant_id, issue_date.year),
                issue_date=issue_date,
                validity_date=data.validity_date,
                discount=data.discount,
                notes=data.notes,
                status=BudgetStatus.DRAFT,
                created_by=auth.user_id,
            )
            self._apply_customer(budget, data, auth.tenant_id)
            if not budget.customer_name:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Customer name is required")
            self._check_dates(budget)

            budget.items = self._build_items(data.items, auth.tenant_id)
            self._recalculate(budget)

            self.db.add(budget)
            self.db.commit()
            self.db.refresh(budget)
            logger.info(f"Budget {budget.budget_number} created for company {auth.tenant_id}")
            return budget

        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Budget number already taken, try again"
            )
        except HTTPException:
            self.db.rollback()
            raise
        except Exception:
            self.db.rollback()
            logger.exception(f"Error creating budget for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def update_budget(self, budget_id: UUID, data: BudgetUpdate, auth: AuthContext) -> Budget:
        budget = self._get(auth, budget_id)
        if budget.status in LOCKED_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Approved or rejected budgets cannot be edited"
            )
        if not auth.can_edit(budget.created_by):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only edit budgets you created"
            )

        try:
            fields = data.model_dump(exclude_unset=True)
            self._apply_customer(budget, data, auth.tenant_id)
            if not budget.customer_name:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Customer name is required")

            for field in ("issue_date", "validity_date", "discount", "notes"):
                if field in fields:
                    if field in ("issue_date", "discount") and fields[field] is None:
                        continue
                    setattr(budget, field, fields[field])
            self._check_dates(budget)

            if data.items is not None:
                if not data.items:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail="A budget needs at least one item"
                    )
                budget.items.clear()
                self.db.flush()
                budget.items.extend(self._build_items(data.items, auth.tenant_id))
            self._recalculate(budget)

            self.db.commit()
            self.db.refresh(budget)
            logger.info(f"Budget {budget.budget_number} updated for company {auth.tenant_id}")
            return budget

        except HTTPException:
            self.db.rollback()
            raise
        except Exception:
            self.db.rollback()
            logger.exception(f"Error updating budget {budget_id} for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def change_status(self, budget_id: UUID, new_status: BudgetStatus, auth: AuthContext) -> Budget:
        budget = self._get(auth, budget_id)
        try:
            budget.status = new_status
            self.db.commit()
            self.db.refresh(budget)
            logger.info(f"Budget {budget.budget_number} moved to {new_status.value}")
            return budget
        except Exception:
            self.db.rollback()
            logger.exception(f"Error changing status of budget {budget_id} for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def delete_budget(self, budget_id: UUID, auth: AuthContext) -> None:
        budget = self._get(auth, budget_id)
        if budget.status == BudgetStatus.APPROVED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Approved budgets cannot be deleted"
            )
        try:
            self.db.delete(budget)
            self.db.commit()
            logger.info(f"Budget {budget.budget_number} deleted for company {auth.tenant_id}")
        except Exception:
            self.db.rollback()
            logger.exception(f"Error deleting budget {budget_id} for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )
