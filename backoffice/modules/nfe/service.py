"""
NF-e workflows: intake, edit, processing and reversal.

Each workflow is one unit of work on the request session: every write is
committed together or rolled back together.
"""
import logging
import math
from collections import OrderedDict
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from backoffice.core.config import settings
from backoffice.common.utils import local_today, to_money
from backoffice.database.database import get_tenant_query
from backoffice.modules.auth.schemas import AuthContext
from backoffice.modules.vendors.models import Vendor
from backoffice.modules.products.models import Product, MovementType
from backoffice.modules.products.service import InventoryService, insufficient_stock_message
from backoffice.modules.accounts_payable.models import AccountPayable, PayableStatus
from backoffice.modules.cash_flow.models import CashFlowTransaction, TransactionType
from backoffice.modules.nfe import lifecycle
from backoffice.modules.nfe.models import NfeInvoice, NfeItem, InvoiceStatus, InvoicePaymentStatus
from backoffice.modules.nfe.schemas import NfeBase, NfeCreate, NfeUpdate, NfeItemIn, NfeList

logger = logging.getLogger(__name__)

HEADER_FIELDS = (
    "vendor_id", "nfe_number", "nfe_series", "nfe_access_key", "nfe_protocol", "issue_date",
    "total_tax", "freight_value", "insurance_value", "discount_value", "other_expenses",
    "payment_status", "payment_method", "payment_category", "payment_terms", "installments",
    "first_due_date", "icms_value", "ipi_value", "pis_value", "cofins_value",
    "operation_type", "cfop", "notes",
)


def is_duplicate_number(error: IntegrityError) -> bool:
    """True when the error comes from the (company, number, series) unique key"""
    message = str(error.orig)
    return "uq_nfe_company_number_series" in message or "nfe_invoices.nfe_number" in message


def stock_quantity(quantity) -> int:
    """Stock only moves by whole units: fractional quantities are truncated"""
    return math.floor(Decimal(quantity))


def item_total(item: NfeItemIn) -> Decimal:
    if item.total_price is not None:
        return to_money(item.total_price)
    return to_money(item.quantity * item.unit_price)


def installment_schedule(total: Decimal, installments: int, first_due_date: date) -> List[tuple]:
    """
    (due_date, amount) per installment. Every installment gets total / k
    rounded to cents; the division remainder is not redistributed.
    """
    amount = to_money(Decimal(total) / installments)
    interval = settings.INSTALLMENT_INTERVAL_DAYS
    return [
        (first_due_date + timedelta(days=(i - 1) * interval), amount)
        for i in range(1, installments + 1)
    ]


class NfeService:
    def __init__(self, db: Session):
        self.db = db
        self.inventory = InventoryService(db)

    # Reads

    def _get(self, auth: AuthContext, invoice_id: UUID, lock: bool = False) -> NfeInvoice:
        query = get_tenant_query(self.db, NfeInvoice, auth).filter(NfeInvoice.id == invoice_id)
        if lock:
            query = query.with_for_update().populate_existing()
        invoice = query.first()
        if not invoice:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
        return invoice

    def list_invoices(
        self,
        auth: AuthContext,
        status_filter: Optional[InvoiceStatus] = None,
        vendor_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> NfeList:
        query = get_tenant_query(self.db, NfeInvoice, auth).options(selectinload(NfeInvoice.vendor))

        if status_filter:
            query = query.filter(NfeInvoice.status == status_filter)
        if vendor_id:
            query = query.filter(NfeInvoice.vendor_id == vendor_id)
        if start_date:
            query = query.filter(NfeInvoice.issue_date >= start_date)
        if end_date:
            query = query.filter(NfeInvoice.issue_date <= end_date)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(NfeInvoice.nfe_number.ilike(pattern), NfeInvoice.nfe_access_key.ilike(pattern)))

        total = query.count()
        invoices = query.order_by(
            NfeInvoice.issue_date.desc(),
            NfeInvoice.created_at.desc()
        ).offset(offset).limit(limit).all()
        return NfeList(items=invoices, total=total, limit=limit, offset=offset)

    def get_invoice(self, auth: AuthContext, invoice_id: UUID) -> NfeInvoice:
        return self._get(auth, invoice_id)

    # Validation

    def _validate(self, data: NfeBase, tenant_id: UUID) -> Dict[UUID, Product]:
        """
        Preconditions checked before anything is written. Returns the
        referenced products by id.
        """
        if not data.nfe_number or not data.nfe_series:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invoice number and series are required")

        if not data.vendor_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Vendor is required")

        vendor = self.db.query(Vendor).filter(
            Vendor.id == data.vendor_id,
            Vendor.company_id == tenant_id
        ).first()
        if not vendor:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Vendor not found")

        if not data.issue_date:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Issue date is required")

        if not data.items:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The invoice must have at least one item")

        for position, item in enumerate(data.items, start=1):
            if not item.product_id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Every item must be linked to a product"
                )
            if item.quantity is None or item.quantity <= 0:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Invalid quantity for item {position}: {item.product_description or item.product_id}"
                )

        product_ids = {item.product_id for item in data.items}
        products = self.db.query(Product).filter(
            Product.id.in_(product_ids),
            Product.company_id == tenant_id
        ).all()
        products_by_id = {p.id: p for p in products}
        missing = product_ids - set(products_by_id)
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Product not found: {sorted(str(m) for m in missing)[0]}"
            )

        total = self._grand_total(data)
        if total <= 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invoice total must be greater than zero")

        if self._creates_payables(data.payment_status, data.first_due_date, data.installments):
            if to_money(total / data.installments) <= 0:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Installment amount must be greater than zero"
                )

        return products_by_id

    def _products_total(self, data: NfeBase) -> Decimal:
        if data.total_products is not None:
            return to_money(data.total_products)
        return to_money(sum((item_total(item) for item in data.items), Decimal("0")))

    def _grand_total(self, data: NfeBase) -> Decimal:
        """Declared total, or products + freight + insurance + other expenses + IPI - discount"""
        if data.total_invoice is not None:
            return to_money(data.total_invoice)
        return to_money(
            self._products_total(data)
            + data.freight_value
            + data.insurance_value
            + data.other_expenses
            + data.ipi_value
            - data.discount_value
        )

    @staticmethod
    def _creates_payables(payment_status, first_due_date, installments) -> bool:
        return payment_status == InvoicePaymentStatus.PENDING and first_due_date is not None and installments > 0

    def _ensure_unique_number(self, tenant_id: UUID, number: str, series: str, exclude_id: Optional[UUID] = None):
        query = self.db.query(NfeInvoice).filter(
            NfeInvoice.company_id == tenant_id,
            NfeInvoice.nfe_number == number,
            NfeInvoice.nfe_series == series
        )
        if exclude_id:
            query = query.filter(NfeInvoice.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Invoice {number}/{series} is already registered"
            )

    # Writes

    def _apply_header(self, invoice: NfeInvoice, data: NfeBase):
        for field in HEADER_FIELDS:
            setattr(invoice, field, getattr(data, field))
        invoice.receipt_date = data.receipt_date or local_today()
        invoice.total_products = self._products_total(data)
        invoice.total_invoice = self._grand_total(data)
        invoice.payment_category = data.payment_category or settings.NFE_DEFAULT_PAYMENT_CATEGORY

    def _build_items(self, invoice: NfeInvoice, data: NfeBase, products: Dict[UUID, Product]):
        for position, item in enumerate(data.items, start=1):
            product = products[item.product_id]
            invoice.items.append(NfeItem(
                product_id=item.product_id,
                item_number=position,
                product_code=item.product_code,
                product_description=item.product_description or product.name,
                unit=item.unit or "UN",
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item_total(item),
                discount=item.discount,
                icms_percentage=item.icms_percentage,
                icms_value=item.icms_value,
                ipi_percentage=item.ipi_percentage,
                ipi_value=item.ipi_value,
                ncm=item.ncm,
                cest=item.cest,
                cfop=item.cfop,
                notes=item.notes,
            ))

    def _lock_products(self, tenant_id: UUID, product_ids) -> Dict[UUID, Product]:
        """Lock every product row up front, in id order, so concurrent workflows cannot deadlock"""
        locked = OrderedDict()
        for product_id in sorted(set(product_ids), key=str):
            locked[product_id] = self.inventory.lock_product(tenant_id, product_id)
        return locked

    def _process(self, invoice: NfeInvoice, auth: AuthContext):
        """Stock entry, then installments or the cash flow exit, then the flags"""
        products = self._lock_products(invoice.company_id, [item.product_id for item in invoice.items])

        for item in sorted(invoice.items, key=lambda i: i.item_number):
            self.inventory.increase(
                products[item.product_id],
                stock_quantity(item.quantity),
                auth.user_id,
                notes=f"NF-e entry {invoice.number_series}",
                movement_type=MovementType.ENTRY,
                nfe_invoice_id=invoice.id,
            )

        payables_created = False
        if self._creates_payables(invoice.payment_status, invoice.first_due_date, invoice.installments):
            schedule = installment_schedule(invoice.total_invoice, invoice.installments, invoice.first_due_date)
            for index, (due_date, amount) in enumerate(schedule, start=1):
                description = f"NF-e {invoice.number_series}"
                if invoice.installments > 1:
                    description += f" - Installment {index}/{invoice.installments}"
                self.db.add(AccountPayable(
                    company_id=invoice.company_id,
                    vendor_id=invoice.vendor_id,
                    description=description,
                    amount=amount,
                    issue_date=invoice.issue_date,
                    due_date=due_date,
                    status=PayableStatus.PENDING,
                    category=settings.NFE_PAYABLE_CATEGORY,
                    invoice_number=invoice.number_series,
                    notes=f"Generated from NF-e. {invoice.notes or ''}".strip(),
                    created_by=auth.user_id,
                    nfe_invoice_id=invoice.id,
                ))
            payables_created = True

        if invoice.payment_status == InvoicePaymentStatus.PAID:
            self.db.add(CashFlowTransaction(
                company_id=invoice.company_id,
                type=TransactionType.EXIT,
                category=invoice.payment_category or settings.NFE_DEFAULT_PAYMENT_CATEGORY,
                subcategory=settings.NFE_CASH_FLOW_SUBCATEGORY,
                amount=invoice.total_invoice,
                description=f"NF-e {invoice.number_series}",
                transaction_date=invoice.receipt_date,
                payment_method=invoice.payment_method or "Not specified",
                source_invoice_id=invoice.id,
                created_by=auth.user_id,
            ))

        lifecycle.mark_processed(invoice, auth.user_id, payables_created)

    def _fail(self, message: str, auth: AuthContext, invoice_id=None):
        self.db.rollback()
        logger.exception(f"{message} (company {auth.tenant_id}, invoice {invoice_id})")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

    def create_invoice(self, data: NfeCreate, auth: AuthContext) -> NfeInvoice:
        """
        Register an invoice. With process_now the stock, payables and cash
        flow are applied in the same transaction; otherwise it stays a draft.
        """
        products = self._validate(data, auth.tenant_id)
        self._ensure_unique_number(auth.tenant_id, data.nfe_number, data.nfe_series)

        logger.info(f"Registering NF-e {data.nfe_number}/{data.nfe_series} for company {auth.tenant_id}")
        invoice = NfeInvoice(company_id=auth.tenant_id, created_by=auth.user_id)
        try:
            self._apply_header(invoice, data)
            self._build_items(invoice, data, products)
            self.db.add(invoice)
            self.db.flush()

            if data.process_now:
                self._process(invoice, auth)

            self.db.commit()
            self.db.refresh(invoice)
            logger.info(f"NF-e {invoice.id} registered as {invoice.state.value}")
            return invoice

        except IntegrityError as e:
            if not is_duplicate_number(e):
                self._fail("Integrity error registering NF-e", auth, invoice.id)
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Invoice {data.nfe_number}/{data.nfe_series} is already registered"
            )
        except HTTPException:
            self.db.rollback()
            raise
        except Exception:
            self._fail("Error registering NF-e", auth, invoice.id)

    def update_invoice(self, invoice_id: UUID, data: NfeUpdate, auth: AuthContext) -> NfeInvoice:
        """
        Replace header and items of a draft. Processed invoices must be
        cancelled and registered again.
        """
        invoice = self._get(auth, invoice_id, lock=True)
        lifecycle.ensure_editable(invoice)

        products = self._validate(data, invoice.company_id)
        self._ensure_unique_number(invoice.company_id, data.nfe_number, data.nfe_series, exclude_id=invoice.id)

        try:
            self._apply_header(invoice, data)
            invoice.items.clear()
            self.db.flush()
            self._build_items(invoice, data, products)

            self.db.commit()
            self.db.refresh(invoice)
            logger.info(f"NF-e {invoice_id} updated")
            return invoice

        except IntegrityError as e:
            if not is_duplicate_number(e):
                self._fail("Integrity error updating NF-e", auth, invoice_id)
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Invoice {data.nfe_number}/{data.nfe_series} is already registered"
            )
        except HTTPException:
            self.db.rollback()
            raise
        except Exception:
            self._fail("Error updating NF-e", auth, invoice_id)

    def process_invoice(self, invoice_id: UUID, auth: AuthContext) -> NfeInvoice:
        """Apply stock, payables and cash flow to a stored draft."""
        invoice = self._get(auth, invoice_id, lock=True)
        lifecycle.ensure_processable(invoice)

        try:
            self._process(invoice, auth)
            self.db.commit()
            self.db.refresh(invoice)
            logger.info(f"NF-e {invoice_id} processed")
            return invoice

        except HTTPException:
            self.db.rollback()
            raise
        except Exception:
            self._fail("Error processing NF-e", auth, invoice_id)

    def cancel_invoice(self, invoice_id: UUID, reason: Optional[str], auth: AuthContext) -> NfeInvoice:
        """
        Reverse every effect of the invoice and mark it cancelled.

        Stock is checked for every item before any product is debited, so a
        single shortage leaves everything untouched. Paid and partially paid
        installments are kept.
        """
        reason = (reason or "").strip()
        if not reason:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cancellation reason is required")

        invoice = self._get(auth, invoice_id, lock=True)
        lifecycle.ensure_cancellable(invoice)

        logger.info(f"Cancelling NF-e {invoice_id} for company {invoice.company_id}")
        try:
            if invoice.stock_updated:
                items = sorted(invoice.items, key=lambda i: i.item_number)
                products = self._lock_products(invoice.company_id, [item.product_id for item in items])

                required: Dict[UUID, int] = {}
                for item in items:
                    required[item.product_id] = required.get(item.product_id, 0) + stock_quantity(item.quantity)

                for product_id, quantity in required.items():
                    product = products[product_id]
                    if product.quantity < quantity:
                        raise HTTPException(
                            status_code=status.HTTP_409_CONFLICT,
                            detail=(
                                f"Cannot cancel invoice {invoice.number_series}. "
                                f"{insufficient_stock_message(product, quantity)}. "
                                "Adjust the stock manually before cancelling."
                            )
                        )

                for item in items:
                    self.inventory.decrease(
                        products[item.product_id],
                        stock_quantity(item.quantity),
                        auth.user_id,
                        notes=f"NF-e cancellation {invoice.number_series}: {reason}",
                        movement_type=MovementType.EXIT,
                        nfe_invoice_id=invoice.id,
                    )

            # Past-due installments are stored as pending, so they go too
            unpaid = self.db.query(AccountPayable).filter(
                AccountPayable.nfe_invoice_id == invoice.id,
                AccountPayable.status == PayableStatus.PENDING
            ).all()
            for payable in unpaid:
                self.db.delete(payable)

            posted = self.db.query(CashFlowTransaction).filter(
                CashFlowTransaction.source_invoice_id == invoice.id
            ).all()
            for transaction in posted:
                self.db.delete(transaction)

            lifecycle.mark_cancelled(invoice, reason, auth.user_id)

            self.db.commit()
            self.db.refresh(invoice)
            logger.info(
                f"NF-e {invoice_id} cancelled: {len(unpaid)} payables and {len(posted)} cash flow entries removed"
            )
            return invoice

        except HTTPException:
            self.db.rollback()
            raise
        except Exception:
            self._fail("Error cancelling NF-e", auth, invoice_id)
