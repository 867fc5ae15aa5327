"""
Invoice lifecycle: draft -> processed -> cancelled, with draft -> cancelled
allowed as well.

The persisted columns (status, stock_updated, accounts_payable_created) are
only changed through the transitions below, so the combinations the state
machine does not allow are never written.
"""
from datetime import datetime, timezone
from uuid import UUID

from fastapi import HTTPException, status

from backoffice.modules.nfe.models import NfeInvoice, InvoiceState, InvoiceStatus


def ensure_editable(invoice: NfeInvoice) -> None:
    if invoice.state == InvoiceState.CANCELLED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A cancelled invoice cannot be edited"
        )
    if invoice.stock_updated or invoice.accounts_payable_created:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                "Cannot edit an invoice whose stock or accounts payable were already processed. "
                "Cancel it and create a new one."
            )
        )


def ensure_processable(invoice: NfeInvoice) -> None:
    if invoice.state == InvoiceState.CANCELLED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A cancelled invoice cannot be processed"
        )
    if invoice.state == InvoiceState.PROCESSED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Stock was already processed for this invoice"
        )


def ensure_cancellable(invoice: NfeInvoice) -> None:
    if invoice.state == InvoiceState.CANCELLED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Invoice is already cancelled"
        )


def mark_processed(invoice: NfeInvoice, user_id: UUID, payables_created: bool) -> None:
    """DRAFT -> PROCESSED"""
    ensure_processable(invoice)
    invoice.stock_updated = True
    invoice.stock_updated_at = datetime.now(timezone.utc)
    invoice.stock_updated_by = user_id
    if payables_created:
        invoice.accounts_payable_created = True


def mark_cancelled(invoice: NfeInvoice, reason: str, user_id: UUID) -> None:
    """DRAFT | PROCESSED -> CANCELLED. The flags keep recording what was reversed."""
    ensure_cancellable(invoice)
    invoice.status = InvoiceStatus.CANCELLED
    invoice.cancellation_reason = reason
    invoice.cancelled_at = datetime.now(timezone.utc)
    invoice.cancelled_by = user_id
