from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from backoffice.core.config import settings
from backoffice.dependencies.dbDependencies import db_dependency
from backoffice.dependencies.authDependencies import tenant_dependency
from backoffice.modules.cash_register.models import SessionStatus
from backoffice.modules.cash_register.schemas import (
    SessionOpen, SessionClose, SessionOut, SessionList, WithdrawalCreate, WithdrawalOut, DailyReport,
    PeriodReport
)
from backoffice.modules.cash_register.service import CashRegisterService

cash_register_router = APIRouter(prefix="/cash-register", tags=["Cash Register"])


@cash_register_router.get("", response_model=SessionList)
def list_sessions(
    db: db_dependency,
    auth_context: tenant_dependency,
    status_filter: Optional[SessionStatus] = Query(None, alias="status"),
    day: Optional[date] = Query(None, alias="date"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
):
    """List cash register sessions, most recent first."""
    return CashRegisterService(db).list_sessions(auth_context, status_filter, day, limit, offset)


@cash_register_router.post("", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
def open_session(data: SessionOpen, db: db_dependency, auth_context: tenant_dependency):
    """
    Open the cash register for a date (today by default). Only one session
    may be open per date.
    """
    return CashRegisterService(db).open_session(data, auth_context)


@cash_register_router.post("/{session_id}/close", response_model=SessionOut)
def close_session(session_id: UUID, data: SessionClose, db: db_dependency, auth_context: tenant_dependency):
    """
    Close a session, computing the expected amount and the difference to the
    counted amount.
    """
    return CashRegisterService(db).close_session(session_id, data, auth_context)


@cash_register_router.get("/withdrawals", response_model=List[WithdrawalOut])
def list_withdrawals(
    db: db_dependency,
    auth_context: tenant_dependency,
    day: Optional[date] = Query(None, alias="date"),
):
    return CashRegisterService(db).list_withdrawals(auth_context, day)


@cash_register_router.post("/withdrawals", response_model=WithdrawalOut, status_code=status.HTTP_201_CREATED)
def create_withdrawal(data: WithdrawalCreate, db: db_dependency, auth_context: tenant_dependency):
    """Register a sangria (cash withdrawal)."""
    return CashRegisterService(db).create_withdrawal(data, auth_context)


@cash_register_router.get("/daily-report", response_model=DailyReport)
def daily_report(
    db: db_dependency,
    auth_context: tenant_dependency,
    day: Optional[date] = Query(None, alias="date"),
):
    """
    Session, entries, exits and withdrawals of a day. The final balance here
    does subtract withdrawals.
    """
    return CashRegisterService(db).daily_report(auth_context, day)


@cash_register_router.get("/period-report", response_model=PeriodReport)
def period_report(
    db: db_dependency,
    auth_context: tenant_dependency,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
):
    """Sessions and movements between two dates, with totals per day."""
    return CashRegisterService(db).period_report(auth_context, start_date, end_date)
