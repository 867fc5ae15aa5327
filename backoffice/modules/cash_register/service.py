import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.common.utils import local_today, to_money
from backoffice.modules.auth.schemas import AuthContext
from backoffice.modules.cash_flow.models import CashFlowTransaction, TransactionType
from backoffice.modules.cash_flow.service import CashFlowService
from backoffice.modules.cash_register.models import CashRegisterSession, CashWithdrawal, SessionStatus
from backoffice.modules.cash_register.schemas import (
    SessionOpen, SessionClose, SessionList, WithdrawalCreate, DailyReport, DailySummary, ReportStatistics,
    PeriodReport, PeriodSummary, PeriodStatistics, DayTotals
)

logger = logging.getLogger(__name__)


class CashRegisterService:
    """
    Daily cash sessions: open -> closed. One open session per company and
    date.
    """

    def __init__(self, db: Session):
        self.db = db

    def _open_session_for(self, tenant_id: UUID, day: date, lock: bool = False) -> Optional[CashRegisterSession]:
        query = self.db.query(CashRegisterSession).filter(
            CashRegisterSession.company_id == tenant_id,
            CashRegisterSession.opening_date == day,
            CashRegisterSession.status == SessionStatus.OPEN
        )
        if lock:
            query = query.with_for_update()
        return query.first()

    def list_sessions(
        self,
        auth: AuthContext,
        status_filter: Optional[SessionStatus] = None,
        day: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> SessionList:
        query = self.db.query(CashRegisterSession).filter(CashRegisterSession.company_id == auth.tenant_id)
        if status_filter:
            query = query.filter(CashRegisterSession.status == status_filter)
        if day:
            query = query.filter(CashRegisterSession.opening_date == day)

        total = query.count()
        sessions = query.order_by(
            CashRegisterSession.opening_date.desc(),
            CashRegisterSession.opening_time.desc()
        ).offset(offset).limit(limit).all()
        return SessionList(items=sessions, total=total, limit=limit, offset=offset)

    def open_session(self, data: SessionOpen, auth: AuthContext) -> CashRegisterSession:
        day = data.opening_date or local_today()
        conflict = HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A cash register is already open for {day.isoformat()}"
        )

        try:
            if self._open_session_for(auth.tenant_id, day, lock=True):
                raise conflict

            session = CashRegisterSession(
                company_id=auth.tenant_id,
                opening_date=day,
                opening_amount=data.opening_amount,
                opening_notes=data.opening_notes,
                opened_by=auth.user_id,
                status=SessionStatus.OPEN,
            )
            self.db.add(session)
            self.db.commit()
            self.db.refresh(session)
            logger.info(f"Cash register {session.id} opened for company {auth.tenant_id} on {day}")
            return session

        except IntegrityError:
            # Lost the race against a concurrent open for the same date
            self.db.rollback()
            raise conflict
        except HTTPException:
            self.db.rollback()
            raise
        except Exception:
            self.db.rollback()
            logger.exception(f"Error opening cash register for company {auth.tenant_id} on {day}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def close_session(self, session_id: UUID, data: SessionClose, auth: AuthContext) -> CashRegisterSession:
        """
        expected = opening + entries - exits of the session date; withdrawals
        are not part of this computation (see the daily report).
        """
        try:
            session = self.db.query(CashRegisterSession).filter(
                CashRegisterSession.id == session_id,
                CashRegisterSession.company_id == auth.tenant_id
            ).with_for_update().populate_existing().first()

            if not session:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cash register not found")
            if session.status == SessionStatus.CLOSED:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Cash register is already closed")

            entries, exits = CashFlowService(self.db).day_totals(auth.tenant_id, session.opening_date)
            expected = to_money(session.opening_amount + entries - exits)

            session.closing_amount = data.closing_amount
            session.expected_amount = expected
            session.difference = to_money(data.closing_amount - expected)
            session.closing_notes = data.closing_notes
            session.closing_time = datetime.now(timezone.utc)
            session.closed_by = auth.user_id
            session.status = SessionStatus.CLOSED

            self.db.commit()
            self.db.refresh(session)
            logger.info(f"Cash register {session_id} closed with difference {session.difference}")
            return session

        except HTTPException:
            self.db.rollback()
            raise
        except Exception:
            self.db.rollback()
            logger.exception(f"Error closing cash register {session_id} for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def create_withdrawal(self, data: WithdrawalCreate, auth: AuthContext) -> CashWithdrawal:
        """Register a sangria, linked to today's open session when there is one."""
        today = local_today()
        session = self._open_session_for(auth.tenant_id, today)

        try:
            withdrawal = CashWithdrawal(
                company_id=auth.tenant_id,
                cash_register_session_id=session.id if session else None,
                amount=data.amount,
                withdrawal_date=today,
                reason=data.reason,
                notes=data.notes,
                withdrawn_by=auth.user_id,
            )
            self.db.add(withdrawal)
            self.db.commit()
            self.db.refresh(withdrawal)
            logger.info(f"Withdrawal {withdrawal.id} of {withdrawal.amount} registered for company {auth.tenant_id}")
            return withdrawal
        except Exception:
            self.db.rollback()
            logger.exception(f"Error registering withdrawal for company {auth.tenant_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    def list_withdrawals(self, auth: AuthContext, day: Optional[date] = None):
        query = self.db.query(CashWithdrawal).filter(CashWithdrawal.company_id == auth.tenant_id)
        if day:
            query = query.filter(CashWithdrawal.withdrawal_date == day)
        return query.order_by(CashWithdrawal.withdrawal_time.desc()).all()

    def daily_report(self, auth: AuthContext, day: Optional[date] = None) -> DailyReport:
        day = day or local_today()

        session = self.db.query(CashRegisterSession).filter(
            CashRegisterSession.company_id == auth.tenant_id,
            CashRegisterSession.opening_date == day
        ).order_by(CashRegisterSession.opening_time.desc()).first()

        transactions = self.db.query(CashFlowTransaction).filter(
            CashFlowTransaction.company_id == auth.tenant_id,
            CashFlowTransaction.transaction_date == day
        ).order_by(CashFlowTransaction.created_at.desc()).all()
        entries = [t for t in transactions if t.type == TransactionType.ENTRY]
        exits = [t for t in transactions if t.type == TransactionType.EXIT]

        withdrawals = self.list_withdrawals(auth, day)

        total_entries = to_money(sum((t.amount for t in entries), Decimal("0")))
        total_exits = to_money(sum((t.amount for t in exits), Decimal("0")))
        total_withdrawals = to_money(sum((w.amount for w in withdrawals), Decimal("0")))
        opening_amount = to_money(session.opening_amount if session else 0)

        payment_totals = {}
        for entry in entries:
            method = entry.payment_method or "not_specified"
            payment_totals[method] = payment_totals.get(method, Decimal("0")) + entry.amount

        average_ticket = to_money(total_entries / len(entries)) if entries else Decimal("0.00")

        return DailyReport(
            report_date=day,
            cash_session=session,
            summary=DailySummary(
                opening_amount=opening_amount,
                total_entries=total_entries,
                total_exits=total_exits,
                total_withdrawals=total_withdrawals,
                final_balance=opening_amount + total_entries - total_exits - total_withdrawals,
                payment_totals={method: float(amount) for method, amount in payment_totals.items()},
            ),
            entries=entries,
            exits=exits,
            withdrawals=withdrawals,
            statistics=ReportStatistics(
                total_transactions=len(entries) + len(exits),
                average_ticket=average_ticket,
            ),
        )

    def period_report(self, auth: AuthContext, start_date: date, end_date: date) -> PeriodReport:
        """
        Sessions, entries, exits and withdrawals between two dates (inclusive),
        with per-day totals. cash_in_hand is the cash received minus cash exits
        and withdrawals.
        """
        if end_date < start_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="End date cannot be before the start date"
            )

        sessions = self.db.query(CashRegisterSession).filter(
            CashRegisterSession.company_id == auth.tenant_id,
            CashRegisterSession.opening_date >= start_date,
            CashRegisterSession.opening_date <= end_date
        ).order_by(CashRegisterSession.opening_date.asc(), CashRegisterSession.opening_time.asc()).all()

        transactions = self.db.query(CashFlowTransaction).filter(
            CashFlowTransaction.company_id == auth.tenant_id,
            CashFlowTransaction.transaction_date >= start_date,
            CashFlowTransaction.transaction_date <= end_date
        ).order_by(CashFlowTransaction.transaction_date.asc(), CashFlowTransaction.created_at.asc()).all()
        entries = [t for t in transactions if t.type == TransactionType.ENTRY]
        exits = [t for t in transactions if t.type == TransactionType.EXIT]

        withdrawals = self.db.query(CashWithdrawal).filter(
            CashWithdrawal.company_id == auth.tenant_id,
            CashWithdrawal.withdrawal_date >= start_date,
            CashWithdrawal.withdrawal_date <= end_date
        ).order_by(CashWithdrawal.withdrawal_date.asc(), CashWithdrawal.withdrawal_time.asc()).all()

        days = {}

        def day_totals(day: date) -> dict:
            return days.setdefault(day, {"entries": Decimal("0"), "exits": Decimal("0"), "withdrawals": Decimal("0")})

        payment_totals = {}
        for entry in entries:
            day_totals(entry.transaction_date)["entries"] += entry.amount
            method = entry.payment_method or "not_specified"
            payment_totals[method] = payment_totals.get(method, Decimal("0")) + entry.amount

        cash_exits = Decimal("0")
        for exit_ in exits:
            day_totals(exit_.transaction_date)["exits"] += exit_.amount
            if exit_.payment_method == settings.CASH_PAYMENT_METHOD:
                cash_exits += exit_.amount

        for withdrawal in withdrawals:
            day_totals(withdrawal.withdrawal_date)["withdrawals"] += withdrawal.amount

        total_entries = to_money(sum((t.amount for t in entries), Decimal("0")))
        total_exits = to_money(sum((t.amount for t in exits), Decimal("0")))
        total_withdrawals = to_money(sum((w.amount for w in withdrawals), Decimal("0")))
        cash_received = payment_totals.get(settings.CASH_PAYMENT_METHOD, Decimal("0"))
        day_count = len(days)

        return PeriodReport(
            start_date=start_date,
            end_date=end_date,
            sessions=sessions,
            summary=PeriodSummary(
                total_opening_amount=to_money(sum((s.opening_amount for s in sessions), Decimal("0"))),
                total_closing_amount=to_money(sum(
                    (s.closing_amount for s in sessions if s.closing_amount is not None), Decimal("0")
                )),
                total_difference=to_money(sum(
                    (s.difference for s in sessions if s.difference is not None), Decimal("0")
                )),
                total_entries=total_entries,
                total_exits=total_exits,
                total_withdrawals=total_withdrawals,
                net_balance=total_entries - total_exits,
                cash_in_hand=to_money(cash_received - cash_exits - total_withdrawals),
                payment_totals={method: float(amount) for method, amount in payment_totals.items()},
                days_with_sessions=len(sessions),
                days_open=sum(1 for s in sessions if s.status == SessionStatus.OPEN),
                days_closed=sum(1 for s in sessions if s.status == SessionStatus.CLOSED),
            ),
            daily_data=[
                DayTotals(day=day, **{key: to_money(value) for key, value in totals.items()})
                for day, totals in sorted(days.items())
            ],
            entries=entries,
            exits=exits,
            withdrawals=withdrawals,
            statistics=PeriodStatistics(
                total_transactions=len(entries) + len(exits),
                average_ticket=to_money(total_entries / len(entries)) if entries else Decimal("0.00"),
                average_daily_entries=to_money(total_entries / day_count) if day_count else Decimal("0.00"),
                average_daily_exits=to_money(total_exits / day_count) if day_count else Decimal("0.00"),
            ),
        )
