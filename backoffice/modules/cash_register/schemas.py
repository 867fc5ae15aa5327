from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import Field, field_validator

from backoffice.common.schemas import CamelModel, MoneyOut, clean_optional_str
from backoffice.modules.cash_flow.schemas import CashFlowOut
from backoffice.modules.cash_register.models import SessionStatus


class SessionOpen(CamelModel):
    opening_amount: Decimal = Field(..., ge=0, decimal_places=2)
    opening_notes: Optional[str] = None
    opening_date: Optional[date] = Field(None, description="Defaults to today")

    @field_validator("opening_notes")
    @classmethod
    def clean_notes(cls, v):
        return clean_optional_str(v)


class SessionClose(CamelModel):
    closing_amount: Decimal = Field(..., ge=0, decimal_places=2)
    closing_notes: Optional[str] = None

    @field_validator("closing_notes")
    @classmethod
    def clean_notes(cls, v):
        return clean_optional_str(v)


class SessionOut(MoneyOut):
    id: UUID
    company_id: UUID
    opening_date: date
    opening_time: datetime
    opening_amount: Decimal
    opening_notes: Optional[str] = None
    opened_by: UUID
    closing_time: Optional[datetime] = None
    closing_amount: Optional[Decimal] = None
    expected_amount: Optional[Decimal] = None
    difference: Optional[Decimal] = None
    closing_notes: Optional[str] = None
    closed_by: Optional[UUID] = None
    status: SessionStatus


class SessionList(CamelModel):
    items: List[SessionOut]
    total: int
    limit: int
    offset: int


class WithdrawalCreate(CamelModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    reason: str = Field(..., max_length=255)
    notes: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def require_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Reason is required")
        return v


class WithdrawalOut(MoneyOut):
    id: UUID
    company_id: UUID
    cash_register_session_id: Optional[UUID] = None
    amount: Decimal
    withdrawal_date: date
    withdrawal_time: datetime
    reason: str
    notes: Optional[str] = None
    withdrawn_by: UUID


class DailySummary(MoneyOut):
    opening_amount: Decimal
    total_entries: Decimal
    total_exits: Decimal
    total_withdrawals: Decimal
    final_balance: Decimal
    payment_totals: Dict[str, float]


class ReportStatistics(MoneyOut):
    total_transactions: int
    average_ticket: Decimal


class DailyReport(CamelModel):
    report_date: date = Field(..., alias="date")
    cash_session: Optional[SessionOut] = None
    summary: DailySummary
    entries: List[CashFlowOut]
    exits: List[CashFlowOut]
    withdrawals: List[WithdrawalOut]
    statistics: ReportStatistics


class PeriodSummary(MoneyOut):
    total_opening_amount: Decimal
    total_closing_amount: Decimal
    total_difference: Decimal
    total_entries: Decimal
    total_exits: Decimal
    total_withdrawals: Decimal
    net_balance: Decimal
    cash_in_hand: Decimal
    payment_totals: Dict[str, float]
    days_with_sessions: int
    days_open: int
    days_closed: int


class DayTotals(MoneyOut):
    day: date = Field(..., alias="date")
    entries: Decimal
    exits: Decimal
    withdrawals: Decimal


class PeriodStatistics(MoneyOut):
    total_transactions: int
    average_ticket: Decimal
    average_daily_entries: Decimal
    average_daily_exits: Decimal


class PeriodReport(CamelModel):
    start_date: date
    end_date: date
    sessions: List[SessionOut]
    summary: PeriodSummary
    daily_data: List[DayTotals]
    entries: List[CashFlowOut]
    exits: List[CashFlowOut]
    withdrawals: List[WithdrawalOut]
    statistics: PeriodStatistics
