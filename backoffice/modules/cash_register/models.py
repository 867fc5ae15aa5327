from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import Column, String, Text, Date, DateTime, ForeignKey, Numeric, Enum, CheckConstraint, Index, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from backoffice.database.database import Base
from backoffice.common.mixins import TenantMixin, TimestampMixin


class SessionStatus(str, PyEnum):
    OPEN = "open"
    CLOSED = "closed"


class CashRegisterSession(Base, TenantMixin, TimestampMixin):
    __tablename__ = "cash_register_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    opening_date = Column(Date, nullable=False)
    opening_time = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    opening_amount = Column(Numeric(15, 2), nullable=False)
    opening_notes = Column(Text, nullable=True)
    opened_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)

    closing_time = Column(DateTime(timezone=True), nullable=True)
    closing_amount = Column(Numeric(15, 2), nullable=True)
    expected_amount = Column(Numeric(15, 2), nullable=True)
    difference = Column(Numeric(15, 2), nullable=True)  # counted - expected
    closing_notes = Column(Text, nullable=True)
    closed_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    status = Column(
        Enum(SessionStatus, name="cash_session_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=SessionStatus.OPEN,
    )

    withdrawals = relationship("CashWithdrawal", back_populates="session")

    __table_args__ = (
        CheckConstraint("opening_amount >= 0", name="ck_cash_session_opening_non_negative"),
        # At most one open session per company and date
        Index(
            "uq_cash_session_open_per_date",
            "company_id",
            "opening_date",
            unique=True,
            postgresql_where=text("status = 'open'"),
            sqlite_where=text("status = 'open'"),
        ),
    )


class CashWithdrawal(Base, TenantMixin, TimestampMixin):
    """Sangria: cash taken out of the register during the day"""
    __tablename__ = "cash_withdrawals"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    cash_register_session_id = Column(
        UUID(as_uuid=True), ForeignKey("cash_register_sessions.id"), nullable=True, index=True
    )
    amount = Column(Numeric(15, 2), nullable=False)
    withdrawal_date = Column(Date, nullable=False, index=True)
    withdrawal_time = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    reason = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    withdrawn_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)

    session = relationship("CashRegisterSession", back_populates="withdrawals")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_cash_withdrawal_amount_positive"),
    )
