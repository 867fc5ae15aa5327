"""
Testes do caixa diário: abertura, fechamento, sangrias e relatório do dia.
"""
from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi import HTTPException

from backoffice.common.utils import local_today
from backoffice.modules.cash_flow.models import TransactionType
from backoffice.modules.cash_flow.schemas import CashFlowCreate
from backoffice.modules.cash_flow.service import CashFlowService
from backoffice.modules.cash_register.models import CashRegisterSession, CashWithdrawal, SessionStatus
from backoffice.modules.cash_register.schemas import SessionOpen, SessionClose, WithdrawalCreate
from backoffice.modules.cash_register.service import CashRegisterService


def add_transaction(db_session, auth, type, amount, day=None, payment_method=None):
    return CashFlowService(db_session).create_transaction(CashFlowCreate(
        type=type,
        category="Sales" if type == TransactionType.ENTRY else "Expenses",
        amount=Decimal(amount),
        description="Movimento do dia",
        transaction_date=day or local_today(),
        payment_method=payment_method,
    ), auth)


class TestSessions:
    def test_close_computes_expected_and_difference(self, db_session, admin_auth):
        service = CashRegisterService(db_session)
        session = service.open_session(SessionOpen(opening_amount=Decimal("100.00")), admin_auth)
        add_transaction(db_session, admin_auth, TransactionType.ENTRY, "500.00")
        add_transaction(db_session, admin_auth, TransactionType.EXIT, "50.00")

        closed = service.close_session(session.id, SessionClose(closing_amount=Decimal("545.00")), admin_auth)

        assert closed.status == SessionStatus.CLOSED
        assert closed.expected_amount == Decimal("550.00")
        assert closed.difference == Decimal("-5.00")
        assert closed.closed_by == admin_auth.user_id
        assert closed.closing_time is not None

    def test_close_ignores_withdrawals_and_other_days(self, db_session, admin_auth):
        service = CashRegisterService(db_session)
        session = service.open_session(SessionOpen(opening_amount=Decimal("50.00")), admin_auth)
        add_transaction(db_session, admin_auth, TransactionType.ENTRY, "30.00")
        add_transaction(db_session, admin_auth, TransactionType.ENTRY, "999.00", day=local_today() - timedelta(days=1))
        service.create_withdrawal(WithdrawalCreate(amount=Decimal("20.00"), reason="Depósito bancário"), admin_auth)

        closed = service.close_session(session.id, SessionClose(closing_amount=Decimal("80.00")), admin_auth)

        assert closed.expected_amount == Decimal("80.00")
        assert closed.difference == Decimal("0.00")

    def test_second_open_same_day_conflict(self, db_session, admin_auth):
        service = CashRegisterService(db_session)
        service.open_session(SessionOpen(opening_amount=Decimal("100.00")), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.open_session(SessionOpen(opening_amount=Decimal("10.00")), admin_auth)

        assert exc.value.status_code == 409
        assert db_session.query(CashRegisterSession).count() == 1

    def test_reopen_after_close(self, db_session, admin_auth):
        service = CashRegisterService(db_session)
        first = service.open_session(SessionOpen(opening_amount=Decimal("100.00")), admin_auth)
        service.close_session(first.id, SessionClose(closing_amount=Decimal("100.00")), admin_auth)

        second = service.open_session(SessionOpen(opening_amount=Decimal("100.00")), admin_auth)
        assert second.status == SessionStatus.OPEN

    def test_other_dates_and_companies_are_independent(self, db_session, admin_auth, other_auth):
        service = CashRegisterService(db_session)
        service.open_session(SessionOpen(opening_amount=Decimal("100.00")), admin_auth)
        service.open_session(SessionOpen(opening_amount=Decimal("100.00"), opening_date=date(2024, 1, 2)), admin_auth)
        service.open_session(SessionOpen(opening_amount=Decimal("100.00")), other_auth)

        assert service.list_sessions(admin_auth).total == 2
        assert service.list_sessions(other_auth).total == 1

    def test_close_twice_conflict(self, db_session, admin_auth):
        service = CashRegisterService(db_session)
        session = service.open_session(SessionOpen(opening_amount=Decimal("0")), admin_auth)
        service.close_session(session.id, SessionClose(closing_amount=Decimal("0")), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.close_session(session.id, SessionClose(closing_amount=Decimal("0")), admin_auth)
        assert exc.value.status_code == 409

    def test_close_session_of_other_company_not_found(self, db_session, admin_auth, other_auth):
        service = CashRegisterService(db_session)
        session = service.open_session(SessionOpen(opening_amount=Decimal("0")), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.close_session(session.id, SessionClose(closing_amount=Decimal("0")), other_auth)
        assert exc.value.status_code == 404


class TestWithdrawals:
    def test_withdrawal_linked_to_open_session(self, db_session, admin_auth):
        service = CashRegisterService(db_session)
        session = service.open_session(SessionOpen(opening_amount=Decimal("100.00")), admin_auth)

        withdrawal = service.create_withdrawal(
            WithdrawalCreate(amount=Decimal("40.00"), reason="Troco para o cofre"), admin_auth
        )

        assert withdrawal.cash_register_session_id == session.id
        assert withdrawal.withdrawal_date == local_today()
        assert withdrawal.withdrawn_by == admin_auth.user_id

    def test_withdrawal_without_session(self, db_session, admin_auth):
        withdrawal = CashRegisterService(db_session).create_withdrawal(
            WithdrawalCreate(amount=Decimal("15.00"), reason="Pagamento de entregador"), admin_auth
        )
        assert withdrawal.cash_register_session_id is None

    def test_blank_reason_rejected(self):
        with pytest.raises(ValueError):
            WithdrawalCreate(amount=Decimal("10.00"), reason="   ")


class TestDailyReport:
    def test_report_totals(self, db_session, admin_auth):
        service = CashRegisterService(db_session)
        service.open_session(SessionOpen(opening_amount=Decimal("100.00")), admin_auth)
        add_transaction(db_session, admin_auth, TransactionType.ENTRY, "60.00", payment_method="pix")
        add_transaction(db_session, admin_auth, TransactionType.ENTRY, "40.00")
        add_transaction(db_session, admin_auth, TransactionType.EXIT, "25.00")
        service.create_withdrawal(WithdrawalCreate(amount=Decimal("30.00"), reason="Sangria"), admin_auth)

        report = service.daily_report(admin_auth)

        assert report.report_date == local_today()
        assert report.cash_session is not None
        assert report.summary.total_entries == Decimal("100.00")
        assert report.summary.total_exits == Decimal("25.00")
        assert report.summary.total_withdrawals == Decimal("30.00")
        assert report.summary.final_balance == Decimal("145.00")
        assert report.summary.payment_totals == {"pix": 60.0, "not_specified": 40.0}
        assert report.statistics.total_transactions == 3
        assert report.statistics.average_ticket == Decimal("50.00")

    def test_report_of_empty_day(self, db_session, admin_auth):
        report = CashRegisterService(db_session).daily_report(admin_auth, date(2024, 3, 1))

        assert report.cash_session is None
        assert report.summary.final_balance == Decimal("0.00")
        assert report.statistics.average_ticket == Decimal("0.00")


class TestCashRegisterApi:
    def test_open_close_flow(self, client, operational_headers):
        opened = client.post("/cash-register", json={"openingAmount": 100}, headers=operational_headers)
        assert opened.status_code == 201
        session_id = opened.json()["id"]

        again = client.post("/cash-register", json={"openingAmount": 10}, headers=operational_headers)
        assert again.status_code == 409
        assert again.json()["error"].startswith("A cash register is already open")

        closed = client.post(
            f"/cash-register/{session_id}/close", json={"closingAmount": 100}, headers=operational_headers
        )
        assert closed.status_code == 200
        assert closed.json()["status"] == "closed"
        assert closed.json()["difference"] == 0.0

    def test_daily_report_uses_date_key(self, client, admin_headers):
        response = client.get("/cash-register/daily-report", params={"date": "2024-03-01"}, headers=admin_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["date"] == "2024-03-01"
        assert body["summary"]["finalBalance"] == 0.0

    def test_master_needs_a_company(self, client, master_user, headers_for):
        response = client.get("/cash-register", headers=headers_for(master_user))
        assert response.status_code == 400
        assert response.json() == {"error": "A company must be selected (X-Company-ID header)"}

    def test_master_with_company_header(self, client, master_headers):
        response = client.get("/cash-register", headers=master_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 0


class TestPeriodReport:
    @pytest.fixture
    def two_days(self, db_session, admin_auth):
        """Sessions and movements on 2024-03-01 and 2024-03-02, plus one entry outside the range"""
        service = CashRegisterService(db_session)
        first_day, second_day = date(2024, 3, 1), date(2024, 3, 2)
        first = service.open_session(SessionOpen(opening_amount=Decimal("100.00"), opening_date=first_day), admin_auth)
        service.open_session(SessionOpen(opening_amount=Decimal("50.00"), opening_date=second_day), admin_auth)

        add_transaction(db_session, admin_auth, TransactionType.ENTRY, "200.00", day=first_day, payment_method="cash")
        add_transaction(db_session, admin_auth, TransactionType.ENTRY, "100.00", day=first_day, payment_method="pix")
        add_transaction(db_session, admin_auth, TransactionType.EXIT, "30.00", day=first_day, payment_method="cash")
        add_transaction(db_session, admin_auth, TransactionType.ENTRY, "60.00", day=second_day, payment_method="cash")
        add_transaction(db_session, admin_auth, TransactionType.ENTRY, "999.00", day=date(2024, 3, 5))

        service.close_session(first.id, SessionClose(closing_amount=Decimal("365.00")), admin_auth)

        db_session.add(CashWithdrawal(
            company_id=admin_auth.tenant_id,
            amount=Decimal("20.00"),
            withdrawal_date=second_day,
            reason="Depósito bancário",
            withdrawn_by=admin_auth.user_id,
        ))
        db_session.commit()
        return first_day, second_day

    def test_summary(self, db_session, admin_auth, two_days):
        report = CashRegisterService(db_session).period_report(admin_auth, *two_days)

        summary = report.summary
        assert summary.total_opening_amount == Decimal("150.00")
        assert summary.total_closing_amount == Decimal("365.00")
        assert summary.total_difference == Decimal("-5.00")
        assert summary.total_entries == Decimal("360.00")
        assert summary.total_exits == Decimal("30.00")
        assert summary.total_withdrawals == Decimal("20.00")
        assert summary.net_balance == Decimal("330.00")
        assert summary.cash_in_hand == Decimal("210.00")
        assert summary.payment_totals == {"cash": 260.0, "pix": 100.0}
        assert (summary.days_with_sessions, summary.days_open, summary.days_closed) == (2, 1, 1)

    def test_daily_data_and_statistics(self, db_session, admin_auth, two_days):
        report = CashRegisterService(db_session).period_report(admin_auth, *two_days)

        assert [(d.day, d.entries, d.exits, d.withdrawals) for d in report.daily_data] == [
            (date(2024, 3, 1), Decimal("300.00"), Decimal("30.00"), Decimal("0.00")),
            (date(2024, 3, 2), Decimal("60.00"), Decimal("0.00"), Decimal("20.00")),
        ]
        assert report.statistics.total_transactions == 4
        assert report.statistics.average_ticket == Decimal("120.00")
        assert report.statistics.average_daily_entries == Decimal("180.00")
        assert report.statistics.average_daily_exits == Decimal("15.00")

    def test_other_company_sees_nothing(self, db_session, other_auth, two_days):
        report = CashRegisterService(db_session).period_report(other_auth, *two_days)

        assert report.sessions == []
        assert report.summary.total_entries == Decimal("0.00")
        assert report.daily_data == []

    def test_end_before_start(self, db_session, admin_auth):
        with pytest.raises(HTTPException) as exc:
            CashRegisterService(db_session).period_report(admin_auth, date(2024, 3, 2), date(2024, 3, 1))
        assert exc.value.status_code == 400


class TestPeriodReportApi:
    def test_requires_both_dates(self, client, admin_headers):
        response = client.get("/cash-register/period-report", params={"startDate": "2024-03-01"},
                              headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"].startswith("endDate")

    def test_report_keys(self, client, admin_headers):
        response = client.get(
            "/cash-register/period-report",
            params={"startDate": "2024-03-01", "endDate": "2024-03-31"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["startDate"] == "2024-03-01"
        assert body["summary"]["cashInHand"] == 0.0
        assert body["dailyData"] == []
