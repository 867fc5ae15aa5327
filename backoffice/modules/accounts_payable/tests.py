"""
Testes de contas a pagar: cadastro, pagamento total e parcial, vencidas,
totais por situação e contas geradas por NF-e.
"""
from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi import HTTPException

from backoffice.common.utils import local_today
from backoffice.modules.accounts_payable.models import AccountPayable, PayableStatus
from backoffice.modules.accounts_payable.schemas import PayableCreate, PayableUpdate, PaymentRequest
from backoffice.modules.accounts_payable.service import AccountsPayableService, effective_status
from backoffice.modules.vendors.models import Vendor


@pytest.fixture
def vendor(db_session, sample_company):
    vendor = Vendor(company_id=sample_company.id, cnpj="11222333000181", name="Laticínios Serra Azul")
    db_session.add(vendor)
    db_session.commit()
    return vendor


def payable_data(vendor=None, amount="250.00", due_in=10, **overrides):
    today = local_today()
    data = {
        "vendor_id": vendor.id if vendor else None,
        "description": "Compra de laticínios",
        "amount": Decimal(amount),
        "issue_date": today - timedelta(days=30),
        "due_date": today + timedelta(days=due_in),
        "category": "Goods purchase",
    }
    data.update(overrides)
    return PayableCreate(**data)


class TestEffectiveStatus:
    def test_pending_past_due_is_overdue(self):
        payable = AccountPayable(status=PayableStatus.PENDING, due_date=date(2024, 1, 10))
        assert effective_status(payable, date(2024, 1, 11)) == PayableStatus.OVERDUE
        assert effective_status(payable, date(2024, 1, 10)) == PayableStatus.PENDING

    def test_paid_never_overdue(self):
        payable = AccountPayable(status=PayableStatus.PAID, due_date=date(2024, 1, 10))
        assert effective_status(payable, date(2024, 6, 1)) == PayableStatus.PAID


class TestAccountsPayableService:
    def test_create(self, db_session, admin_auth, vendor):
        payable = AccountsPayableService(db_session).create_payable(payable_data(vendor), admin_auth)
        assert payable.status == PayableStatus.PENDING
        assert payable.vendor_name == "Laticínios Serra Azul"
        assert payable.created_by == admin_auth.user_id

    def test_vendor_must_belong_to_company(self, db_session, other_auth, vendor):
        with pytest.raises(HTTPException) as exc:
            AccountsPayableService(db_session).create_payable(payable_data(vendor), other_auth)
        assert exc.value.status_code == 400

    def test_due_before_issue_rejected(self, vendor):
        with pytest.raises(ValueError):
            payable_data(vendor, issue_date=date(2024, 2, 1), due_date=date(2024, 1, 1))

    def test_full_payment(self, db_session, admin_auth, vendor):
        service = AccountsPayableService(db_session)
        payable = service.create_payable(payable_data(vendor), admin_auth)

        paid = service.pay(payable.id, PaymentRequest(paid_amount=Decimal("250.00"), paid_date=date(2024, 5, 2)), admin_auth)

        assert paid.status == PayableStatus.PAID
        assert paid.payment_amount == Decimal("250.00")
        assert paid.payment_date == date(2024, 5, 2)

    def test_partial_payment_defaults_to_today(self, db_session, admin_auth, vendor):
        service = AccountsPayableService(db_session)
        payable = service.create_payable(payable_data(vendor), admin_auth)

        paid = service.pay(payable.id, PaymentRequest(paid_amount=Decimal("100.00")), admin_auth)

        assert paid.status == PayableStatus.PARTIALLY_PAID
        assert paid.payment_date == local_today()

    def test_pay_twice_conflict(self, db_session, admin_auth, vendor):
        service = AccountsPayableService(db_session)
        payable = service.create_payable(payable_data(vendor), admin_auth)
        service.pay(payable.id, PaymentRequest(paid_amount=Decimal("250.00")), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.pay(payable.id, PaymentRequest(paid_amount=Decimal("250.00")), admin_auth)
        assert exc.value.status_code == 409

    def test_operational_pays_only_own(self, db_session, admin_auth, operational_auth, vendor):
        service = AccountsPayableService(db_session)
        payable = service.create_payable(payable_data(vendor), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.pay(payable.id, PaymentRequest(paid_amount=Decimal("10.00")), operational_auth)
        assert exc.value.status_code == 403

    def test_update_checks_dates(self, db_session, admin_auth, vendor):
        service = AccountsPayableService(db_session)
        payable = service.create_payable(payable_data(vendor), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.update_payable(payable.id, PayableUpdate(due_date=date(2000, 1, 1)), admin_auth)
        assert exc.value.status_code == 400

        updated = service.update_payable(payable.id, PayableUpdate(amount=Decimal("260.00")), admin_auth)
        assert updated.amount == Decimal("260.00")

    def test_invoice_generated_payable_cannot_be_deleted(self, db_session, admin_auth, vendor):
        service = AccountsPayableService(db_session)
        payable = service.create_payable(payable_data(vendor), admin_auth)
        manual = service.create_payable(payable_data(vendor), admin_auth)
        # Only the reference matters for this rule
        payable.nfe_invoice_id = manual.id
        db_session.commit()

        with pytest.raises(HTTPException) as exc:
            service.delete_payable(payable.id, admin_auth)
        assert exc.value.status_code == 409

        service.delete_payable(manual.id, admin_auth)
        assert db_session.query(AccountPayable).count() == 1

    def test_totals_split_overdue(self, db_session, admin_auth, vendor):
        service = AccountsPayableService(db_session)
        service.create_payable(payable_data(vendor, amount="100.00"), admin_auth)
        service.create_payable(payable_data(vendor, amount="40.00", due_in=-3), admin_auth)
        paid = service.create_payable(payable_data(vendor, amount="60.00"), admin_auth)
        service.pay(paid.id, PaymentRequest(paid_amount=Decimal("60.00")), admin_auth)

        totals = service.totals(admin_auth)

        assert totals.pending.count == 1
        assert totals.pending.amount == Decimal("100.00")
        assert totals.overdue.count == 1
        assert totals.overdue.amount == Decimal("40.00")
        assert totals.paid.count == 1
        assert totals.partially_paid.count == 0

    def test_upcoming_includes_overdue(self, db_session, admin_auth, vendor):
        service = AccountsPayableService(db_session)
        service.create_payable(payable_data(vendor, due_in=3), admin_auth)
        service.create_payable(payable_data(vendor, due_in=-2), admin_auth)
        service.create_payable(payable_data(vendor, due_in=30), admin_auth)

        upcoming = service.upcoming(admin_auth, days=7)

        assert [p.status for p in upcoming] == [PayableStatus.OVERDUE, PayableStatus.PENDING]


class TestAccountsPayableApi:
    def test_create_and_pay(self, client, admin_headers, vendor):
        today = local_today()
        created = client.post("/accounts-payable", json={
            "vendorId": str(vendor.id),
            "description": "Aluguel do depósito",
            "amount": "1500.00",
            "issueDate": today.isoformat(),
            "dueDate": (today + timedelta(days=5)).isoformat(),
            "priority": "high",
        }, headers=admin_headers)
        assert created.status_code == 201
        assert created.json()["vendorName"] == "Laticínios Serra Azul"

        paid = client.post(
            f"/accounts-payable/{created.json()['id']}/pay", json={"paidAmount": "1500.00"}, headers=admin_headers
        )
        assert paid.status_code == 200
        assert paid.json()["status"] == "paid"

    def test_totals_shape(self, client, admin_headers):
        response = client.get("/accounts-payable/totals", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["partiallyPaid"] == {"count": 0, "amount": 0.0}
