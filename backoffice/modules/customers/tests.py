"""
Testes de clientes: CPF/CNPJ, edição restrita ao criador para usuários
operacionais, desativação e contas a receber (vendas a prazo e recebimentos).
"""
from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException

from backoffice.modules.cash_flow.models import TransactionType
from backoffice.modules.cash_flow.schemas import CashFlowCreate
from backoffice.modules.cash_flow.service import CashFlowService
from backoffice.modules.customers.schemas import CustomerCreate, CustomerUpdate
from backoffice.modules.customers.service import CustomerService


class TestCustomerSchema:
    @pytest.mark.parametrize("document, expected", [
        ("529.982.247-25", "52998224725"),
        ("11.222.333/0001-81", "11222333000181"),
        ("", None),
    ])
    def test_document_normalized(self, document, expected):
        assert CustomerCreate(name="Maria Souza", cpf_cnpj=document).cpf_cnpj == expected

    def test_invalid_document(self):
        with pytest.raises(ValueError):
            CustomerCreate(name="Maria Souza", cpf_cnpj="111.111.111-11")


class TestCustomerService:
    def test_operational_edits_only_own(self, db_session, admin_auth, operational_auth):
        service = CustomerService(db_session)
        own = service.create_customer(CustomerCreate(name="João Lima"), operational_auth)
        foreign = service.create_customer(CustomerCreate(name="Ana Costa"), admin_auth)

        updated = service.update_customer(own.id, CustomerUpdate(phone="(21) 99999-0000"), operational_auth)
        assert updated.phone == "(21) 99999-0000"

        with pytest.raises(HTTPException) as exc:
            service.update_customer(foreign.id, CustomerUpdate(phone="0"), operational_auth)
        assert exc.value.status_code == 403

    def test_administrator_edits_any(self, db_session, admin_auth, operational_auth):
        service = CustomerService(db_session)
        customer = service.create_customer(CustomerCreate(name="João Lima"), operational_auth)

        updated = service.update_customer(customer.id, CustomerUpdate(name="João P. Lima"), admin_auth)
        assert updated.name == "João P. Lima"

    def test_soft_delete_and_active_filter(self, db_session, admin_auth):
        service = CustomerService(db_session)
        customer = service.create_customer(CustomerCreate(name="Carlos Dias"), admin_auth)
        service.create_customer(CustomerCreate(name="Beatriz Rocha"), admin_auth)

        service.delete_customer(customer.id, admin_auth)

        assert service.list_customers(admin_auth).total == 2
        assert service.list_customers(admin_auth, active_only=True).total == 1


class TestReceivables:
    @pytest.fixture
    def customer_with_history(self, db_session, admin_auth):
        customer = CustomerService(db_session).create_customer(CustomerCreate(name="Mercearia São Jorge"), admin_auth)
        cash_flow = CashFlowService(db_session)

        def entry(amount, day, received="0", customer_id=customer.id):
            return cash_flow.create_transaction(CashFlowCreate(
                type=TransactionType.ENTRY, category="Sales", amount=Decimal(amount),
                description="Venda a prazo" if received == "0" else "Recebimento",
                transaction_date=day, customer_id=customer_id, amount_received=Decimal(received),
            ), admin_auth)

        entry("200.00", date(2024, 4, 1))
        entry("50.00", date(2024, 4, 3))
        entry("120.00", date(2024, 4, 10), received="120.00")
        entry("75.00", date(2024, 4, 10), customer_id=None)
        return customer

    def test_balance(self, db_session, admin_auth, customer_with_history):
        detail = CustomerService(db_session).get_customer_detail(admin_auth, customer_with_history.id)

        assert detail.total_debt == Decimal("250.00")
        assert detail.total_paid == Decimal("120.00")
        assert detail.balance == Decimal("130.00")

    def test_list_reports_balance_per_customer(self, db_session, admin_auth, customer_with_history):
        service = CustomerService(db_session)
        service.create_customer(CustomerCreate(name="Padaria Aurora"), admin_auth)

        items = {c.name: c for c in service.list_customers(admin_auth).items}

        assert items["Mercearia São Jorge"].balance == Decimal("130.00")
        assert items["Padaria Aurora"].total_debt == Decimal("0.00")

    def test_transactions(self, db_session, admin_auth, customer_with_history):
        transactions = CustomerService(db_session).list_transactions(admin_auth, customer_with_history.id)

        assert [(t.transaction_date, t.type) for t in transactions] == [
            (date(2024, 4, 10), "payment"),
            (date(2024, 4, 3), "sale"),
            (date(2024, 4, 1), "sale"),
        ]

    def test_transactions_of_other_company_not_found(self, db_session, other_auth, customer_with_history):
        with pytest.raises(HTTPException) as exc:
            CustomerService(db_session).list_transactions(other_auth, customer_with_history.id)
        assert exc.value.status_code == 404

    def test_api(self, client, admin_headers, customer_with_history):
        detail = client.get(f"/customers/{customer_with_history.id}", headers=admin_headers).json()
        assert (detail["totalDebt"], detail["totalPaid"], detail["balance"]) == (250.0, 120.0, 130.0)

        transactions = client.get(f"/customers/{customer_with_history.id}/transactions", headers=admin_headers)
        assert transactions.status_code == 200
        first = transactions.json()[0]
        assert first["date"] == "2024-04-10"
        assert first["type"] == "payment"
        assert first["amountReceived"] == 120.0


class TestCustomerApi:
    def test_operational_cannot_delete(self, client, operational_headers, admin_headers):
        created = client.post("/customers", json={"name": "Paula Reis", "cpfCnpj": "529.982.247-25"},
                              headers=operational_headers)
        assert created.status_code == 201
        assert created.json()["cpfCnpj"] == "52998224725"

        denied = client.delete(f"/customers/{created.json()['id']}", headers=operational_headers)
        assert denied.status_code == 403
        assert denied.json() == {"error": "Permission denied: delete_records"}

        deleted = client.delete(f"/customers/{created.json()['id']}", headers=admin_headers)
        assert deleted.status_code == 200
