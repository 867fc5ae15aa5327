"""
Testes do fluxo de caixa: lançamentos manuais, saldo e proteção dos
lançamentos gerados por notas fiscais.
"""
from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException

from backoffice.modules.cash_flow.models import CashFlowTransaction, TransactionType
from backoffice.modules.cash_flow.schemas import CashFlowCreate, CashFlowUpdate
from backoffice.modules.cash_flow.service import CashFlowService
from backoffice.modules.customers.models import Customer
from backoffice.modules.nfe.schemas import NfeCreate
from backoffice.modules.nfe.service import NfeService
from backoffice.modules.products.models import Product
from backoffice.modules.vendors.models import Vendor


@pytest.fixture
def sample_transaction_data():
    return {
        "type": TransactionType.ENTRY,
        "category": "Sales",
        "amount": Decimal("120.00"),
        "description": "Venda balcão",
        "transaction_date": date(2024, 2, 10),
        "payment_method": "cash",
    }


class TestCashFlowService:
    def test_create_and_balance(self, db_session, admin_auth, sample_transaction_data):
        service = CashFlowService(db_session)
        service.create_transaction(CashFlowCreate(**sample_transaction_data), admin_auth)
        service.create_transaction(CashFlowCreate(**{
            **sample_transaction_data, "type": TransactionType.EXIT, "amount": Decimal("45.50"),
            "category": "Expenses", "description": "Material de limpeza",
        }), admin_auth)

        balance = service.balance(admin_auth)
        assert balance.entries == Decimal("120.00")
        assert balance.exits == Decimal("45.50")
        assert balance.total == Decimal("74.50")

    def test_balance_by_period(self, db_session, admin_auth, sample_transaction_data):
        service = CashFlowService(db_session)
        service.create_transaction(CashFlowCreate(**sample_transaction_data), admin_auth)
        service.create_transaction(CashFlowCreate(**{
            **sample_transaction_data, "transaction_date": date(2024, 3, 1)
        }), admin_auth)

        balance = service.balance(admin_auth, start_date=date(2024, 3, 1), end_date=date(2024, 3, 31))
        assert balance.entries == Decimal("120.00")

    def test_list_filters(self, db_session, admin_auth, sample_transaction_data):
        service = CashFlowService(db_session)
        service.create_transaction(CashFlowCreate(**sample_transaction_data), admin_auth)
        service.create_transaction(CashFlowCreate(**{
            **sample_transaction_data, "type": TransactionType.EXIT, "category": "Expenses"
        }), admin_auth)

        assert service.list_transactions(admin_auth).total == 2
        assert service.list_transactions(admin_auth, type=TransactionType.EXIT).total == 1
        assert service.list_transactions(admin_auth, category="Sales").total == 1

    def test_tenant_isolation(self, db_session, admin_auth, other_auth, sample_transaction_data):
        service = CashFlowService(db_session)
        transaction = service.create_transaction(CashFlowCreate(**sample_transaction_data), admin_auth)

        assert service.list_transactions(other_auth).total == 0
        with pytest.raises(HTTPException) as exc:
            service.get_transaction(other_auth, transaction.id)
        assert exc.value.status_code == 404

    def test_operational_edits_only_own(self, db_session, admin_auth, operational_auth, sample_transaction_data):
        service = CashFlowService(db_session)
        own = service.create_transaction(CashFlowCreate(**sample_transaction_data), operational_auth)
        foreign = service.create_transaction(CashFlowCreate(**sample_transaction_data), admin_auth)

        updated = service.update_transaction(own.id, CashFlowUpdate(amount=Decimal("130.00")), operational_auth)
        assert updated.amount == Decimal("130.00")

        with pytest.raises(HTTPException) as exc:
            service.update_transaction(foreign.id, CashFlowUpdate(amount=Decimal("1.00")), operational_auth)
        assert exc.value.status_code == 403

    def test_invoice_posted_transaction_is_locked(self, db_session, admin_auth, sample_company):
        vendor = Vendor(company_id=sample_company.id, cnpj="11222333000181", name="Atacado Central Ltda")
        product = Product(company_id=sample_company.id, code=1, name="Café 500g", price=Decimal("18.00"), quantity=0)
        db_session.add_all([vendor, product])
        db_session.commit()
        invoice = NfeService(db_session).create_invoice(NfeCreate(
            vendor_id=vendor.id, nfe_number="77", nfe_series="1", issue_date=date(2024, 2, 1),
            payment_status="paid", items=[{"product_id": product.id, "quantity": Decimal("2"), "unit_price": Decimal("9")}],
        ), admin_auth)
        posted = db_session.query(CashFlowTransaction).filter(CashFlowTransaction.source_invoice_id == invoice.id).one()

        service = CashFlowService(db_session)
        with pytest.raises(HTTPException) as exc:
            service.update_transaction(posted.id, CashFlowUpdate(amount=Decimal("1.00")), admin_auth)
        assert exc.value.status_code == 409

        with pytest.raises(HTTPException) as exc:
            service.delete_transaction(posted.id, admin_auth)
        assert exc.value.status_code == 409
        assert exc.value.detail == "This transaction was posted by an invoice; cancel the invoice instead"


    def test_customer_link_only_on_entries(self, db_session, admin_auth, sample_company, sample_transaction_data):
        customer = Customer(company_id=sample_company.id, name="Mercearia São Jorge")
        db_session.add(customer)
        db_session.commit()
        service = CashFlowService(db_session)

        sale = service.create_transaction(CashFlowCreate(**sample_transaction_data, customer_id=customer.id), admin_auth)
        assert sale.customer_id == customer.id
        assert sale.amount_received == Decimal("0.00")
        assert service.list_transactions(admin_auth, customer_id=customer.id).total == 1

        with pytest.raises(HTTPException) as exc:
            service.create_transaction(CashFlowCreate(**{
                **sample_transaction_data, "type": TransactionType.EXIT, "customer_id": customer.id
            }), admin_auth)
        assert exc.value.detail == "Only entries can be linked to a customer"

        with pytest.raises(HTTPException) as exc:
            service.update_transaction(sale.id, CashFlowUpdate(type=TransactionType.EXIT), admin_auth)
        assert exc.value.status_code == 400

    def test_customer_of_other_company_rejected(self, db_session, other_auth, sample_company, sample_transaction_data):
        customer = Customer(company_id=sample_company.id, name="Mercearia São Jorge")
        db_session.add(customer)
        db_session.commit()

        with pytest.raises(HTTPException) as exc:
            CashFlowService(db_session).create_transaction(
                CashFlowCreate(**sample_transaction_data, customer_id=customer.id), other_auth
            )
        assert exc.value.detail == "Customer not found"

class TestCashFlowApi:
    def test_create_requires_valid_amount(self, client, admin_headers):
        response = client.post("/cash-flow", json={
            "type": "entry", "category": "Sales", "amount": 0,
            "description": "Venda", "transactionDate": "2024-02-10",
        }, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"].startswith("amount")

    def test_create_list_delete(self, client, operational_headers, admin_headers):
        created = client.post("/cash-flow", json={
            "type": "entry", "category": "Sales", "amount": "99.90",
            "description": "Venda", "transactionDate": "2024-02-10", "paymentMethod": "pix",
        }, headers=operational_headers)
        assert created.status_code == 201
        assert created.json()["amount"] == 99.9

        balance = client.get("/cash-flow/balance", headers=operational_headers).json()
        assert balance == {"entries": 99.9, "exits": 0.0, "total": 99.9}

        denied = client.delete(f"/cash-flow/{created.json()['id']}", headers=operational_headers)
        assert denied.status_code == 403

        deleted = client.delete(f"/cash-flow/{created.json()['id']}", headers=admin_headers)
        assert deleted.status_code == 200

    def test_requires_authentication(self, client):
        response = client.get("/cash-flow")
        assert response.status_code == 401
        assert response.json() == {"error": "Could not validate credentials"}
