"""
Testes de orçamentos: numeração por empresa e ano, totais, troca de itens
e bloqueio de edição após aprovação ou recusa.
"""
from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException

from backoffice.modules.budgets.models import Budget, BudgetItem, BudgetStatus
from backoffice.modules.budgets.schemas import BudgetCreate, BudgetUpdate
from backoffice.modules.budgets.service import BudgetService
from backoffice.modules.customers.models import Customer
from backoffice.modules.products.models import Product


@pytest.fixture
def customer(db_session, sample_company, sample_user):
    customer = Customer(
        company_id=sample_company.id,
        name="Padaria Pão Quente",
        email="contato@paoquente.com.br",
        phone="(31) 3222-1111",
        created_by=sample_user.id,
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture
def product(db_session, sample_company):
    product = Product(company_id=sample_company.id, code=1, name="Farinha 25kg", price=Decimal("89.90"), quantity=0)
    db_session.add(product)
    db_session.commit()
    return product


def budget_data(**overrides):
    data = {
        "customer_name": "Mercearia São Jorge",
        "issue_date": date(2024, 4, 2),
        "validity_date": date(2024, 4, 30),
        "items": [
            {"item_type": "custom", "description": "Montagem de prateleiras", "quantity": Decimal("2"),
             "unit_price": Decimal("150.00")},
            {"item_type": "custom", "description": "Frete", "quantity": Decimal("1"), "unit_price": Decimal("35.50")},
        ],
    }
    data.update(overrides)
    return data


class TestBudgetSchema:
    def test_custom_item_needs_description(self):
        with pytest.raises(ValueError):
            BudgetCreate(**budget_data(items=[{"item_type": "custom", "quantity": Decimal("1"), "unit_price": Decimal("1")}]))

    def test_product_item_needs_product(self):
        with pytest.raises(ValueError):
            BudgetCreate(**budget_data(items=[{"item_type": "product", "quantity": Decimal("1"), "unit_price": Decimal("1")}]))

    def test_at_least_one_item(self):
        with pytest.raises(ValueError):
            BudgetCreate(**budget_data(items=[]))


class TestBudgetService:
    def test_create_computes_totals(self, db_session, admin_auth):
        budget = BudgetService(db_session).create_budget(BudgetCreate(**budget_data(discount=Decimal("35.50"))), admin_auth)

        assert budget.budget_number == "ORC-2024-00001"
        assert budget.status == BudgetStatus.DRAFT
        assert budget.subtotal == Decimal("335.50")
        assert budget.discount == Decimal("35.50")
        assert budget.total == Decimal("300.00")
        assert [item.display_order for item in budget.items] == [1, 2]
        assert budget.items[0].total_price == Decimal("300.00")

    def test_numbering_per_company_and_year(self, db_session, admin_auth, other_auth):
        service = BudgetService(db_session)
        first = service.create_budget(BudgetCreate(**budget_data()), admin_auth)
        second = service.create_budget(BudgetCreate(**budget_data()), admin_auth)
        next_year = service.create_budget(BudgetCreate(**budget_data(issue_date=date(2025, 1, 3), validity_date=None)), admin_auth)
        foreign = service.create_budget(BudgetCreate(**budget_data()), other_auth)

        assert first.budget_number == "ORC-2024-00001"
        assert second.budget_number == "ORC-2024-00002"
        assert next_year.budget_number == "ORC-2025-00001"
        assert foreign.budget_number == "ORC-2024-00001"

    def test_discount_cannot_exceed_subtotal(self, db_session, admin_auth):
        with pytest.raises(HTTPException) as exc:
            BudgetService(db_session).create_budget(BudgetCreate(**budget_data(discount=Decimal("400"))), admin_auth)
        assert exc.value.status_code == 400
        assert db_session.query(Budget).count() == 0

    def test_validity_before_issue_rejected(self, db_session, admin_auth):
        with pytest.raises(HTTPException) as exc:
            BudgetService(db_session).create_budget(
                BudgetCreate(**budget_data(validity_date=date(2024, 3, 1))), admin_auth
            )
        assert exc.value.status_code == 400

    def test_customer_snapshot(self, db_session, admin_auth, customer, product):
        data = budget_data(
            customer_id=customer.id,
            customer_name=None,
            items=[{"item_type": "product", "product_id": product.id, "quantity": Decimal("3"),
                    "unit_price": Decimal("89.90")}],
        )
        budget = BudgetService(db_session).create_budget(BudgetCreate(**data), admin_auth)

        assert budget.customer_id == customer.id
        assert budget.customer_name == "Padaria Pão Quente"
        assert budget.customer_email == "contato@paoquente.com.br"
        assert budget.items[0].description == "Farinha 25kg"
        assert budget.total == Decimal("269.70")

    def test_customer_of_other_company_rejected(self, db_session, other_auth, customer):
        with pytest.raises(HTTPException) as exc:
            BudgetService(db_session).create_budget(BudgetCreate(**budget_data(customer_id=customer.id)), other_auth)
        assert exc.value.status_code == 400

    def test_missing_customer_name(self, db_session, admin_auth):
        with pytest.raises(HTTPException) as exc:
            BudgetService(db_session).create_budget(BudgetCreate(**budget_data(customer_name=None)), admin_auth)
        assert exc.value.status_code == 400
        assert exc.value.detail == "Customer name is required"

    def test_update_replaces_items(self, db_session, admin_auth):
        service = BudgetService(db_session)
        budget = service.create_budget(BudgetCreate(**budget_data()), admin_auth)

        updated = service.update_budget(budget.id, BudgetUpdate(items=[
            {"item_type": "custom", "description": "Visita técnica", "quantity": Decimal("1"),
             "unit_price": Decimal("80.00")},
        ]), admin_auth)

        assert len(updated.items) == 1
        assert updated.subtotal == Decimal("80.00")
        assert updated.total == Decimal("80.00")
        assert db_session.query(BudgetItem).count() == 1

    def test_update_keeps_items_when_omitted(self, db_session, admin_auth):
        service = BudgetService(db_session)
        budget = service.create_budget(BudgetCreate(**budget_data()), admin_auth)

        updated = service.update_budget(budget.id, BudgetUpdate(discount=Decimal("35.50"), notes="Pagamento à vista"), admin_auth)

        assert len(updated.items) == 2
        assert updated.total == Decimal("300.00")
        assert updated.notes == "Pagamento à vista"

    @pytest.mark.parametrize("locked", [BudgetStatus.APPROVED, BudgetStatus.REJECTED])
    def test_locked_budgets_cannot_be_edited(self, db_session, admin_auth, locked):
        service = BudgetService(db_session)
        budget = service.create_budget(BudgetCreate(**budget_data()), admin_auth)
        service.change_status(budget.id, locked, admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.update_budget(budget.id, BudgetUpdate(notes="Alteração"), admin_auth)
        assert exc.value.status_code == 409

    def test_operational_edits_only_own(self, db_session, admin_auth, operational_auth):
        service = BudgetService(db_session)
        budget = service.create_budget(BudgetCreate(**budget_data()), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.update_budget(budget.id, BudgetUpdate(notes="Alteração"), operational_auth)
        assert exc.value.status_code == 403

    def test_delete(self, db_session, admin_auth):
        service = BudgetService(db_session)
        budget = service.create_budget(BudgetCreate(**budget_data()), admin_auth)

        service.delete_budget(budget.id, admin_auth)

        assert db_session.query(Budget).count() == 0
        assert db_session.query(BudgetItem).count() == 0

    def test_list_filters(self, db_session, admin_auth):
        service = BudgetService(db_session)
        budget = service.create_budget(BudgetCreate(**budget_data()), admin_auth)
        service.create_budget(BudgetCreate(**budget_data(customer_name="Bar do Zé")), admin_auth)
        service.change_status(budget.id, BudgetStatus.SENT, admin_auth)

        assert service.list_budgets(admin_auth).total == 2
        assert service.list_budgets(admin_auth, status_filter=BudgetStatus.SENT).total == 1
        assert service.list_budgets(admin_auth, search="zé").total == 1


class TestBudgetApi:
    def test_create_and_change_status(self, client, operational_headers):
        created = client.post("/budgets", json={
            "customerName": "Mercearia São Jorge",
            "issueDate": "2024-04-02",
            "items": [{"itemType": "custom", "description": "Instalação", "quantity": "1", "unitPrice": "120.00"}],
        }, headers=operational_headers)
        assert created.status_code == 201
        body = created.json()
        assert body["budgetNumber"] == "ORC-2024-00001"
        assert body["total"] == 120.0
        assert body["items"][0]["totalPrice"] == 120.0

        response = client.patch(f"/budgets/{body['id']}/status", json={"status": "approved"},
                                headers=operational_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        locked = client.put(f"/budgets/{body['id']}", json={"notes": "x"}, headers=operational_headers)
        assert locked.status_code == 409

    def test_invalid_status(self, client, admin_headers):
        created = client.post("/budgets", json={
            "customerName": "Cliente",
            "items": [{"description": "Serviço", "quantity": "1", "unitPrice": "10"}],
        }, headers=admin_headers).json()

        response = client.patch(f"/budgets/{created['id']}/status", json={"status": "archived"},
                                headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"].startswith("status")
