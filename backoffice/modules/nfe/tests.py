"""
Testes do módulo de NF-e

Cobrem o ciclo de vida completo da nota de entrada:
- Entrada com atualização de estoque, parcelas a pagar ou saída no caixa
- Rascunho, edição e processamento posterior
- Cancelamento com estorno de estoque, contas a pagar e fluxo de caixa
- Atomicidade: nenhuma falha de validação ou de estoque deixa escrita parcial
"""
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from backoffice.modules.accounts_payable.models import AccountPayable, PayableStatus
from backoffice.modules.accounts_payable.schemas import PaymentRequest
from backoffice.modules.accounts_payable.service import AccountsPayableService, effective_status
from backoffice.modules.cash_flow.models import CashFlowTransaction, TransactionType
from backoffice.modules.nfe import lifecycle
from backoffice.modules.nfe.models import NfeInvoice, InvoiceState, InvoiceStatus
from backoffice.modules.nfe.schemas import NfeCreate, NfeUpdate
from backoffice.modules.nfe.service import NfeService, installment_schedule, stock_quantity
from backoffice.modules.products.models import Product, StockMovement, MovementType
from backoffice.modules.products.schemas import StockAdjustment
from backoffice.modules.products.service import InventoryService, ProductService
from backoffice.modules.vendors.models import Vendor


# ===== FIXTURES =====

@pytest.fixture
def vendor(db_session, sample_company):
    vendor = Vendor(company_id=sample_company.id, cnpj="11222333000181", name="Atacado Central Ltda")
    db_session.add(vendor)
    db_session.commit()
    return vendor


@pytest.fixture
def product(db_session, sample_company):
    product = Product(company_id=sample_company.id, code=1, name="Arroz 5kg", price=Decimal("25.00"), quantity=0)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def second_product(db_session, sample_company):
    product = Product(company_id=sample_company.id, code=2, name="Feijão 1kg", price=Decimal("8.00"), quantity=0)
    db_session.add(product)
    db_session.commit()
    return product


def invoice_data(vendor, product, quantity="10", unit_price="5", **overrides):
    data = {
        "vendor_id": vendor.id,
        "nfe_number": "1001",
        "nfe_series": "1",
        "issue_date": date(2024, 1, 5),
        "receipt_date": date(2024, 1, 6),
        "payment_status": "paid",
        "payment_method": "pix",
        "items": [{"product_id": product.id, "quantity": Decimal(quantity), "unit_price": Decimal(unit_price)}],
    }
    data.update(overrides)
    return data


def count_rows(db_session):
    return {
        "invoices": db_session.query(NfeInvoice).count(),
        "movements": db_session.query(StockMovement).count(),
        "payables": db_session.query(AccountPayable).count(),
        "cash_flow": db_session.query(CashFlowTransaction).count(),
    }


# ===== TESTES DE FUNÇÕES AUXILIARES =====

class TestHelpers:
    def test_stock_quantity_truncates(self):
        assert stock_quantity(Decimal("10.7")) == 10
        assert stock_quantity(Decimal("0.99")) == 0
        assert stock_quantity(Decimal("3")) == 3

    def test_installment_schedule_every_thirty_days(self):
        schedule = installment_schedule(Decimal("300.00"), 3, date(2024, 1, 10))
        assert schedule == [
            (date(2024, 1, 10), Decimal("100.00")),
            (date(2024, 2, 9), Decimal("100.00")),
            (date(2024, 3, 10), Decimal("100.00")),
        ]

    def test_installment_schedule_rounds_each_installment(self):
        schedule = installment_schedule(Decimal("100.00"), 3, date(2024, 1, 10))
        assert [amount for _, amount in schedule] == [Decimal("33.33")] * 3


# ===== TESTES DE ENTRADA =====

class TestInvoiceIntake:
    def test_paid_invoice_updates_stock_and_posts_cash_exit(self, db_session, admin_auth, vendor, product):
        """Quantidade fracionária entra truncada; nota paga vira saída no caixa"""
        invoice = NfeService(db_session).create_invoice(
            NfeCreate(**invoice_data(vendor, product, quantity="10.7")), admin_auth
        )

        assert invoice.state == InvoiceState.PROCESSED
        assert invoice.stock_updated is True
        assert invoice.accounts_payable_created is False
        assert invoice.total_invoice == Decimal("53.50")

        db_session.refresh(product)
        assert product.quantity == 10

        movements = db_session.query(StockMovement).filter(StockMovement.nfe_invoice_id == invoice.id).all()
        assert len(movements) == 1
        assert movements[0].quantity == 10
        assert movements[0].type == MovementType.ENTRY
        assert movements[0].notes == "NF-e entry 1001/1"

        exits = db_session.query(CashFlowTransaction).all()
        assert len(exits) == 1
        assert exits[0].type == TransactionType.EXIT
        assert exits[0].amount == Decimal("53.50")
        assert exits[0].category == "Purchases"
        assert exits[0].transaction_date == date(2024, 1, 6)
        assert exits[0].source_invoice_id == invoice.id
        assert db_session.query(AccountPayable).count() == 0

    def test_pending_invoice_creates_installments(self, db_session, admin_auth, vendor, product):
        data = invoice_data(
            vendor, product, quantity="3", unit_price="100",
            payment_status="pending", installments=3, first_due_date=date(2024, 1, 10),
        )
        invoice = NfeService(db_session).create_invoice(NfeCreate(**data), admin_auth)

        assert invoice.accounts_payable_created is True
        payables = db_session.query(AccountPayable).order_by(AccountPayable.due_date).all()
        assert [p.due_date for p in payables] == [date(2024, 1, 10), date(2024, 2, 9), date(2024, 3, 10)]
        assert all(p.amount == Decimal("100.00") for p in payables)
        assert all(p.status == PayableStatus.PENDING for p in payables)
        assert all(p.vendor_id == vendor.id for p in payables)
        assert payables[0].description == "NF-e 1001/1 - Installment 1/3"
        assert db_session.query(CashFlowTransaction).count() == 0

    def test_pending_without_due_date_posts_nothing_financial(self, db_session, admin_auth, vendor, product):
        data = invoice_data(vendor, product, payment_status="pending")
        invoice = NfeService(db_session).create_invoice(NfeCreate(**data), admin_auth)

        assert invoice.state == InvoiceState.PROCESSED
        assert invoice.accounts_payable_created is False
        assert db_session.query(AccountPayable).count() == 0
        assert db_session.query(CashFlowTransaction).count() == 0

    def test_grand_total_from_components(self, db_session, admin_auth, vendor, product):
        data = invoice_data(
            vendor, product, quantity="10", unit_price="10",
            freight_value=Decimal("15"), insurance_value=Decimal("5"),
            other_expenses=Decimal("2"), ipi_value=Decimal("8"), discount_value=Decimal("30"),
        )
        invoice = NfeService(db_session).create_invoice(NfeCreate(**data), admin_auth)
        assert invoice.total_products == Decimal("100.00")
        assert invoice.total_invoice == Decimal("100.00")

    def test_failed_validation_writes_nothing(self, db_session, admin_auth, vendor, product):
        data = invoice_data(vendor, product)
        data["items"].append({"product_id": uuid4(), "quantity": Decimal("2"), "unit_price": Decimal("1")})

        with pytest.raises(HTTPException) as exc:
            NfeService(db_session).create_invoice(NfeCreate(**data), admin_auth)

        assert exc.value.status_code == 400
        assert exc.value.detail.startswith("Product not found")
        assert count_rows(db_session) == {"invoices": 0, "movements": 0, "payables": 0, "cash_flow": 0}

    def test_stock_failure_on_second_item_rolls_back_everything(
        self, db_session, admin_auth, vendor, product, second_product, monkeypatch
    ):
        """Uma falha no meio do processamento desfaz a nota e o estoque do primeiro item"""
        original_increase = InventoryService.increase
        calls = []

        def increase_failing_on_second_item(self, *args, **kwargs):
            calls.append(args)
            if len(calls) == 2:
                raise RuntimeError("connection lost")
            return original_increase(self, *args, **kwargs)

        monkeypatch.setattr(InventoryService, "increase", increase_failing_on_second_item)
        data = invoice_data(
            vendor, product, payment_status="pending", installments=2, first_due_date=date(2024, 1, 10)
        )
        data["items"].append({"product_id": second_product.id, "quantity": Decimal("4"), "unit_price": Decimal("2")})

        with pytest.raises(HTTPException) as exc:
            NfeService(db_session).create_invoice(NfeCreate(**data), admin_auth)

        assert exc.value.status_code == 500
        assert len(calls) == 2
        assert count_rows(db_session) == {"invoices": 0, "movements": 0, "payables": 0, "cash_flow": 0}
        db_session.refresh(product)
        db_session.refresh(second_product)
        assert (product.quantity, second_product.quantity) == (0, 0)

    @pytest.mark.parametrize("payment", [
        {"payment_status": "paid"},
        {"payment_status": "pending", "installments": 3, "first_due_date": date(2024, 1, 10)},
    ])
    def test_failure_after_financial_rows_rolls_back_everything(
        self, db_session, admin_auth, vendor, product, monkeypatch, payment
    ):
        def fail(*args, **kwargs):
            raise RuntimeError("connection lost")

        monkeypatch.setattr(lifecycle, "mark_processed", fail)

        with pytest.raises(HTTPException) as exc:
            NfeService(db_session).create_invoice(NfeCreate(**invoice_data(vendor, product, **payment)), admin_auth)

        assert exc.value.status_code == 500
        assert count_rows(db_session) == {"invoices": 0, "movements": 0, "payables": 0, "cash_flow": 0}
        db_session.refresh(product)
        assert product.quantity == 0

    def test_other_integrity_errors_are_not_reported_as_duplicates(
        self, db_session, admin_auth, vendor, product, monkeypatch
    ):
        def fail(self, invoice, auth):
            raise IntegrityError("INSERT INTO stock_movements", {}, Exception("FOREIGN KEY constraint failed"))

        monkeypatch.setattr(NfeService, "_process", fail)

        with pytest.raises(HTTPException) as exc:
            NfeService(db_session).create_invoice(NfeCreate(**invoice_data(vendor, product)), admin_auth)

        assert exc.value.status_code == 500
        assert count_rows(db_session)["invoices"] == 0

    def test_concurrent_duplicate_hits_unique_key(self, db_session, admin_auth, vendor, product, monkeypatch):
        """Duas entradas que passam pela checagem prévia: a chave única responde 409"""
        service = NfeService(db_session)
        service.create_invoice(NfeCreate(**invoice_data(vendor, product)), admin_auth)
        monkeypatch.setattr(NfeService, "_ensure_unique_number", lambda self, *args, **kwargs: None)

        with pytest.raises(HTTPException) as exc:
            service.create_invoice(NfeCreate(**invoice_data(vendor, product)), admin_auth)

        assert exc.value.status_code == 409
        assert count_rows(db_session)["invoices"] == 1

    def test_declared_zero_products_total_is_kept(self, db_session, admin_auth, vendor, product):
        data = invoice_data(vendor, product, total_products=Decimal("0"), freight_value=Decimal("12.00"))

        invoice = NfeService(db_session).create_invoice(NfeCreate(**data), admin_auth)

        assert invoice.total_products == Decimal("0.00")
        assert invoice.total_invoice == Decimal("12.00")

    @pytest.mark.parametrize("overrides, message", [
        ({"nfe_number": None}, "Invoice number and series are required"),
        ({"vendor_id": None}, "Vendor is required"),
        ({"issue_date": None}, "Issue date is required"),
        ({"items": []}, "The invoice must have at least one item"),
    ])
    def test_required_fields(self, db_session, admin_auth, vendor, product, overrides, message):
        with pytest.raises(HTTPException) as exc:
            NfeService(db_session).create_invoice(NfeCreate(**invoice_data(vendor, product, **overrides)), admin_auth)
        assert exc.value.status_code == 400
        assert exc.value.detail == message

    def test_zero_quantity_rejected(self, db_session, admin_auth, vendor, product):
        with pytest.raises(HTTPException) as exc:
            NfeService(db_session).create_invoice(NfeCreate(**invoice_data(vendor, product, quantity="0")), admin_auth)
        assert exc.value.status_code == 400
        assert exc.value.detail.startswith("Invalid quantity for item 1")

    def test_zero_total_rejected(self, db_session, admin_auth, vendor, product):
        with pytest.raises(HTTPException) as exc:
            NfeService(db_session).create_invoice(NfeCreate(**invoice_data(vendor, product, unit_price="0")), admin_auth)
        assert exc.value.status_code == 400
        assert exc.value.detail == "Invoice total must be greater than zero"

    def test_vendor_of_other_company_rejected(self, db_session, other_auth, vendor, product):
        with pytest.raises(HTTPException) as exc:
            NfeService(db_session).create_invoice(NfeCreate(**invoice_data(vendor, product)), other_auth)
        assert exc.value.status_code == 400
        assert exc.value.detail == "Vendor not found"

    def test_duplicate_number_and_series(self, db_session, admin_auth, vendor, product):
        service = NfeService(db_session)
        service.create_invoice(NfeCreate(**invoice_data(vendor, product)), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.create_invoice(NfeCreate(**invoice_data(vendor, product)), admin_auth)

        assert exc.value.status_code == 409
        assert db_session.query(NfeInvoice).count() == 1
        db_session.refresh(product)
        assert product.quantity == 10


# ===== TESTES DE RASCUNHO E EDIÇÃO =====

class TestDraftAndEdit:
    def test_draft_edit_then_process(self, db_session, admin_auth, vendor, product, second_product):
        service = NfeService(db_session)
        invoice = service.create_invoice(NfeCreate(**invoice_data(vendor, product), process_now=False), admin_auth)

        assert invoice.state == InvoiceState.DRAFT
        db_session.refresh(product)
        assert product.quantity == 0
        assert db_session.query(CashFlowTransaction).count() == 0

        data = invoice_data(vendor, product, quantity="4", nfe_number="1002")
        data["items"].append({"product_id": second_product.id, "quantity": Decimal("6"), "unit_price": Decimal("2")})
        invoice = service.update_invoice(invoice.id, NfeUpdate(**data), admin_auth)

        assert invoice.nfe_number == "1002"
        assert [item.item_number for item in invoice.items] == [1, 2]
        assert invoice.total_invoice == Decimal("32.00")

        invoice = service.process_invoice(invoice.id, admin_auth)
        assert invoice.state == InvoiceState.PROCESSED
        db_session.refresh(product)
        db_session.refresh(second_product)
        assert product.quantity == 4
        assert second_product.quantity == 6
        assert db_session.query(CashFlowTransaction).one().amount == Decimal("32.00")

    def test_process_twice_conflict(self, db_session, admin_auth, vendor, product):
        service = NfeService(db_session)
        invoice = service.create_invoice(NfeCreate(**invoice_data(vendor, product)), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.process_invoice(invoice.id, admin_auth)

        assert exc.value.status_code == 409
        db_session.refresh(product)
        assert product.quantity == 10

    def test_edit_processed_invoice_conflict(self, db_session, admin_auth, vendor, product):
        service = NfeService(db_session)
        invoice = service.create_invoice(NfeCreate(**invoice_data(vendor, product)), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.update_invoice(invoice.id, NfeUpdate(**invoice_data(vendor, product, quantity="2")), admin_auth)

        assert exc.value.status_code == 409
        assert exc.value.detail.startswith("Cannot edit an invoice whose stock or accounts payable")
        db_session.refresh(product)
        assert product.quantity == 10

    def test_edit_cancelled_invoice_conflict(self, db_session, admin_auth, vendor, product):
        service = NfeService(db_session)
        invoice = service.create_invoice(NfeCreate(**invoice_data(vendor, product), process_now=False), admin_auth)
        service.cancel_invoice(invoice.id, "Nota emitida em duplicidade", admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.update_invoice(invoice.id, NfeUpdate(**invoice_data(vendor, product)), admin_auth)
        assert exc.value.status_code == 409


# ===== TESTES DE CANCELAMENTO =====

class TestCancellation:
    def test_cancel_reverses_stock_payables_and_flags_state(self, db_session, admin_auth, vendor, product):
        service = NfeService(db_session)
        data = invoice_data(
            vendor, product, quantity="3", unit_price="100",
            payment_status="pending", installments=3, first_due_date=date(2024, 1, 10),
        )
        invoice = service.create_invoice(NfeCreate(**data), admin_auth)
        # Stored as pending, reported as overdue once past the due date
        past_due = db_session.query(AccountPayable).all()
        assert {p.status for p in past_due} == {PayableStatus.PENDING}
        assert {effective_status(p, date(2024, 6, 1)) for p in past_due} == {PayableStatus.OVERDUE}

        invoice = service.cancel_invoice(invoice.id, "Mercadoria devolvida", admin_auth)

        assert invoice.state == InvoiceState.CANCELLED
        assert invoice.status == InvoiceStatus.CANCELLED
        assert invoice.cancellation_reason == "Mercadoria devolvida"
        assert invoice.cancelled_at is not None
        # Flags keep recording what was reversed
        assert invoice.stock_updated is True
        assert invoice.accounts_payable_created is True

        db_session.refresh(product)
        assert product.quantity == 0
        assert db_session.query(AccountPayable).count() == 0

        reversal = db_session.query(StockMovement).filter(StockMovement.type == MovementType.EXIT).one()
        assert reversal.quantity == -3
        assert reversal.nfe_invoice_id == invoice.id

    def test_cancel_removes_cash_exit(self, db_session, admin_auth, vendor, product):
        service = NfeService(db_session)
        invoice = service.create_invoice(NfeCreate(**invoice_data(vendor, product)), admin_auth)
        assert db_session.query(CashFlowTransaction).count() == 1

        service.cancel_invoice(invoice.id, "Erro de digitação", admin_auth)
        assert db_session.query(CashFlowTransaction).count() == 0

    def test_cancel_keeps_paid_installments(self, db_session, admin_auth, vendor, product):
        service = NfeService(db_session)
        data = invoice_data(
            vendor, product, quantity="2", unit_price="100",
            payment_status="pending", installments=2, first_due_date=date(2024, 1, 10),
        )
        invoice = service.create_invoice(NfeCreate(**data), admin_auth)
        first = db_session.query(AccountPayable).order_by(AccountPayable.due_date).first()
        AccountsPayableService(db_session).pay(first.id, PaymentRequest(paid_amount=Decimal("100.00")), admin_auth)

        service.cancel_invoice(invoice.id, "Devolução parcial acordada", admin_auth)

        remaining = db_session.query(AccountPayable).all()
        assert len(remaining) == 1
        assert remaining[0].id == first.id
        assert remaining[0].status == PayableStatus.PAID

    def test_cancel_deletes_only_payables_stored_as_pending(self, db_session, admin_auth, vendor, product):
        service = NfeService(db_session)
        data = invoice_data(
            vendor, product, quantity="2", unit_price="100",
            payment_status="pending", installments=2, first_due_date=date(2024, 1, 10),
        )
        invoice = service.create_invoice(NfeCreate(**data), admin_auth)
        flagged = db_session.query(AccountPayable).order_by(AccountPayable.due_date).first()
        flagged.status = PayableStatus.OVERDUE
        db_session.commit()

        service.cancel_invoice(invoice.id, "Nota emitida em duplicidade", admin_auth)

        remaining = db_session.query(AccountPayable).all()
        assert [p.id for p in remaining] == [flagged.id]
        assert remaining[0].status == PayableStatus.OVERDUE

    def test_cancel_blocked_when_stock_was_consumed(self, db_session, admin_auth, vendor, product):
        service = NfeService(db_session)
        invoice = service.create_invoice(NfeCreate(**invoice_data(vendor, product)), admin_auth)
        ProductService(db_session).adjust_stock(
            product.id, StockAdjustment(quantity=-5, notes="Venda balcão"), admin_auth
        )
        before = count_rows(db_session)

        with pytest.raises(HTTPException) as exc:
            service.cancel_invoice(invoice.id, "Devolução", admin_auth)

        assert exc.value.status_code == 409
        assert "10 required, 5 available" in exc.value.detail
        assert exc.value.detail.startswith("Cannot cancel invoice 1001/1.")
        db_session.refresh(product)
        db_session.refresh(invoice)
        assert product.quantity == 5
        assert invoice.state == InvoiceState.PROCESSED
        assert count_rows(db_session) == before

    def test_cancel_checks_every_item_before_debiting(self, db_session, admin_auth, vendor, product, second_product):
        service = NfeService(db_session)
        data = invoice_data(vendor, product)
        data["items"].append({"product_id": second_product.id, "quantity": Decimal("4"), "unit_price": Decimal("1")})
        invoice = service.create_invoice(NfeCreate(**data), admin_auth)
        ProductService(db_session).adjust_stock(
            second_product.id, StockAdjustment(quantity=-1, notes="Avaria"), admin_auth
        )

        with pytest.raises(HTTPException) as exc:
            service.cancel_invoice(invoice.id, "Devolução", admin_auth)

        assert exc.value.status_code == 409
        db_session.refresh(product)
        db_session.refresh(second_product)
        assert product.quantity == 10
        assert second_product.quantity == 3

    def test_cancel_draft_touches_no_stock(self, db_session, admin_auth, vendor, product):
        service = NfeService(db_session)
        invoice = service.create_invoice(NfeCreate(**invoice_data(vendor, product), process_now=False), admin_auth)

        invoice = service.cancel_invoice(invoice.id, "Lançada por engano", admin_auth)

        assert invoice.state == InvoiceState.CANCELLED
        assert invoice.stock_updated is False
        assert db_session.query(StockMovement).count() == 0

    def test_cancel_requires_reason(self, db_session, admin_auth, vendor, product):
        service = NfeService(db_session)
        invoice = service.create_invoice(NfeCreate(**invoice_data(vendor, product)), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.cancel_invoice(invoice.id, "   ", admin_auth)
        assert exc.value.status_code == 400

    def test_cancel_twice_conflict(self, db_session, admin_auth, vendor, product):
        service = NfeService(db_session)
        invoice = service.create_invoice(NfeCreate(**invoice_data(vendor, product)), admin_auth)
        service.cancel_invoice(invoice.id, "Devolução", admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.cancel_invoice(invoice.id, "Devolução", admin_auth)
        assert exc.value.status_code == 409
        assert exc.value.detail == "Invoice is already cancelled"

    def test_round_trip_restores_stock(self, db_session, admin_auth, vendor, product):
        product.quantity = 7
        db_session.commit()

        service = NfeService(db_session)
        invoice = service.create_invoice(NfeCreate(**invoice_data(vendor, product, quantity="12.9")), admin_auth)
        db_session.refresh(product)
        assert product.quantity == 19

        service.cancel_invoice(invoice.id, "Devolução total", admin_auth)
        db_session.refresh(product)
        assert product.quantity == 7


# ===== TESTES DA API =====

class TestNfeApi:
    def payload(self, vendor, product):
        return {
            "vendorId": str(vendor.id),
            "nfeNumber": "2001",
            "nfeSeries": "1",
            "issueDate": "2024-01-05",
            "paymentStatus": "paid",
            "paymentMethod": "pix",
            "items": [{"productId": str(product.id), "quantity": "10.7", "unitPrice": "5"}],
        }

    def test_create_and_read(self, client, admin_headers, vendor, product):
        response = client.post("/nfe", json=self.payload(vendor, product), headers=admin_headers)
        assert response.status_code == 201
        body = response.json()
        assert body["state"] == "processed"
        assert body["totalInvoice"] == 53.5
        assert body["vendorName"] == "Atacado Central Ltda"
        assert body["items"][0]["itemNumber"] == 1

        detail = client.get(f"/nfe/{body['id']}", headers=admin_headers)
        assert detail.status_code == 200
        assert detail.json()["nfeNumber"] == "2001"

        listing = client.get("/nfe", headers=admin_headers).json()
        assert listing["total"] == 1

    def test_operational_user_cannot_register(self, client, operational_headers, vendor, product):
        response = client.post("/nfe", json=self.payload(vendor, product), headers=operational_headers)
        assert response.status_code == 403
        assert "error" in response.json()

    def test_missing_items_error_envelope(self, client, admin_headers, vendor, product):
        payload = self.payload(vendor, product)
        payload["items"] = []
        response = client.post("/nfe", json=payload, headers=admin_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "The invoice must have at least one item"}

    def test_schema_violation_is_400(self, client, admin_headers, vendor, product):
        payload = self.payload(vendor, product)
        payload["installments"] = -1
        response = client.post("/nfe", json=payload, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"].startswith("installments")

    def test_delete_cancels(self, client, admin_headers, vendor, product):
        created = client.post("/nfe", json=self.payload(vendor, product), headers=admin_headers).json()

        response = client.request(
            "DELETE", f"/nfe/{created['id']}", json={"reason": "Devolução"}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["state"] == "cancelled"

    def test_other_company_cannot_see_invoice(self, client, admin_headers, other_headers, vendor, product):
        created = client.post("/nfe", json=self.payload(vendor, product), headers=admin_headers).json()

        response = client.get(f"/nfe/{created['id']}", headers=other_headers)
        assert response.status_code == 404
        assert client.get("/nfe", headers=other_headers).json()["total"] == 0
