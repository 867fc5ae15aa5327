"""
Testes de produtos e estoque: código sequencial, estoque inicial,
ajustes manuais e histórico de movimentações.
"""
from decimal import Decimal

import pytest
from fastapi import HTTPException

from backoffice.modules.products.models import Product, StockMovement, MovementType
from backoffice.modules.products.schemas import ProductCreate, ProductUpdate, StockAdjustment
from backoffice.modules.products.service import ProductService, InventoryService


class TestProductService:
    def test_codes_are_sequential_per_company(self, db_session, admin_auth, other_auth):
        service = ProductService(db_session)
        first = service.create_product(ProductCreate(name="Sabão em pó 1kg", price=Decimal("12.90")), admin_auth)
        second = service.create_product(ProductCreate(name="Detergente 500ml", price=Decimal("2.49")), admin_auth)
        foreign = service.create_product(ProductCreate(name="Esponja", price=Decimal("1.50")), other_auth)

        assert (first.code, second.code, foreign.code) == (1, 2, 1)

    def test_initial_stock_is_recorded_as_movement(self, db_session, admin_auth):
        product = ProductService(db_session).create_product(
            ProductCreate(name="Óleo de soja 900ml", price=Decimal("7.99"), quantity=24), admin_auth
        )

        assert product.quantity == 24
        movement = db_session.query(StockMovement).one()
        assert movement.quantity == 24
        assert movement.type == MovementType.ADJUSTMENT
        assert movement.notes == "Initial stock"

    def test_duplicate_code_conflict(self, db_session, admin_auth):
        service = ProductService(db_session)
        service.create_product(ProductCreate(code=10, name="Açúcar 1kg"), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.create_product(ProductCreate(code=10, name="Sal 1kg"), admin_auth)
        assert exc.value.status_code == 409

    def test_update_and_soft_delete(self, db_session, admin_auth):
        service = ProductService(db_session)
        product = service.create_product(ProductCreate(name="Farinha de trigo"), admin_auth)

        updated = service.update_product(product.id, ProductUpdate(price=Decimal("5.59")), admin_auth)
        assert updated.price == Decimal("5.59")

        service.delete_product(product.id, admin_auth)
        assert db_session.query(Product).count() == 1
        assert service.list_products(admin_auth, active=True).total == 0
        assert service.list_products(admin_auth, active=False).total == 1

    def test_search(self, db_session, admin_auth):
        service = ProductService(db_session)
        service.create_product(ProductCreate(name="Leite integral 1L", barcode="7891000100103"), admin_auth)
        service.create_product(ProductCreate(name="Pão de forma"), admin_auth)

        assert service.list_products(admin_auth, search="leite").total == 1
        assert service.list_products(admin_auth, search="78910001").total == 1


class TestStockAdjustments:
    def test_adjust_up_and_down(self, db_session, admin_auth):
        service = ProductService(db_session)
        product = service.create_product(ProductCreate(name="Macarrão 500g", quantity=10), admin_auth)

        service.adjust_stock(product.id, StockAdjustment(quantity=5, notes="Inventário"), admin_auth)
        product = service.adjust_stock(product.id, StockAdjustment(quantity=-12, notes="Avaria"), admin_auth)

        assert product.quantity == 3
        history = service.list_movements(admin_auth, product.id)
        assert history.total == 3
        assert sorted(m.quantity for m in history.items) == [-12, 5, 10]

    def test_cannot_go_negative(self, db_session, admin_auth):
        service = ProductService(db_session)
        product = service.create_product(ProductCreate(name="Biscoito recheado", quantity=2), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.adjust_stock(product.id, StockAdjustment(quantity=-3, notes="Avaria"), admin_auth)

        assert exc.value.status_code == 409
        assert exc.value.detail == (
            f"Insufficient stock for product {product.code} - Biscoito recheado: 3 required, 2 available"
        )
        db_session.refresh(product)
        assert product.quantity == 2
        assert db_session.query(StockMovement).count() == 1

    def test_zero_adjustment_rejected(self):
        with pytest.raises(ValueError):
            StockAdjustment(quantity=0, notes="Nada")

    def test_lock_product_of_other_company(self, db_session, admin_auth, other_auth):
        product = ProductService(db_session).create_product(ProductCreate(name="Vinagre"), admin_auth)

        with pytest.raises(HTTPException) as exc:
            InventoryService(db_session).lock_product(other_auth.tenant_id, product.id)
        assert exc.value.status_code == 404


class TestProductApi:
    def test_manager_creates_operational_reads(self, client, admin_headers, operational_headers):
        created = client.post("/products", json={"name": "Café 500g", "price": "18.90", "quantity": 5},
                              headers=admin_headers)
        assert created.status_code == 201
        assert created.json()["price"] == 18.9
        assert created.json()["code"] == 1

        denied = client.post("/products", json={"name": "Chá"}, headers=operational_headers)
        assert denied.status_code == 403

        listing = client.get("/products", headers=operational_headers)
        assert listing.json()["total"] == 1

    def test_adjust_endpoint(self, client, admin_headers):
        product = client.post("/products", json={"name": "Achocolatado"}, headers=admin_headers).json()

        response = client.post(f"/products/{product['id']}/adjust", json={"quantity": -1, "notes": "Avaria"},
                               headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["error"].startswith("Insufficient stock")

    def test_update_ignores_nulls_on_required_fields(self, client, admin_headers):
        product = client.post("/products", json={"name": "Farinha 1kg", "price": "6.50"}, headers=admin_headers).json()

        for body in ({"price": None}, {"active": None}, {"name": None}):
            response = client.put(f"/products/{product['id']}", json=body, headers=admin_headers)
            assert response.status_code == 200
            assert response.json()["price"] == 6.5
            assert response.json()["active"] is True

        renamed = client.put(f"/products/{product['id']}", json={"name": "Farinha de trigo 1kg", "price": None},
                             headers=admin_headers)
        assert renamed.json()["name"] == "Farinha de trigo 1kg"
        assert renamed.json()["price"] == 6.5
