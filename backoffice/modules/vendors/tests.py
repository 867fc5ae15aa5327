"""
Testes de fornecedores: validação de CNPJ, unicidade por empresa e bloqueio
de exclusão quando há notas ou contas vinculadas.
"""
from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException

from backoffice.modules.accounts_payable.schemas import PayableCreate
from backoffice.modules.accounts_payable.service import AccountsPayableService
from backoffice.modules.vendors.models import Vendor
from backoffice.modules.vendors.schemas import VendorCreate, VendorUpdate
from backoffice.modules.vendors.service import VendorService


@pytest.fixture
def sample_vendor_data():
    return {
        "cnpj": "11.222.333/0001-81",
        "name": "Atacado Central Ltda",
        "email": "compras@atacadocentral.com.br",
        "phone": "(11) 3333-4444",
    }


class TestVendorSchema:
    def test_cnpj_stored_as_digits(self, sample_vendor_data):
        assert VendorCreate(**sample_vendor_data).cnpj == "11222333000181"

    def test_invalid_cnpj(self, sample_vendor_data):
        with pytest.raises(ValueError):
            VendorCreate(**{**sample_vendor_data, "cnpj": "11.222.333/0001-82"})

    def test_blank_email_is_null(self, sample_vendor_data):
        assert VendorCreate(**{**sample_vendor_data, "email": "  "}).email is None


class TestVendorService:
    def test_create_and_search(self, db_session, admin_auth, sample_vendor_data):
        service = VendorService(db_session)
        service.create_vendor(VendorCreate(**sample_vendor_data), admin_auth)

        assert service.list_vendors(admin_auth, search="central").total == 1
        assert service.list_vendors(admin_auth, search="11222333").total == 1

    def test_duplicate_cnpj_in_same_company(self, db_session, admin_auth, other_auth, sample_vendor_data):
        service = VendorService(db_session)
        service.create_vendor(VendorCreate(**sample_vendor_data), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.create_vendor(VendorCreate(**sample_vendor_data), admin_auth)
        assert exc.value.status_code == 409

        # Another company may register the same vendor
        service.create_vendor(VendorCreate(**sample_vendor_data), other_auth)
        assert db_session.query(Vendor).count() == 2

    def test_empty_update_rejected(self, db_session, admin_auth, sample_vendor_data):
        service = VendorService(db_session)
        vendor = service.create_vendor(VendorCreate(**sample_vendor_data), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.update_vendor(vendor.id, VendorUpdate(), admin_auth)
        assert exc.value.status_code == 400

        updated = service.update_vendor(vendor.id, VendorUpdate(phone="(11) 98888-7777"), admin_auth)
        assert updated.phone == "(11) 98888-7777"

    def test_referenced_vendor_cannot_be_deleted(self, db_session, admin_auth, sample_vendor_data):
        service = VendorService(db_session)
        vendor = service.create_vendor(VendorCreate(**sample_vendor_data), admin_auth)
        AccountsPayableService(db_session).create_payable(PayableCreate(
            vendor_id=vendor.id, description="Compra", amount=Decimal("10.00"),
            issue_date=date(2024, 1, 1), due_date=date(2024, 1, 31),
        ), admin_auth)

        with pytest.raises(HTTPException) as exc:
            service.delete_vendor(vendor.id, admin_auth)
        assert exc.value.status_code == 409

    def test_delete(self, db_session, admin_auth, sample_vendor_data):
        service = VendorService(db_session)
        vendor = service.create_vendor(VendorCreate(**sample_vendor_data), admin_auth)
        service.delete_vendor(vendor.id, admin_auth)
        assert db_session.query(Vendor).count() == 0


class TestVendorApi:
    def test_invalid_cnpj_is_400(self, client, admin_headers):
        response = client.post("/vendors", json={"cnpj": "123", "name": "Fornecedor"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json() == {"error": "cnpj: Invalid CNPJ"}

    def test_operational_cannot_create(self, client, operational_headers, sample_vendor_data):
        response = client.post("/vendors", json=sample_vendor_data, headers=operational_headers)
        assert response.status_code == 403
