"""
Testes de autenticação e isolamento por empresa: login, token, papéis e o
cabeçalho X-Company-ID.
"""
from datetime import timedelta
from uuid import uuid4

import pytest

from backoffice.modules.auth.models import UserRole
from backoffice.modules.auth.schemas import AuthContext
from backoffice.modules.auth.utils import create_access_token, hash_password, verify_password
from backoffice.modules.products.models import Product


class TestPasswordsAndTokens:
    def test_hash_and_verify(self, password_hash, test_password):
        assert verify_password(test_password, password_hash)
        assert not verify_password("outra-senha", password_hash)
        assert not verify_password(test_password, "")

    def test_hash_is_salted(self):
        assert hash_password("abc12345") != hash_password("abc12345")


class TestAuthContext:
    def test_permissions_by_role(self):
        operational = AuthContext(
            user_id=uuid4(), tenant_id=uuid4(), role=UserRole.OPERATIONAL,
            name="Caixa", email="caixa@bompreco.com.br", permissions=["create_entries", "edit_own"],
        )
        assert operational.has_permission("create_entries")
        assert not operational.has_permission("delete_records")
        assert operational.can_edit(operational.user_id)
        assert not operational.can_edit(uuid4())

    def test_master_can_do_everything(self):
        master = AuthContext(user_id=uuid4(), role=UserRole.MASTER, name="Master", email="master@backoffice.com.br")
        assert master.is_superuser
        assert master.has_permission("delete_records")
        assert master.can_edit(uuid4())


class TestLogin:
    def test_login_returns_token_and_profile(self, client, sample_user, test_password):
        response = client.post("/auth/login", json={"email": sample_user.email, "password": test_password})

        assert response.status_code == 200
        body = response.json()
        assert body["tokenType"] == "bearer"
        assert body["expiresIn"] == 480 * 60
        assert body["user"]["role"] == "administrator"
        assert body["user"]["companyName"] == "Mercado Bom Preço Ltda"

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['accessToken']}"})
        assert me.status_code == 200
        assert me.json()["tenantId"] == str(sample_user.company_id)
        assert "delete_records" in me.json()["permissions"]

    def test_wrong_password(self, client, sample_user):
        response = client.post("/auth/login", json={"email": sample_user.email, "password": "errada"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials"}

    def test_inactive_company_cannot_login(self, client, db_session, sample_user, sample_company, test_password):
        sample_company.active = False
        db_session.commit()

        response = client.post("/auth/login", json={"email": sample_user.email, "password": test_password})
        assert response.status_code == 401

    def test_malformed_email_is_400(self, client):
        response = client.post("/auth/login", json={"email": "not-an-email", "password": "x"})
        assert response.status_code == 400


class TestTenantResolution:
    def test_expired_token(self, client, sample_user):
        token = create_access_token({"sub": str(sample_user.id)}, expires_delta=timedelta(minutes=-1))
        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json() == {"error": "Token expired"}

    def test_inactive_user(self, client, db_session, operational_user, operational_headers):
        operational_user.active = False
        db_session.commit()

        response = client.get("/auth/me", headers=operational_headers)
        assert response.status_code == 401

    def test_user_cannot_switch_company(self, client, sample_user, other_company, headers_for):
        response = client.get("/products", headers=headers_for(sample_user, other_company))
        assert response.status_code == 403

    def test_invalid_company_header(self, client, admin_headers):
        response = client.get("/products", headers={**admin_headers, "X-Company-ID": "abc"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid X-Company-ID format. Must be a valid UUID"}

    def test_master_selects_any_company(self, client, master_user, other_company, headers_for):
        response = client.get("/auth/me", headers=headers_for(master_user, other_company))
        assert response.status_code == 200
        assert response.json()["tenantId"] == str(other_company.id)
        assert response.json()["permissions"] == ["all"]

    def test_master_unknown_company(self, client, master_user, headers_for):
        headers = headers_for(master_user)
        headers["X-Company-ID"] = str(uuid4())
        response = client.get("/auth/me", headers=headers)
        assert response.status_code == 404

    def test_master_without_company_lists_every_tenant(
        self, client, db_session, master_user, sample_company, other_company, headers_for
    ):
        db_session.add_all([
            Product(company_id=sample_company.id, code=1, name="Arroz", price=0, quantity=0),
            Product(company_id=other_company.id, code=1, name="Feijão", price=0, quantity=0),
        ])
        db_session.commit()

        response = client.get("/products", headers=headers_for(master_user))
        assert response.json()["total"] == 2

        scoped = client.get("/products", headers=headers_for(master_user, other_company))
        assert scoped.json()["total"] == 1

    @pytest.mark.parametrize("path", ["/", "/health"])
    def test_health_endpoints_are_public(self, client, path):
        assert client.get(path).status_code == 200
