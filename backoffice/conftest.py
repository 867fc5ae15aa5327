"""
Fixtures compartilhados dos testes.

Cada teste recebe um banco SQLite em memória novo, com o schema completo,
uma aplicação criada por create_app() apontando para ele e usuários de cada
papel com seus tokens.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from backoffice.database.database import Database
from backoffice.main import create_app
from backoffice.modules.auth.models import Company, User, UserRole
from backoffice.modules.auth.schemas import AuthContext, ROLE_PERMISSIONS
from backoffice.modules.auth.utils import create_access_token, hash_password

TEST_PASSWORD = "senha-segura-123"


# ===== FIXTURES DE INFRAESTRUTURA =====

@pytest.fixture(scope="session")
def password_hash():
    """bcrypt is slow; hash once per run"""
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def database():
    database = Database(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def app(database):
    return create_app(database)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def db_session(database):
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


# ===== FIXTURES DE EMPRESAS E USUÁRIOS =====

@pytest.fixture
def sample_company(db_session):
    company = Company(name="Mercado Bom Preço Ltda", cnpj="11222333000181", active=True)
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture
def other_company(db_session):
    company = Company(name="Distribuidora Horizonte Ltda", cnpj="11444777000161", active=True)
    db_session.add(company)
    db_session.commit()
    return company


def _make_user(db_session, company, role, email, password_hash):
    user = User(
        company_id=company.id if company else None,
        name=email.split("@")[0].replace(".", " ").title(),
        email=email,
        password=password_hash,
        role=role,
        active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def master_user(db_session, password_hash):
    return _make_user(db_session, None, UserRole.MASTER, "master@backoffice.com.br", password_hash)


@pytest.fixture
def sample_user(db_session, sample_company, password_hash):
    """Administrator of sample_company"""
    return _make_user(db_session, sample_company, UserRole.ADMINISTRATOR, "admin@bompreco.com.br", password_hash)


@pytest.fixture
def operational_user(db_session, sample_company, password_hash):
    return _make_user(db_session, sample_company, UserRole.OPERATIONAL, "caixa@bompreco.com.br", password_hash)


@pytest.fixture
def other_user(db_session, other_company, password_hash):
    """Administrator of other_company"""
    return _make_user(db_session, other_company, UserRole.ADMINISTRATOR, "admin@horizonte.com.br", password_hash)


# ===== FIXTURES DE AUTENTICAÇÃO =====

def auth_headers(user, company=None):
    headers = {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}
    if company is not None:
        headers["X-Company-ID"] = str(company.id)
    return headers


def auth_context(user, tenant_id=None):
    return AuthContext(
        user_id=user.id,
        tenant_id=tenant_id if tenant_id is not None else user.company_id,
        role=user.role,
        name=user.name,
        email=user.email,
        permissions=ROLE_PERMISSIONS.get(user.role, []),
    )


@pytest.fixture
def admin_headers(sample_user):
    return auth_headers(sample_user)


@pytest.fixture
def operational_headers(operational_user):
    return auth_headers(operational_user)


@pytest.fixture
def master_headers(master_user, sample_company):
    return auth_headers(master_user, sample_company)


@pytest.fixture
def other_headers(other_user):
    return auth_headers(other_user)


@pytest.fixture
def admin_auth(sample_user):
    return auth_context(sample_user)


@pytest.fixture
def operational_auth(operational_user):
    return auth_context(operational_user)


@pytest.fixture
def other_auth(other_user):
    return auth_context(other_user)


@pytest.fixture
def headers_for():
    """headers_for(user, company=None) -> Authorization (+ X-Company-ID) headers"""
    return auth_headers


@pytest.fixture
def test_password():
    return TEST_PASSWORD
