"""
Testes das migrações Alembic.

A revisão inicial, aplicada num SQLite vazio, deve produzir as mesmas tabelas,
colunas e restrições nomeadas que os modelos declaram.
"""
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from backoffice.database.database import Base
import backoffice.main  # noqa: F401  registers every model on Base.metadata

ROOT_DIR = Path(__file__).resolve().parents[2]


@pytest.fixture
def migrated_engine(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrations.db'}"
    alembic_cfg = Config(str(ROOT_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", url)
    command.upgrade(alembic_cfg, "head")

    engine = create_engine(url)
    yield engine
    engine.dispose()


class TestInitialMigration:

    def test_creates_every_model_table(self, migrated_engine):
        tables = set(inspect(migrated_engine).get_table_names())

        assert set(Base.metadata.tables) <= tables
        assert "alembic_version" in tables

    def test_columns_match_models(self, migrated_engine):
        inspector = inspect(migrated_engine)

        for table in Base.metadata.tables.values():
            migrated = {column["name"]: column for column in inspector.get_columns(table.name)}
            assert set(migrated) == set(table.columns.keys()), table.name
            for column in table.columns:
                assert migrated[column.name]["nullable"] == column.nullable, f"{table.name}.{column.name}"

    def test_named_unique_keys_exist(self, migrated_engine):
        inspector = inspect(migrated_engine)

        def unique_names(table):
            return {c["name"] for c in inspector.get_unique_constraints(table)}

        assert "uq_nfe_company_number_series" in unique_names("nfe_invoices")
        assert "uq_product_company_code" in unique_names("products")
        assert "uq_vendor_company_cnpj" in unique_names("vendors")
        assert "uq_budget_company_number" in unique_names("budgets")

        indexes = {i["name"]: i for i in inspector.get_indexes("cash_register_sessions")}
        assert indexes["uq_cash_session_open_per_date"]["unique"]

    def test_receivable_columns_present(self, migrated_engine):
        columns = {c["name"] for c in inspect(migrated_engine).get_columns("cash_flow_transactions")}

        assert {"customer_id", "amount_received"} <= columns
