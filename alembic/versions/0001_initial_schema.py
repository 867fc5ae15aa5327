"""initial schema

Revision ID: 0001
Revises:
Create Date: 2024-06-01 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ENUMS = {
    "user_role": ("master", "administrator", "operational"),
    "stock_movement_type": ("entry", "exit", "adjustment"),
    "nfe_payment_status": ("pending", "paid", "partially_paid", "overdue"),
    "nfe_status": ("active", "cancelled"),
    "payable_status": ("pending", "paid", "partially_paid", "overdue", "cancelled"),
    "payable_priority": ("low", "medium", "high", "urgent"),
    "transaction_type": ("entry", "exit"),
    "cash_session_status": ("open", "closed"),
    "budget_status": ("draft", "sent", "approved", "rejected", "expired"),
    "budget_item_type": ("product", "custom"),
}


def _enum(name):
    return sa.Enum(*ENUMS[name], name=name)


def _id():
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True)


def _company():
    return sa.Column("company_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("companies.id"), nullable=False)


def _user_fk(name, nullable=True):
    return sa.Column(name, postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=nullable)


def _timestamps(updated=True):
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]
    if updated:
        columns.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
        )
    return columns


def _money(name, nullable=False):
    return sa.Column(name, sa.Numeric(15, 2), nullable=nullable)


def _index(table, *columns):
    for column in columns:
        op.create_index(f"ix_{table}_{column}", table, [column])


def upgrade() -> None:
    op.create_table(
        "companies",
        _id(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("cnpj", sa.String(14), nullable=True, unique=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "users",
        _id(),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("companies.id"), nullable=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password", sa.String(), nullable=False),
        sa.Column("role", _enum("user_role"), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    _index("users", "company_id")

    op.create_table(
        "vendors",
        _id(),
        _company(),
        sa.Column("cnpj", sa.String(14), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "cnpj", name="uq_vendor_company_cnpj"),
    )
    _index("vendors", "company_id")

    op.create_table(
        "customers",
        _id(),
        _company(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("cpf_cnpj", sa.String(14), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        _user_fk("created_by"),
        *_timestamps(),
    )
    _index("customers", "company_id")

    op.create_table(
        "products",
        _id(),
        _company(),
        sa.Column("code", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        _money("price"),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("barcode", sa.String(50), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "code", name="uq_product_company_code"),
    )
    _index("products", "company_id")

    op.create_table(
        "nfe_invoices",
        _id(),
        _company(),
        sa.Column("vendor_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("vendors.id"), nullable=False),
        sa.Column("nfe_number", sa.String(20), nullable=False),
        sa.Column("nfe_series", sa.String(5), nullable=False),
        sa.Column("nfe_access_key", sa.String(44), nullable=True),
        sa.Column("nfe_protocol", sa.String(50), nullable=True),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("receipt_date", sa.Date(), nullable=False),
        _money("total_products"),
        _money("total_tax"),
        _money("freight_value"),
        _money("insurance_value"),
        _money("discount_value"),
        _money("other_expenses"),
        _money("total_invoice"),
        sa.Column("payment_status", _enum("nfe_payment_status"), nullable=False),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("payment_category", sa.String(100), nullable=True),
        sa.Column("payment_terms", sa.String(100), nullable=True),
        sa.Column("installments", sa.Integer(), nullable=False),
        sa.Column("first_due_date", sa.Date(), nullable=True),
        _money("icms_value"),
        _money("ipi_value"),
        _money("pis_value"),
        _money("cofins_value"),
        sa.Column("operation_type", sa.String(30), nullable=False),
        sa.Column("cfop", sa.String(10), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("stock_updated", sa.Boolean(), nullable=False),
        sa.Column("stock_updated_at", sa.DateTime(timezone=True), nullable=True),
        _user_fk("stock_updated_by"),
        sa.Column("accounts_payable_created", sa.Boolean(), nullable=False),
        sa.Column("status", _enum("nfe_status"), nullable=False),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        _user_fk("cancelled_by"),
        _user_fk("created_by"),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "nfe_number", "nfe_series", name="uq_nfe_company_number_series"),
        sa.CheckConstraint("total_invoice > 0", name="ck_nfe_total_positive"),
        sa.CheckConstraint("NOT accounts_payable_created OR stock_updated", name="ck_nfe_payables_after_stock"),
    )
    _index("nfe_invoices", "company_id", "vendor_id")

    op.create_table(
        "nfe_items",
        _id(),
        sa.Column(
            "nfe_invoice_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("nfe_invoices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("item_number", sa.Integer(), nullable=False),
        sa.Column("product_code", sa.String(60), nullable=True),
        sa.Column("product_description", sa.String(255), nullable=False),
        sa.Column("unit", sa.String(10), nullable=False),
        sa.Column("quantity", sa.Numeric(15, 4), nullable=False),
        sa.Column("unit_price", sa.Numeric(15, 4), nullable=False),
        _money("total_price"),
        _money("discount"),
        sa.Column("icms_percentage", sa.Numeric(5, 2), nullable=False),
        _money("icms_value"),
        sa.Column("ipi_percentage", sa.Numeric(5, 2), nullable=False),
        _money("ipi_value"),
        sa.Column("ncm", sa.String(10), nullable=True),
        sa.Column("cest", sa.String(10), nullable=True),
        sa.Column("cfop", sa.String(10), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint("nfe_invoice_id", "item_number", name="uq_nfe_item_number"),
    )
    _index("nfe_items", "nfe_invoice_id")

    op.create_table(
        "stock_movements",
        _id(),
        _company(),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("type", _enum("stock_movement_type"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("nfe_invoice_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("nfe_invoices.id"), nullable=True),
        _user_fk("created_by"),
        *_timestamps(updated=False),
    )
    _index("stock_movements", "company_id", "product_id", "nfe_invoice_id")

    op.create_table(
        "accounts_payable",
        _id(),
        _company(),
        sa.Column("vendor_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("vendors.id"), nullable=True),
        sa.Column("description", sa.String(255), nullable=False),
        _money("amount"),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("status", _enum("payable_status"), nullable=False),
        sa.Column("priority", _enum("payable_priority"), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("invoice_number", sa.String(50), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("payment_date", sa.Date(), nullable=True),
        _money("payment_amount", nullable=True),
        sa.Column("nfe_invoice_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("nfe_invoices.id"), nullable=True),
        _user_fk("created_by"),
        *_timestamps(),
        sa.CheckConstraint("amount > 0", name="ck_accounts_payable_amount_positive"),
    )
    _index("accounts_payable", "company_id", "vendor_id", "due_date", "nfe_invoice_id")

    op.create_table(
        "cash_flow_transactions",
        _id(),
        _company(),
        sa.Column("type", _enum("transaction_type"), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("subcategory", sa.String(100), nullable=True),
        _money("amount"),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customers.id"), nullable=True),
        _money("amount_received"),
        sa.Column("source_invoice_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("nfe_invoices.id"), nullable=True),
        _user_fk("created_by"),
        *_timestamps(),
        sa.CheckConstraint("amount > 0", name="ck_cash_flow_amount_positive"),
        sa.CheckConstraint("amount_received >= 0", name="ck_cash_flow_amount_received_non_negative"),
    )
    _index("cash_flow_transactions", "company_id", "transaction_date", "customer_id", "source_invoice_id")

    op.create_table(
        "cash_register_sessions",
        _id(),
        _company(),
        sa.Column("opening_date", sa.Date(), nullable=False),
        sa.Column("opening_time", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        _money("opening_amount"),
        sa.Column("opening_notes", sa.Text(), nullable=True),
        _user_fk("opened_by", nullable=False),
        sa.Column("closing_time", sa.DateTime(timezone=True), nullable=True),
        _money("closing_amount", nullable=True),
        _money("expected_amount", nullable=True),
        _money("difference", nullable=True),
        sa.Column("closing_notes", sa.Text(), nullable=True),
        _user_fk("closed_by"),
        sa.Column("status", _enum("cash_session_status"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("opening_amount >= 0", name="ck_cash_session_opening_non_negative"),
    )
    _index("cash_register_sessions", "company_id")
    # At most one open session per company and day
    op.create_index(
        "uq_cash_session_open_per_date",
        "cash_register_sessions",
        ["company_id", "opening_date"],
        unique=True,
        postgresql_where=sa.text("status = 'open'"),
        sqlite_where=sa.text("status = 'open'"),
    )

    op.create_table(
        "cash_withdrawals",
        _id(),
        _company(),
        sa.Column(
            "cash_register_session_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("cash_register_sessions.id"),
            nullable=True,
        ),
        _money("amount"),
        sa.Column("withdrawal_date", sa.Date(), nullable=False),
        sa.Column("withdrawal_time", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("reason", sa.String(255), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        _user_fk("withdrawn_by", nullable=False),
        *_timestamps(),
        sa.CheckConstraint("amount > 0", name="ck_cash_withdrawal_amount_positive"),
    )
    _index("cash_withdrawals", "company_id", "cash_register_session_id", "withdrawal_date")

    op.create_table(
        "budgets",
        _id(),
        _company(),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customers.id"), nullable=True),
        sa.Column("budget_number", sa.String(20), nullable=False),
        sa.Column("customer_name", sa.String(200), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("customer_phone", sa.String(30), nullable=True),
        sa.Column("customer_address", sa.Text(), nullable=True),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("validity_date", sa.Date(), nullable=True),
        _money("subtotal"),
        _money("discount"),
        _money("total"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", _enum("budget_status"), nullable=False),
        _user_fk("created_by"),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "budget_number", name="uq_budget_company_number"),
    )
    _index("budgets", "company_id", "customer_id")

    op.create_table(
        "budget_items",
        _id(),
        sa.Column(
            "budget_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("budgets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("products.id"), nullable=True),
        sa.Column("item_type", _enum("budget_item_type"), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Numeric(15, 3), nullable=False),
        _money("unit_price"),
        _money("total_price"),
        sa.Column("display_order", sa.Integer(), nullable=False),
    )
    _index("budget_items", "budget_id")


def downgrade() -> None:
    for table in (
        "budget_items",
        "budgets",
        "cash_withdrawals",
        "cash_register_sessions",
        "cash_flow_transactions",
        "accounts_payable",
        "stock_movements",
        "nfe_items",
        "nfe_invoices",
        "products",
        "customers",
        "vendors",
        "users",
        "companies",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in ENUMS:
        _enum(name).drop(bind, checkfirst=True)
