"""initial schema: accounts, clients, invoices, expenses, mileage

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

OWNER_SCOPED_TABLES = (
    "business_settings",
    "clients",
    "expenses",
    "mileage",
    "line_item_templates",
    "household_settings",
    "saved_views",
)

OWNER_MATCH = "user_id = current_setting('app.current_user_id', true)"


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False),
    ]


def _owner_column() -> sa.Column:
    return sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "business_settings",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _owner_column(),
        *_timestamps(),
        sa.Column("business_name", sa.String(length=255), nullable=True),
        sa.Column("business_number", sa.String(length=128), nullable=True),
        sa.Column("business_owner", sa.String(length=255), nullable=True),
        sa.Column("business_address", sa.Text(), nullable=True),
        sa.Column("business_email", sa.String(length=320), nullable=True),
        sa.Column("business_phone", sa.String(length=64), nullable=True),
        sa.Column("business_mobile", sa.String(length=64), nullable=True),
        sa.Column("business_website", sa.String(length=255), nullable=True),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("default_invoice_note", sa.Text(), nullable=True),
        sa.Column("default_email_subject", sa.String(length=255), nullable=True),
        sa.Column("default_email_message", sa.Text(), nullable=True),
        sa.Column("email_signature", sa.Text(), nullable=True),
        sa.UniqueConstraint("user_id", name="uq_business_settings_user_id"),
    )
    op.create_index("ix_business_settings_user_id", "business_settings", ["user_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        sa.Column("actor_user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("actor_user_email", sa.String(length=320), nullable=True),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=128), nullable=True),
        sa.Column("entity_id", sa.String(length=128), nullable=True),
        sa.Column("reason", sa.String(length=512), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.UniqueConstraint("request_id", "id", name="uq_audit_request_id_id"),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _owner_column(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("mobile", sa.String(length=64), nullable=True),
        sa.Column("fax", sa.String(length=64), nullable=True),
        sa.Column("website", sa.String(length=255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("city", sa.String(length=128), nullable=True),
        sa.Column("state", sa.String(length=64), nullable=True),
        sa.Column("postal_code", sa.String(length=32), nullable=True),
        sa.Column("country", sa.String(length=64), nullable=True),
        sa.Column("contact_person", sa.String(length=255), nullable=True),
        sa.Column("tax_id", sa.String(length=64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="active"),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('lead', 'prospect', 'active', 'on_hold', 'inactive', 'archived')",
            name="clients_status_check",
        ),
    )
    op.create_index("idx_clients_user_id", "clients", ["user_id"])
    op.create_index("idx_clients_name", "clients", ["name"])
    op.create_index("idx_clients_email", "clients", ["email"])
    op.create_index("idx_clients_status", "clients", ["status"])

    op.create_table(
        "invoices",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _owner_column(),
        sa.Column("client_id", sa.String(length=36), sa.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.Column("invoice_name", sa.String(length=255), nullable=False, server_default="Invoice"),
        sa.Column("invoice_number", sa.String(length=64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("terms", sa.String(length=128), nullable=False, server_default="Due on receipt"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="draft"),
        sa.Column("from_name", sa.String(length=255), nullable=True),
        sa.Column("from_email", sa.String(length=320), nullable=True),
        sa.Column("from_address", sa.Text(), nullable=True),
        sa.Column("from_phone", sa.String(length=64), nullable=True),
        sa.Column("from_business_number", sa.String(length=128), nullable=True),
        sa.Column("from_website", sa.String(length=255), nullable=True),
        sa.Column("from_owner", sa.String(length=255), nullable=True),
        sa.Column("bill_to_name", sa.String(length=255), nullable=True),
        sa.Column("bill_to_email", sa.String(length=320), nullable=True),
        sa.Column("bill_to_address", sa.Text(), nullable=True),
        sa.Column("bill_to_phone", sa.String(length=64), nullable=True),
        sa.Column("bill_to_mobile", sa.String(length=64), nullable=True),
        sa.Column("bill_to_fax", sa.String(length=64), nullable=True),
        sa.Column("line_items", sa.JSON(), nullable=False),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("balance_due", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("share_token", sa.String(length=64), nullable=True),
        sa.Column("payment_method", sa.String(length=32), nullable=True),
        sa.Column("payment_date", sa.Date(), nullable=True),
        sa.Column("payment_reference", sa.String(length=255), nullable=True),
        sa.CheckConstraint("status IN ('draft', 'sent', 'paid', 'overdue')", name="invoices_status_check"),
        sa.UniqueConstraint("share_token", name="uq_invoices_share_token"),
    )
    op.create_index("idx_invoices_user_id", "invoices", ["user_id"])
    op.create_index("idx_invoices_status", "invoices", ["status"])
    op.create_index("idx_invoices_date", "invoices", ["date"])
    op.create_index("idx_invoices_payment_method", "invoices", ["payment_method"])
    op.create_index("idx_invoices_payment_date", "invoices", ["payment_date"])

    op.create_table(
        "expenses",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _owner_column(),
        *_timestamps(),
        sa.Column("merchant", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("total", sa.Numeric(12, 2), nullable=False),
        sa.Column("tax", sa.Numeric(12, 2), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("receipt_url", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_tax_deductible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("business_use_percentage", sa.Numeric(5, 2), nullable=False, server_default="100"),
        sa.Column("tax_category", sa.String(length=64), nullable=True),
        sa.Column("deductible_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("is_return", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "original_expense_id",
            sa.String(length=36),
            sa.ForeignKey("expenses.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.CheckConstraint(
            "business_use_percentage >= 0 AND business_use_percentage <= 100",
            name="expenses_business_use_percentage_check",
        ),
    )
    op.create_index("idx_expenses_user_id", "expenses", ["user_id"])
    op.create_index("idx_expenses_date", "expenses", ["date"])
    op.create_index("idx_expenses_category", "expenses", ["category"])
    op.create_index("idx_expenses_is_tax_deductible", "expenses", ["is_tax_deductible"])
    op.create_index("idx_expenses_tax_category", "expenses", ["tax_category"])
    op.create_index("idx_expenses_original_expense_id", "expenses", ["original_expense_id"])

    op.create_table(
        "mileage",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _owner_column(),
        *_timestamps(),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("purpose", sa.String(length=255), nullable=False),
        sa.Column("miles", sa.Numeric(10, 2), nullable=False),
        sa.Column("rate_per_mile", sa.Numeric(10, 2), nullable=False, server_default="0.67"),
        sa.Column("total", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("idx_mileage_user_id", "mileage", ["user_id"])
    op.create_index("idx_mileage_date", "mileage", ["date"])

    op.create_table(
        "line_item_templates",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _owner_column(),
        *_timestamps(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("rate", sa.Numeric(12, 2), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 2), nullable=False, server_default="1"),
    )
    op.create_index("idx_line_item_templates_user_id", "line_item_templates", ["user_id"])

    op.create_table(
        "household_settings",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _owner_column(),
        *_timestamps(),
        sa.Column("rent_business_percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("utilities_business_percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("internet_business_percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("monthly_rent", sa.Numeric(12, 2), nullable=True),
        sa.Column("monthly_utilities", sa.Numeric(12, 2), nullable=True),
        sa.Column("monthly_internet", sa.Numeric(12, 2), nullable=True),
        sa.Column("total_home_square_feet", sa.Integer(), nullable=True),
        sa.Column("office_square_feet", sa.Integer(), nullable=True),
        sa.UniqueConstraint("user_id", name="uq_household_settings_user_id"),
        sa.CheckConstraint(
            "rent_business_percentage >= 0 AND rent_business_percentage <= 100 AND "
            "utilities_business_percentage >= 0 AND utilities_business_percentage <= 100 AND "
            "internet_business_percentage >= 0 AND internet_business_percentage <= 100",
            name="household_settings_valid_percentages",
        ),
    )

    op.create_table(
        "saved_views",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        _owner_column(),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("table_name", sa.String(length=64), nullable=False),
        sa.Column("view_state", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "table_name", "name", name="uq_saved_views_user_table_name"),
        sa.CheckConstraint(
            "table_name IN ('invoices', 'expenses', 'clients', 'mileage', 'line_item_templates')",
            name="saved_views_table_name_check",
        ),
        sa.CheckConstraint("length(name) > 0 AND length(name) <= 50", name="saved_views_name_length_check"),
    )
    op.create_index("idx_saved_views_user_table", "saved_views", ["user_id", "table_name"])

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        # Row-level security keyed on the transaction-local tenant setting (see db.bind_tenant).
        # Table owners bypass these policies; the app should connect as a non-owner role.
        for table in OWNER_SCOPED_TABLES:
            op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
            op.execute(
                f"CREATE POLICY {table}_owner ON {table} "
                f"USING ({OWNER_MATCH}) WITH CHECK ({OWNER_MATCH})"
            )
        op.execute("ALTER TABLE invoices ENABLE ROW LEVEL SECURITY")
        op.execute(f"CREATE POLICY invoices_owner ON invoices USING ({OWNER_MATCH}) WITH CHECK ({OWNER_MATCH})")
        # Shared invoices are readable without a session; the token is checked in the app.
        op.execute("CREATE POLICY invoices_shared_read ON invoices FOR SELECT USING (share_token IS NOT NULL)")


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute("DROP POLICY IF EXISTS invoices_shared_read ON invoices")
        op.execute("DROP POLICY IF EXISTS invoices_owner ON invoices")
        for table in OWNER_SCOPED_TABLES:
            op.execute(f"DROP POLICY IF EXISTS {table}_owner ON {table}")

    op.drop_index("idx_saved_views_user_table", table_name="saved_views")
    op.drop_table("saved_views")

    op.drop_table("household_settings")

    op.drop_index("idx_line_item_templates_user_id", table_name="line_item_templates")
    op.drop_table("line_item_templates")

    op.drop_index("idx_mileage_date", table_name="mileage")
    op.drop_index("idx_mileage_user_id", table_name="mileage")
    op.drop_table("mileage")

    op.drop_index("idx_expenses_original_expense_id", table_name="expenses")
    op.drop_index("idx_expenses_tax_category", table_name="expenses")
    op.drop_index("idx_expenses_is_tax_deductible", table_name="expenses")
    op.drop_index("idx_expenses_category", table_name="expenses")
    op.drop_index("idx_expenses_date", table_name="expenses")
    op.drop_index("idx_expenses_user_id", table_name="expenses")
    op.drop_table("expenses")

    op.drop_index("idx_invoices_payment_date", table_name="invoices")
    op.drop_index("idx_invoices_payment_method", table_name="invoices")
    op.drop_index("idx_invoices_date", table_name="invoices")
    op.drop_index("idx_invoices_status", table_name="invoices")
    op.drop_index("idx_invoices_user_id", table_name="invoices")
    op.drop_table("invoices")

    op.drop_index("idx_clients_status", table_name="clients")
    op.drop_index("idx_clients_email", table_name="clients")
    op.drop_index("idx_clients_name", table_name="clients")
    op.drop_index("idx_clients_user_id", table_name="clients")
    op.drop_table("clients")

    op.drop_table("audit_events")

    op.drop_index("ix_business_settings_user_id", table_name="business_settings")
    op.drop_table("business_settings")

    op.drop_table("profiles")
    op.drop_table("users")
