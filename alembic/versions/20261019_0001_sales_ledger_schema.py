"""sales ledger, expenses, budgets and targets

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )

    op.create_table(
        "products",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("category_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("categories.id"), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("cost_price", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("selling_price", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("ix_products_category_id", "products", ["category_id"])

    op.create_table(
        "product_sales",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("sale_date", sa.Date(), nullable=False),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("quantity_sold", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("unit_selling_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("unit_cost_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("sold_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("sale_date", "product_id", name="uq_product_sales_date_product"),
        sa.CheckConstraint("quantity_sold >= 0", name="ck_product_sales_quantity_non_negative"),
        sa.CheckConstraint("unit_selling_price >= 0", name="ck_product_sales_selling_price_non_negative"),
        sa.CheckConstraint("unit_cost_price >= 0", name="ck_product_sales_cost_price_non_negative"),
    )
    op.create_index("ix_product_sales_sale_date", "product_sales", ["sale_date"])
    op.create_index("ix_product_sales_product_id", "product_sales", ["product_id"])

    op.create_table(
        "expense_categories",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
    )

    op.create_table(
        "expenses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "category_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("expense_categories.id"),
            nullable=True,
        ),
        sa.Column("expense_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("vendor_name", sa.String(length=255), nullable=True),
        sa.Column("payment_method", sa.String(length=32), nullable=False, server_default="cash"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="approved"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_expenses_expense_date", "expenses", ["expense_date"])

    op.create_table(
        "budgets",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(length=255), nullable=False),
        sa.Column("planned_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("actual_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("year", "month", "category", name="uq_budgets_year_month_category"),
        sa.CheckConstraint("month >= 1 AND month <= 12", name="ck_budgets_month_range"),
    )
    op.create_index("ix_budgets_year_month", "budgets", ["year", "month"])

    op.create_table(
        "sales_targets",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("target_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("target_customers", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("year", "month", name="uq_sales_targets_year_month"),
        sa.CheckConstraint("month >= 1 AND month <= 12", name="ck_sales_targets_month_range"),
    )


def downgrade() -> None:
    op.drop_table("sales_targets")

    op.drop_index("ix_budgets_year_month", table_name="budgets")
    op.drop_table("budgets")

    op.drop_index("ix_expenses_expense_date", table_name="expenses")
    op.drop_table("expenses")
    op.drop_table("expense_categories")

    op.drop_index("ix_product_sales_product_id", table_name="product_sales")
    op.drop_index("ix_product_sales_sale_date", table_name="product_sales")
    op.drop_table("product_sales")

    op.drop_index("ix_products_category_id", table_name="products")
    op.drop_table("products")
    op.drop_table("categories")
