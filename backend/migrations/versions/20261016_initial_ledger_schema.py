"""Initial ledger schema: accounts, directory, catalog, operations, movements, mark codes

Revision ID: 20261016_initial_ledger
Revises:
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261016_initial_ledger"
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False)


def upgrade():
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("api_token_hash", sa.String(64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("last_ledger_write_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("api_token_hash", name="uq_accounts_api_token_hash"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "counterparties",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False, server_default="other"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("social_link", sa.String(255), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("counterparties", schema=None) as batch_op:
        batch_op.create_index("ix_counterparties_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_counterparties_account_type", ["account_id", "type"], unique=False)

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(16), nullable=False, server_default="other"),
        sa.Column("counterparty_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _created_at(),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.ForeignKeyConstraint(["counterparty_id"], ["counterparties.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("locations", schema=None) as batch_op:
        batch_op.create_index("ix_locations_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_locations_account_type", ["account_id", "type"], unique=False)
        batch_op.create_index("ix_locations_account_counterparty", ["account_id", "counterparty_id"], unique=False)

    op.create_table(
        "product_models",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("brand", sa.String(255), nullable=True),
        sa.Column("category", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("product_models", schema=None) as batch_op:
        batch_op.create_index("ix_product_models_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_product_models_account_name", ["account_id", "name"], unique=False)

    op.create_table(
        "product_variants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("model_id", sa.Integer(), nullable=False),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("size", sa.String(32), nullable=True),
        sa.Column("color", sa.String(64), nullable=True),
        sa.Column("barcode", sa.String(128), nullable=True),
        sa.Column("unit_price", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("unit_cost", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_marked", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.ForeignKeyConstraint(["model_id"], ["product_models.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("account_id", "sku", name="uq_product_variants_account_sku"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("product_variants", schema=None) as batch_op:
        batch_op.create_index("ix_product_variants_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_product_variants_account_model", ["account_id", "model_id"], unique=False)

    op.create_table(
        "product_variant_price_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("variant_id", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Integer(), nullable=False),
        sa.Column("effective_at", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.ForeignKeyConstraint(["variant_id"], ["product_variants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "account_id", "variant_id", "effective_at", name="uq_price_history_account_variant_effective"
        ),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("product_variant_price_history", schema=None) as batch_op:
        batch_op.create_index("ix_product_variant_price_history_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_price_history_variant_effective", ["variant_id", "effective_at"], unique=False)

    op.create_table(
        "promo_codes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("discount_type", sa.String(16), nullable=False, server_default="percent"),
        sa.Column("discount_value", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("blogger_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("note", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.ForeignKeyConstraint(["blogger_id"], ["counterparties.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("account_id", "code", name="uq_promo_codes_account_code"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("promo_codes", schema=None) as batch_op:
        batch_op.create_index("ix_promo_codes_account_id", ["account_id"], unique=False)

    op.create_table(
        "operations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("from_location_id", sa.Integer(), nullable=True),
        sa.Column("to_location_id", sa.Integer(), nullable=True),
        sa.Column("counterparty_id", sa.Integer(), nullable=True),
        sa.Column("promo_code_id", sa.Integer(), nullable=True),
        sa.Column("promo_code_snapshot", sa.String(64), nullable=True),
        sa.Column("discount_type_snapshot", sa.String(16), nullable=True),
        sa.Column("discount_value_snapshot", sa.Integer(), nullable=True),
        sa.Column("sale_channel", sa.String(64), nullable=True),
        sa.Column("city", sa.String(128), nullable=True),
        sa.Column("delivery_cost", sa.Integer(), nullable=True),
        sa.Column("delivery_service", sa.String(128), nullable=True),
        sa.Column("tracking_number", sa.String(128), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.ForeignKeyConstraint(["from_location_id"], ["locations.id"]),
        sa.ForeignKeyConstraint(["to_location_id"], ["locations.id"]),
        sa.ForeignKeyConstraint(["counterparty_id"], ["counterparties.id"]),
        sa.ForeignKeyConstraint(["promo_code_id"], ["promo_codes.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("operations", schema=None) as batch_op:
        batch_op.create_index("ix_operations_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_operations_account_occurred", ["account_id", "occurred_at"], unique=False)
        batch_op.create_index("ix_operations_account_type", ["account_id", "type"], unique=False)

    op.create_table(
        "operation_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("operation_id", sa.Integer(), nullable=False),
        sa.Column("variant_id", sa.Integer(), nullable=False),
        sa.Column("qty", sa.Integer(), nullable=False),
        sa.Column("unit_price_snapshot", sa.Integer(), nullable=True),
        sa.Column("unit_cost_snapshot", sa.Integer(), nullable=True),
        sa.Column("line_note", sa.Text(), nullable=True),
        sa.Column("mark_codes", sa.JSON(), nullable=True),
        sa.Column("marking_not_handled", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        _created_at(),
        sa.CheckConstraint("qty > 0", name="ck_operation_lines_qty_positive"),
        sa.ForeignKeyConstraint(["operation_id"], ["operations.id"]),
        sa.ForeignKeyConstraint(["variant_id"], ["product_variants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("operation_lines", schema=None) as batch_op:
        batch_op.create_index("ix_operation_lines_operation_id", ["operation_id"], unique=False)
        batch_op.create_index("ix_operation_lines_variant", ["variant_id"], unique=False)

    op.create_table(
        "stock_movements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("operation_id", sa.Integer(), nullable=False),
        sa.Column("operation_line_id", sa.Integer(), nullable=False),
        sa.Column("variant_id", sa.Integer(), nullable=False),
        sa.Column("location_id", sa.Integer(), nullable=False),
        sa.Column("qty_delta", sa.Integer(), nullable=False),
        sa.Column("unit_cost_snapshot", sa.Integer(), nullable=True),
        sa.Column("unit_price_snapshot", sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.ForeignKeyConstraint(["operation_id"], ["operations.id"]),
        sa.ForeignKeyConstraint(["operation_line_id"], ["operation_lines.id"]),
        sa.ForeignKeyConstraint(["variant_id"], ["product_variants.id"]),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("stock_movements", schema=None) as batch_op:
        batch_op.create_index("ix_stock_movements_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_stock_movements_operation_id", ["operation_id"], unique=False)
        batch_op.create_index("ix_stock_movements_operation_line_id", ["operation_line_id"], unique=False)
        batch_op.create_index("ix_stock_movements_account_occurred", ["account_id", "occurred_at"], unique=False)
        batch_op.create_index(
            "ix_stock_movements_variant_location", ["account_id", "variant_id", "location_id"], unique=False
        )

    op.create_table(
        "mark_codes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(255), nullable=False),
        sa.Column("variant_id", sa.Integer(), nullable=True),
        sa.Column("current_location_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="unknown"),
        sa.Column("last_operation_id", sa.Integer(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"]),
        sa.ForeignKeyConstraint(["variant_id"], ["product_variants.id"]),
        sa.ForeignKeyConstraint(["current_location_id"], ["locations.id"]),
        sa.ForeignKeyConstraint(["last_operation_id"], ["operations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("account_id", "code", name="uq_mark_codes_account_code"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("mark_codes", schema=None) as batch_op:
        batch_op.create_index("ix_mark_codes_account_id", ["account_id"], unique=False)
        batch_op.create_index("ix_mark_codes_account_status", ["account_id", "status"], unique=False)
        batch_op.create_index("ix_mark_codes_last_operation", ["last_operation_id"], unique=False)


def downgrade():
    for table in (
        "mark_codes",
        "stock_movements",
        "operation_lines",
        "operations",
        "promo_codes",
        "product_variant_price_history",
        "product_variants",
        "product_models",
        "locations",
        "counterparties",
        "accounts",
    ):
        op.drop_table(table)
