"""Initial sales engine schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False)


def upgrade():
    op.create_table(
        "branches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("code", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sa.UniqueConstraint("code"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "role_permissions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("permission_code", sa.String(64), nullable=False),
        sa.Column("granted_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("role_id", "permission_code", name="uq_role_permissions"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("role_permissions", schema=None) as batch_op:
        batch_op.create_index("ix_role_permissions_role_id", ["role_id"], unique=False)
        batch_op.create_index("ix_role_permissions_permission_code", ["permission_code"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("full_name", sa.String(128), nullable=True),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("role_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _created_at(),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index("ix_users_username", ["username"], unique=True)
        batch_op.create_index("ix_users_branch_id", ["branch_id"], unique=False)
        batch_op.create_index("ix_users_role_id", ["role_id"], unique=False)

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(255), nullable=False),
        _created_at(),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("session_tokens", schema=None) as batch_op:
        batch_op.create_index("ix_session_tokens_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_session_tokens_token_hash", ["token_hash"], unique=True)
        batch_op.create_index("ix_session_tokens_expires_at", ["expires_at"], unique=False)
        batch_op.create_index("ix_session_tokens_is_revoked", ["is_revoked"], unique=False)
        batch_op.create_index("ix_session_tokens_user_active", ["user_id", "is_revoked"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(64), nullable=True),
        sa.Column("type", sa.String(32), nullable=False, server_default="standard"),
        sa.Column("manage_stock", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("sale_price", sa.Numeric(15, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("unit", sa.String(16), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _created_at(),
        sa.CheckConstraint("sale_price >= 0", name="ck_products_sale_price_nonneg"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_sku", ["sku"], unique=True)

    op.create_table(
        "product_branches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "branch_id", name="uq_product_branches"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("product_branches", schema=None) as batch_op:
        batch_op.create_index("ix_product_branches_product_id", ["product_id"], unique=False)
        batch_op.create_index("ix_product_branches_branch_id", ["branch_id"], unique=False)

    op.create_table(
        "recipes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("virtual_product_id", sa.Integer(), nullable=False),
        sa.Column("raw_product_id", sa.Integer(), nullable=False),
        sa.Column("conversion_factor", sa.Numeric(15, 3), nullable=False),
        _created_at(),
        sa.CheckConstraint("conversion_factor > 0", name="ck_recipes_factor_positive"),
        sa.ForeignKeyConstraint(["virtual_product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["raw_product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("virtual_product_id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("recipes", schema=None) as batch_op:
        batch_op.create_index("ix_recipes_raw_product_id", ["raw_product_id"], unique=False)

    op.create_table(
        "inventory_batches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("batch_identifier", sa.String(64), nullable=True),
        sa.Column("initial_quantity", sa.Numeric(15, 3), nullable=False),
        sa.Column("remaining_quantity", sa.Numeric(15, 3), nullable=False),
        sa.Column("unit_cost", sa.Numeric(15, 2), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="in_stock"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("remaining_quantity >= 0", name="ck_batches_remaining_nonneg"),
        sa.CheckConstraint("remaining_quantity <= initial_quantity", name="ck_batches_remaining_le_initial"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("inventory_batches", schema=None) as batch_op:
        batch_op.create_index("ix_inventory_batches_product_id", ["product_id"], unique=False)
        batch_op.create_index("ix_inventory_batches_branch_id", ["branch_id"], unique=False)
        batch_op.create_index("ix_inventory_batches_status", ["status"], unique=False)
        batch_op.create_index("ix_batches_fifo", ["product_id", "branch_id", "status", "created_at"], unique=False)

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("ledger_balance", sa.Numeric(15, 2), nullable=False, server_default=sa.text("0")),
        _created_at(),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("customers", schema=None) as batch_op:
        batch_op.create_index("ix_customers_branch_id", ["branch_id"], unique=False)

    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("ledger_balance", sa.Numeric(15, 2), nullable=False, server_default=sa.text("0")),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "agents",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        _created_at(),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("agents", schema=None) as batch_op:
        batch_op.create_index("ix_agents_branch_id", ["branch_id"], unique=False)

    op.create_table(
        "sales_orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("invoice_number", sa.String(64), nullable=False),
        sa.Column("order_type", sa.String(16), nullable=False, server_default="invoice"),
        sa.Column("payment_status", sa.String(16), nullable=False, server_default="unpaid"),
        sa.Column("production_status", sa.String(32), nullable=False, server_default="na"),
        sa.Column("discount_status", sa.String(16), nullable=False, server_default="approved"),
        sa.Column("total_amount", sa.Numeric(15, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total_discount", sa.Numeric(15, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("agent_id", sa.Integer(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("valid_until", sa.Date(), nullable=True),
        sa.Column("quotation_notes", sa.Text(), nullable=True),
        sa.Column("worker_name", sa.String(128), nullable=True),
        sa.Column("produced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("dispatcher_name", sa.String(128), nullable=True),
        sa.Column("vehicle_plate", sa.String(32), nullable=True),
        sa.Column("delivery_signature", sa.Text(), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("manufacturing_rejection_reason", sa.Text(), nullable=True),
        sa.Column("discount_decided_by", sa.Integer(), nullable=True),
        sa.Column("discount_decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("discount_declined_reason", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["agent_id"], ["agents.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["discount_decided_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sales_orders", schema=None) as batch_op:
        batch_op.create_index("ix_sales_orders_invoice_number", ["invoice_number"], unique=True)
        batch_op.create_index("ix_sales_orders_order_type", ["order_type"], unique=False)
        batch_op.create_index("ix_sales_orders_payment_status", ["payment_status"], unique=False)
        batch_op.create_index("ix_sales_orders_discount_status", ["discount_status"], unique=False)
        batch_op.create_index("ix_sales_orders_branch_id", ["branch_id"], unique=False)
        batch_op.create_index("ix_sales_orders_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_sales_orders_agent_id", ["agent_id"], unique=False)
        batch_op.create_index("ix_sales_orders_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_sales_orders_branch_type_created", ["branch_id", "order_type", "created_at"], unique=False)
        batch_op.create_index("ix_sales_orders_production", ["production_status", "created_at"], unique=False)

    op.create_table(
        "sales_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sales_order_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Numeric(15, 3), nullable=False),
        sa.Column("unit_price", sa.Numeric(15, 2), nullable=False),
        sa.Column("subtotal", sa.Numeric(15, 2), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_sales_items_qty_positive"),
        sa.ForeignKeyConstraint(["sales_order_id"], ["sales_orders.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sales_items", schema=None) as batch_op:
        batch_op.create_index("ix_sales_items_sales_order_id", ["sales_order_id"], unique=False)
        batch_op.create_index("ix_sales_items_product_id", ["product_id"], unique=False)

    op.create_table(
        "item_assignments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sales_item_id", sa.Integer(), nullable=False),
        sa.Column("inventory_batch_id", sa.Integer(), nullable=False),
        sa.Column("quantity_deducted", sa.Numeric(15, 3), nullable=False),
        _created_at(),
        sa.CheckConstraint("quantity_deducted > 0", name="ck_assignments_qty_positive"),
        sa.ForeignKeyConstraint(["sales_item_id"], ["sales_items.id"]),
        sa.ForeignKeyConstraint(["inventory_batch_id"], ["inventory_batches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("item_assignments", schema=None) as batch_op:
        batch_op.create_index("ix_item_assignments_sales_item_id", ["sales_item_id"], unique=False)
        batch_op.create_index("ix_item_assignments_inventory_batch_id", ["inventory_batch_id"], unique=False)

    op.create_table(
        "agent_commissions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("agent_id", sa.Integer(), nullable=False),
        sa.Column("sales_order_id", sa.Integer(), nullable=False),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("commission_amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        _created_at(),
        sa.ForeignKeyConstraint(["agent_id"], ["agents.id"]),
        sa.ForeignKeyConstraint(["sales_order_id"], ["sales_orders.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sales_order_id", name="uq_agent_commissions_order"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("agent_commissions", schema=None) as batch_op:
        batch_op.create_index("ix_agent_commissions_agent_id", ["agent_id"], unique=False)

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("party_type", sa.String(16), nullable=False),
        sa.Column("party_id", sa.Integer(), nullable=False),
        sa.Column("transaction_type", sa.String(32), nullable=False),
        sa.Column("transaction_id", sa.Integer(), nullable=True),
        sa.Column("debit_amount", sa.Numeric(15, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("credit_amount", sa.Numeric(15, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("running_balance", sa.Numeric(15, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("transaction_date", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        sa.CheckConstraint("debit_amount >= 0 AND credit_amount >= 0", name="ck_ledger_amounts_nonneg"),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("ledger_entries", schema=None) as batch_op:
        batch_op.create_index("ix_ledger_entries_transaction_type", ["transaction_type"], unique=False)
        batch_op.create_index("ix_ledger_entries_branch_id", ["branch_id"], unique=False)
        batch_op.create_index("ix_ledger_party_date", ["party_type", "party_id", "transaction_date"], unique=False)

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("reference_type", sa.String(32), nullable=True),
        sa.Column("reference_id", sa.Integer(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("notifications", schema=None) as batch_op:
        batch_op.create_index("ix_notifications_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_notifications_is_read", ["is_read"], unique=False)
        batch_op.create_index("ix_notifications_reference", ["reference_type", "reference_id"], unique=False)


def downgrade():
    for table in (
        "notifications",
        "ledger_entries",
        "agent_commissions",
        "item_assignments",
        "sales_items",
        "sales_orders",
        "agents",
        "suppliers",
        "customers",
        "inventory_batches",
        "recipes",
        "product_branches",
        "products",
        "session_tokens",
        "users",
        "role_permissions",
        "roles",
        "branches",
    ):
        op.drop_table(table)
