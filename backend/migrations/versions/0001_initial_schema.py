"""Initial schema: accounts, catalog, orders, settings, document sequences

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


NOW = sa.text("(CURRENT_TIMESTAMP)")


def _account_columns():
    return [
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("avatar_public_id", sa.String(255), nullable=True),
        sa.Column("avatar_url", sa.String(512), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("verification_token_hash", sa.String(64), nullable=True),
        sa.Column("verification_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reset_token_hash", sa.String(64), nullable=True),
        sa.Column("reset_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("date_joined", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _account_indexes(batch_op, table: str):
    batch_op.create_index(f"ix_{table}_email", ["email"], unique=True)
    batch_op.create_index(f"ix_{table}_verification_token_hash", ["verification_token_hash"], unique=False)
    batch_op.create_index(f"ix_{table}_reset_token_hash", ["reset_token_hash"], unique=False)


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("fullname", sa.String(128), nullable=True),
        sa.Column("phone_number", sa.String(32), nullable=True),
        sa.Column("role", sa.String(16), nullable=False, server_default="staff"),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        *_account_columns(),
        sa.CheckConstraint("role IN ('admin', 'manager', 'staff')", name="ck_users_role"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        _account_indexes(batch_op, "users")
        batch_op.create_index("ix_users_username", ["username"], unique=True)
        batch_op.create_index("ix_users_status", ["status"], unique=False)

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("fullname", sa.String(128), nullable=False),
        sa.Column("phone_number", sa.String(32), nullable=False),
        sa.Column("shipping_address", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        *_account_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("phone_number"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("customers", schema=None) as batch_op:
        _account_indexes(batch_op, "customers")
        batch_op.create_index("ix_customers_status", ["status"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(1000), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column("discount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("discounted_price_cents", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("variants", sa.JSON(), nullable=False),
        sa.Column("published", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ratings_average", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("ratings_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        sa.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        sa.CheckConstraint("discount >= 0 AND discount <= 100", name="ck_products_discount_range"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_sku", ["sku"], unique=True)
        batch_op.create_index("ix_products_discounted_price_cents", ["discounted_price_cents"], unique=False)
        batch_op.create_index("ix_products_category_published", ["category", "published"], unique=False)

    op.create_table(
        "product_reviews",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_product_reviews_rating"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "customer_id", name="uq_product_reviews_customer"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("product_reviews", schema=None) as batch_op:
        batch_op.create_index("ix_product_reviews_product_id", ["product_id"], unique=False)
        batch_op.create_index("ix_product_reviews_customer_id", ["customer_id"], unique=False)

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("invoice_number", sa.String(64), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False),
        sa.Column("shipping_address", sa.JSON(), nullable=False),
        sa.Column("tracking_number", sa.String(128), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(16), nullable=False),
        sa.Column("payment_status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("refund_amount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("refund_status", sa.String(16), nullable=True),
        sa.Column("refund_reason", sa.String(500), nullable=True),
        sa.Column("stock_reversed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ordered_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("invoice_number"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index("ix_orders_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_orders_customer_ordered", ["customer_id", "ordered_at"], unique=False)
        batch_op.create_index("ix_orders_status", ["status"], unique=False)
        batch_op.create_index("ix_orders_payment_status", ["payment_status"], unique=False)

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("variant", sa.String(128), nullable=True),
        sa.Column("line_total_cents", sa.Integer(), nullable=False),
        sa.CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("order_items", schema=None) as batch_op:
        batch_op.create_index("ix_order_items_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_order_items_product_id", ["product_id"], unique=False)

    op.create_table(
        "store_settings",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("store_name", sa.String(50), nullable=False),
        sa.Column("store_email", sa.String(255), nullable=False),
        sa.Column("store_contact", sa.String(32), nullable=False),
        sa.Column("store_address", sa.JSON(), nullable=False),
        sa.Column("images_per_product", sa.Integer(), nullable=False, server_default=sa.text("5")),
        sa.Column("default_language", sa.String(8), nullable=False, server_default="en"),
        sa.Column("default_date_format", sa.String(16), nullable=False, server_default="dd/mm/yyyy"),
        sa.Column("default_timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("default_currency", sa.String(3), nullable=False, server_default="NGN"),
        sa.Column("tax_enabled", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("tax_rate", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("stripe_enabled", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("stripe_publishable_key", sa.String(255), nullable=True),
        sa.Column("stripe_secret_key", sa.String(255), nullable=True),
        sa.Column("shipping_flat_rate_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("free_shipping_threshold_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("shipping_regions", sa.JSON(), nullable=False),
        sa.Column("enable_newsletter", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("allow_auto_translation", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("social_links", sa.JSON(), nullable=False),
        sa.Column("two_factor_enabled", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("session_timeout_minutes", sa.Integer(), nullable=False, server_default=sa.text("30")),
        sa.Column("maintenance_enabled", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("maintenance_message", sa.String(500), nullable=True),
        sa.Column("seo_meta_title", sa.String(60), nullable=True),
        sa.Column("seo_meta_description", sa.String(160), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.CheckConstraint("id = 1", name="ck_store_settings_singleton"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("document_type", name="uq_doc_sequences_type"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("document_sequences", schema=None) as batch_op:
        batch_op.create_index("ix_document_sequences_document_type", ["document_type"], unique=False)


def downgrade():
    op.drop_table("document_sequences")
    op.drop_table("store_settings")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("product_reviews")
    op.drop_table("products")
    op.drop_table("customers")
    op.drop_table("users")
