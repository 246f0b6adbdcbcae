"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(14, 2)


def upgrade():
    op.create_table(
        "app_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("full_name", sa.String(length=160), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="owner"),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("specialty_type", sa.String(length=80), nullable=True),
        sa.Column("license_number", sa.String(length=80), nullable=True),
        sa.Column("payment_customer_id", sa.String(length=120), nullable=True),
        sa.Column("payment_subscription_id", sa.String(length=120), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_app_users_email", "app_users", ["email"], unique=True)
    op.create_index("ix_app_users_payment_customer_id", "app_users", ["payment_customer_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.String(length=80), nullable=False),
        sa.Column("before_json", sa.Text(), nullable=True),
        sa.Column("after_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_events_actor_user_id", "audit_events", ["actor_user_id"])

    op.create_table(
        "properties",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=120), nullable=False),
        sa.Column("state", sa.String(length=60), nullable=False),
        sa.Column("zip_code", sa.String(length=12), nullable=False),
        sa.Column("property_type", sa.String(length=30), nullable=False, server_default="single_family"),
        sa.Column("bedrooms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bathrooms", sa.Float(), nullable=False, server_default="0"),
        sa.Column("square_feet", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("year_built", sa.Integer(), nullable=True),
        sa.Column("lot_size", sa.Float(), nullable=False, server_default="0"),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("purchase_price", MONEY, nullable=False, server_default="0"),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("current_value", MONEY, nullable=False, server_default="0"),
        sa.Column("last_valuation_date", sa.DateTime(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
    )
    op.create_index("ix_properties_user_id", "properties", ["user_id"])

    op.create_table(
        "maintenance_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tradesperson_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=30), nullable=False),
        sa.Column("cost", MONEY, nullable=False),
        sa.Column("completion_date", sa.Date(), nullable=False),
        sa.Column("contractor", sa.JSON(), nullable=True),
        sa.Column("warranty", sa.JSON(), nullable=True),
        sa.Column("receipt_urls", sa.JSON(), nullable=False),
        sa.Column("image_urls", sa.JSON(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="completed"),
        sa.Column("priority", sa.String(length=20), nullable=False, server_default="medium"),
        sa.Column("estimated_value_added", MONEY, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_maintenance_records_property_id", "maintenance_records", ["property_id"])
    op.create_index("ix_maintenance_records_tradesperson_id", "maintenance_records", ["tradesperson_id"])

    op.create_table(
        "valuations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("value", MONEY, nullable=False),
        sa.Column("method", sa.String(length=20), nullable=False, server_default="automated"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("valuation_date", sa.DateTime(), nullable=False),
        sa.Column("maintenance_impact", MONEY, nullable=True),
        sa.Column(
            "maintenance_record_id",
            sa.Integer(),
            sa.ForeignKey("maintenance_records.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_valuations_property_id", "valuations", ["property_id"])
    op.create_index("ix_valuations_property_date", "valuations", ["property_id", "valuation_date"])

    op.create_table(
        "subscription_plans",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=40), nullable=False),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("base_price", MONEY, nullable=False),
        sa.Column("price_per_property", MONEY, nullable=False),
        sa.Column("max_properties", sa.Integer(), nullable=True),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("billing_cycle", sa.String(length=20), nullable=False, server_default="monthly"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("name", name="uq_subscription_plans_name"),
    )
    op.create_index("ix_subscription_plans_code", "subscription_plans", ["code"], unique=True)

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column("plan_id", sa.Integer(), sa.ForeignKey("subscription_plans.id"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("property_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_price", MONEY, nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        sa.Column("current_period_start", sa.DateTime(), nullable=True),
        sa.Column("current_period_end", sa.DateTime(), nullable=True),
        sa.Column("last_payment_date", sa.DateTime(), nullable=True),
        sa.Column("next_payment_date", sa.DateTime(), nullable=True),
        sa.Column("cancel_at_period_end", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("processor_subscription_id", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", name="uq_subscriptions_user"),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])

    op.create_table(
        "receipts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=False),
        sa.Column(
            "subscription_id",
            sa.Integer(),
            sa.ForeignKey("subscriptions.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("receipt_number", sa.String(length=32), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="usd"),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("receipt_type", sa.String(length=20), nullable=False, server_default="subscription"),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("payment_method", sa.String(length=40), nullable=False, server_default="card"),
        sa.Column("payment_intent_id", sa.String(length=120), nullable=True),
        sa.Column("payment_status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_receipts_user_id", "receipts", ["user_id"])
    op.create_index("ix_receipts_receipt_number", "receipts", ["receipt_number"], unique=True)
    op.create_index("ix_receipts_payment_intent_id", "receipts", ["payment_intent_id"])


def downgrade():
    op.drop_table("receipts")
    op.drop_table("subscriptions")
    op.drop_table("subscription_plans")
    op.drop_table("valuations")
    op.drop_table("maintenance_records")
    op.drop_table("properties")
    op.drop_table("audit_events")
    op.drop_table("app_users")
