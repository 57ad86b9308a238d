"""create_credit_and_video_tables

Revision ID: 4c1f2a9b7d30
Revises:
Create Date: 2026-02-02 10:15:42.118203

"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "4c1f2a9b7d30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Uuid(), nullable=False, comment="Supabase Auth User ID"),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column("credits_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "credits_balance >= 0", name="ck_credits_balance_non_negative"
        ),
    )

    op.create_table(
        "credit_packages",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("package_type", sa.String(), nullable=False, server_default="fixed"),
        sa.Column("credits_amount", sa.Integer(), nullable=True),
        sa.Column("price_mxn", sa.Numeric(10, 2), nullable=True),
        sa.Column("price_per_credit", sa.Numeric(10, 2), nullable=True),
        sa.Column("min_credits", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "credit_purchases",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("package_id", sa.Uuid(), nullable=True),
        sa.Column("package_name", sa.String(), nullable=True),
        sa.Column("credits_amount", sa.Integer(), nullable=False),
        sa.Column("price_paid", sa.Numeric(10, 2), nullable=True),
        sa.Column(
            "payment_method", sa.String(), nullable=False, server_default="mercadopago"
        ),
        sa.Column(
            "payment_status", sa.String(), nullable=False, server_default="pending"
        ),
        sa.Column("payment_id", sa.String(), nullable=True),
        sa.Column("preference_id", sa.String(), nullable=True),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["user_id"], ["user_profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["package_id"], ["credit_packages.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_credit_purchases_user_status",
        "credit_purchases",
        ["user_id", "payment_status"],
    )
    op.create_index(
        "ix_credit_purchases_preference_id", "credit_purchases", ["preference_id"]
    )

    op.create_table(
        "video_generations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("translated_prompt", sa.Text(), nullable=True),
        sa.Column("input_image_base64", sa.Text(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("credits_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("vidu_task_id", sa.String(), nullable=True),
        sa.Column("vidu_creation_id", sa.String(), nullable=True),
        sa.Column("video_url", sa.String(), nullable=True),
        sa.Column("cover_url", sa.String(), nullable=True),
        sa.Column("video_duration_actual", sa.Float(), nullable=True),
        sa.Column("video_fps", sa.Integer(), nullable=True),
        sa.Column("vidu_full_response", sa.JSON(), nullable=True),
        sa.Column("error_code", sa.String(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_retries", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["user_profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_video_generations_user_id", "video_generations", ["user_id"]
    )
    op.create_index(
        "ix_video_generations_vidu_task_id", "video_generations", ["vidu_task_id"]
    )

    op.create_table(
        "credit_transactions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("transaction_type", sa.String(), nullable=False),
        sa.Column("purchase_id", sa.Uuid(), nullable=True),
        sa.Column("video_id", sa.Uuid(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["user_id"], ["user_profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["purchase_id"], ["credit_purchases.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["video_id"], ["video_generations.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_credit_transactions_user_id", "credit_transactions", ["user_id"]
    )
    op.create_index(
        "ix_credit_transactions_video_id", "credit_transactions", ["video_id"]
    )

    op.create_table(
        "mercadopago_webhook_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("payment_id", sa.String(100), nullable=True),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("signature", sa.String(500), nullable=True),
        sa.Column("is_valid", sa.Boolean(), nullable=False),
        sa.Column("error_message", sa.String(1000), nullable=True),
        sa.Column("processed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("received_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("mercadopago_webhook_logs")
    op.drop_index("ix_credit_transactions_video_id", table_name="credit_transactions")
    op.drop_index("ix_credit_transactions_user_id", table_name="credit_transactions")
    op.drop_table("credit_transactions")
    op.drop_index(
        "ix_video_generations_vidu_task_id", table_name="video_generations"
    )
    op.drop_index("ix_video_generations_user_id", table_name="video_generations")
    op.drop_table("video_generations")
    op.drop_index("ix_credit_purchases_preference_id", table_name="credit_purchases")
    op.drop_index("ix_credit_purchases_user_status", table_name="credit_purchases")
    op.drop_table("credit_purchases")
    op.drop_table("credit_packages")
    op.drop_table("user_profiles")
