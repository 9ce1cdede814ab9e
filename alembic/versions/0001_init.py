"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-12
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _inspector():
    from sqlalchemy import inspect as sa_inspect
    return sa_inspect(op.get_bind())


def upgrade() -> None:
    inspector = _inspector()
    existing_tables = set(inspector.get_table_names())

    def existing_indexes(table: str) -> set[str]:
        if table not in existing_tables:
            return set()
        return {idx["name"] for idx in inspector.get_indexes(table)}

    if "courses" not in existing_tables:
        op.create_table(
            "courses",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("title", sa.String(), nullable=False),
            sa.Column("slug", sa.String(), nullable=True),
            sa.Column("category", sa.String(), nullable=True),
            sa.Column("level", sa.String(), nullable=True),
            sa.Column("price", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("original_price", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("status", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    idxs = existing_indexes("courses")
    if "ix_courses_id" not in idxs:
        op.create_index("ix_courses_id", "courses", ["id"])
    if "ix_courses_slug" not in idxs:
        op.create_index("ix_courses_slug", "courses", ["slug"])
    if "ix_courses_status" not in idxs:
        op.create_index("ix_courses_status", "courses", ["status"])

    if "coupons" not in existing_tables:
        op.create_table(
            "coupons",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("code", sa.String(), nullable=False),
            sa.Column("discount_type", sa.String(), nullable=False),
            sa.Column("value", sa.Integer(), nullable=False),
            sa.Column("valid_from", sa.Date(), nullable=False),
            sa.Column("valid_until", sa.Date(), nullable=False),
            sa.Column("usage_limit", sa.Integer(), nullable=False),
            sa.Column("used_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("status", sa.String(), nullable=False, server_default="active"),
            sa.Column("applicable_courses", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.CheckConstraint("used_count >= 0", name="ck_coupons_used_count_non_negative"),
            sa.CheckConstraint("used_count <= usage_limit", name="ck_coupons_used_count_within_limit"),
            sa.CheckConstraint("valid_from <= valid_until", name="ck_coupons_window_ordered"),
        )
    idxs = existing_indexes("coupons")
    if "ix_coupons_id" not in idxs:
        op.create_index("ix_coupons_id", "coupons", ["id"])
    if "ix_coupons_code" not in idxs:
        op.create_index("ix_coupons_code", "coupons", ["code"], unique=True)
    if "ix_coupons_status" not in idxs:
        op.create_index("ix_coupons_status", "coupons", ["status"])

    if "payments" not in existing_tables:
        op.create_table(
            "payments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("transaction_id", sa.String(), nullable=True),
            sa.Column("course_id", sa.String(), nullable=False),
            sa.Column("student_id", sa.String(), nullable=False),
            sa.Column("amount", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("discount", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("coupon_code", sa.String(), nullable=True),
            sa.Column("coupon_id", sa.String(), nullable=True),
            sa.Column("method", sa.String(), nullable=False, server_default="full"),
            sa.Column("status", sa.String(), nullable=False, server_default="pending"),
            sa.Column("error", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        )
    idxs = existing_indexes("payments")
    if "ix_payments_id" not in idxs:
        op.create_index("ix_payments_id", "payments", ["id"])
    if "ix_payments_transaction_id" not in idxs:
        op.create_index("ix_payments_transaction_id", "payments", ["transaction_id"], unique=True)
    for col in ("course_id", "student_id", "coupon_code", "coupon_id", "status"):
        name = f"ix_payments_{col}"
        if name not in idxs:
            op.create_index(name, "payments", [col])


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("coupons")
    op.drop_table("courses")
