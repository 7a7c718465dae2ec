"""Create users and categories tables, seed system categories.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None

SYSTEM_CATEGORIES = [
    ("Makan & Minuman", "#f97316", "Utensils", "expense"),
    ("Transportasi", "#3b82f6", "Car", "expense"),
    ("Hiburan", "#a855f7", "Gamepad2", "expense"),
    ("Belanja", "#ec4899", "ShoppingBag", "expense"),
    ("Kesehatan", "#22c55e", "Heart", "expense"),
    ("Pendidikan", "#14b8a6", "BookOpen", "expense"),
    ("Tagihan", "#ef4444", "Receipt", "expense"),
    ("Investasi", "#10b981", "TrendingUp", "expense"),
    ("Gaji", "#3b82f6", "Banknote", "income"),
    ("Freelance", "#8b5cf6", "Briefcase", "income"),
    ("Lainnya", "#64748b", "MoreHorizontal", "expense"),
]


def upgrade() -> None:
    # ── Users ─────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("telegram_chat_id", sa.BigInteger(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("telegram_chat_id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ── Categories ────────────────────────────────────
    categories = op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("color", sa.String(7), server_default="#3b82f6", nullable=False),
        sa.Column("icon", sa.String(50), server_default="Wallet", nullable=False),
        sa.Column("type", sa.String(10), server_default="expense", nullable=False),
        sa.Column("is_system", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("type IN ('expense', 'income')", name="ck_categories_type"),
        sa.UniqueConstraint("user_id", "name", "type", name="uq_categories_owner_name_type"),
    )
    op.create_index("ix_categories_user_id", "categories", ["user_id"])

    op.bulk_insert(
        categories,
        [
            {"name": name, "color": color, "icon": icon, "type": type_, "is_system": True}
            for name, color, icon, type_ in SYSTEM_CATEGORIES
        ],
    )


def downgrade() -> None:
    op.drop_table("categories")
    op.drop_table("users")
