"""initial

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

PRICING_MODEL = sa.Enum("prepaid", "postpaid", name="pricingmodel")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "guardians",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("cpf", sa.String(14), nullable=False),
        sa.Column("address", sa.JSON, nullable=True),
        sa.Column("terms_accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("terms_version", sa.String(32), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_guardians_cpf", "guardians", ["cpf"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("role", sa.Enum("admin", "operator", "guardian", name="userrole"), nullable=False),
        sa.Column("guardian_id", sa.String(36), sa.ForeignKey("guardians.id"), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role_active", "users", ["role", "is_active"], unique=False)

    op.create_table(
        "students",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("guardian_id", sa.String(36), sa.ForeignKey("guardians.id"), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("grade", sa.String(64), nullable=False),
        sa.Column("period", sa.Enum("morning", "afternoon", name="studyperiod"), nullable=False),
        sa.Column("status", sa.Enum("active", "inactive", "blocked", name="studentstatus"), nullable=False),
        sa.Column("pricing_model", PRICING_MODEL, nullable=False),
        sa.Column("observations", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_students_guardian_status", "students", ["guardian_id", "status"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("category", sa.String(64), nullable=True),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )

    op.create_table(
        "wallets",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("student_id", sa.String(36), sa.ForeignKey("students.id"), nullable=False, unique=True),
        sa.Column("balance", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("credit_limit", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("model", PRICING_MODEL, nullable=False),
        sa.Column("allow_negative_once_used", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("blocked", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("blocked_reason", sa.String(255), nullable=True),
        sa.Column("alert_baseline", sa.Numeric(12, 2), nullable=True),
        sa.Column("last_alert_level", sa.Numeric(4, 2), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_wallets_student_id", "wallets", ["student_id"], unique=False)

    op.create_table(
        "orders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("student_id", sa.String(36), sa.ForeignKey("students.id"), nullable=False),
        sa.Column("total", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_by", sa.String(36), nullable=False),
        sa.Column("note", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_orders_student_created", "orders", ["student_id", "created_at"], unique=False)

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("order_id", sa.String(36), sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("product_id", sa.String(36), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"], unique=False)

    op.create_table(
        "wallet_ledger",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("wallet_id", sa.String(36), sa.ForeignKey("wallets.id"), nullable=False),
        sa.Column(
            "kind",
            sa.Enum("purchase", "credit", "debit", "adjustment", "payment", name="ledgerkind"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("balance_after", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("related_order_id", sa.String(36), sa.ForeignKey("orders.id"), nullable=True),
        sa.Column("created_by", sa.String(36), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_wallet_ledger_wallet_id_kind", "wallet_ledger", ["wallet_id", "kind"], unique=False)

    op.create_table(
        "alerts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("student_id", sa.String(36), sa.ForeignKey("students.id"), nullable=False),
        sa.Column("guardian_id", sa.String(36), sa.ForeignKey("guardians.id"), nullable=False),
        sa.Column("type", sa.Enum("balance", "limit", "negative", "block", name="alerttype"), nullable=False),
        sa.Column("level", sa.Numeric(4, 2), nullable=False),
        sa.Column("message", sa.String(500), nullable=False),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_alerts_student_created", "alerts", ["student_id", "created_at"], unique=False)
    op.create_index("ix_alerts_acknowledged", "alerts", ["acknowledged_at"], unique=False)

    op.create_table(
        "pix_charges",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("guardian_id", sa.String(36), sa.ForeignKey("guardians.id"), nullable=False),
        sa.Column("student_id", sa.String(36), sa.ForeignKey("students.id"), nullable=True),
        sa.Column("txid", sa.String(128), nullable=False),
        sa.Column(
            "status",
            sa.Enum("created", "pending", "paid", "failed", "expired", "refunded", name="pixchargestatus"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("br_code", sa.Text, nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("ledger_id", sa.String(36), sa.ForeignKey("wallet_ledger.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_pix_charges_txid", "pix_charges", ["txid"], unique=True)
    op.create_index("ix_pix_charges_guardian_status", "pix_charges", ["guardian_id", "status"], unique=False)

    op.create_table(
        "notification_outbox",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("guardian_id", sa.String(36), sa.ForeignKey("guardians.id"), nullable=False),
        sa.Column("student_id", sa.String(36), sa.ForeignKey("students.id"), nullable=True),
        sa.Column("kind", sa.Enum("purchase", "alert", "weekly_report", name="notificationkind"), nullable=False),
        sa.Column("to_phone", sa.String(32), nullable=False),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("status", sa.Enum("pending", "sent", "failed", name="outboxstatus"), nullable=False),
        sa.Column("attempt_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text, nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_notification_outbox_status_created",
        "notification_outbox",
        ["status", "created_at"],
        unique=False,
    )


def downgrade():
    op.drop_table("notification_outbox")
    op.drop_table("pix_charges")
    op.drop_table("alerts")
    op.drop_table("wallet_ledger")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("wallets")
    op.drop_table("products")
    op.drop_table("students")
    op.drop_table("users")
    op.drop_table("guardians")
    for name in (
        "outboxstatus",
        "notificationkind",
        "pixchargestatus",
        "alerttype",
        "ledgerkind",
        "studentstatus",
        "studyperiod",
        "pricingmodel",
        "userrole",
    ):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
