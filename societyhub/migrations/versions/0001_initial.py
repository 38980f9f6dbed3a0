"""Initial SocietyHub schema.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "societies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(op.f("ix_societies_id"), "societies", ["id"], unique=False)
    op.create_index(op.f("ix_societies_name"), "societies", ["name"], unique=True)

    op.create_table(
        "flats",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("society_id", sa.Integer(), sa.ForeignKey("societies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("flat_number", sa.String(), nullable=False),
        sa.Column("owner_user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("society_id", "flat_number", name="uq_flat_society_number"),
    )
    op.create_index(op.f("ix_flats_id"), "flats", ["id"], unique=False)
    op.create_index(op.f("ix_flats_society_id"), "flats", ["society_id"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("society_id", sa.Integer(), sa.ForeignKey("societies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("flat_id", sa.Integer(), sa.ForeignKey("flats.id", ondelete="SET NULL"), nullable=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("role", sa.String(), nullable=False, server_default="RESIDENT"),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("society_id", "email", name="uq_user_society_email"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_society_id"), "users", ["society_id"], unique=False)
    op.create_index(op.f("ix_users_flat_id"), "users", ["flat_id"], unique=False)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=False)

    with op.batch_alter_table("flats") as batch_op:
        batch_op.create_foreign_key(
            "fk_flats_owner_user_id_users",
            "users",
            ["owner_user_id"],
            ["id"],
            ondelete="SET NULL",
        )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("society_id", sa.Integer(), sa.ForeignKey("societies.id", ondelete="CASCADE"), nullable=True),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("target_entity_type", sa.String(), nullable=True),
        sa.Column("target_entity_id", sa.String(), nullable=True),
        sa.Column("before", sa.Text(), nullable=True),
        sa.Column("after", sa.Text(), nullable=True),
    )
    op.create_index(op.f("ix_audit_logs_id"), "audit_logs", ["id"], unique=False)
    op.create_index(op.f("ix_audit_logs_timestamp"), "audit_logs", ["timestamp"], unique=False)
    op.create_index(op.f("ix_audit_logs_society_id"), "audit_logs", ["society_id"], unique=False)

    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("society_id", sa.Integer(), sa.ForeignKey("societies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("flat_id", sa.Integer(), sa.ForeignKey("flats.id", ondelete="SET NULL"), nullable=True),
        sa.Column("number_plate", sa.String(), nullable=False),
        sa.Column("vehicle_type", sa.String(), nullable=False),
        sa.Column("color", sa.String(), nullable=True),
        sa.Column("vehicle_brand", sa.String(), nullable=True),
        sa.Column("vehicle_model", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("society_id", "number_plate", name="uq_vehicle_society_plate"),
    )
    op.create_index(op.f("ix_vehicles_id"), "vehicles", ["id"], unique=False)
    op.create_index(op.f("ix_vehicles_society_id"), "vehicles", ["society_id"], unique=False)
    op.create_index(op.f("ix_vehicles_flat_id"), "vehicles", ["flat_id"], unique=False)
    op.create_index(op.f("ix_vehicles_number_plate"), "vehicles", ["number_plate"], unique=False)

    op.create_table(
        "notices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("society_id", sa.Integer(), sa.ForeignKey("societies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("notice_type", sa.String(), nullable=False, server_default="general"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(op.f("ix_notices_id"), "notices", ["id"], unique=False)
    op.create_index(op.f("ix_notices_society_id"), "notices", ["society_id"], unique=False)
    op.create_index(op.f("ix_notices_created_at"), "notices", ["created_at"], unique=False)

    op.create_table(
        "complaints",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("society_id", sa.Integer(), sa.ForeignKey("societies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("filed_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="open"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("cleared_at", sa.DateTime(), nullable=True),
    )
    op.create_index(op.f("ix_complaints_id"), "complaints", ["id"], unique=False)
    op.create_index(op.f("ix_complaints_society_id"), "complaints", ["society_id"], unique=False)
    op.create_index(op.f("ix_complaints_created_at"), "complaints", ["created_at"], unique=False)

    op.create_table(
        "maintenance_bills",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("society_id", sa.Integer(), sa.ForeignKey("societies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("bill_month", sa.String(), nullable=False),
        sa.Column("bill_year", sa.Integer(), nullable=False),
        sa.Column("default_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(op.f("ix_maintenance_bills_id"), "maintenance_bills", ["id"], unique=False)
    op.create_index(op.f("ix_maintenance_bills_society_id"), "maintenance_bills", ["society_id"], unique=False)
    op.create_index(op.f("ix_maintenance_bills_bill_month"), "maintenance_bills", ["bill_month"], unique=False)
    op.create_index(op.f("ix_maintenance_bills_created_at"), "maintenance_bills", ["created_at"], unique=False)

    op.create_table(
        "flat_bills",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("bill_id", sa.Integer(), sa.ForeignKey("maintenance_bills.id", ondelete="CASCADE"), nullable=False),
        sa.Column("flat_id", sa.Integer(), sa.ForeignKey("flats.id", ondelete="CASCADE"), nullable=False),
        sa.Column("society_id", sa.Integer(), sa.ForeignKey("societies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("flat_number", sa.String(), nullable=False),
        sa.Column("bill_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("adjusted_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("balance_due", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("total_paid", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("bill_id", "flat_id", name="uq_flat_bill_bill_flat"),
    )
    op.create_index(op.f("ix_flat_bills_id"), "flat_bills", ["id"], unique=False)
    op.create_index(op.f("ix_flat_bills_bill_id"), "flat_bills", ["bill_id"], unique=False)
    op.create_index(op.f("ix_flat_bills_flat_id"), "flat_bills", ["flat_id"], unique=False)
    op.create_index(op.f("ix_flat_bills_society_id"), "flat_bills", ["society_id"], unique=False)

    op.create_table(
        "payment_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("flat_bill_id", sa.Integer(), sa.ForeignKey("flat_bills.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("flat_id", sa.Integer(), sa.ForeignKey("flats.id", ondelete="CASCADE"), nullable=False),
        sa.Column("society_id", sa.Integer(), sa.ForeignKey("societies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("flat_number", sa.String(), nullable=False),
        sa.Column("amount_paid", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_method", sa.String(), nullable=False, server_default="cash"),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("transaction_reference", sa.String(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("recorded_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("recorded_at", sa.DateTime(), nullable=False),
    )
    op.create_index(op.f("ix_payment_transactions_id"), "payment_transactions", ["id"], unique=False)
    op.create_index(op.f("ix_payment_transactions_flat_bill_id"), "payment_transactions", ["flat_bill_id"], unique=False)
    op.create_index(op.f("ix_payment_transactions_flat_id"), "payment_transactions", ["flat_id"], unique=False)
    op.create_index(op.f("ix_payment_transactions_society_id"), "payment_transactions", ["society_id"], unique=False)
    op.create_index(op.f("ix_payment_transactions_recorded_at"), "payment_transactions", ["recorded_at"], unique=False)


def downgrade() -> None:
    op.drop_table("payment_transactions")
    op.drop_table("flat_bills")
    op.drop_table("maintenance_bills")
    op.drop_table("complaints")
    op.drop_table("notices")
    op.drop_table("vehicles")
    op.drop_table("audit_logs")
    with op.batch_alter_table("flats") as batch_op:
        batch_op.drop_constraint("fk_flats_owner_user_id_users", type_="foreignkey")
    op.drop_table("users")
    op.drop_table("flats")
    op.drop_table("societies")
