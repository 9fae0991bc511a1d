"""initial

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
        "vehicles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("brand", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("model", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("year", sa.Integer(), nullable=False, server_default="2020"),
        sa.Column("category", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("transmission", sa.String(length=20), nullable=False, server_default="Manuelle"),
        sa.Column("fuel", sa.String(length=20), nullable=False, server_default="Essence"),
        sa.Column("seats", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("price_per_day", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("image", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="available"),
        sa.Column("license_plate", sa.String(length=30), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_vehicles_status", "vehicles", ["status"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("booking_reference", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("departure_date", sa.String(length=16), nullable=False),
        sa.Column("return_date", sa.String(length=16), nullable=False),
        sa.Column("rental_days", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("pickup_location", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("custom_pickup_location", sa.String(length=200), nullable=True),
        sa.Column("return_location", sa.String(length=200), nullable=True),
        sa.Column("different_return_location", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("vehicle_id", sa.Integer(), nullable=False),
        sa.Column("vehicle_name", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("vehicle_brand", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("vehicle_model", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("vehicle_category", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("vehicle_price_per_day", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("supplements", sa.JSON(), nullable=True),
        sa.Column("additional_driver", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("first_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("country", sa.String(length=80), nullable=False, server_default=""),
        sa.Column("city", sa.String(length=80), nullable=False, server_default=""),
        sa.Column("address", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("license_number", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("license_issue_date", sa.Date(), nullable=True),
        sa.Column("license_expiration_date", sa.Date(), nullable=True),
        sa.Column("extra_information", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("payment_method", sa.String(length=12), nullable=False, server_default="cash"),
        sa.Column("vehicle_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("supplements_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("user_agent", sa.String(length=400), nullable=True),
        sa.Column("locale", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_bookings_booking_reference", "bookings", ["booking_reference"], unique=True)
    op.create_index("ix_bookings_vehicle_id", "bookings", ["vehicle_id"])
    op.create_index("ix_bookings_email", "bookings", ["email"])

    op.create_table(
        "admin_bookings",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("booking_reference", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("source", sa.String(length=12), nullable=False, server_default="web"),
        sa.Column("departure_date", sa.Date(), nullable=False),
        sa.Column("return_date", sa.Date(), nullable=False),
        sa.Column("pickup_time", sa.String(length=5), nullable=True),
        sa.Column("return_time", sa.String(length=5), nullable=True),
        sa.Column("rental_days", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("pickup_location", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("vehicle_id", sa.Integer(), nullable=False),
        sa.Column("vehicle_name", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("assigned_vehicle_id", sa.Integer(), nullable=True),
        sa.Column("client_name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("client_phone", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("client_email", sa.String(length=320), nullable=True),
        sa.Column("total_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_admin_bookings_booking_reference", "admin_bookings", ["booking_reference"])
    op.create_index("ix_admin_bookings_status", "admin_bookings", ["status"])
    op.create_index("ix_admin_bookings_departure_date", "admin_bookings", ["departure_date"])
    op.create_index("ix_admin_bookings_return_date", "admin_bookings", ["return_date"])
    op.create_index("ix_admin_bookings_vehicle_id", "admin_bookings", ["vehicle_id"])
    op.create_index("ix_admin_bookings_assigned_vehicle_id", "admin_bookings", ["assigned_vehicle_id"])

    op.create_table(
        "email_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("kind", sa.String(length=30), nullable=False, server_default="generic"),
        sa.Column("to_email", sa.String(length=320), nullable=False),
        sa.Column("subject", sa.String(length=200), nullable=False),
        sa.Column("body_html", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="queued"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.String(length=500), nullable=True),
        sa.Column("booking_reference", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_email_logs_kind", "email_logs", ["kind"])
    op.create_index("ix_email_logs_to_email", "email_logs", ["to_email"])
    op.create_index("ix_email_logs_status", "email_logs", ["status"])
    op.create_index("ix_email_logs_booking_reference", "email_logs", ["booking_reference"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("actor", sa.String(length=80), nullable=False),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=40), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("details_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_logs_actor", "audit_logs", ["actor"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_entity_type", "audit_logs", ["entity_type"])
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"])

    op.create_table(
        "settings",
        sa.Column("key", sa.String(length=80), primary_key=True),
        sa.Column("int_value", sa.Integer(), nullable=True),
        sa.Column("str_value", sa.String(length=255), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("settings")
    op.drop_table("audit_logs")
    op.drop_table("email_logs")
    op.drop_table("admin_bookings")
    op.drop_table("bookings")
    op.drop_table("vehicles")
