"""create import tables

Revision ID: 4a7c1e9d2b30
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4a7c1e9d2b30"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column(
            "created_by",
            sa.String(length=255),
            nullable=False,
            server_default=sa.text("'system@local'"),
        ),
        sa.Column(
            "updated_by",
            sa.String(length=255),
            nullable=False,
            server_default=sa.text("'system@local'"),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=150), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_roles_name"),
    )
    op.create_table(
        "user_roles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),
    )
    op.create_index("ix_user_roles_user_role", "user_roles", ["user_id", "role_id"], unique=False)

    op.create_table(
        "location",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("location_code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("location_type", sa.String(length=20), nullable=False),
        sa.Column("address", sa.String(length=300), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=50), nullable=True),
        sa.Column("postal_code", sa.String(length=20), nullable=True),
        sa.Column("country", sa.String(length=50), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_location_location_code", "location", ["location_code"], unique=True)

    op.create_table(
        "customer",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("company_name", sa.String(length=200), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("credit_limit", sa.Numeric(15, 2), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customer_code", "customer", ["code"], unique=True)
    op.create_table(
        "customer_contact",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("email", sa.String(length=200), nullable=True),
        sa.ForeignKeyConstraint(["customer_id"], ["customer.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customer_contact_customer_id", "customer_contact", ["customer_id"], unique=False)

    op.create_table(
        "carrier",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("carrier_code", sa.String(length=50), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("carrier_code"),
    )
    op.create_table(
        "driver",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("driver_code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_driver_driver_code", "driver", ["driver_code"], unique=True)

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_number", sa.String(length=30), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("operation_mode", sa.String(length=20), nullable=False),
        sa.Column("delivery_location_id", sa.Integer(), nullable=False),
        sa.Column("port_location_id", sa.Integer(), nullable=True),
        sa.Column("carrier_id", sa.Integer(), nullable=True),
        sa.Column("total_amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("container_type", sa.String(length=10), nullable=True),
        sa.Column("mbl_number", sa.String(length=100), nullable=True),
        sa.Column("do_issued", sa.Boolean(), nullable=False),
        sa.Column("eta_date", sa.Date(), nullable=True),
        sa.Column("lfd_date", sa.Date(), nullable=True),
        sa.Column("pickup_date", sa.DateTime(), nullable=True),
        sa.Column("ready_date", sa.Date(), nullable=True),
        sa.Column("return_deadline", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["customer_id"], ["customer.id"]),
        sa.ForeignKeyConstraint(["delivery_location_id"], ["location.id"]),
        sa.ForeignKeyConstraint(["port_location_id"], ["location.id"]),
        sa.ForeignKeyConstraint(["carrier_id"], ["carrier.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_orders_order_number", "orders", ["order_number"], unique=True)

    op.create_table(
        "order_detail",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("delivery_location_id", sa.Integer(), nullable=False),
        sa.Column("delivery_nature", sa.String(length=20), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("volume", sa.Numeric(15, 3), nullable=False),
        sa.Column("estimated_pallets", sa.Integer(), nullable=True),
        sa.Column("remaining_pallets", sa.Integer(), nullable=True),
        sa.Column("fba", sa.String(length=200), nullable=True),
        sa.Column("po", sa.String(length=1000), nullable=True),
        sa.Column("window_period", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["delivery_location_id"], ["location.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "order_id",
            "delivery_location_id",
            "delivery_nature",
            name="uq_order_detail_location_nature",
        ),
    )
    op.create_index("ix_order_detail_order_id", "order_detail", ["order_id"], unique=False)

    op.create_table(
        "inventory_lot",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_detail_id", sa.Integer(), nullable=False),
        sa.Column("pallet_count", sa.Integer(), nullable=False),
        sa.Column("unbooked_pallet_count", sa.Integer(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["order_detail_id"], ["order_detail.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_detail_id"),
    )
    op.create_table(
        "inbound_receipt",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("planned_unload_at", sa.Date(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id"),
    )
    op.create_table(
        "pickup_management",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("port_text", sa.String(length=200), nullable=True),
        sa.Column("shipping_line", sa.String(length=100), nullable=True),
        sa.Column("driver_id", sa.Integer(), nullable=True),
        sa.Column("current_location", sa.String(length=200), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["driver_id"], ["driver.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id"),
    )

    op.create_table(
        "delivery_appointment",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("reference_number", sa.String(length=100), nullable=False),
        sa.Column("delivery_method", sa.String(length=30), nullable=False),
        sa.Column("appointment_account", sa.String(length=30), nullable=True),
        sa.Column("appointment_type", sa.String(length=20), nullable=False),
        sa.Column("origin_location_id", sa.Integer(), nullable=True),
        sa.Column("location_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("requested_start", sa.DateTime(), nullable=True),
        sa.Column("confirmed_start", sa.DateTime(), nullable=True),
        sa.Column("rejected", sa.Boolean(), nullable=False),
        sa.Column("po", sa.String(length=1000), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["origin_location_id"], ["location.id"]),
        sa.ForeignKeyConstraint(["location_id"], ["location.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_delivery_appointment_reference_number",
        "delivery_appointment",
        ["reference_number"],
        unique=True,
    )
    op.create_table(
        "appointment_detail_line",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("appointment_id", sa.Integer(), nullable=False),
        sa.Column("order_detail_id", sa.Integer(), nullable=False),
        sa.Column("estimated_pallets", sa.Integer(), nullable=False),
        sa.Column("total_pallets_at_time", sa.Integer(), nullable=True),
        sa.Column("accounting_mode", sa.String(length=10), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["appointment_id"], ["delivery_appointment.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["order_detail_id"], ["order_detail.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_appointment_detail_line_appointment_id",
        "appointment_detail_line",
        ["appointment_id"],
        unique=False,
    )
    op.create_index(
        "ix_appointment_detail_line_order_detail_id",
        "appointment_detail_line",
        ["order_detail_id"],
        unique=False,
    )
    op.create_table(
        "outbound_shipment",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("appointment_id", sa.Integer(), nullable=False),
        sa.Column("warehouse_location_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["appointment_id"], ["delivery_appointment.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["warehouse_location_id"], ["location.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("appointment_id"),
    )
    op.create_table(
        "delivery_management",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("appointment_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["appointment_id"], ["delivery_appointment.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("appointment_id"),
    )


def downgrade() -> None:
    op.drop_table("delivery_management")
    op.drop_table("outbound_shipment")
    op.drop_index("ix_appointment_detail_line_order_detail_id", table_name="appointment_detail_line")
    op.drop_index("ix_appointment_detail_line_appointment_id", table_name="appointment_detail_line")
    op.drop_table("appointment_detail_line")
    op.drop_index("ix_delivery_appointment_reference_number", table_name="delivery_appointment")
    op.drop_table("delivery_appointment")
    op.drop_table("pickup_management")
    op.drop_table("inbound_receipt")
    op.drop_table("inventory_lot")
    op.drop_index("ix_order_detail_order_id", table_name="order_detail")
    op.drop_table("order_detail")
    op.drop_index("ix_orders_order_number", table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_driver_driver_code", table_name="driver")
    op.drop_table("driver")
    op.drop_table("carrier")
    op.drop_index("ix_customer_contact_customer_id", table_name="customer_contact")
    op.drop_table("customer_contact")
    op.drop_index("ix_customer_code", table_name="customer")
    op.drop_table("customer")
    op.drop_index("ix_location_location_code", table_name="location")
    op.drop_table("location")
    op.drop_index("ix_user_roles_user_role", table_name="user_roles")
    op.drop_table("user_roles")
    op.drop_table("roles")
    op.drop_table("users")
