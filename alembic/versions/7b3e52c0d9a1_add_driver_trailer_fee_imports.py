"""add driver details, trailer and fee tables

Revision ID: 7b3e52c0d9a1
Revises: 4a7c1e9d2b30
Create Date: 2026-10-19 10:30:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "7b3e52c0d9a1"
down_revision: Union[str, None] = "4a7c1e9d2b30"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("created_by", sa.String(length=255), nullable=False, server_default=sa.text("'system@local'")),
        sa.Column("updated_by", sa.String(length=255), nullable=False, server_default=sa.text("'system@local'")),
    ]


def upgrade() -> None:
    op.add_column("driver", sa.Column("license_number", sa.String(length=100), nullable=True))
    op.add_column("driver", sa.Column("license_plate", sa.String(length=10), nullable=True))
    op.add_column("driver", sa.Column("license_expiration", sa.Date(), nullable=True))
    op.add_column("driver", sa.Column("carrier_id", sa.Integer(), nullable=True))
    op.add_column("driver", sa.Column("contact_name", sa.String(length=100), nullable=True))
    op.add_column("driver", sa.Column("contact_phone", sa.String(length=50), nullable=True))
    op.add_column("driver", sa.Column("contact_email", sa.String(length=200), nullable=True))
    op.add_column(
        "driver",
        sa.Column("status", sa.String(length=20), nullable=False, server_default=sa.text("'active'")),
    )
    op.add_column("driver", sa.Column("notes", sa.Text(), nullable=True))
    for column in _audit_columns():
        op.add_column("driver", column)
    op.create_foreign_key("fk_driver_carrier_id", "driver", "carrier", ["carrier_id"], ["id"])
    op.create_index("ix_driver_carrier_id", "driver", ["carrier_id"], unique=False)

    op.create_table(
        "trailer",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("trailer_code", sa.String(length=50), nullable=False),
        sa.Column("trailer_type", sa.String(length=50), nullable=False),
        sa.Column("length_feet", sa.Numeric(10, 2), nullable=True),
        sa.Column("capacity_weight", sa.Numeric(12, 2), nullable=True),
        sa.Column("capacity_volume", sa.Numeric(12, 2), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_trailer_trailer_code", "trailer", ["trailer_code"], unique=True)

    op.create_table(
        "fee",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("fee_code", sa.String(length=50), nullable=False),
        sa.Column("fee_name", sa.String(length=100), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=True),
        sa.Column("unit_price", sa.Numeric(15, 2), nullable=False),
        sa.Column("currency", sa.String(length=10), nullable=False),
        sa.Column("scope_type", sa.String(length=20), nullable=False),
        sa.Column("container_type", sa.String(length=50), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_fee_fee_code", "fee", ["fee_code"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_fee_fee_code", table_name="fee")
    op.drop_table("fee")
    op.drop_index("ix_trailer_trailer_code", table_name="trailer")
    op.drop_table("trailer")
    op.drop_index("ix_driver_carrier_id", table_name="driver")
    op.drop_constraint("fk_driver_carrier_id", "driver", type_="foreignkey")
    for name in (
        "updated_by",
        "created_by",
        "updated_at",
        "created_at",
        "notes",
        "status",
        "contact_email",
        "contact_phone",
        "contact_name",
        "carrier_id",
        "license_expiration",
        "license_plate",
        "license_number",
    ):
        op.drop_column("driver", name)
