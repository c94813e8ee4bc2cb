"""
Reference data that imports resolve natural codes against.
"""
from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cargodock.db.base import Base
from cargodock.models.mixins import AuditMixin


class Location(AuditMixin, Base):
    __tablename__ = "location"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    location_code: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # port | amazon | warehouse
    location_type: Mapped[str] = mapped_column(String(20), nullable=False)
    address: Mapped[str | None] = mapped_column(String(300))
    city: Mapped[str | None] = mapped_column(String(100))
    state: Mapped[str | None] = mapped_column(String(50))
    postal_code: Mapped[str | None] = mapped_column(String(20))
    country: Mapped[str | None] = mapped_column(String(50))
    notes: Mapped[str | None] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<Location(code={self.location_code}, type={self.location_type})>"


class Customer(AuditMixin, Base):
    __tablename__ = "customer"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    company_name: Mapped[str | None] = mapped_column(String(200))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    credit_limit: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=0)

    contacts: Mapped[list["CustomerContact"]] = relationship(
        back_populates="customer", cascade="all, delete-orphan"
    )


class CustomerContact(Base):
    __tablename__ = "customer_contact"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customer.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str | None] = mapped_column(String(100))
    phone: Mapped[str | None] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(String(200))

    customer: Mapped["Customer"] = relationship(back_populates="contacts")


class Carrier(Base):
    __tablename__ = "carrier"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    carrier_code: Mapped[str | None] = mapped_column(String(50), unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)


class Driver(AuditMixin, Base):
    __tablename__ = "driver"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    driver_code: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(100))
    license_number: Mapped[str | None] = mapped_column(String(100))
    license_plate: Mapped[str | None] = mapped_column(String(10))
    license_expiration: Mapped[date | None] = mapped_column(Date)
    carrier_id: Mapped[int | None] = mapped_column(ForeignKey("carrier.id"), index=True)
    contact_name: Mapped[str | None] = mapped_column(String(100))
    contact_phone: Mapped[str | None] = mapped_column(String(50))
    contact_email: Mapped[str | None] = mapped_column(String(200))
    # active | inactive
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    notes: Mapped[str | None] = mapped_column(Text)


class Trailer(AuditMixin, Base):
    __tablename__ = "trailer"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    trailer_code: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    trailer_type: Mapped[str] = mapped_column(String(50), nullable=False)
    length_feet: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    capacity_weight: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    capacity_volume: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    # available | in_use | maintenance | retired
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="available")
    notes: Mapped[str | None] = mapped_column(Text)


class Fee(AuditMixin, Base):
    """Billable fee definition; scope `all` applies to every customer."""

    __tablename__ = "fee"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    fee_code: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    fee_name: Mapped[str] = mapped_column(String(100), nullable=False)
    unit: Mapped[str | None] = mapped_column(String(20))
    unit_price: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="USD")
    # all | customers
    scope_type: Mapped[str] = mapped_column(String(20), nullable=False)
    container_type: Mapped[str | None] = mapped_column(String(50))
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
