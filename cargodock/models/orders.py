from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cargodock.db.base import Base
from cargodock.models.mixins import AuditMixin


class Order(AuditMixin, Base):
    """
    One container order. `order_number` doubles as the container number.
    """
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_number: Mapped[str] = mapped_column(String(30), unique=True, index=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customer.id"), nullable=False)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    # unload | direct_delivery
    operation_mode: Mapped[str] = mapped_column(String(20), nullable=False)
    delivery_location_id: Mapped[int] = mapped_column(ForeignKey("location.id"), nullable=False)
    port_location_id: Mapped[int | None] = mapped_column(ForeignKey("location.id"))
    carrier_id: Mapped[int | None] = mapped_column(ForeignKey("carrier.id"))

    total_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=0)
    container_type: Mapped[str | None] = mapped_column(String(10))
    mbl_number: Mapped[str | None] = mapped_column(String(100))
    do_issued: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    eta_date: Mapped[date | None] = mapped_column(Date)
    lfd_date: Mapped[date | None] = mapped_column(Date)
    pickup_date: Mapped[datetime | None] = mapped_column(DateTime)
    ready_date: Mapped[date | None] = mapped_column(Date)
    return_deadline: Mapped[date | None] = mapped_column(Date)
    notes: Mapped[str | None] = mapped_column(Text)

    details: Mapped[list["OrderDetail"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", order_by="OrderDetail.id"
    )

    def __repr__(self) -> str:
        return f"<Order(number={self.order_number}, status={self.status})>"


class OrderDetail(AuditMixin, Base):
    """
    A delivery line under an order. Unbooked pallets are tracked here
    until the goods are received into an inventory lot.
    """
    __tablename__ = "order_detail"

    __table_args__ = (
        UniqueConstraint(
            "order_id",
            "delivery_location_id",
            "delivery_nature",
            name="uq_order_detail_location_nature",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    delivery_location_id: Mapped[int] = mapped_column(ForeignKey("location.id"), nullable=False)
    delivery_nature: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    volume: Mapped[Decimal] = mapped_column(Numeric(15, 3), nullable=False)
    estimated_pallets: Mapped[int | None] = mapped_column(Integer)
    # NULL until first set; readers fall back to estimated_pallets.
    remaining_pallets: Mapped[int | None] = mapped_column(Integer)
    fba: Mapped[str | None] = mapped_column(String(200))
    po: Mapped[str | None] = mapped_column(String(1000))
    window_period: Mapped[str | None] = mapped_column(String(100))
    notes: Mapped[str | None] = mapped_column(Text)

    order: Mapped["Order"] = relationship(back_populates="details")


class InventoryLot(AuditMixin, Base):
    __tablename__ = "inventory_lot"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_detail_id: Mapped[int] = mapped_column(
        ForeignKey("order_detail.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    # Pallets physically received.
    pallet_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Received pallets not yet drawn by an appointment; NULL means "all of them".
    unbooked_pallet_count: Mapped[int | None] = mapped_column(Integer)


class InboundReceipt(AuditMixin, Base):
    __tablename__ = "inbound_receipt"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    planned_unload_at: Mapped[date | None] = mapped_column(Date)


class PickupManagement(AuditMixin, Base):
    __tablename__ = "pickup_management"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    port_text: Mapped[str | None] = mapped_column(String(200))
    shipping_line: Mapped[str | None] = mapped_column(String(100))
    driver_id: Mapped[int | None] = mapped_column(ForeignKey("driver.id"))
    current_location: Mapped[str | None] = mapped_column(String(200))
