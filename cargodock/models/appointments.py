from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cargodock.db.base import Base
from cargodock.models.mixins import AuditMixin


class DeliveryAppointment(AuditMixin, Base):
    """
    A booked delivery slot. Its detail lines draw pallets from order
    detail pools.
    """
    __tablename__ = "delivery_appointment"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    reference_number: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    delivery_method: Mapped[str] = mapped_column(String(30), nullable=False)
    appointment_account: Mapped[str | None] = mapped_column(String(30))
    appointment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    origin_location_id: Mapped[int | None] = mapped_column(ForeignKey("location.id"))
    location_id: Mapped[int] = mapped_column(ForeignKey("location.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="requested")
    requested_start: Mapped[datetime | None] = mapped_column(DateTime)
    confirmed_start: Mapped[datetime | None] = mapped_column(DateTime)
    rejected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    po: Mapped[str | None] = mapped_column(String(1000))
    notes: Mapped[str | None] = mapped_column(Text)

    lines: Mapped[list["AppointmentDetailLine"]] = relationship(
        back_populates="appointment", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<DeliveryAppointment(reference={self.reference_number}, status={self.status})>"


class AppointmentDetailLine(AuditMixin, Base):
    __tablename__ = "appointment_detail_line"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    appointment_id: Mapped[int] = mapped_column(
        ForeignKey("delivery_appointment.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_detail_id: Mapped[int] = mapped_column(ForeignKey("order_detail.id"), nullable=False, index=True)
    estimated_pallets: Mapped[int] = mapped_column(Integer, nullable=False)
    # Pool capacity observed when the line was booked.
    total_pallets_at_time: Mapped[int | None] = mapped_column(Integer)
    # stocked | unstocked
    accounting_mode: Mapped[str] = mapped_column(String(10), nullable=False)

    appointment: Mapped["DeliveryAppointment"] = relationship(back_populates="lines")


class OutboundShipment(AuditMixin, Base):
    __tablename__ = "outbound_shipment"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    appointment_id: Mapped[int] = mapped_column(
        ForeignKey("delivery_appointment.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    warehouse_location_id: Mapped[int | None] = mapped_column(ForeignKey("location.id"))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="planned")


class DeliveryManagement(AuditMixin, Base):
    __tablename__ = "delivery_management"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    appointment_id: Mapped[int] = mapped_column(
        ForeignKey("delivery_appointment.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
