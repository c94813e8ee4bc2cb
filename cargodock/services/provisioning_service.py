"""
Create-if-absent provisioning of records that follow a booked appointment.

Provisioning is safe to repeat: an existing record for the appointment is
returned untouched, and a concurrent insert that wins the unique constraint
is picked up instead of failing the caller.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cargodock.core.config import settings
from cargodock.models.appointments import DeliveryAppointment, DeliveryManagement, OutboundShipment
from cargodock.models.master_data import Location

logger = logging.getLogger(__name__)

DIRECT_DELIVERY_METHOD = "direct"

_Record = TypeVar("_Record", OutboundShipment, DeliveryManagement)


@dataclass
class ProvisioningResult:
    outbound_created: bool = False
    delivery_created: bool = False


def _ensure(
    db: Session,
    model: type[_Record],
    *,
    appointment_id: int,
    user_email: str,
    **values,
) -> tuple[_Record, bool]:
    lookup = select(model).where(model.appointment_id == appointment_id)
    existing = db.execute(lookup).scalar_one_or_none()
    if existing is not None:
        return (existing, False)
    record = model(
        appointment_id=appointment_id,
        created_by=user_email,
        updated_by=user_email,
        **values,
    )
    try:
        with db.begin_nested():
            db.add(record)
            db.flush()
    except IntegrityError:
        logger.info(
            "provisioning_conflict table=%s appointment_id=%s",
            model.__tablename__,
            appointment_id,
        )
        return (db.execute(lookup).scalar_one(), False)
    return (record, True)


def default_warehouse_location_id(db: Session) -> int | None:
    code = settings.DEFAULT_OUTBOUND_WAREHOUSE_CODE
    if not code:
        return None
    return db.execute(
        select(Location.id).where(Location.location_code == code)
    ).scalar_one_or_none()


def ensure_outbound_shipment(
    db: Session,
    appointment: DeliveryAppointment,
    *,
    user_email: str,
    warehouse_location_id: int | None = None,
) -> tuple[OutboundShipment, bool]:
    return _ensure(
        db,
        OutboundShipment,
        appointment_id=int(appointment.id),
        user_email=user_email,
        warehouse_location_id=warehouse_location_id,
        status="planned",
    )


def ensure_delivery_management(
    db: Session,
    appointment: DeliveryAppointment,
    *,
    user_email: str,
) -> tuple[DeliveryManagement, bool]:
    return _ensure(
        db,
        DeliveryManagement,
        appointment_id=int(appointment.id),
        user_email=user_email,
        status="pending",
    )


def provision_appointment_records(
    db: Session,
    appointment: DeliveryAppointment,
    *,
    user_email: str,
    warehouse_location_id: int | None = None,
) -> ProvisioningResult:
    result = ProvisioningResult()
    if appointment.delivery_method != DIRECT_DELIVERY_METHOD:
        _, result.outbound_created = ensure_outbound_shipment(
            db,
            appointment,
            user_email=user_email,
            warehouse_location_id=warehouse_location_id,
        )
    _, result.delivery_created = ensure_delivery_management(db, appointment, user_email=user_email)
    return result
