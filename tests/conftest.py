from __future__ import annotations

import os
import sys
from datetime import date
from decimal import Decimal
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import importlib

fastapi_app = importlib.import_module("cargodock.main").app
from cargodock.db.base import Base
from cargodock.db.session import get_db

# Ensure all models are registered with SQLAlchemy metadata
import cargodock.models  # noqa: F401
from cargodock.models.master_data import Carrier, Customer, Driver, Location
from cargodock.models.orders import InventoryLot, Order, OrderDetail


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def db_session(engine):
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client(engine, db_session):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()


def xlsx_bytes(sheets: dict[str, list[list]]) -> bytes:
    """Builds a workbook with one sheet per entry; the first list is the header row."""
    workbook = Workbook()
    workbook.remove(workbook.active)
    for title, rows in sheets.items():
        sheet = workbook.create_sheet(title)
        for row in rows:
            sheet.append(row)
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def seeded(db_session):
    """
    Reference data shared by the import tests:
    locations WH1 (warehouse), FTW1 and LAX9 (amazon), PORT-LB (port);
    customer ACME; carrier MAEU; driver D001;
    order MSCU1234567 (unload) with detail lines
      FTW1/AMZ   estimated 10, remaining 10, no lot      -> unstocked, 10
      LAX9/AMZ   estimated 8,  lot of 6, unbooked NULL   -> stocked, 6
      FTW1/HOLD  estimated 4,  remaining 1               -> unstocked, 1
    """
    locations = {
        code: Location(location_code=code, name=code, location_type=kind)
        for code, kind in (
            ("WH1", "warehouse"),
            ("FTW1", "amazon"),
            ("LAX9", "amazon"),
            ("PORT-LB", "port"),
        )
    }
    db_session.add_all(locations.values())
    customer = Customer(code="ACME", name="Acme Imports", status="active", credit_limit=Decimal("0"))
    db_session.add(customer)
    db_session.add(Carrier(carrier_code="MAEU", name="Maersk"))
    db_session.add(Driver(driver_code="D001", name="Sam Driver"))
    db_session.flush()

    order = Order(
        order_number="MSCU1234567",
        customer_id=customer.id,
        order_date=date(2026, 3, 2),
        status="confirmed",
        operation_mode="unload",
        delivery_location_id=locations["WH1"].id,
        total_amount=Decimal("0"),
        container_type="40DH",
        eta_date=date(2026, 3, 10),
    )
    order.details.extend(
        [
            OrderDetail(
                delivery_location_id=locations["FTW1"].id,
                delivery_nature="AMZ",
                quantity=100,
                volume=Decimal("20"),
                estimated_pallets=10,
                remaining_pallets=10,
            ),
            OrderDetail(
                delivery_location_id=locations["LAX9"].id,
                delivery_nature="AMZ",
                quantity=60,
                volume=Decimal("16"),
                estimated_pallets=8,
                remaining_pallets=8,
            ),
            OrderDetail(
                delivery_location_id=locations["FTW1"].id,
                delivery_nature="HOLD",
                quantity=20,
                volume=Decimal("8"),
                estimated_pallets=4,
                remaining_pallets=1,
            ),
        ]
    )
    db_session.add(order)
    db_session.flush()
    lot = InventoryLot(order_detail_id=order.details[1].id, pallet_count=6, unbooked_pallet_count=None)
    db_session.add(lot)
    db_session.commit()
    return {
        "locations": locations,
        "customer": customer,
        "order": order,
        "details": list(order.details),
        "lot": lot,
    }
