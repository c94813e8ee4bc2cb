# Import the declarative base
from cargodock.db.base import Base

# Import all models so they register themselves on Base.metadata
# for Alembic and for test schema creation.
from cargodock.models.access import Role, User, UserRole  # noqa: F401
from cargodock.models.master_data import (  # noqa: F401
    Carrier,
    Customer,
    CustomerContact,
    Driver,
    Fee,
    Location,
    Trailer,
)
from cargodock.models.orders import (  # noqa: F401
    InboundReceipt,
    InventoryLot,
    Order,
    OrderDetail,
    PickupManagement,
)
from cargodock.models.appointments import (  # noqa: F401
    AppointmentDetailLine,
    DeliveryAppointment,
    DeliveryManagement,
    OutboundShipment,
)
