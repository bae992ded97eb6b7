"""Core records, errors and events for thermoprint."""

from thermoprint.core.errors import (
    ErrorKind,
    PrintError,
    UnsupportedTransportError,
    DeviceNotFoundError,
    SecurityContextError,
    CharacteristicUnsupportedError,
    ConnectionLostError,
    WriteFailedError,
    InvalidPrintRequestError,
)
from thermoprint.core.events import Event, EventBus, EventType
from thermoprint.core.models import (
    Customer,
    Discount,
    DiscountKind,
    DiscountScope,
    MerchantProfile,
    MixedPayment,
    PrinterIdentity,
    Sale,
    SaleItem,
    Topping,
)

__all__ = [
    # Errors
    "ErrorKind",
    "PrintError",
    "UnsupportedTransportError",
    "DeviceNotFoundError",
    "SecurityContextError",
    "CharacteristicUnsupportedError",
    "ConnectionLostError",
    "WriteFailedError",
    "InvalidPrintRequestError",
    # Events
    "Event",
    "EventBus",
    "EventType",
    # Models
    "Customer",
    "Discount",
    "DiscountKind",
    "DiscountScope",
    "MerchantProfile",
    "MixedPayment",
    "PrinterIdentity",
    "Sale",
    "SaleItem",
    "Topping",
]
