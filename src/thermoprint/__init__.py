"""thermoprint - ESC/POS receipt printing over Bluetooth Low Energy."""

from thermoprint.core import (
    ErrorKind,
    MerchantProfile,
    PrintError,
    PrinterIdentity,
    Sale,
)
from thermoprint.printing.manager import PrintManager, PrintResult, print_receipt

__version__ = "0.1.0"

__all__ = [
    "ErrorKind",
    "MerchantProfile",
    "PrintError",
    "PrinterIdentity",
    "Sale",
    "PrintManager",
    "PrintResult",
    "print_receipt",
]
