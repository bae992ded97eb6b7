"""Printing module for thermoprint - receipt encoding and print sessions."""

from thermoprint.printing.layout import (
    Alignment,
    LayoutEngine,
    ReceiptLayout,
    TextBlock,
    TextSize,
    aligned_row,
    wrap,
)
from thermoprint.printing.receipt import Receipt, ReceiptEncoder, format_currency
from thermoprint.printing.manager import PrintManager, PrintResult, create_host, print_receipt

__all__ = [
    # Layout
    "Alignment",
    "LayoutEngine",
    "ReceiptLayout",
    "TextBlock",
    "TextSize",
    "aligned_row",
    "wrap",
    # Receipt
    "Receipt",
    "ReceiptEncoder",
    "format_currency",
    # Sessions
    "PrintManager",
    "PrintResult",
    "create_host",
    "print_receipt",
]
