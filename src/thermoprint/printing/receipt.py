"""Receipt generator for sales.

Turns a Sale and the merchant's profile into the ESC/POS command stream
for a 58mm thermal printer, replicating the on-screen receipt:
- Business header
- Sale information (receipt number, date, cashier, customer)
- Item detail with variations and toppings
- Totals, discount and payment
- Footer message and paper cut

Pure transformation: no I/O, same input always gives the same bytes.
"""

import logging
from typing import Optional
from datetime import datetime, tzinfo
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from zoneinfo import ZoneInfo

from thermoprint.config.settings import ReceiptSettings
from thermoprint.core.models import (
    DiscountKind,
    DiscountScope,
    MerchantProfile,
    Sale,
    SaleItem,
)
from thermoprint.printing.layout import (
    LayoutEngine,
    ReceiptLayout,
    Alignment,
    TextSize,
    wrap,
)

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%d/%m/%Y %H:%M"

# Room left next to an item name for the quantity and line total
ITEM_NAME_MARGIN = 8


def format_currency(value: float, symbol: str = "$", thousands_separator: str = ".") -> str:
    """Format an amount with no decimals and grouped thousands ("$30.000")."""
    amount = Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(int(amount)):,}".replace(",", thousands_separator)
    return f"{sign}{symbol}{grouped}"


def format_timestamp(timestamp: datetime, tz: Optional[tzinfo] = None) -> str:
    """Format a sale time for the receipt.

    Aware times are shown in `tz`, or in the host zone when it is None.
    Naive times are taken as already local.
    """
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(tz)
    return timestamp.strftime(TIMESTAMP_FORMAT)


@dataclass
class Receipt:
    """A generated receipt ready for printing."""

    sale_id: str
    layout: ReceiptLayout
    raw_commands: bytes
    preview: str
    timestamp: datetime


class ReceiptEncoder:
    """Encoder for sale receipts.

    Builds a ReceiptLayout section by section and renders it with the
    LayoutEngine.
    """

    def __init__(self, settings: Optional[ReceiptSettings] = None):
        self._settings = settings or ReceiptSettings()
        self._layout_engine = LayoutEngine(
            width=self._settings.width,
            codepage=self._settings.codepage,
            partial_cut=self._settings.partial_cut,
        )
        self._timezone = ZoneInfo(self._settings.timezone) if self._settings.timezone else None

    @property
    def width(self) -> int:
        return self._settings.width

    @property
    def cut_command(self) -> bytes:
        return self._layout_engine.cut_command

    def build(self, sale: Sale, merchant: MerchantProfile) -> Receipt:
        """Generate the receipt for a sale.

        Args:
            sale: The sale to print
            merchant: Business details for header and footer

        Returns:
            Receipt object ready for printing
        """
        layout = ReceiptLayout(width=self.width)

        self._create_header(layout, merchant)
        self._create_sale_info(layout, sale)
        for item in sale.items:
            self._add_item(layout, item)
        self._create_totals(layout, sale)
        self._create_payment(layout, sale)
        self._create_footer(layout, merchant)

        raw_commands = self._layout_engine.render(layout)
        preview = self._layout_engine.preview_text(layout)

        logger.debug(f"Encoded receipt {sale.id}: {len(sale.items)} items, {len(raw_commands)} bytes")
        return Receipt(
            sale_id=sale.id,
            layout=layout,
            raw_commands=raw_commands,
            preview=preview,
            timestamp=sale.timestamp,
        )

    def encode(self, sale: Sale, merchant: MerchantProfile) -> bytes:
        """Encode a sale straight to ESC/POS bytes."""
        return self.build(sale, merchant).raw_commands

    def _money(self, value: float) -> str:
        return format_currency(
            value,
            symbol=self._settings.currency_symbol,
            thousands_separator=self._settings.thousands_separator,
        )

    def _add_wrapped(
        self,
        layout: ReceiptLayout,
        text: str,
        alignment: Alignment = Alignment.LEFT,
    ) -> None:
        for line in wrap(text, self.width):
            layout.add_text(line, alignment=alignment, wrap=False)

    def _create_header(self, layout: ReceiptLayout, merchant: MerchantProfile) -> None:
        """Business name in double height, then contact lines."""
        layout.add_text(merchant.business_name, alignment=Alignment.CENTER, size=TextSize.MEDIUM)

        contact = [
            merchant.address,
            merchant.city,
            f"Tel: {merchant.phone}" if merchant.phone else None,
            f"Email: {merchant.email}" if merchant.email else None,
            f"NIT: {merchant.tax_id}" if merchant.tax_id else None,
        ]
        for line in contact:
            if line:
                self._add_wrapped(layout, line, Alignment.CENTER)

        layout.add_separator()
        layout.add_space(1)

    def _create_sale_info(self, layout: ReceiptLayout, sale: Sale) -> None:
        layout.add_text("Venta registrada", alignment=Alignment.CENTER)
        layout.add_space(1)

        layout.add_text(f"Recibo #{sale.id}")
        layout.add_text(format_timestamp(sale.timestamp, self._timezone))

        if sale.cashier:
            self._add_wrapped(layout, f"Cajero: {sale.cashier}")

        if sale.order_reference:
            layout.add_text(f"Orden: {sale.order_reference}")

        customer = sale.customer
        if customer and customer.name:
            layout.add_separator()
            layout.add_text("Cliente:")
            self._add_wrapped(layout, customer.name)
            if customer.document:
                layout.add_text(f"Documento: {customer.document}")
            if customer.phone:
                layout.add_text(f"Tel: {customer.phone}")
            if customer.address:
                self._add_wrapped(layout, customer.address)

        layout.add_separator()
        layout.add_text("Detalle de la venta")
        layout.add_separator()

    def _add_item(self, layout: ReceiptLayout, item: SaleItem) -> None:
        """One item: quantity, name and line total, then its details."""
        name_lines = wrap(item.name, self.width - ITEM_NAME_MARGIN)
        layout.add_row(f"{item.quantity}x {name_lines[0]}", self._money(item.line_total))
        for extra in name_lines[1:]:
            layout.add_text(f"   {extra}", wrap=False)

        if item.variations:
            layout.add_text("  Variaciones:", wrap=False)
            for name, value in item.variations.items():
                if isinstance(value, bool):
                    value = "Sí" if value else "No"
                self._add_wrapped(layout, f"  - {name}: {value}")

        if item.toppings:
            layout.add_text("  Toppings:", wrap=False)
            for topping in item.toppings:
                layout.add_row(
                    f"  - {topping.name} (x{topping.quantity})",
                    self._money(topping.line_price),
                )
            self._add_wrapped(
                layout,
                f"  Precio base: {self._money(item.unit_price)}"
                f" + Toppings: {self._money(item.toppings_price)}"
                f" = {self._money(item.effective_unit_price)} c/u",
            )

        layout.add_separator()

    def _create_totals(self, layout: ReceiptLayout, sale: Sale) -> None:
        layout.add_row("Subtotal", self._money(sale.subtotal))

        discount = sale.discount
        if discount and discount.amount > 0:
            label = "Descuento"
            if discount.kind == DiscountKind.PERCENTAGE:
                label += f" ({discount.value:g}%)"
            if discount.scope == DiscountScope.PRODUCTS:
                label += " en productos"
            layout.add_row(label, f"-{self._money(discount.amount)}")

        layout.add_separator()
        layout.add_row("TOTAL", self._money(sale.total), size=TextSize.MEDIUM)
        layout.add_separator()

    def _create_payment(self, layout: ReceiptLayout, sale: Sale) -> None:
        if sale.is_quotation:
            method = "COTIZACIÓN"
        elif sale.is_mixed_payment:
            method = "Mixto"
        else:
            method = sale.payment_method or "N/A"
        layout.add_row("Método de pago", method)

        mixed = sale.mixed_payment if sale.is_mixed_payment else None
        if mixed:
            if mixed.method1 and mixed.amount1:
                layout.add_row(f"  {mixed.method1}", self._money(mixed.amount1))
            if mixed.method2 and mixed.amount2:
                layout.add_row(f"  {mixed.method2}", self._money(mixed.amount2))

        if sale.change > 0:
            layout.add_row("Cambio", self._money(sale.change))

    def _create_footer(self, layout: ReceiptLayout, merchant: MerchantProfile) -> None:
        layout.add_space(1)
        message = merchant.footer_message or self._settings.default_footer
        self._add_wrapped(layout, message, Alignment.CENTER)
        layout.add_space(2)
