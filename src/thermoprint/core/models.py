"""Sale and merchant records consumed by the receipt printer.

These are built by the retail application from its own storage and
handed to the print manager. They are created fresh per print and never
persisted here.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


MIXED_PAYMENT_LABEL = "Mixto"
QUOTE_PAYMENT_LABEL = "COTIZACION"

_MIXED_PATTERN = re.compile(r"Mixto \((.+?): (.+?) \+ (.+?): (.+?)\)")


def _parse_amount(text: str) -> float:
    """Parse a rendered amount such as "$10.000" into a number."""
    digits = re.sub(r"[^\d]", "", text)
    return float(digits) if digits else 0.0


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    raise ValueError(f"Invalid sale timestamp: {value!r}")


class DiscountKind(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class DiscountScope(Enum):
    TOTAL = "total"
    PRODUCTS = "products"


@dataclass(frozen=True)
class Topping:
    """An extra added to a sale item (e.g. extra cheese)."""

    name: str
    price: float = 0.0
    quantity: int = 1

    @property
    def line_price(self) -> float:
        return self.price * self.quantity

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Topping":
        return cls(
            name=str(data.get("name", "")),
            price=float(data.get("price") or 0),
            quantity=int(data.get("quantity") or 1),
        )


@dataclass
class SaleItem:
    """A single sold product line."""

    name: str
    quantity: int
    unit_price: float
    code: Optional[str] = None
    toppings: List[Topping] = field(default_factory=list)
    variations: Dict[str, Any] = field(default_factory=dict)
    # Per-unit price including toppings, when the caller already knows it
    unit_total: Optional[float] = None

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity <= 0:
            raise ValueError(f"Item quantity must be a positive integer, got {self.quantity!r}")

    @property
    def toppings_price(self) -> float:
        """Per-unit price of all toppings."""
        return sum(t.line_price for t in self.toppings)

    @property
    def effective_unit_price(self) -> float:
        if self.unit_total is not None:
            return self.unit_total
        return self.unit_price + self.toppings_price

    @property
    def line_total(self) -> float:
        return self.effective_unit_price * self.quantity

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SaleItem":
        unit_total = data.get("unit_total")
        return cls(
            name=str(data.get("name") or "Producto"),
            quantity=int(data.get("quantity", 1)),
            unit_price=float(data.get("unit_price") or 0),
            code=data.get("code"),
            toppings=[Topping.from_dict(t) for t in data.get("toppings") or []],
            variations=dict(data.get("variations") or {}),
            unit_total=float(unit_total) if unit_total is not None else None,
        )


@dataclass(frozen=True)
class Discount:
    """Discount applied to a sale.

    `value` is what the cashier entered (a percentage or a fixed value);
    `amount` is the currency amount actually subtracted.
    """

    kind: DiscountKind
    amount: float
    value: float = 0.0
    scope: DiscountScope = DiscountScope.TOTAL

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Discount":
        return cls(
            kind=DiscountKind(data.get("kind", "fixed")),
            amount=float(data.get("amount") or 0),
            value=float(data.get("value") or 0),
            scope=DiscountScope(data.get("scope", "total")),
        )


@dataclass(frozen=True)
class MixedPayment:
    """Breakdown of a payment split across two methods."""

    method1: str
    amount1: float
    method2: str
    amount2: float

    @property
    def total(self) -> float:
        return self.amount1 + self.amount2

    @classmethod
    def parse(cls, payment_method: str) -> Optional["MixedPayment"]:
        """Parse the "Mixto (A: $x + B: $y)" form stored by older sales."""
        match = _MIXED_PATTERN.search(payment_method or "")
        if not match:
            return None
        return cls(
            method1=match.group(1),
            amount1=_parse_amount(match.group(2)),
            method2=match.group(3),
            amount2=_parse_amount(match.group(4)),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MixedPayment":
        return cls(
            method1=str(data.get("method1", "")),
            amount1=float(data.get("amount1") or 0),
            method2=str(data.get("method2", "")),
            amount2=float(data.get("amount2") or 0),
        )


@dataclass(frozen=True)
class Customer:
    name: str
    document: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Customer":
        return cls(
            name=str(data.get("name", "")),
            document=data.get("document"),
            phone=data.get("phone"),
            address=data.get("address"),
        )


@dataclass
class Sale:
    """A completed sale (or quotation) to print.

    `subtotal` defaults to the sum of item line totals and `total` to the
    subtotal minus the discount amount.
    """

    id: str
    timestamp: datetime
    cashier: str
    items: List[SaleItem]
    payment_method: str = "N/A"
    mixed_payment: Optional[MixedPayment] = None
    change: float = 0.0
    discount: Optional[Discount] = None
    subtotal: Optional[float] = None
    total: Optional[float] = None
    order_reference: Optional[str] = None
    customer: Optional[Customer] = None
    is_quote: bool = False

    def __post_init__(self) -> None:
        if self.subtotal is None:
            self.subtotal = sum(item.line_total for item in self.items)
        expected_total = self.subtotal - self.discount_amount
        if self.total is None:
            self.total = expected_total
        elif not math.isclose(self.total, expected_total, abs_tol=0.01):
            raise ValueError(
                f"Sale {self.id}: total {self.total} does not match "
                f"subtotal {self.subtotal} minus discount {self.discount_amount}"
            )
        if self.mixed_payment is None and self.is_mixed_payment:
            self.mixed_payment = MixedPayment.parse(self.payment_method)

    @property
    def discount_amount(self) -> float:
        return self.discount.amount if self.discount else 0.0

    @property
    def is_mixed_payment(self) -> bool:
        if self.mixed_payment is not None:
            return True
        method = self.payment_method or ""
        return method == MIXED_PAYMENT_LABEL or method.startswith(f"{MIXED_PAYMENT_LABEL} (")

    @property
    def is_quotation(self) -> bool:
        return self.is_quote or self.payment_method == QUOTE_PAYMENT_LABEL

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Sale":
        """Build a sale from its JSON representation."""
        discount = data.get("discount")
        mixed = data.get("mixed_payment")
        customer = data.get("customer")
        subtotal = data.get("subtotal")
        total = data.get("total")
        return cls(
            id=str(data["id"]),
            timestamp=_parse_timestamp(data.get("timestamp")),
            cashier=str(data.get("cashier") or ""),
            items=[SaleItem.from_dict(i) for i in data.get("items") or []],
            payment_method=str(data.get("payment_method") or "N/A"),
            mixed_payment=MixedPayment.from_dict(mixed) if mixed else None,
            change=float(data.get("change") or 0),
            discount=Discount.from_dict(discount) if discount else None,
            subtotal=float(subtotal) if subtotal is not None else None,
            total=float(total) if total is not None else None,
            order_reference=data.get("order_reference"),
            customer=Customer.from_dict(customer) if customer else None,
            is_quote=bool(data.get("is_quote", False)),
        )


@dataclass(frozen=True)
class MerchantProfile:
    """Business details printed in the receipt header and footer."""

    business_name: str
    address: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    tax_id: Optional[str] = None
    footer_message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MerchantProfile":
        return cls(
            business_name=str(data.get("business_name") or ""),
            address=data.get("address"),
            city=data.get("city"),
            phone=data.get("phone"),
            email=data.get("email"),
            tax_id=data.get("tax_id"),
            footer_message=data.get("footer_message"),
        )


@dataclass(frozen=True)
class PrinterIdentity:
    """A previously paired printer, saved by the caller against a user."""

    device_id: str
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PrinterIdentity":
        return cls(device_id=str(data.get("device_id") or data.get("id") or ""), name=data.get("name"))

    def to_dict(self) -> Dict[str, Any]:
        return {"device_id": self.device_id, "name": self.name}
