"""Cart-level pricing helpers"""

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from ..models.cart import CartItem
from ..models.product import Product

UNKNOWN_SHOP = "unknown"

CURRENCY_SYMBOLS = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


@dataclass
class CartValidation:
    """Outcome of checking cart lines against current stock"""
    valid: bool
    invalid_items: list[CartItem] = field(default_factory=list)


def calculate_subtotal(items: Iterable[CartItem]) -> float:
    return float(sum(item.line_total for item in items))


def calculate_item_count(items: Iterable[CartItem]) -> int:
    return sum(item.quantity for item in items)


def group_by_shop(items: Iterable[CartItem]) -> dict[str, list[CartItem]]:
    """Group cart lines by shop, keeping first-seen shop order"""
    shops: dict[str, list[CartItem]] = {}
    for item in items:
        shops.setdefault(item.shop_id or UNKNOWN_SHOP, []).append(item)
    return shops


def estimate_shipping(
    items: Iterable[CartItem],
    distance_km: float = 5,
    base_cost: float = 5.0,
) -> float:
    """Flat base cost plus a per-unit charge that grows past 5 km"""
    items = list(items)
    if not items:
        return 0.0
    distance_factor = max(1.0, distance_km / 5)
    return base_cost + calculate_item_count(items) * 0.5 * distance_factor


def validate_against_catalog(
    items: Iterable[CartItem],
    products: Mapping[str, Product],
) -> CartValidation:
    """
    Check each line against current stock.

    Lines for missing or sold-out products are reported as they are. Lines
    asking for more than is in stock are reported with the available
    quantity as a suggestion.
    """
    invalid_items: list[CartItem] = []

    for item in items:
        product = products.get(item.product_id)
        if product is None or not product.in_stock:
            invalid_items.append(item)
            continue
        if item.quantity > product.stock:
            invalid_items.append(item.model_copy(update={"quantity": product.stock}))

    return CartValidation(valid=not invalid_items, invalid_items=invalid_items)


def format_price(amount: float, currency: str = "INR") -> str:
    """Format an amount for display, e.g. 125000 -> '₹1,25,000'"""
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    sign = "-" if amount < 0 else ""
    amount = abs(round(amount, 2))

    whole = int(amount)
    fraction = round(amount - whole, 2)
    digits = str(whole)
    grouped = _group_indian(digits) if currency == "INR" else f"{whole:,}"

    if fraction:
        grouped += f"{fraction:.2f}"[1:]
    return f"{sign}{symbol}{grouped}"


def _group_indian(digits: str) -> str:
    # Lakh/crore grouping: last three digits, then pairs
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])
