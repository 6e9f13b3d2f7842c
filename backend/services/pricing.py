# backend/services/pricing.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from config import settings
from schemas.cart import CartLine, CartSummary

CENT = Decimal("0.01")

def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)

def line_total(unit_price: Decimal, quantity: Decimal, weight: Optional[Decimal] = None) -> Decimal:
    """Weighed goods are priced by weight, everything else by quantity."""
    effective = weight if weight is not None else quantity
    return round_money(unit_price * effective)

class SummaryCalculator:
    """Computes the cart summary: flat tax plus a single-threshold discount.

    Tax and discount are derived from the subtotal; the total is computed from
    the unrounded tax and discount and rounded once.
    """

    def __init__(
        self,
        tax_rate: Decimal = settings.TAX_RATE,
        discount_rate: Decimal = settings.DISCOUNT_RATE,
        discount_threshold: Decimal = settings.DISCOUNT_THRESHOLD,
    ):
        self.tax_rate = Decimal(tax_rate)
        self.discount_rate = Decimal(discount_rate)
        self.discount_threshold = Decimal(discount_threshold)

    def summarize(self, session_id: str, lines: Iterable[CartLine]) -> CartSummary:
        items = list(lines)
        subtotal = sum((line.total_price for line in items), Decimal("0"))
        quantity = sum((line.quantity for line in items), Decimal("0"))

        tax = subtotal * self.tax_rate
        # Strictly greater than: a subtotal exactly at the threshold gets no discount
        discount = subtotal * self.discount_rate if subtotal > self.discount_threshold else Decimal("0")
        total = subtotal + tax - discount

        return CartSummary(
            session_id=session_id,
            items=items,
            item_count=int(quantity.quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
            subtotal=round_money(subtotal),
            tax=round_money(tax),
            discount=round_money(discount),
            total=round_money(total),
        )
