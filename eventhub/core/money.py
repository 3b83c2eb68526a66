from decimal import Decimal, ROUND_HALF_UP


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def line_total_cents(price: Decimal, quantity: int) -> int:
    return to_minor_units(price * quantity)
