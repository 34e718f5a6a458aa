from decimal import Decimal, ROUND_HALF_UP


MONEY_QUANT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Decimal | int | float | str | None) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value))


def money(value: Decimal | int | float | str | None) -> Decimal:
    return to_decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def optional_money(value: Decimal | int | float | str | None) -> Decimal | None:
    if value is None:
        return None
    return money(value)


def share_pct(part: Decimal, whole: Decimal) -> Decimal:
    """Percentage of ``part`` in ``whole`` rounded to 2 dp; 0 when ``whole`` is 0."""
    if whole == 0:
        return money(0)
    return money(part / whole * HUNDRED)


def change_pct(current: Decimal, previous: Decimal) -> Decimal | None:
    if previous <= 0:
        return None
    return money((current - previous) / previous * HUNDRED)
