"""Currency arithmetic helpers. Amounts stay ``Decimal`` until serialised."""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value, default: Decimal = ZERO) -> Decimal:
    """Coerce a DB/JSON amount to Decimal; ``None`` and junk become ``default``."""
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so floats like 0.1 do not drag binary noise along
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def money(value) -> float | None:
    """Round to cents for JSON output."""
    if value is None:
        return None
    return float(to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))
