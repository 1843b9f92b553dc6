from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError

# (token, label) pairs offered by the browse screen
PRICE_BRACKETS = (
    ("0-50000", "Under KSh 50,000"),
    ("50000-100000", "KSh 50,000 - 100,000"),
    ("100000-200000", "KSh 100,000 - 200,000"),
    ("200000-500000", "KSh 200,000 - 500,000"),
    ("500000", "Above KSh 500,000"),
)

ALL = "all"


def parse_price_bracket(token):
    """
    Parse a price bracket token into inclusive (min, max) bounds.

    "50000-100000" -> (50000, 100000)
    "500000"       -> (500000, None)   open-ended, price >= min
    "" / "all"     -> None             no price filter

    A zero or missing upper bound also means open-ended.
    """
    token = (token or "").strip().lower()
    if not token or token == ALL:
        return None

    lower, sep, upper = token.partition("-")
    try:
        low = Decimal(lower)
        high = Decimal(upper) if sep and upper else None
    except InvalidOperation:
        raise ValidationError(f"Invalid price range '{token}'.")
    if not low.is_finite() or (high is not None and not high.is_finite()):
        raise ValidationError(f"Invalid price range '{token}'.")

    if low < 0 or (high is not None and high < 0):
        raise ValidationError("Price bounds cannot be negative.")
    if not high:
        high = None
    if high is not None and high < low:
        raise ValidationError("Price range upper bound must not be below the lower bound.")
    return low, high


def price_in_bracket(price, bounds) -> bool:
    if bounds is None:
        return True
    low, high = bounds
    price = Decimal(str(price))
    if high is None:
        return price >= low
    return low <= price <= high
