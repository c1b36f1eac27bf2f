from decimal import ROUND_HALF_UP, Decimal

from .date_range import DateRange, nights
from .errors import InvalidInput

MINOR_UNIT = Decimal("0.01")


def price(date_range: DateRange, price_per_night: Decimal | int | str) -> Decimal:
    """Total stay price: nights times nightly rate, rounded half-up to cents."""
    rate = Decimal(str(price_per_night))
    if rate < 0:
        raise InvalidInput("price per night cannot be negative")
    stay_nights = nights(date_range)
    if stay_nights <= 0:
        raise InvalidInput("stay must last at least one night")
    return (rate * stay_nights).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)
