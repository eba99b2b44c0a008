"""Rental price calculation."""

import math
from datetime import datetime

SECONDS_PER_DAY = 86_400


def rental_days(start: datetime, end: datetime) -> int:
    """Number of billable days between start and end.

    Partial days round up, so a 25 hour rental is two days.
    """
    seconds = (end - start).total_seconds()
    return math.ceil(seconds / SECONDS_PER_DAY)


def calculate_total_price(price_per_day: int, start: datetime, end: datetime) -> int:
    """Total price for renting at price_per_day from start to end."""
    return price_per_day * rental_days(start, end)
