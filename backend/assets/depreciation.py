# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Straight-line depreciation.

* Annual depreciation = purchase price / expected life (years).
* Monthly depreciation = annual / 12.
* Current value = price - monthly * whole months in use, floored at 0.

An asset without a ``date_of_use`` is still in storage and does not
depreciate.
"""

from datetime import date
from typing import Optional


def compute_depreciation(
    purchase_price: Optional[float], expected_life_years: Optional[float]
) -> tuple[Optional[float], Optional[float]]:
    """Return ``(annual, monthly)`` rounded to cents, or ``(None, None)``."""
    if not purchase_price or not expected_life_years or expected_life_years <= 0:
        return None, None
    annual = purchase_price / expected_life_years
    return round(annual, 2), round(annual / 12, 2)


def months_in_use(start: date, today: date) -> int:
    """
    Whole calendar months between *start* and *today*.  A month only counts
    once the day-of-month of *start* has been reached; never negative.
    """
    months = (today.year - start.year) * 12 + (today.month - start.month)
    if today.day < start.day:
        months -= 1
    return max(months, 0)


def current_value(
    purchase_price: Optional[float],
    depreciation_monthly: Optional[float],
    date_of_use: Optional[date],
    today: date,
) -> float:
    if not purchase_price:
        return 0.0
    price = float(purchase_price)
    if not depreciation_monthly or not date_of_use:
        return price

    value = price - float(depreciation_monthly) * months_in_use(date_of_use, today)
    return round(value, 2) if value > 0 else 0.0


def fill_missing_depreciation(values: dict) -> dict:
    """
    Derive annual/monthly depreciation from price and expected life when
    neither was supplied.  Mutates and returns *values*.
    """
    if values.get("depreciation_annual") is None and values.get("depreciation_monthly") is None:
        annual, monthly = compute_depreciation(
            values.get("purchase_price"), values.get("expected_life_years")
        )
        if annual is not None:
            values["depreciation_annual"] = annual
            values["depreciation_monthly"] = monthly
    return values
