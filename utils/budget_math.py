"""
Budget arithmetic shared by the spend engine and the reports.

Amounts are ``Decimal`` throughout.  Utilisation is reported two ways: the raw
percentage (may exceed 100 when a category is over budget) and a display value
clamped to ``PERCENTAGE_MAX``.
"""
from decimal import Decimal, ROUND_HALF_UP

ZERO = Decimal('0')
PERCENTAGE_MAX = Decimal('100')


def as_decimal(value):
    """Coerce a DB/aggregate value (None, int, float, Decimal) to Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def sum_amounts(values):
    total = ZERO
    for v in values:
        total += as_decimal(v)
    return total


def utilization_percent(spent, total, clamp=True):
    """Spent as a percentage of *total*; 0 when nothing is allocated."""
    spent = as_decimal(spent)
    total = as_decimal(total)
    if total <= 0:
        return ZERO
    percent = (spent / total * PERCENTAGE_MAX).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)
    if clamp:
        return min(percent, PERCENTAGE_MAX)
    return percent


def remaining_budget(total, spent):
    """What is left of *total*, never negative."""
    return max(ZERO, as_decimal(total) - as_decimal(spent))
