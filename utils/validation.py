"""
Input coercion helpers.

Each helper either returns a clean value or raises ``ValidationError`` naming
the offending field, before any state has been touched.
"""
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from dateutil import parser as date_parser

from services.exceptions import ValidationError


# Numeric(12, 2) columns hold at most ten integer digits
MAX_AMOUNT = Decimal('1e10')


def to_amount(value, field='amount', allow_zero=False):
    """Parse a currency amount into a 2dp ``Decimal``.

    The sign is checked on the rounded value, so ``'0.004'`` is
    refused rather than stored as zero.
    """
    if value is None or value == '':
        raise ValidationError(f'{field} is required', field=field)
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be a number', field=field)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{field} must be a number', field=field)
    if not amount.is_finite():
        raise ValidationError(f'{field} must be a number', field=field)
    if abs(amount) >= MAX_AMOUNT:
        raise ValidationError(f'{field} must be less than {MAX_AMOUNT:,.0f}', field=field)
    try:
        amount = amount.quantize(Decimal('0.01'))
    except InvalidOperation:
        raise ValidationError(f'{field} must be a number', field=field)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(
            f'{field} must be {"non-negative" if allow_zero else "positive"}', field=field
        )
    return amount


def require_text(value, field, min_length=1, max_length=None):
    text = (value or '').strip() if isinstance(value, str) or value is None else None
    if text is None:
        raise ValidationError(f'{field} must be text', field=field)
    if len(text) < min_length:
        raise ValidationError(f'{field} must be at least {min_length} character(s)', field=field)
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f'{field} must be at most {max_length} characters', field=field)
    return text


def to_date(value, field='date'):
    """Accept a ``date``/``datetime`` or an ISO-8601 string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError(f'{field} is required', field=field)
    try:
        return date_parser.isoparse(str(value)).date()
    except (ValueError, OverflowError):
        raise ValidationError(f'{field} must be an ISO date (YYYY-MM-DD)', field=field)


def to_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')
