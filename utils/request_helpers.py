"""
Small request parsing helpers for the JSON blueprints.
"""
from flask import request

from services.exceptions import ValidationError
from utils.validation import to_bool, to_date


def json_body():
    """Request JSON as a dict (form data is accepted too)."""
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def arg_int(name):
    value = request.args.get(name)
    if value in (None, ''):
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f'{name} must be an integer', field=name)


def arg_bool(name):
    value = request.args.get(name)
    if value in (None, ''):
        return None
    return to_bool(value)


def arg_date(name):
    value = request.args.get(name)
    if not value:
        return None
    return to_date(value, name)


def pick(data, *fields):
    """Subset of *data* containing only the keys that were sent."""
    return {f: data[f] for f in fields if f in data}
