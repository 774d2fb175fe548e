# utils/helpers.py
from datetime import date, datetime
import math

def format_number(value):
    """Formats a number with '.' as the thousands separator, e.g. 1234567 -> '1.234.567'."""
    try:
        number = round(float(value or 0))
    except (ValueError, TypeError):
        number = 0
    return f"{number:,}".replace(",", ".")

def format_currency(value):
    """Formats a value as Indonesian Rupiah without decimals, e.g. 'Rp1.000.000'."""
    return f"Rp{format_number(value)}"

def format_date(value, fmt="%d/%m/%Y"):
    if not value:
        return "-"
    if isinstance(value, str):
        try:
            value = datetime.strptime(value.split('T')[0], '%Y-%m-%d')
        except ValueError:
            return "-"
    if not isinstance(value, (date, datetime)):
        return "-"
    return value.strftime(fmt)

def calculate_subtotal(quantity, price, discount=0):
    """Line total after a percentage discount."""
    quantity = float(quantity or 0)
    price = float(price or 0)
    discount = float(discount or 0)
    return quantity * price * (1 - discount / 100)

def to_number(value, field_name, minimum=None, default=None):
    """Converts a payload value to a float, raising ValueError with a readable message."""
    if value is None or value == "":
        if default is not None:
            return default
        raise ValueError(f"{field_name} is required.")
    try:
        number = float(value)
    except (ValueError, TypeError):
        raise ValueError(f"{field_name} must be a number.")
    if not math.isfinite(number):
        raise ValueError(f"{field_name} must be a number.")
    if minimum is not None and number < minimum:
        raise ValueError(f"{field_name} must be at least {minimum}.")
    return number

def to_bool(value, field_name):
    """Reads a JSON boolean; also accepts 'true'/'false' and 1/0 as sent by form fields."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in ('true', '1', 'false', '0'):
        return value.strip().lower() in ('true', '1')
    raise ValueError(f"{field_name} must be true or false.")
