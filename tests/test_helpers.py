from datetime import date, datetime

import pytest

from utils.helpers import calculate_subtotal, format_currency, format_date, format_number, to_bool, to_number
from utils.request_args import paginated_response, parse_date_arg, parse_pagination


def test_format_currency():
    assert format_currency(1000000) == "Rp1.000.000"
    assert format_currency(0) == "Rp0"
    assert format_currency(None) == "Rp0"
    assert format_currency(1500.6) == "Rp1.501"


def test_format_number():
    assert format_number(1234567) == "1.234.567"
    assert format_number("999") == "999"
    assert format_number("abc") == "0"


def test_format_date():
    assert format_date("2026-01-06") == "06/01/2026"
    assert format_date("2026-01-06T08:30:00") == "06/01/2026"
    assert format_date(datetime(2026, 1, 6, 8, 30)) == "06/01/2026"
    assert format_date(date(2026, 1, 6), "%Y%m%d") == "20260106"
    assert format_date(None) == "-"
    assert format_date("garbage") == "-"


def test_calculate_subtotal():
    assert calculate_subtotal(2, 50000) == 100000
    assert calculate_subtotal(2, 50000, 10) == 90000
    assert calculate_subtotal(1, 1000, 100) == 0
    assert calculate_subtotal(None, 1000) == 0


def test_to_number():
    assert to_number("12", "quantity") == 12.0
    assert to_number(None, "price", default=0) == 0
    with pytest.raises(ValueError, match="quantity is required"):
        to_number("", "quantity")
    with pytest.raises(ValueError, match="must be a number"):
        to_number("ten", "quantity")
    with pytest.raises(ValueError, match="at least 0"):
        to_number(-1, "price", minimum=0)


def test_parse_pagination():
    assert parse_pagination({}) == (1, 25)
    assert parse_pagination({"page": "0", "limit": "10"}) == (1, 10)
    with pytest.raises(ValueError):
        parse_pagination({"page": "first"})


def test_parse_date_arg():
    assert parse_date_arg({"start_date": "2026-01-06"}, "start_date") == date(2026, 1, 6)
    assert parse_date_arg({}, "start_date") is None
    with pytest.raises(ValueError, match="Invalid end_date"):
        parse_date_arg({"end_date": "06/01/2026"}, "end_date")


def test_paginated_response():
    assert paginated_response([1, 2], 12, 2, 5) == {"data": [1, 2], "total": 12, "page": 2, "limit": 5, "totalPages": 3}
    assert paginated_response([], 4, 1, -1)["totalPages"] == 1


@pytest.mark.parametrize("value", ["nan", "inf", "-inf", float("nan"), float("inf")])
def test_to_number_rejects_non_finite_values(value):
    with pytest.raises(ValueError, match="quantity must be a number"):
        to_number(value, "quantity", minimum=0)


def test_to_bool():
    assert to_bool(False, "is_active") is False
    assert to_bool("false", "is_active") is False
    assert to_bool("True", "is_active") is True
    assert to_bool(0, "is_active") is False
    with pytest.raises(ValueError, match="is_active must be true or false"):
        to_bool("no", "is_active")
    with pytest.raises(ValueError):
        to_bool(None, "is_active")
