import pytest

from storefront.promotions.pricing import apply_percent_off, format_amount, parse_amount, percent_of


@pytest.mark.parametrize(
    "value, expected",
    [
        ("₹499", 499),
        ("₹1,299", 1299),
        ("Rs. 39", 39),
        ("free", 0),
        ("", 0),
        (None, 0),
        (150, 150),
        (99.9, 99),
    ],
)
def test_parse_amount(value, expected):
    assert parse_amount(value) == expected


def test_format_amount_uses_currency_symbol():
    assert format_amount(339) == "₹339"
    assert format_amount(0, symbol="$") == "$0"


def test_percent_rounds_half_up():
    assert percent_of(15, 30) == 5
    assert percent_of(5, 10) == 1
    assert percent_of(14, 10) == 1
    assert percent_of(500, 0) == 0


def test_apply_percent_off():
    assert apply_percent_off(389, 10) == 350
    assert apply_percent_off(339, 10) == 305
    assert apply_percent_off(100, 0) == 100
