import pytest

from finance_tracker.formatting import (
    format_category,
    format_currency,
    format_date,
    format_month,
    format_percent,
    format_trend,
)


@pytest.mark.parametrize(
    'amount, expected',
    [
        (1234.56, '$1,234.56'),
        (0, '$0.00'),
        (-20, '-$20.00'),
        (1000000, '$1,000,000.00'),
    ],
)
def test_format_currency(amount, expected):
    assert format_currency(amount, symbol='$') == expected


def test_format_currency_without_symbol():
    assert format_currency(1234.5, include_sign=False) == '1,234.50'


def test_month_and_date_labels():
    assert format_month('2024-06') == 'June 2024'
    assert format_date('2024-06-05') == 'Jun 05, 2024'


def test_percent_and_trend():
    assert format_percent(70) == '70.0%'
    assert format_trend(12.5) == '+12.5%'
    assert format_trend(-3.2) == '-3.2%'
    assert format_trend(0.0) == '0.0%'


def test_category_labels_fall_back_to_name():
    assert format_category('housing') == '🏠 Housing'
    assert format_category('Pets') == 'Pets'
