from datetime import datetime, time
from decimal import Decimal

import pytest
from fastapi import HTTPException

from tradedesk.services.options import (
    DateWindow,
    LineReportOptions,
    MonthlyDashboardOptions,
    PendingInvoiceOptions,
    RankOptions,
    TrendOptions,
    WidthFilter,
    parse_id,
)
from tradedesk.utils.lenient import (
    lenient_bool,
    lenient_choice,
    lenient_datetime,
    lenient_decimal,
    lenient_financial_year_token,
    lenient_int,
    lenient_year,
)


def test_lenient_scalars_fall_back_to_defaults() -> None:
    assert lenient_int('25', 10) == 25
    assert lenient_int('abc', 10) == 10
    assert lenient_int('', 10) == 10
    assert lenient_decimal('12.5') == Decimal('12.5')
    assert lenient_decimal('NaN') is None
    assert lenient_bool('TRUE') is True
    assert lenient_bool('nope', default=True) is True
    assert lenient_financial_year_token(' 2024 - 25 ') == '2024-25'
    assert lenient_financial_year_token('soon') == 'current'


def test_end_date_without_time_covers_the_whole_day() -> None:
    end = lenient_datetime('2024-01-31', end_of_day=True)

    assert end == datetime.combine(datetime(2024, 1, 31).date(), time.max)
    assert lenient_datetime('2024-01-31T10:15:00Z') == datetime(2024, 1, 31, 10, 15)
    assert lenient_datetime('yesterday') is None


def test_offset_timestamps_are_converted_to_utc() -> None:
    assert lenient_datetime('2024-01-31T23:00:00+05:30') == datetime(2024, 1, 31, 17, 30)
    assert lenient_datetime('2024-01-31T20:00:00-05:00') == datetime(2024, 2, 1, 1, 0)


def test_year_outside_calendar_range_uses_default() -> None:
    assert lenient_year('2024', 2030) == 2024
    assert lenient_year('0', 2030) == 2030
    assert lenient_year('-3', 2030) == 2030
    assert lenient_year('99999', 2030) == 2030
    assert lenient_year('soon', 2030) == 2030


def test_choice_ignores_case_and_underscores() -> None:
    allowed = frozenset({'invoice_date', 'grand_total'})

    assert lenient_choice('invoiceDate', allowed, 'grand_total') == 'invoice_date'
    assert lenient_choice('GRAND_TOTAL', allowed, 'invoice_date') == 'grand_total'
    assert lenient_choice('colour', allowed, 'invoice_date') == 'invoice_date'


def test_width_filter_parsing() -> None:
    ranged = WidthFilter.parse('100-200')
    exact = WidthFilter.parse('150')

    assert ranged == WidthFilter(Decimal('100'), Decimal('200'))
    assert ranged.matches(Decimal('100')) and ranged.matches(Decimal('200'))
    assert not ranged.matches(Decimal('201'))
    assert exact.is_exact
    assert WidthFilter.parse('wide') is None
    assert WidthFilter.parse('-') is None
    assert WidthFilter.parse('abc-200') is None
    assert WidthFilter.parse('100-wide') is None
    assert WidthFilter.parse('-200') == WidthFilter(None, Decimal('200'))
    assert WidthFilter.parse('100-') == WidthFilter(Decimal('100'), None)


def test_malformed_identifier_is_rejected() -> None:
    assert parse_id(None, 'product') is None
    assert parse_id('42', 'product') == 42
    with pytest.raises(HTTPException) as exc:
        parse_id('abc', 'product')
    assert exc.value.status_code == 400
    assert exc.value.detail == 'Invalid product ID format'


def test_rank_options_treat_non_positive_limit_as_unlimited() -> None:
    allowed = frozenset({'quantity', 'revenue', 'width'})

    ranking = RankOptions.parse(sort_by='bogus', sort_order='ASC', limit='0', allowed=allowed, default_sort='quantity')
    assert ranking == RankOptions(sort_by='quantity', descending=False, limit=None)

    ranking = RankOptions.parse(sort_by='revenue', sort_order=None, limit='x', allowed=allowed, default_sort='quantity')
    assert ranking.descending is True
    assert ranking.limit is None


def test_report_option_defaults() -> None:
    options = LineReportOptions.parse(start_date='2024-01-01', end_date='2024-01-31', width_range='100-120')
    assert options.window.start == datetime(2024, 1, 1)
    assert options.window.end.date() == datetime(2024, 1, 31).date()
    assert options.width.maximum == Decimal('120')

    trend = TrendOptions.parse(months='-3', group_by='Week', product_id=None)
    assert trend == TrendOptions(months=12, group_by='week', product_id=None)
    assert TrendOptions.parse(months='999999', group_by=None, product_id=None).months == 12
    assert TrendOptions.parse(months='1200', group_by=None, product_id=None).months == 1200

    dashboard = MonthlyDashboardOptions.parse(year='abc', compare_with_last_year='true', today=datetime(2025, 6, 1))
    assert dashboard == MonthlyDashboardOptions(year=2025, compare_with_last_year=True)
    assert MonthlyDashboardOptions.parse(year='0', compare_with_last_year=None, today=datetime(2025, 6, 1)).year == 2025

    pending = PendingInvoiceOptions.parse(sort_by='pendingAmount', sort_order='asc')
    assert pending.include_opening is True
    assert pending.sort_by == 'pending_amount'
    assert pending.descending is False

    assert DateWindow.parse() == DateWindow()
