from datetime import datetime
from decimal import Decimal

from factories import add_customer, add_invoice, add_product, make_session
from tradedesk.services.analytics import quantity_by_width, width_distribution
from tradedesk.services.options import DateWindow, LineReportOptions, RankOptions, WidthFilter

WIDTH_SORTS = frozenset({'quantity', 'revenue', 'width'})


def _ranking(**kwargs) -> RankOptions:
    values = {'sort_by': None, 'sort_order': None, 'limit': None}
    values.update(kwargs)
    return RankOptions.parse(allowed=WIDTH_SORTS, default_sort='quantity', **values)


def test_width_distribution_merges_invoices_in_the_same_width() -> None:
    db = _seeded()
    options = LineReportOptions.parse(start_date='2024-01-01', end_date='2024-01-31')

    payload = width_distribution(db, options)

    row_100 = next(row for row in payload['data'] if row['width'] == Decimal('100'))
    assert row_100['total_quantity'] == Decimal('8')
    assert row_100['total_revenue'] == Decimal('800.00')
    assert row_100['invoice_count'] == 2
    assert row_100['revenue_per_unit'] == Decimal('100.00')
    assert payload['summary']['total_revenue'] == Decimal('1000.00')
    assert row_100['revenue_percentage'] == Decimal('80.00')
    assert payload['summary']['highest_revenue_width'] == Decimal('100')


def test_width_range_is_inclusive_on_both_ends() -> None:
    db = _seeded()
    options = LineReportOptions(window=DateWindow(), width=WidthFilter.parse('100-150'))

    widths = {row['width'] for row in width_distribution(db, options)['data']}

    assert widths == {Decimal('100'), Decimal('150')}


def test_exact_width_and_date_window_filters() -> None:
    db = _seeded()

    exact = width_distribution(db, LineReportOptions(window=DateWindow(), width=WidthFilter.parse('150')))
    assert [row['width'] for row in exact['data']] == [Decimal('150')]

    february = width_distribution(db, LineReportOptions.parse(start_date='2024-02-01'))
    assert [row['width'] for row in february['data']] == [Decimal('200')]


def test_quantity_by_width_limits_data_but_not_summary() -> None:
    db = _seeded()
    options = LineReportOptions(window=DateWindow())

    payload = quantity_by_width(db, options, group_by=None, ranking=_ranking(limit='1'))

    assert len(payload['data']) == 1
    assert payload['data'][0]['width'] == Decimal('100')
    assert payload['summary']['records_analyzed'] == 3
    assert payload['summary']['total_quantity'] == Decimal('12')
    assert payload['summary']['unique_widths'] == 3


def test_quantity_by_width_split_by_month_sorted_by_width_ascending() -> None:
    db = _seeded()
    options = LineReportOptions(window=DateWindow())

    payload = quantity_by_width(db, options, group_by='month', ranking=_ranking(sort_by='width', sort_order='asc'))

    assert [(row['width'], row['period']) for row in payload['data']] == [
        (Decimal('100'), '2024-01'),
        (Decimal('150'), '2024-01'),
        (Decimal('200'), '2024-02'),
    ]


def _seeded():
    db = make_session()
    customer = add_customer(db)
    film = add_product(db, cost='60')
    add_invoice(
        db,
        customer,
        invoice_date=datetime(2024, 1, 10),
        lines=[{'product': film, 'width': 100, 'quantity': 5, 'unit_price': 100, 'total_price': 500}],
    )
    add_invoice(
        db,
        customer,
        invoice_date=datetime(2024, 1, 20),
        lines=[
            {'product': film, 'width': 100, 'quantity': 3, 'unit_price': 100, 'total_price': 300},
            {'product': film, 'width': 150, 'quantity': 2, 'unit_price': 100, 'total_price': 200},
        ],
    )
    add_invoice(
        db,
        customer,
        invoice_date=datetime(2024, 2, 5),
        lines=[{'product': film, 'width': 200, 'quantity': 2, 'unit_price': 50, 'total_price': 100}],
    )
    return db
