from datetime import datetime
from decimal import Decimal

import pytest
from fastapi import HTTPException

from factories import add_customer, add_invoice, add_product, make_session
from tradedesk.services.analytics import (
    analytics_dashboard,
    average_sale_cost,
    customer_patterns,
    monthly_dashboard,
    multi_width_monthly,
    parse_multi_width_request,
    product_sales,
    top_products,
)
from tradedesk.services.options import DateWindow, LineReportOptions, MonthlyDashboardOptions, RankOptions


def _seeded():
    db = make_session()
    north = add_customer(db, 'North Packaging')
    south = add_customer(db, 'South Flexibles')
    film = add_product(db, 'BOPP Film', cost='60')
    foil = add_product(db, 'Alu Foil')
    add_invoice(
        db,
        north,
        invoice_date=datetime(2024, 1, 10),
        cgst='9',
        sgst='9',
        lines=[
            {'product': film, 'width': 100, 'quantity': 5, 'unit_price': 100, 'total_price': 500},
            {'product': foil, 'width': 120, 'quantity': 2, 'unit_price': 50, 'total_price': 100},
        ],
    )
    add_invoice(
        db,
        south,
        invoice_date=datetime(2024, 3, 12),
        igst='18',
        lines=[{'product': film, 'width': 120, 'quantity': 3, 'unit_price': 120, 'total_price': 360}],
    )
    add_invoice(
        db,
        north,
        invoice_date=datetime(2023, 3, 5),
        lines=[{'product': film, 'width': 100, 'quantity': 1, 'unit_price': 90, 'total_price': 90}],
    )
    return db, north, south, film, foil


def _ranking(sort_by=None, limit=None) -> RankOptions:
    return RankOptions.parse(
        sort_by=sort_by,
        sort_order=None,
        limit=limit,
        allowed=frozenset({'quantity', 'revenue', 'profit'}),
        default_sort='quantity',
    )


def test_product_sales_profit_uses_catalog_cost() -> None:
    db, _, _, film, foil = _seeded()
    options = LineReportOptions.parse(start_date='2024-01-01', end_date='2024-12-31')

    payload = product_sales(db, options, group_by='product', ranking=_ranking('profit'))

    film_row = payload['data'][0]
    assert film_row['product_id'] == film.id
    assert film_row['total_revenue'] == Decimal('860.00')
    assert film_row['total_cost'] == Decimal('480.00')
    assert film_row['gross_profit'] == Decimal('380.00')
    assert film_row['profit_margin'] == Decimal('44.19')
    assert film_row['unique_customer_count'] == 2
    assert film_row['widths_sold'] == [Decimal('100'), Decimal('120')]
    foil_row = payload['data'][1]
    # no cost on file counts as zero
    assert foil_row['gross_profit'] == Decimal('100.00')
    assert payload['summary']['total_unique_invoices'] == 2
    assert payload['summary']['total_line_items'] == 3


def test_product_sales_grouped_by_customer() -> None:
    db, north, south, _, _ = _seeded()
    options = LineReportOptions.parse(start_date='2024-01-01')

    payload = product_sales(db, options, group_by='customer', ranking=_ranking('revenue', limit='1'))

    assert [row['customer_id'] for row in payload['data']] == [north.id]
    assert payload['summary']['groups_analyzed'] == 2


def test_average_sale_cost_with_trend() -> None:
    db, _, _, film, _ = _seeded()
    options = LineReportOptions.parse(product_id=str(film.id))

    payload = average_sale_cost(db, options, include_time_trend=True, time_bucket='quarter')

    row = payload['data'][0]
    assert row['min_sale_price'] == Decimal('90.00')
    assert row['max_sale_price'] == Decimal('120.00')
    assert row['price_range'] == Decimal('30.00')
    assert row['sample_count'] == 3
    assert row['confidence_level'] == 'Low'
    assert [point['period'] for point in payload['time_trend']] == ['2023-Q1', '2024-Q1']
    assert payload['market_summary']['total_quantity_sold'] == Decimal('9')


def test_top_products_defaults_to_revenue() -> None:
    db, _, _, film, _ = _seeded()

    payload = top_products(db, DateWindow(), metric='revenue', limit=1)

    assert [(row['rank'], row['product_id']) for row in payload['data']] == [(1, film.id)]


def test_customer_patterns_filters_on_min_purchase_value() -> None:
    db, north, _, _, _ = _seeded()

    payload = customer_patterns(
        db,
        DateWindow(),
        customer_id=None,
        min_purchase_value=Decimal('650'),
        limit=20,
        now=datetime(2024, 4, 10),
    )

    assert [row['customer_id'] for row in payload['data']] == [north.id]
    row = payload['data'][0]
    assert row['total_invoices'] == 2
    assert row['total_purchase_value'] == Decimal('708.00')
    assert row['days_since_last_purchase'] == 91
    assert row['first_purchase'] == datetime(2023, 3, 5)
    assert payload['summary']['customers_analyzed'] == 1


def test_monthly_dashboard_with_comparison() -> None:
    db, _, _, _, _ = _seeded()

    payload = monthly_dashboard(db, MonthlyDashboardOptions(year=2024, compare_with_last_year=True))

    assert [row['month'] for row in payload['data']] == [1, 3]
    january = payload['data'][0]
    assert january['total_tax'] == Decimal('18.00')
    assert january['total_revenue'] == Decimal('618.00')
    assert payload['insights']['best_month']['month'] == 'January'
    assert payload['insights']['worst_month']['month'] == 'March'
    assert payload['year_summary']['total_invoices'] == 2
    assert payload['year_summary']['average_monthly_invoices'] == 0
    march = payload['comparison'][1]
    assert march['last_year']['revenue'] == Decimal('90.00')
    assert march['growth']['revenue_change_percent'] == Decimal('320.00')
    assert payload['comparison'][0]['growth']['revenue_change_percent'] is None


def test_monthly_dashboard_without_data() -> None:
    db = make_session()

    payload = monthly_dashboard(db, MonthlyDashboardOptions(year=2030))

    assert payload['data'] == []
    assert payload['insights'] == {'best_month': None, 'worst_month': None, 'revenue_volatility': None}
    assert 'comparison' not in payload


def test_dashboard_sections() -> None:
    db, north, _, film, _ = _seeded()

    payload = analytics_dashboard(db, DateWindow(), now=datetime(2024, 4, 1))

    data = payload['data']
    assert data['overall_metrics']['total_invoices'] == 3
    assert data['top_products'][0]['product_id'] == film.id
    assert data['top_customers'][0]['customer_id'] == north.id
    assert [point['period'] for point in data['monthly_trend']] == ['2024-01', '2024-03']


def test_multi_width_monthly_breakdown() -> None:
    db, _, _, film, _ = _seeded()
    product_id, widths, window = parse_multi_width_request(str(film.id), [100, '120', 'x'], year=2024)

    payload = multi_width_monthly(db, product_id=product_id, widths=widths, window=window)

    assert widths == (Decimal('100'), Decimal('120'))
    assert [row['month_name'] for row in payload['data']] == ['January', 'March']
    assert payload['data'][0]['width_breakdown'] == [
        {'width': Decimal('100'), 'quantity': Decimal('5'), 'revenue': Decimal('500.00')}
    ]
    summary = payload['summary']
    assert summary['total_quantity'] == Decimal('8')
    assert [row['percentage_of_total'] for row in summary['width_wise_summary']] == [
        Decimal('62.50'),
        Decimal('37.50'),
    ]


def test_multi_width_request_validation() -> None:
    with pytest.raises(HTTPException) as missing_product:
        parse_multi_width_request(None, [100])
    assert missing_product.value.detail == 'productId is required'

    with pytest.raises(HTTPException) as no_widths:
        parse_multi_width_request('3', [])
    assert no_widths.value.status_code == 400
