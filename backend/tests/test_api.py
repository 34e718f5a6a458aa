from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from factories import add_customer, add_invoice, add_product
from tradedesk.api.deps import get_db
from tradedesk.api.routes.exports import WIDTH_COLUMNS
from tradedesk.db.base import Base
from tradedesk.main import app
from tradedesk.services.outstanding import create_opening_outstanding


@pytest.fixture()
def session_factory():
    engine = create_engine(
        'sqlite+pysqlite:///:memory:',
        future=True,
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

    def override_get_db():
        db = factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield factory
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture()
def client(session_factory) -> TestClient:
    return TestClient(app)


def _seed_sales(factory) -> None:
    db = factory()
    customer = add_customer(db)
    film = add_product(db)
    for quantity in (5, 3):
        add_invoice(
            db,
            customer,
            invoice_date=datetime(2024, 1, 15),
            lines=[
                {
                    'product': film,
                    'width': 100,
                    'quantity': quantity,
                    'unit_price': 100,
                    'total_price': quantity * 100,
                }
            ],
        )
    db.commit()
    db.close()


def _seed_outstanding(factory) -> dict:
    db = factory()
    customer = add_customer(db)
    live = add_invoice(db, customer, invoice_date=datetime(2024, 6, 1), total_amount='100', igst='18')
    archived = add_invoice(
        db,
        customer,
        invoice_date=datetime(2023, 11, 20),
        total_amount='500',
        archived=True,
        invoice_id=9001,
        number='OLD-0001',
    )
    db.commit()
    ids = {
        'customer_id': customer.id,
        'live_number': live.invoice_number,
        'archived_id': archived.id,
        'archived_number': archived.invoice_number,
    }
    db.close()
    return ids


def test_health_checks_the_database(client: TestClient) -> None:
    response = client.get('/api/health')

    assert response.status_code == 200
    assert response.json()['database'] == 'up'


def test_width_distribution_envelope_uses_camel_case(client: TestClient, session_factory) -> None:
    _seed_sales(session_factory)

    response = client.get('/api/analytics/width-distribution', params={'startDate': '2024-01-01'})

    assert response.status_code == 200
    body = response.json()
    assert body['success'] is True
    row = body['data'][0]
    assert row['totalQuantity'] == 8
    assert row['totalRevenue'] == 800
    assert row['invoiceCount'] == 2
    assert body['summary']['highestRevenueWidth'] == 100
    assert body['filters']['productId'] is None


def test_quantity_by_width_ignores_unknown_sort(client: TestClient, session_factory) -> None:
    _seed_sales(session_factory)

    response = client.get('/api/analytics/quantity-by-width', params={'sortBy': 'colour', 'limit': 'lots'})

    body = response.json()
    assert response.status_code == 200
    assert body['filters']['sortBy'] == 'quantity'
    assert body['filters']['limit'] is None
    assert body['summary']['recordsReturned'] == 1


def test_malformed_id_is_a_bad_request(client: TestClient) -> None:
    response = client.get('/api/analytics/product-sales', params={'productId': 'abc'})

    assert response.status_code == 400
    assert response.json() == {'success': False, 'error': 'Invalid product ID format'}


def test_unknown_route_uses_error_envelope(client: TestClient) -> None:
    response = client.get('/api/does-not-exist')

    assert response.status_code == 404
    assert response.json()['success'] is False


def test_unexpected_failure_returns_500_envelope(client: TestClient, monkeypatch) -> None:
    def broken(*args, **kwargs):
        raise RuntimeError('width report exploded')

    monkeypatch.setattr('tradedesk.api.routes.analytics.width_distribution', broken)

    response = client.get('/api/analytics/width-distribution')

    assert response.status_code == 500
    assert response.json() == {'success': False, 'error': 'width report exploded'}


def test_diagnose_keeps_issue_codes_verbatim(client: TestClient, session_factory) -> None:
    db = session_factory()
    customer = add_customer(db)
    add_invoice(
        db,
        customer,
        invoice_date=datetime(2024, 2, 2),
        lines=[{'product': add_product(db), 'width': 90, 'quantity': 2, 'unit_price': 10, 'total_price': None}],
    )
    db.commit()
    db.close()

    response = client.get('/api/analytics/diagnose-width-revenue', params={'year': '2024'})

    body = response.json()
    assert list(body['issuesByType']) == ['NULL_TOTAL_PRICE']
    assert body['summary']['totalIssuesFound'] == 1


def test_multi_width_monthly_requires_widths(client: TestClient) -> None:
    response = client.post('/api/analytics/multi-width-monthly', json={'productId': 1, 'widths': []})

    assert response.status_code == 400
    assert response.json()['error'] == 'widths must be a non-empty array'


def test_opening_outstanding_create_and_duplicate(client: TestClient, session_factory) -> None:
    ids = _seed_outstanding(session_factory)
    payload = {
        'customer': ids['customer_id'],
        'invoiceId': ids['archived_id'],
        'invoiceNumber': ids['archived_number'],
        'invoiceDate': '2023-11-20T00:00:00',
        'openingPendingAmount': 500,
    }

    created = client.post('/api/opening-outstanding', json=payload)
    duplicate = client.post('/api/opening-outstanding', json=payload)

    assert created.status_code == 201
    data = created.json()['data']
    assert data['balancePending'] == 500
    assert data['asOfDate'] == '2024-04-01'
    assert duplicate.status_code == 400
    assert duplicate.json()['error'] == 'Opening outstanding already exists for invoice OLD-0001'


def test_opening_outstanding_requires_fields(client: TestClient) -> None:
    response = client.post('/api/opening-outstanding', json={'invoiceNumber': 'X-1'})

    assert response.status_code == 400
    assert response.json()['error'].startswith('Missing required fields')


def test_pending_invoices_merge_opening_and_current(client: TestClient, session_factory) -> None:
    ids = _seed_outstanding(session_factory)
    db = session_factory()
    create_opening_outstanding(
        db,
        customer_id=ids['customer_id'],
        invoice_id=ids['archived_id'],
        invoice_number=ids['archived_number'],
        invoice_date=datetime(2023, 11, 20),
        opening_pending_amount=Decimal('500'),
        adjusted_amount=Decimal('120'),
    )
    db.commit()
    db.close()

    response = client.get(f"/api/customers/{ids['customer_id']}/pending-invoices")

    assert response.status_code == 200
    body = response.json()
    rows = body['data']['pendingInvoices']
    assert [row['type'] for row in rows] == ['opening', 'current']
    assert rows[0]['pendingAmount'] == 380
    assert body['data']['summary']['totalPending'] == 498
    assert body['filters']['includeOpeningOutstanding'] is True


def test_pending_invoices_unknown_customer(client: TestClient) -> None:
    response = client.get('/api/customers/404/pending-invoices')

    assert response.status_code == 404
    assert response.json()['error'] == 'Customer with ID 404 not found'


def test_allocation_updates_live_invoice(client: TestClient, session_factory) -> None:
    ids = _seed_outstanding(session_factory)

    response = client.post(f"/api/invoices/{ids['live_number']}/allocations", json={'amount': 118})

    assert response.status_code == 200
    data = response.json()['data']
    assert data['paymentStatus'] == 'PAID'
    assert data['pendingAmount'] == 0


def test_allocation_to_archived_invoice_is_a_conflict(client: TestClient, session_factory) -> None:
    ids = _seed_outstanding(session_factory)

    response = client.post(f"/api/invoices/{ids['archived_number']}/allocations", json={'amount': 10})

    assert response.status_code == 409
    assert response.json()['success'] is False


def test_allocation_rejects_non_positive_amount(client: TestClient, session_factory) -> None:
    ids = _seed_outstanding(session_factory)

    response = client.post(f"/api/invoices/{ids['live_number']}/allocations", json={'amount': 0})

    assert response.status_code == 400
    assert response.json()['error'].startswith('amount')


def test_payment_history_for_archived_invoice(client: TestClient, session_factory) -> None:
    ids = _seed_outstanding(session_factory)

    response = client.get(f"/api/invoices/{ids['archived_id']}/payments")

    assert response.status_code == 200
    invoice = response.json()['data']['invoice']
    assert invoice['isArchived'] is True
    assert invoice['isOpeningOutstanding'] is False


def test_customer_ledger_by_financial_year(client: TestClient, session_factory) -> None:
    ids = _seed_outstanding(session_factory)

    response = client.get(
        f"/api/customers/{ids['customer_id']}/invoices",
        params={'financialYear': '2024-2025', 'sortBy': 'createdAt'},
    )

    assert response.status_code == 200
    body = response.json()
    assert [invoice['invoiceNumber'] for invoice in body['data']] == [ids['live_number']]
    assert body['summary']['grandTotal'] == 118


def test_outstanding_statement_pdf(client: TestClient, session_factory) -> None:
    ids = _seed_outstanding(session_factory)

    response = client.get(f"/api/customers/{ids['customer_id']}/outstanding-statement.pdf")

    assert response.status_code == 200
    assert response.headers['content-type'] == 'application/pdf'
    assert response.content.startswith(b'%PDF')


def test_width_distribution_csv_export(client: TestClient, session_factory) -> None:
    _seed_sales(session_factory)

    response = client.get('/api/analytics/exports/width-distribution.csv')

    assert response.status_code == 200
    assert response.headers['content-type'].startswith('text/csv')
    lines = response.text.strip().splitlines()
    assert lines[0] == ','.join(WIDTH_COLUMNS)
    assert len(lines) == 2


def test_opening_invoice_is_created_on_the_live_store(client: TestClient, session_factory) -> None:
    ids = _seed_outstanding(session_factory)
    payload = {
        'customerId': ids['customer_id'],
        'invoiceNumber': 'OB-2024-001',
        'totalAmount': 750,
        'paidAmount': 250,
    }

    created = client.post('/api/invoices/opening', json=payload)
    duplicate = client.post('/api/invoices/opening', json=payload)

    assert created.status_code == 201
    data = created.json()['data']
    assert data['paymentStatus'] == 'PARTIAL'
    assert data['pendingAmount'] == 500
    assert duplicate.status_code == 400


@pytest.mark.parametrize('year', ['0', '-3', '99999'])
def test_out_of_range_year_falls_back_to_this_year(client: TestClient, year: str) -> None:
    diagnosis = client.get('/api/analytics/diagnose-width-revenue', params={'year': year})
    fixes = client.get('/api/analytics/suggest-data-fixes', params={'year': year})

    assert diagnosis.status_code == 200
    assert diagnosis.json()['filters']['year'] == datetime.now().year
    assert fixes.status_code == 200
    assert fixes.json()['filters']['year'] == datetime.now().year


def test_multi_width_monthly_with_out_of_range_year(client: TestClient, session_factory) -> None:
    _seed_sales(session_factory)

    response = client.post(
        '/api/analytics/multi-width-monthly',
        json={'productId': 1, 'widths': [100], 'year': 99999},
    )

    assert response.status_code == 200
    assert response.json()['filters']['startDate'].startswith(str(datetime.now().year))


def test_sales_trends_with_huge_lookback_uses_default(client: TestClient) -> None:
    response = client.get('/api/analytics/sales-trends', params={'months': '999999'})

    assert response.status_code == 200
    body = response.json()
    assert body['data'] == []
    assert body['forecast'] == {'nextPeriodEstimate': 0, 'basedOnPeriods': 3, 'confidence': 'Medium'}
