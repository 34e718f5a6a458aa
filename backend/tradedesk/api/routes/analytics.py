from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tradedesk.api.deps import get_db
from tradedesk.core.config import get_settings
from tradedesk.schemas.analytics import MultiWidthMonthlyRequest
from tradedesk.schemas.common import envelope
from tradedesk.services.analytics import (
    analytics_dashboard,
    average_sale_cost,
    customer_patterns,
    monthly_dashboard,
    multi_width_monthly,
    parse_multi_width_request,
    product_sales,
    quantity_by_width,
    top_products,
    width_distribution,
)
from tradedesk.services.data_quality import diagnose_width_revenue, suggest_data_fixes
from tradedesk.services.options import (
    PRODUCT_SALES_GROUPS,
    DateWindow,
    LineReportOptions,
    MonthlyDashboardOptions,
    RankOptions,
    TrendOptions,
    parse_id,
)
from tradedesk.services.trends import sales_trends
from tradedesk.utils.lenient import lenient_bool, lenient_choice, lenient_decimal, lenient_int, lenient_year


router = APIRouter(prefix="/analytics", tags=["analytics"])


def line_report_options(
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    product_id: str | None = Query(default=None, alias="productId"),
    customer_id: str | None = Query(default=None, alias="customerId"),
    width_range: str | None = Query(default=None, alias="widthRange"),
    min_quantity: str | None = Query(default=None, alias="minQuantity"),
    max_quantity: str | None = Query(default=None, alias="maxQuantity"),
) -> LineReportOptions:
    return LineReportOptions.parse(
        start_date=start_date,
        end_date=end_date,
        product_id=product_id,
        customer_id=customer_id,
        width_range=width_range,
        min_quantity=min_quantity,
        max_quantity=max_quantity,
    )


def date_window(
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
) -> DateWindow:
    return DateWindow.parse(start_date, end_date)


@router.get("/quantity-by-width")
def get_quantity_by_width(
    options: LineReportOptions = Depends(line_report_options),
    group_by: str | None = Query(default=None, alias="groupBy"),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    sort_order: str | None = Query(default=None, alias="sortOrder"),
    limit: str | None = None,
    db: Session = Depends(get_db),
):
    ranking = RankOptions.parse(
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        allowed=frozenset({"quantity", "revenue", "width"}),
        default_sort="quantity",
    )
    time_bucket = lenient_choice(group_by, frozenset({"month", "quarter", "week", "year"}), "")
    return envelope(quantity_by_width(db, options, group_by=time_bucket or None, ranking=ranking))


@router.get("/width-distribution")
def get_width_distribution(
    options: LineReportOptions = Depends(line_report_options),
    db: Session = Depends(get_db),
):
    return envelope(width_distribution(db, options))


@router.get("/product-sales")
def get_product_sales(
    options: LineReportOptions = Depends(line_report_options),
    group_by: str | None = Query(default=None, alias="groupBy"),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    sort_order: str | None = Query(default=None, alias="sortOrder"),
    limit: str | None = None,
    db: Session = Depends(get_db),
):
    ranking = RankOptions.parse(
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        allowed=frozenset({"quantity", "revenue", "profit"}),
        default_sort="quantity",
    )
    grouping = lenient_choice(group_by, PRODUCT_SALES_GROUPS, "product")
    return envelope(product_sales(db, options, group_by=grouping, ranking=ranking))


@router.get("/average-sale-cost")
def get_average_sale_cost(
    options: LineReportOptions = Depends(line_report_options),
    include_time_trend: str | None = Query(default=None, alias="includeTimeTrend"),
    group_by: str | None = Query(default=None, alias="groupBy"),
    db: Session = Depends(get_db),
):
    return envelope(
        average_sale_cost(
            db,
            options,
            include_time_trend=lenient_bool(include_time_trend),
            time_bucket=lenient_choice(group_by, frozenset({"month", "quarter"}), "month"),
        )
    )


@router.get("/top-products")
def get_top_products(
    window: DateWindow = Depends(date_window),
    metric: str | None = None,
    limit: str | None = None,
    db: Session = Depends(get_db),
):
    ranking = RankOptions.parse(
        sort_by=metric,
        sort_order="desc",
        limit=limit,
        allowed=frozenset({"revenue", "quantity"}),
        default_sort="revenue",
        default_limit=10,
    )
    return envelope(top_products(db, window, metric=ranking.sort_by, limit=ranking.limit))


@router.get("/customer-patterns")
def get_customer_patterns(
    window: DateWindow = Depends(date_window),
    customer_id: str | None = Query(default=None, alias="customerId"),
    min_purchase_value: str | None = Query(default=None, alias="minPurchaseValue"),
    limit: str | None = None,
    db: Session = Depends(get_db),
):
    parsed_limit = lenient_int(limit, 20)
    return envelope(
        customer_patterns(
            db,
            window,
            customer_id=parse_id(customer_id, "customer"),
            min_purchase_value=lenient_decimal(min_purchase_value),
            limit=parsed_limit if parsed_limit and parsed_limit > 0 else None,
        )
    )


@router.get("/sales-trends")
def get_sales_trends(
    months: str | None = None,
    group_by: str | None = Query(default=None, alias="groupBy"),
    product_id: str | None = Query(default=None, alias="productId"),
    db: Session = Depends(get_db),
):
    options = TrendOptions.parse(
        months=months,
        group_by=group_by,
        product_id=product_id,
        default_months=get_settings().default_trend_months,
    )
    return envelope(sales_trends(db, options))


@router.get("/monthly-dashboard")
def get_monthly_dashboard(
    year: str | None = None,
    compare_with_last_year: str | None = Query(default=None, alias="compareWithLastYear"),
    db: Session = Depends(get_db),
):
    options = MonthlyDashboardOptions.parse(year=year, compare_with_last_year=compare_with_last_year)
    return envelope(monthly_dashboard(db, options))


@router.get("/dashboard")
def get_dashboard(window: DateWindow = Depends(date_window), db: Session = Depends(get_db)):
    return envelope(analytics_dashboard(db, window))


@router.post("/multi-width-monthly")
def post_multi_width_monthly(payload: MultiWidthMonthlyRequest, db: Session = Depends(get_db)):
    product_id, widths, window = parse_multi_width_request(
        payload.product_id,
        payload.widths,
        year=payload.year,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    return envelope(multi_width_monthly(db, product_id=product_id, widths=widths, window=window))


@router.get("/diagnose-width-revenue")
def get_diagnose_width_revenue(
    year: str | None = None,
    month: str | None = None,
    db: Session = Depends(get_db),
):
    parsed_month = lenient_int(month)
    return envelope(
        diagnose_width_revenue(
            db,
            year=lenient_year(year, datetime.now().year),
            month=parsed_month if parsed_month and 1 <= parsed_month <= 12 else None,
        )
    )


@router.get("/suggest-data-fixes")
def get_suggest_data_fixes(
    year: str | None = None,
    dry_run: str | None = Query(default=None, alias="dryRun"),
    db: Session = Depends(get_db),
):
    result = suggest_data_fixes(
        db,
        year=lenient_year(year, datetime.now().year),
        dry_run=lenient_bool(dry_run, default=True),
    )
    if not result["dry_run"]:
        db.commit()
    return envelope(result)
