import csv
import io
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from sqlalchemy.orm import Session

from tradedesk.api.deps import get_db
from tradedesk.api.routes.analytics import line_report_options
from tradedesk.services.analytics import width_distribution
from tradedesk.services.options import LineReportOptions


router = APIRouter(prefix="/analytics/exports", tags=["exports"])

WIDTH_COLUMNS = [
    "width",
    "total_quantity",
    "total_revenue",
    "average_price",
    "invoice_count",
    "line_count",
    "revenue_per_unit",
    "revenue_percentage",
    "quantity_percentage",
]


def _width_rows(db: Session, options: LineReportOptions) -> list[dict]:
    return [
        {key: row[key] for key in WIDTH_COLUMNS}
        for row in width_distribution(db, options)["data"]
    ]


@router.get("/width-distribution.csv")
def export_width_distribution_csv(
    options: LineReportOptions = Depends(line_report_options),
    db: Session = Depends(get_db),
):
    rows = _width_rows(db, options)
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=WIDTH_COLUMNS)
    writer.writeheader()
    writer.writerows(rows)
    output.seek(0)
    filename = f"width-distribution-{datetime.now().strftime('%Y%m%d%H%M%S')}.csv"
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/width-distribution.xlsx")
def export_width_distribution_excel(
    options: LineReportOptions = Depends(line_report_options),
    db: Session = Depends(get_db),
):
    rows = _width_rows(db, options)
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "WidthDistribution"
    sheet.append(WIDTH_COLUMNS)
    for row in rows:
        sheet.append([row[key] for key in WIDTH_COLUMNS])

    stream = io.BytesIO()
    workbook.save(stream)
    stream.seek(0)
    filename = f"width-distribution-{datetime.now().strftime('%Y%m%d%H%M%S')}.xlsx"
    return StreamingResponse(
        stream,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
