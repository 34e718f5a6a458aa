from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from tradedesk.utils.lenient import lenient_financial_year_token


FISCAL_YEAR_START_MONTH = 4
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


@dataclass(frozen=True)
class FinancialYearRange:
    start_year: int
    end_year: int
    start_date: datetime
    end_date: datetime

    @property
    def label(self) -> str:
        return f"{self.start_year}-{self.end_year % 100:02d}"

    def contains(self, moment: datetime) -> bool:
        return self.start_date <= moment <= self.end_date


def current_fiscal_start_year(today: date) -> int:
    # January to March still belong to the year that started last April
    return today.year if today.month >= FISCAL_YEAR_START_MONTH else today.year - 1


def resolve_financial_year(token: str | None = None, *, today: date | None = None) -> FinancialYearRange:
    """Map ``current``, ``previous`` or ``YYYY-YY`` to an April-March range.

    Unreadable tokens resolve to the current financial year.
    """
    today = today or date.today()
    normalized = lenient_financial_year_token(token)

    if normalized == "previous":
        start_year = current_fiscal_start_year(today) - 1
        end_year = start_year + 1
    elif normalized == "current":
        start_year = current_fiscal_start_year(today)
        end_year = start_year + 1
    else:
        start_part, end_part = normalized.split("-")
        start_year = int(start_part)
        end_year = 2000 + int(end_part) if len(end_part) == 2 else int(end_part)

    return FinancialYearRange(
        start_year=start_year,
        end_year=end_year,
        start_date=datetime(start_year, FISCAL_YEAR_START_MONTH, 1),
        end_date=datetime(end_year, 3, 31, 23, 59, 59, 999000),
    )


def calendar_year_range(year: int) -> tuple[datetime, datetime]:
    return datetime(year, 1, 1), datetime(year, 12, 31, 23, 59, 59, 999999)


def period_label(moment: datetime, granularity: str) -> str:
    if granularity == "year":
        return f"{moment.year:04d}"
    if granularity == "quarter":
        return f"{moment.year:04d}-Q{(moment.month - 1) // 3 + 1}"
    if granularity == "week":
        # Sunday-based week of year, 00-53
        return f"{moment.year:04d}-W{int(moment.strftime('%U')):02d}"
    return f"{moment.year:04d}-{moment.month:02d}"


def month_name(month: int) -> str:
    if 1 <= month <= 12:
        return MONTH_NAMES[month - 1]
    return "Unknown"
