"""Lenient parsing of loosely-typed query values.

Report endpoints accept their filters as raw query strings. A value that cannot
be read falls back to the documented default instead of failing the request;
these helpers are the single place that policy lives.
"""
from __future__ import annotations

import re
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Any


TRUE_TOKENS = {"true", "1", "yes", "on"}
FALSE_TOKENS = {"false", "0", "no", "off"}
FINANCIAL_YEAR_TOKEN = re.compile(r"^\s*(\d{4})\s*-\s*(\d{2}|\d{4})\s*$")
MIN_YEAR = 1900
MAX_YEAR = 9999


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def lenient_int(value: Any, default: int | None = None) -> int | None:
    if _blank(value):
        return default
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        pass
    try:
        return int(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError):
        return default


def lenient_year(value: Any, default: int) -> int:
    """A calendar year in MIN_YEAR..MAX_YEAR, otherwise ``default``."""
    parsed = lenient_int(value, default)
    if parsed is None or not MIN_YEAR <= parsed <= MAX_YEAR:
        return default
    return parsed


def lenient_decimal(value: Any, default: Decimal | None = None) -> Decimal | None:
    if _blank(value) or isinstance(value, bool):
        return default
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation:
        return default
    if not parsed.is_finite():
        return default
    return parsed


def lenient_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if _blank(value):
        return default
    token = str(value).strip().lower()
    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    return default


def lenient_datetime(value: Any, *, end_of_day: bool = False) -> datetime | None:
    """Parse an ISO date or datetime string.

    A bare date becomes midnight, or the last microsecond of that day when
    ``end_of_day`` is set, so an end date includes the whole day.
    """
    if _blank(value):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.max if end_of_day else time.min)
    raw = str(value).strip()
    try:
        parsed_date = date.fromisoformat(raw)
    except ValueError:
        parsed_date = None
    if parsed_date is not None:
        return datetime.combine(parsed_date, time.max if end_of_day else time.min)
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    # invoice dates are stored naive UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.replace(tzinfo=None)


def _fold(text: str) -> str:
    return text.strip().lower().replace("_", "")


def lenient_choice(value: Any, allowed: set[str] | frozenset[str], default: str) -> str:
    """Match ``value`` against ``allowed`` ignoring case and underscores.

    ``invoiceDate`` and ``invoice_date`` both select ``invoice_date``.
    """
    if _blank(value):
        return default
    token = _fold(str(value))
    for choice in allowed:
        if _fold(choice) == token:
            return choice
    return default


def lenient_financial_year_token(value: Any) -> str:
    """Normalize a financial-year token; anything unreadable means ``current``."""
    if _blank(value):
        return "current"
    token = str(value).strip().lower()
    if token in {"current", "previous"}:
        return token
    match = FINANCIAL_YEAR_TOKEN.match(token)
    if match is None:
        return "current"
    return f"{match.group(1)}-{match.group(2)}"
