"""Declarative grouping of flattened facts.

A report is described by a :class:`ReportSpec` (group keys, metrics, sort,
limit) and executed in stages: bucket, measure, rank, truncate. The full
ranked row set is always returned next to the truncated page so summaries can
be computed over every group.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from statistics import pstdev
from typing import Any

from tradedesk.services.periods import period_label


Fact = Any
FieldRef = str | Callable[[Fact], Any]


@dataclass(frozen=True)
class GroupKey:
    name: str
    output: str
    extract: Callable[[Fact], Any]


def _time_key(granularity: str) -> GroupKey:
    return GroupKey(
        name=granularity,
        output="period",
        extract=lambda fact: period_label(fact.invoice_date, granularity),
    )


GROUP_KEYS: dict[str, GroupKey] = {
    "width": GroupKey("width", "width", lambda fact: fact.width),
    "month": _time_key("month"),
    "quarter": _time_key("quarter"),
    "week": _time_key("week"),
    "year": _time_key("year"),
    "month_number": GroupKey("month_number", "month", lambda fact: fact.invoice_date.month),
    "product": GroupKey("product", "product_id", lambda fact: fact.product_id),
    "customer": GroupKey("customer", "customer_id", lambda fact: fact.customer_id),
}


@dataclass(frozen=True)
class Metric:
    """``kind`` is one of sum, avg, min, max, stddev, distinct, first,
    earliest, latest, count_lines, count_invoices or invoice_avg (mean of
    ``source`` taken once per invoice)."""

    name: str
    kind: str
    source: FieldRef | None = None


@dataclass(frozen=True)
class SortSpec:
    metric: str
    descending: bool = True


@dataclass(frozen=True)
class ReportSpec:
    """``derived`` columns are computed from the measured row, in order;
    ``having`` drops groups before ranking."""

    group_by: tuple[str, ...]
    metrics: tuple[Metric, ...]
    derived: tuple[tuple[str, Callable[[dict[str, Any]], Any]], ...] = ()
    having: Callable[[dict[str, Any]], bool] | None = None
    sort: SortSpec | None = None
    limit: int | None = None


@dataclass
class ReportResult:
    rows: list[dict[str, Any]]
    page: list[dict[str, Any]] = field(default_factory=list)

    @property
    def total_groups(self) -> int:
        return len(self.rows)


def _reader(source: FieldRef | None) -> Callable[[Fact], Any]:
    if source is None:
        return lambda fact: None
    if callable(source):
        return source
    return lambda fact: getattr(fact, source)


def _present(values: Iterable[Any]) -> list[Any]:
    return [value for value in values if value is not None]


def _as_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _sortable(value: Any) -> tuple[bool, Any]:
    return (value is not None, value)


def measure(metric: Metric, facts: Sequence[Fact]) -> Any:
    read = _reader(metric.source)
    if metric.kind == "sum":
        return sum((_as_decimal(read(fact)) for fact in facts), Decimal("0"))
    if metric.kind == "count_lines":
        return len(facts)
    if metric.kind == "count_invoices":
        return len({fact.invoice_id for fact in facts})
    if metric.kind in {"earliest", "latest"}:
        present = _present(read(fact) for fact in facts)
        if not present:
            return None
        return min(present) if metric.kind == "earliest" else max(present)
    if metric.kind == "first":
        present = _present(read(fact) for fact in facts)
        return present[0] if present else None
    if metric.kind == "distinct":
        present = set(_present(read(fact) for fact in facts))
        return sorted(present, key=lambda value: (str(type(value)), value))
    if metric.kind == "invoice_avg":
        per_invoice: dict[int, Decimal] = {}
        for fact in facts:
            per_invoice.setdefault(fact.invoice_id, _as_decimal(read(fact)))
        if not per_invoice:
            return None
        return sum(per_invoice.values(), Decimal("0")) / Decimal(len(per_invoice))

    numbers = [_as_decimal(value) for value in _present(read(fact) for fact in facts)]
    if not numbers:
        return None
    if metric.kind == "avg":
        return sum(numbers, Decimal("0")) / Decimal(len(numbers))
    if metric.kind == "min":
        return min(numbers)
    if metric.kind == "max":
        return max(numbers)
    if metric.kind == "stddev":
        return pstdev(numbers)
    raise ValueError(f"Unknown metric kind: {metric.kind}")


def bucket(facts: Iterable[Fact], group_by: Sequence[str]) -> dict[tuple, list[Fact]]:
    keys = [GROUP_KEYS[name] for name in group_by]
    groups: dict[tuple, list[Fact]] = {}
    for fact in facts:
        group = tuple(key.extract(fact) for key in keys)
        groups.setdefault(group, []).append(fact)
    return groups


def rank(rows: list[dict[str, Any]], sort: SortSpec | None, key_columns: Sequence[str]) -> list[dict[str, Any]]:
    """Sort by ``sort.metric`` with group-key ascending as the stable tie-break."""
    ordered = sorted(rows, key=lambda row: tuple(_sortable(row.get(column)) for column in key_columns))
    if sort is None:
        return ordered
    return sorted(ordered, key=lambda row: _sortable(row.get(sort.metric)), reverse=sort.descending)


def truncate(rows: list[dict[str, Any]], limit: int | None) -> list[dict[str, Any]]:
    if limit is None or limit <= 0:
        return list(rows)
    return rows[:limit]


def run_report(facts: Iterable[Fact], spec: ReportSpec) -> ReportResult:
    keys = [GROUP_KEYS[name] for name in spec.group_by]
    rows: list[dict[str, Any]] = []
    for group, members in bucket(facts, spec.group_by).items():
        row: dict[str, Any] = {key.output: value for key, value in zip(keys, group)}
        for metric in spec.metrics:
            row[metric.name] = measure(metric, members)
        for name, compute in spec.derived:
            row[name] = compute(row)
        if spec.having is not None and not spec.having(row):
            continue
        rows.append(row)
    ranked = rank(rows, spec.sort, [key.output for key in keys])
    return ReportResult(rows=ranked, page=truncate(ranked, spec.limit))


def column_total(rows: Iterable[dict[str, Any]], column: str) -> Decimal:
    return sum((_as_decimal(row.get(column)) for row in rows), Decimal("0"))
