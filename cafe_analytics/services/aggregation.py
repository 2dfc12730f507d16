"""Pure grouping and reduction over sale records.

Every rollup the dashboards and exports show is computed here and nowhere
else. Functions take already-fetched records and return plain dataclasses;
they hold no state between calls.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from cafe_analytics.domain.records import ZERO, MonthlySalesRow, ProductInfo, SaleRecord, SalesTargetRecord
from cafe_analytics.services.calendar_buckets import (
    HOURS_PER_DAY,
    MONTHS_PER_YEAR,
    WEEKDAY_LABELS,
    hour_bucket,
    month_key,
    month_key_for,
    weekday_bucket,
)

Q2 = Decimal("0.01")
HUNDRED = Decimal("100")
UNKNOWN_PRODUCT = "unknown"
UNCATEGORIZED = "uncategorized"


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2, rounding=ROUND_HALF_UP)


def percentage(numerator: Decimal, denominator: Decimal) -> Decimal:
    """``numerator / denominator * 100`` to two places, 0 for a zero denominator."""

    if denominator == 0:
        return ZERO
    return _q2(numerator / denominator * HUNDRED)


def achievement_rate(actual: Decimal, target: Decimal) -> int:
    if target <= 0:
        return 0
    return int((actual / target * HUNDRED).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True, slots=True)
class DailyAggregate:
    sale_date: date
    total_sales: Decimal
    total_cost: Decimal
    gross_profit: Decimal
    gross_margin_pct: Decimal
    item_count: int
    transaction_count: int


@dataclass(frozen=True, slots=True)
class MonthlyTotal:
    month: str
    total_sales: Decimal
    gross_profit: Decimal


@dataclass(frozen=True, slots=True)
class ProductAggregate:
    product_id: UUID
    product_name: str
    category_id: UUID | None
    category_name: str | None
    quantity_sold: int
    total_sales: Decimal
    total_cost: Decimal

    @property
    def gross_profit(self) -> Decimal:
        return self.total_sales - self.total_cost

    @property
    def gross_margin_pct(self) -> Decimal:
        return percentage(self.gross_profit, self.total_sales)


@dataclass(frozen=True, slots=True)
class CategoryTotal:
    category: str
    total_sales: Decimal


@dataclass(frozen=True, slots=True)
class HourlyTotal:
    hour: int
    total_sales: Decimal
    transaction_count: int
    item_count: int


@dataclass(frozen=True, slots=True)
class WeekdayTotal:
    weekday: int
    label: str
    total_sales: Decimal
    day_count: int
    average_sales: Decimal


@dataclass(frozen=True, slots=True)
class TargetAchievement:
    month: int
    target_amount: Decimal
    actual_amount: Decimal
    achievement_rate: int


@dataclass(frozen=True, slots=True)
class MonthlyReport:
    year: int
    month: int
    total_sales: Decimal
    total_cost: Decimal
    gross_profit: Decimal
    gross_margin_pct: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    target_amount: Decimal
    achievement_rate: int


@dataclass(frozen=True, slots=True)
class SalesOverview:
    as_of: date
    total_sales: Decimal
    total_cost: Decimal
    today_sales: Decimal
    current_month_sales: Decimal
    previous_month_sales: Decimal
    last_year_month_sales: Decimal
    cost_rate: Decimal


# ---------- Daily / monthly ----------
def build_daily_trend(records: Iterable[SaleRecord]) -> list[DailyAggregate]:
    buckets: dict[date, dict[str, object]] = {}
    for record in records:
        bucket = buckets.setdefault(
            record.sale_date,
            {"sales": ZERO, "cost": ZERO, "items": 0, "transactions": 0},
        )
        bucket["sales"] += record.revenue
        bucket["cost"] += record.cost
        bucket["items"] += record.quantity_sold
        bucket["transactions"] += 1

    trend: list[DailyAggregate] = []
    for sale_date in sorted(buckets):
        bucket = buckets[sale_date]
        total_sales = _q2(bucket["sales"])
        total_cost = _q2(bucket["cost"])
        gross_profit = total_sales - total_cost
        trend.append(
            DailyAggregate(
                sale_date=sale_date,
                total_sales=total_sales,
                total_cost=total_cost,
                gross_profit=gross_profit,
                gross_margin_pct=percentage(gross_profit, total_sales),
                item_count=bucket["items"],
                transaction_count=bucket["transactions"],
            )
        )
    return trend


def group_daily_by_month(trend: Iterable[DailyAggregate]) -> list[MonthlyTotal]:
    sales_by_month: dict[str, Decimal] = {}
    profit_by_month: dict[str, Decimal] = {}
    for day in trend:
        key = month_key(day.sale_date)
        sales_by_month[key] = sales_by_month.get(key, ZERO) + day.total_sales
        profit_by_month[key] = profit_by_month.get(key, ZERO) + day.gross_profit

    return [
        MonthlyTotal(month=key, total_sales=_q2(sales_by_month[key]), gross_profit=_q2(profit_by_month[key]))
        for key in sorted(sales_by_month)
    ]


def monthly_totals_from_rows(rows: Iterable[MonthlySalesRow]) -> list[MonthlyTotal]:
    totals = [
        MonthlyTotal(
            month=month_key_for(row.year, row.month),
            total_sales=_q2(row.total_sales),
            gross_profit=_q2(row.total_sales) - _q2(row.total_cost),
        )
        for row in rows
    ]
    return sorted(totals, key=lambda row: row.month)


# ---------- Products / categories ----------
def aggregate_products(
    records: Iterable[SaleRecord],
    catalog: Mapping[UUID, ProductInfo],
) -> list[ProductAggregate]:
    """Per-product totals in first-seen order."""

    buckets: dict[UUID, dict[str, object]] = {}
    for record in records:
        bucket = buckets.setdefault(record.product_id, {"quantity": 0, "sales": ZERO, "cost": ZERO})
        bucket["quantity"] += record.quantity_sold
        bucket["sales"] += record.revenue
        bucket["cost"] += record.cost

    aggregates: list[ProductAggregate] = []
    for product_id, bucket in buckets.items():
        info = catalog.get(product_id)
        aggregates.append(
            ProductAggregate(
                product_id=product_id,
                product_name=info.name if info and info.name else UNKNOWN_PRODUCT,
                category_id=info.category_id if info else None,
                category_name=info.category_name if info else None,
                quantity_sold=bucket["quantity"],
                total_sales=_q2(bucket["sales"]),
                total_cost=_q2(bucket["cost"]),
            )
        )
    return aggregates


def rank_products(aggregates: Sequence[ProductAggregate], top_n: int) -> list[ProductAggregate]:
    # sorted() is stable, so equal totals keep first-seen order.
    return sorted(aggregates, key=lambda row: row.total_sales, reverse=True)[:top_n]


def break_down_categories(aggregates: Iterable[ProductAggregate]) -> list[CategoryTotal]:
    totals: dict[str, Decimal] = {}
    for row in aggregates:
        category = row.category_name or UNCATEGORIZED
        totals[category] = totals.get(category, ZERO) + row.total_sales

    breakdown = [CategoryTotal(category=name, total_sales=_q2(amount)) for name, amount in totals.items()]
    return sorted(breakdown, key=lambda row: row.total_sales, reverse=True)


# ---------- Fixed-cardinality buckets ----------
def bucket_hourly(records: Iterable[SaleRecord], tz: tzinfo | None = None) -> list[HourlyTotal]:
    sales = [ZERO] * HOURS_PER_DAY
    transactions = [0] * HOURS_PER_DAY
    items = [0] * HOURS_PER_DAY
    for record in records:
        hour = hour_bucket(record.sold_at, tz)
        sales[hour] += record.revenue
        transactions[hour] += 1
        items[hour] += record.quantity_sold

    return [
        HourlyTotal(hour=hour, total_sales=_q2(sales[hour]), transaction_count=transactions[hour], item_count=items[hour])
        for hour in range(HOURS_PER_DAY)
    ]


def bucket_weekdays(trend: Iterable[DailyAggregate]) -> list[WeekdayTotal]:
    sales = [ZERO] * len(WEEKDAY_LABELS)
    days = [0] * len(WEEKDAY_LABELS)
    for day in trend:
        index = weekday_bucket(day.sale_date)
        sales[index] += day.total_sales
        days[index] += 1

    output: list[WeekdayTotal] = []
    for index, label in enumerate(WEEKDAY_LABELS):
        total = _q2(sales[index])
        average = _q2(total / days[index]) if days[index] else ZERO
        output.append(
            WeekdayTotal(weekday=index, label=label, total_sales=total, day_count=days[index], average_sales=average)
        )
    return output


def build_target_achievement(
    year: int,
    trend: Iterable[DailyAggregate],
    targets: Iterable[SalesTargetRecord],
) -> list[TargetAchievement]:
    actual_by_month = [ZERO] * (MONTHS_PER_YEAR + 1)
    for day in trend:
        if day.sale_date.year == year:
            actual_by_month[day.sale_date.month] += day.total_sales

    target_by_month = {target.month: target.target_amount for target in targets if target.year == year}

    achievement: list[TargetAchievement] = []
    for month in range(1, MONTHS_PER_YEAR + 1):
        target_amount = _q2(target_by_month.get(month, ZERO))
        actual = _q2(actual_by_month[month])
        achievement.append(
            TargetAchievement(
                month=month,
                target_amount=target_amount,
                actual_amount=actual,
                achievement_rate=achievement_rate(actual, target_amount),
            )
        )
    return achievement


# ---------- Financial summaries ----------
def build_monthly_report(
    year: int,
    month: int,
    trend: Iterable[DailyAggregate],
    total_expenses: Decimal,
    target: SalesTargetRecord | None,
) -> MonthlyReport:
    total_sales = ZERO
    total_cost = ZERO
    for day in trend:
        total_sales += day.total_sales
        total_cost += day.total_cost

    total_sales = _q2(total_sales)
    total_cost = _q2(total_cost)
    gross_profit = total_sales - total_cost
    expenses = _q2(total_expenses)
    target_amount = _q2(target.target_amount) if target is not None else ZERO
    return MonthlyReport(
        year=year,
        month=month,
        total_sales=total_sales,
        total_cost=total_cost,
        gross_profit=gross_profit,
        gross_margin_pct=percentage(gross_profit, total_sales),
        total_expenses=expenses,
        net_profit=gross_profit - expenses,
        target_amount=target_amount,
        achievement_rate=achievement_rate(total_sales, target_amount),
    )


def build_sales_overview(
    as_of: date,
    trend: Sequence[DailyAggregate],
    *,
    current_month: str,
    previous_month: str,
    last_year_month: str,
) -> SalesOverview:
    by_month = {row.month: row.total_sales for row in group_daily_by_month(trend)}
    total_sales = _q2(sum((day.total_sales for day in trend), ZERO))
    total_cost = _q2(sum((day.total_cost for day in trend), ZERO))
    today_sales = _q2(sum((day.total_sales for day in trend if day.sale_date == as_of), ZERO))
    return SalesOverview(
        as_of=as_of,
        total_sales=total_sales,
        total_cost=total_cost,
        today_sales=today_sales,
        current_month_sales=by_month.get(current_month, ZERO),
        previous_month_sales=by_month.get(previous_month, ZERO),
        last_year_month_sales=by_month.get(last_year_month, ZERO),
        cost_rate=percentage(total_cost, total_sales),
    )
