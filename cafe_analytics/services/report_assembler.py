"""Named report payloads built from analytics rollups.

Two payload shapes are produced:

* dashboard: ``{"type", "title", "data": [row dict, ...]}``
* export:    ``{"filename", "headers": [...], "data": [[cell, ...], ...]}``

Column order for every report type is fixed by ``ReportDefinition.headers``
and every export row has exactly one cell per header. Numbers are passed
through as ``Decimal``/``int``; formatting belongs to the presentation layer.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from cafe_analytics.core.errors import ValidationError
from cafe_analytics.services.budget_service import BudgetService, variance
from cafe_analytics.services.calendar_buckets import DateRange
from cafe_analytics.services.sales_analytics_service import SalesAnalyticsService

Row = dict[str, Any]


class ReportType(str, enum.Enum):
    DAILY_TREND = "daily_trend"
    MONTHLY_COMPARISON = "monthly_comparison"
    PRODUCT_RANKING = "product_ranking"
    CATEGORY_BREAKDOWN = "category_breakdown"
    HOURLY_SALES = "hourly_sales"
    WEEKDAY_SALES = "weekday_sales"
    TARGET_ACHIEVEMENT = "target_achievement"
    MONTHLY_REPORT = "monthly_report"
    BUDGET_VS_ACTUAL = "budget_vs_actual"
    SALES_OVERVIEW = "sales_overview"
    PRODUCT_SALES = "product_sales"
    EXPENSES = "expenses"


class ReportShape(str, enum.Enum):
    DASHBOARD = "dashboard"
    EXPORT = "export"


@dataclass(frozen=True, slots=True)
class ReportParams:
    start_date: date | None = None
    end_date: date | None = None
    year: int | None = None
    month: int | None = None
    top_n: int | None = None
    as_of: date | None = None

    @property
    def date_range(self) -> DateRange:
        return DateRange(start=self.start_date, end=self.end_date)

    def require_year(self) -> int:
        if self.year is None:
            raise ValidationError("year is required for this report.", context={"field": "year"})
        return self.year

    def require_month(self) -> int:
        if self.month is None:
            raise ValidationError("month is required for this report.", context={"field": "month"})
        return self.month

    def require_as_of(self) -> date:
        if self.as_of is None:
            raise ValidationError("as_of is required for this report.", context={"field": "as_of"})
        return self.as_of


@dataclass(slots=True)
class ReportSources:
    analytics: SalesAnalyticsService
    budgets: BudgetService


RowBuilder = Callable[[ReportSources, ReportParams], list[Row]]
FilenameBuilder = Callable[[ReportParams], str]


@dataclass(frozen=True, slots=True)
class ReportDefinition:
    report_type: ReportType
    title: str
    headers: tuple[str, ...]
    build_rows: RowBuilder
    filename: FilenameBuilder
    # Single-row summaries are exported as (item, amount) pairs.
    pivot_export: bool = False
    export_only: bool = False

    def columns(self) -> tuple[str, ...]:
        if self.pivot_export:
            return ("item", "amount")
        return self.headers


# ---------- Row builders ----------
def _daily_trend_rows(sources: ReportSources, params: ReportParams) -> list[Row]:
    return [
        {
            "date": row.sale_date.isoformat(),
            "total_sales": row.total_sales,
            "total_cost": row.total_cost,
            "gross_profit": row.gross_profit,
            "gross_margin_pct": row.gross_margin_pct,
            "item_count": row.item_count,
            "transaction_count": row.transaction_count,
        }
        for row in sources.analytics.daily_trend(params.date_range)
    ]


def _monthly_comparison_rows(sources: ReportSources, params: ReportParams) -> list[Row]:
    return [
        {"month": row.month, "total_sales": row.total_sales, "gross_profit": row.gross_profit}
        for row in sources.analytics.monthly_comparison(params.require_year())
    ]


def _product_ranking_rows(sources: ReportSources, params: ReportParams) -> list[Row]:
    ranking = sources.analytics.product_ranking(params.date_range, params.top_n)
    return [
        {
            "rank": position,
            "product_id": str(row.product_id),
            "product_name": row.product_name,
            "category_name": row.category_name,
            "quantity_sold": row.quantity_sold,
            "total_sales": row.total_sales,
            "total_cost": row.total_cost,
            "gross_profit": row.gross_profit,
            "gross_margin_pct": row.gross_margin_pct,
        }
        for position, row in enumerate(ranking, start=1)
    ]


def _category_breakdown_rows(sources: ReportSources, params: ReportParams) -> list[Row]:
    return [
        {"category": row.category, "total_sales": row.total_sales}
        for row in sources.analytics.category_breakdown(params.date_range)
    ]


def _hourly_rows(sources: ReportSources, params: ReportParams) -> list[Row]:
    return [
        {
            "hour": row.hour,
            "total_sales": row.total_sales,
            "transaction_count": row.transaction_count,
            "item_count": row.item_count,
        }
        for row in sources.analytics.hourly_sales(params.date_range)
    ]


def _weekday_rows(sources: ReportSources, params: ReportParams) -> list[Row]:
    return [
        {
            "weekday": row.weekday,
            "label": row.label,
            "total_sales": row.total_sales,
            "day_count": row.day_count,
            "average_sales": row.average_sales,
        }
        for row in sources.analytics.weekday_sales(params.date_range)
    ]


def _target_achievement_rows(sources: ReportSources, params: ReportParams) -> list[Row]:
    return [
        {
            "month": row.month,
            "target_amount": row.target_amount,
            "actual_amount": row.actual_amount,
            "achievement_rate": row.achievement_rate,
        }
        for row in sources.analytics.target_achievement(params.require_year())
    ]


def _monthly_report_rows(sources: ReportSources, params: ReportParams) -> list[Row]:
    report = sources.analytics.monthly_report(params.require_year(), params.require_month())
    return [
        {
            "total_sales": report.total_sales,
            "total_cost": report.total_cost,
            "gross_profit": report.gross_profit,
            "gross_margin_pct": report.gross_margin_pct,
            "total_expenses": report.total_expenses,
            "net_profit": report.net_profit,
            "target_amount": report.target_amount,
            "achievement_rate": report.achievement_rate,
        }
    ]


def _budget_vs_actual_rows(sources: ReportSources, params: ReportParams) -> list[Row]:
    return [
        {
            "year": row.year,
            "month": row.month,
            "category": row.category,
            "planned_amount": row.planned_amount,
            "actual_amount": row.actual_amount,
            "variance": variance(row),
        }
        for row in sources.budgets.budget_vs_actual(params.require_year())
    ]


def _sales_overview_rows(sources: ReportSources, params: ReportParams) -> list[Row]:
    overview = sources.analytics.sales_overview(params.require_as_of())
    return [
        {
            "total_sales": overview.total_sales,
            "today_sales": overview.today_sales,
            "current_month_sales": overview.current_month_sales,
            "previous_month_sales": overview.previous_month_sales,
            "last_year_month_sales": overview.last_year_month_sales,
            "cost_rate": overview.cost_rate,
        }
    ]


def _product_sales_rows(sources: ReportSources, params: ReportParams) -> list[Row]:
    return [
        {
            "date": record.sale_date.isoformat(),
            "product_name": product_name,
            "quantity_sold": record.quantity_sold,
            "total_sales": record.revenue,
            "total_cost": record.cost,
        }
        for record, product_name in sources.analytics.product_sales(params.date_range)
    ]


def _expense_rows(sources: ReportSources, params: ReportParams) -> list[Row]:
    return [
        {
            "date": row.expense_date.isoformat(),
            "category": row.category_name or "uncategorized",
            "amount": row.amount,
            "description": row.description or "",
            "vendor_name": row.vendor_name or "",
            "payment_method": row.payment_method,
            "status": row.status,
        }
        for row in sources.analytics.expense_entries(params.date_range)
    ]


def _range_filename(prefix: str) -> FilenameBuilder:
    return lambda params: f"{prefix}_{params.date_range.label()}"


def _year_filename(prefix: str) -> FilenameBuilder:
    return lambda params: f"{prefix}_{params.require_year()}"


REPORT_DEFINITIONS: dict[ReportType, ReportDefinition] = {
    definition.report_type: definition
    for definition in (
        ReportDefinition(
            report_type=ReportType.DAILY_TREND,
            title="Daily Sales Trend",
            headers=(
                "date",
                "total_sales",
                "total_cost",
                "gross_profit",
                "gross_margin_pct",
                "item_count",
                "transaction_count",
            ),
            build_rows=_daily_trend_rows,
            filename=_range_filename("daily_sales"),
        ),
        ReportDefinition(
            report_type=ReportType.MONTHLY_COMPARISON,
            title="Monthly Sales Comparison",
            headers=("month", "total_sales", "gross_profit"),
            build_rows=_monthly_comparison_rows,
            filename=_year_filename("monthly_comparison"),
        ),
        ReportDefinition(
            report_type=ReportType.PRODUCT_RANKING,
            title="Product Sales Ranking",
            headers=(
                "rank",
                "product_id",
                "product_name",
                "category_name",
                "quantity_sold",
                "total_sales",
                "total_cost",
                "gross_profit",
                "gross_margin_pct",
            ),
            build_rows=_product_ranking_rows,
            filename=_range_filename("product_ranking"),
        ),
        ReportDefinition(
            report_type=ReportType.CATEGORY_BREAKDOWN,
            title="Sales by Category",
            headers=("category", "total_sales"),
            build_rows=_category_breakdown_rows,
            filename=_range_filename("category_breakdown"),
        ),
        ReportDefinition(
            report_type=ReportType.HOURLY_SALES,
            title="Sales by Hour",
            headers=("hour", "total_sales", "transaction_count", "item_count"),
            build_rows=_hourly_rows,
            filename=_range_filename("hourly_sales"),
        ),
        ReportDefinition(
            report_type=ReportType.WEEKDAY_SALES,
            title="Sales by Weekday",
            headers=("weekday", "label", "total_sales", "day_count", "average_sales"),
            build_rows=_weekday_rows,
            filename=_range_filename("weekday_sales"),
        ),
        ReportDefinition(
            report_type=ReportType.TARGET_ACHIEVEMENT,
            title="Sales Target Achievement",
            headers=("month", "target_amount", "actual_amount", "achievement_rate"),
            build_rows=_target_achievement_rows,
            filename=_year_filename("target_achievement"),
        ),
        ReportDefinition(
            report_type=ReportType.MONTHLY_REPORT,
            title="Monthly Profit and Loss",
            headers=(
                "total_sales",
                "total_cost",
                "gross_profit",
                "gross_margin_pct",
                "total_expenses",
                "net_profit",
                "target_amount",
                "achievement_rate",
            ),
            build_rows=_monthly_report_rows,
            filename=lambda params: f"monthly_report_{params.require_year()}_{params.require_month():02d}",
            pivot_export=True,
        ),
        ReportDefinition(
            report_type=ReportType.BUDGET_VS_ACTUAL,
            title="Budget vs Actual",
            headers=("year", "month", "category", "planned_amount", "actual_amount", "variance"),
            build_rows=_budget_vs_actual_rows,
            filename=_year_filename("budget_vs_actual"),
        ),
        ReportDefinition(
            report_type=ReportType.SALES_OVERVIEW,
            title="Sales Overview",
            headers=(
                "total_sales",
                "today_sales",
                "current_month_sales",
                "previous_month_sales",
                "last_year_month_sales",
                "cost_rate",
            ),
            build_rows=_sales_overview_rows,
            filename=lambda params: f"sales_overview_{params.require_as_of().isoformat()}",
            pivot_export=True,
        ),
        ReportDefinition(
            report_type=ReportType.PRODUCT_SALES,
            title="Product Sales Ledger",
            headers=("date", "product_name", "quantity_sold", "total_sales", "total_cost"),
            build_rows=_product_sales_rows,
            filename=_range_filename("product_sales"),
            export_only=True,
        ),
        ReportDefinition(
            report_type=ReportType.EXPENSES,
            title="Expenses",
            headers=("date", "category", "amount", "description", "vendor_name", "payment_method", "status"),
            build_rows=_expense_rows,
            filename=_range_filename("expenses"),
            export_only=True,
        ),
    )
}


def resolve_report_type(value: str | ReportType | None) -> ReportType:
    if isinstance(value, ReportType):
        return value
    normalized = (value or "").strip().lower()
    if not normalized:
        raise ValidationError("report_type is required.", context={"field": "report_type"})
    try:
        return ReportType(normalized)
    except ValueError as exc:
        raise ValidationError(
            "Unknown report_type.",
            context={"report_type": value, "allowed": [item.value for item in ReportType]},
        ) from exc


def resolve_shape(value: str | ReportShape) -> ReportShape:
    if isinstance(value, ReportShape):
        return value
    try:
        return ReportShape(value.strip().lower())
    except ValueError as exc:
        raise ValidationError(
            "shape must be one of: dashboard, export.",
            context={"shape": value},
        ) from exc


class ReportAssembler:
    """Compose rollups into schema-stable report payloads."""

    def __init__(self, db: Session) -> None:
        self.sources = ReportSources(analytics=SalesAnalyticsService(db), budgets=BudgetService(db))

    def assemble_report(
        self,
        report_type: str | ReportType,
        params: ReportParams,
        shape: str | ReportShape = ReportShape.DASHBOARD,
    ) -> dict[str, object]:
        definition = REPORT_DEFINITIONS[resolve_report_type(report_type)]
        resolved_shape = resolve_shape(shape)
        if resolved_shape is ReportShape.DASHBOARD and definition.export_only:
            raise ValidationError(
                "This report type is only available as an export.",
                context={"report_type": definition.report_type.value},
            )

        rows = definition.build_rows(self.sources, params)
        if resolved_shape is ReportShape.DASHBOARD:
            return {"type": definition.report_type.value, "title": definition.title, "data": rows}
        return {
            "filename": definition.filename(params),
            "headers": list(definition.columns()),
            "data": self._export_rows(definition, rows),
        }

    @staticmethod
    def _export_rows(definition: ReportDefinition, rows: list[Row]) -> list[list[object]]:
        if definition.pivot_export:
            return [[header, row[header]] for row in rows for header in definition.headers]
        return [[row[header] for header in definition.headers] for row in rows]
