"""Sales analytics service: fetches from the ledger and runs the rollups."""

from __future__ import annotations

import logging
from datetime import date
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from cafe_analytics.core.config import get_settings
from cafe_analytics.core.errors import ValidationError
from cafe_analytics.domain.records import ExpenseRecord, SaleRecord
from cafe_analytics.repositories.ledger_repository import SalesLedgerRepository
from cafe_analytics.services.aggregation import (
    UNKNOWN_PRODUCT,
    CategoryTotal,
    DailyAggregate,
    HourlyTotal,
    MonthlyReport,
    MonthlyTotal,
    ProductAggregate,
    SalesOverview,
    TargetAchievement,
    WeekdayTotal,
    aggregate_products,
    break_down_categories,
    bucket_hourly,
    bucket_weekdays,
    build_daily_trend,
    build_monthly_report,
    build_sales_overview,
    build_target_achievement,
    group_daily_by_month,
    monthly_totals_from_rows,
    rank_products,
)
from cafe_analytics.services.calendar_buckets import DateRange, month_key_for, previous_month
from cafe_analytics.services.fallback import FallbackResult, SourceMode, compute_with_fallback

logger = logging.getLogger(__name__)


class SalesAnalyticsService:
    """Read-only rollups over the sales ledger.

    Each public method issues one batched read per date range and groups in
    memory, so calls for different parameters never share state.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = SalesLedgerRepository(db)
        self.settings = get_settings()

    def _records(self, date_range: DateRange) -> list[SaleRecord]:
        return self.repo.list_sale_records(date_range)

    def daily_trend(self, date_range: DateRange) -> list[DailyAggregate]:
        return build_daily_trend(self._records(date_range))

    # ---------- Monthly comparison ----------
    def _monthly_from_source(self, year: int) -> list[MonthlyTotal]:
        return monthly_totals_from_rows(self.repo.aggregate_monthly_sales(year))

    def _monthly_from_daily(self, year: int) -> list[MonthlyTotal]:
        return group_daily_by_month(self.daily_trend(DateRange.for_year(year)))

    def monthly_comparison_result(self, year: int) -> FallbackResult[list[MonthlyTotal]]:
        result = compute_with_fallback(
            lambda: self._monthly_from_source(year),
            lambda: self._monthly_from_daily(year),
            source="monthly_sales_aggregate",
        )
        if result.mode is SourceMode.FALLBACK:
            logger.info("Monthly comparison for %s served from daily rollups", year)
        return result

    def monthly_comparison(self, year: int) -> list[MonthlyTotal]:
        return self.monthly_comparison_result(year).value

    # ---------- Products / categories ----------
    def _product_aggregates(self, date_range: DateRange) -> list[ProductAggregate]:
        records = self._records(date_range)
        catalog = self.repo.catalog_lookup(record.product_id for record in records)
        return aggregate_products(records, catalog)

    def product_ranking(self, date_range: DateRange, top_n: int | None = None) -> list[ProductAggregate]:
        size = self.settings.default_ranking_size if top_n is None else top_n
        if size < 1 or size > self.settings.max_ranking_size:
            raise ValidationError(
                f"top_n must be between 1 and {self.settings.max_ranking_size}.",
                context={"top_n": size},
            )
        return rank_products(self._product_aggregates(date_range), size)

    def category_breakdown(self, date_range: DateRange) -> list[CategoryTotal]:
        return break_down_categories(self._product_aggregates(date_range))

    def product_sales(self, date_range: DateRange) -> list[tuple[SaleRecord, str]]:
        """Raw ledger rows labeled with product names, for exports."""

        records = self._records(date_range)
        catalog = self.repo.catalog_lookup(record.product_id for record in records)
        labeled: list[tuple[SaleRecord, str]] = []
        for record in records:
            info = catalog.get(record.product_id)
            labeled.append((record, info.name if info else UNKNOWN_PRODUCT))
        return labeled

    # ---------- Time buckets ----------
    def hourly_sales(self, date_range: DateRange) -> list[HourlyTotal]:
        return bucket_hourly(self._records(date_range), ZoneInfo(self.settings.business_timezone))

    def weekday_sales(self, date_range: DateRange) -> list[WeekdayTotal]:
        return bucket_weekdays(self.daily_trend(date_range))

    def target_achievement(self, year: int) -> list[TargetAchievement]:
        trend = self.daily_trend(DateRange.for_year(year))
        targets = self.repo.list_sales_targets(year=year)
        return build_target_achievement(year, trend, targets)

    # ---------- Financial summaries ----------
    def monthly_report(self, year: int, month: int) -> MonthlyReport:
        month_range = DateRange.for_month(year, month)
        trend = self.daily_trend(month_range)
        total_expenses = self.repo.sum_expenses(month_range)
        target = self.repo.get_sales_target(year, month)
        return build_monthly_report(year, month, trend, total_expenses, target)

    def sales_overview(self, as_of: date) -> SalesOverview:
        trend = self.daily_trend(DateRange())
        prev_year, prev_month = previous_month(as_of.year, as_of.month)
        return build_sales_overview(
            as_of,
            trend,
            current_month=month_key_for(as_of.year, as_of.month),
            previous_month=month_key_for(prev_year, prev_month),
            last_year_month=month_key_for(as_of.year - 1, as_of.month),
        )

    def expense_entries(self, date_range: DateRange) -> list[ExpenseRecord]:
        return self.repo.list_expenses(date_range)
