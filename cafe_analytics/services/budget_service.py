"""Budget and sales target reconciliation."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from cafe_analytics.core.config import get_settings
from cafe_analytics.core.errors import ItemFailure, NotFoundError, PartialWriteError, ValidationError
from cafe_analytics.domain.records import ZERO, BudgetRecord, SalesTargetRecord
from cafe_analytics.models.entities import Budget, SalesTarget
from cafe_analytics.repositories.ledger_repository import SalesLedgerRepository
from cafe_analytics.services.calendar_buckets import DateRange
from cafe_analytics.services.sales_analytics_service import SalesAnalyticsService

logger = logging.getLogger(__name__)

# Largest value a Numeric(12, 2) column holds.
MAX_AMOUNT = Decimal("9999999999.99")
CENT = Decimal("0.01")


@dataclass(slots=True)
class BudgetInput:
    year: int
    month: int
    category: str
    planned_amount: Decimal
    actual_amount: Decimal | None = None
    notes: str | None = None


@dataclass(slots=True)
class SalesTargetInput:
    year: int
    month: int
    target_amount: Decimal
    target_customers: int = 0
    notes: str | None = None


def _require_int(value: object, field_name: str) -> int:
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required.", context={"field": field_name})
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field_name} must be an integer.", context={"field": field_name}) from exc
    if not number.is_finite() or number != number.to_integral_value():
        raise ValidationError(
            f"{field_name} must be an integer.",
            context={"field": field_name, "value": str(value)},
        )
    return int(number)


def _amount(value: object, field_name: str, *, default: Decimal | None = ZERO) -> Decimal | None:
    if value is None or value == "":
        return default
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field_name} must be a number.", context={"field": field_name}) from exc
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a number.", context={"field": field_name})
    if amount < ZERO:
        raise ValidationError(f"{field_name} must be greater or equal zero.", context={"field": field_name})
    if amount > MAX_AMOUNT:
        raise ValidationError(
            f"{field_name} must not exceed {MAX_AMOUNT}.",
            context={"field": field_name, "value": str(value)},
        )
    quantized = amount.quantize(CENT)
    if quantized != amount:
        raise ValidationError(
            f"{field_name} must have at most two decimal places.",
            context={"field": field_name, "value": str(value)},
        )
    return quantized


def _validate_period(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12.", context={"field": "month", "value": month})
    if not 1900 <= year <= 9998:
        raise ValidationError("year is out of range.", context={"field": "year", "value": year})


def parse_budget_item(item: Mapping[str, object]) -> BudgetInput:
    """Normalize a budget-like mapping; raises ``ValidationError``."""

    year = _require_int(item.get("year"), "year")
    month = _require_int(item.get("month"), "month")
    _validate_period(year, month)

    category = item.get("category")
    if not isinstance(category, str) or not category.strip():
        raise ValidationError("category is required.", context={"field": "category"})

    notes = item.get("notes")
    return BudgetInput(
        year=year,
        month=month,
        category=category.strip(),
        planned_amount=_amount(item.get("planned_amount"), "planned_amount"),
        actual_amount=_amount(item.get("actual_amount"), "actual_amount", default=None),
        notes=str(notes) if notes is not None else None,
    )


def variance(budget: BudgetRecord) -> Decimal:
    return budget.actual_amount - budget.planned_amount


class BudgetService:
    """Upserts and variance over budgets and monthly sales targets.

    Both stores are keyed singletons, ``(year, month, category)`` and
    ``(year, month)``; concurrent writers to one key resolve as last write wins.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = SalesLedgerRepository(db)
        self.settings = get_settings()

    # ---------- Budgets ----------
    def _apply_budget(self, data: BudgetInput) -> Budget:
        now = datetime.utcnow()
        existing = self.repo.get_budget_row(year=data.year, month=data.month, category=data.category)
        if existing is None:
            row = Budget(
                year=data.year,
                month=data.month,
                category=data.category,
                planned_amount=data.planned_amount,
                actual_amount=data.actual_amount if data.actual_amount is not None else ZERO,
                notes=data.notes,
                created_at=now,
                updated_at=now,
            )
            return self.repo.add_budget(row)

        existing.planned_amount = data.planned_amount
        if data.actual_amount is not None:
            existing.actual_amount = data.actual_amount
        existing.notes = data.notes
        existing.updated_at = now
        self.db.flush()
        return existing

    def upsert_budget(
        self,
        year: int | None,
        month: int | None,
        category: str | None,
        planned_amount: Decimal | int | str | None,
        notes: str | None = None,
    ) -> BudgetRecord:
        data = parse_budget_item(
            {
                "year": year,
                "month": month,
                "category": category,
                "planned_amount": planned_amount,
                "notes": notes,
            }
        )
        try:
            with self.db.begin_nested():
                row = self._apply_budget(data)
        except IntegrityError:
            # A concurrent insert won the key; overwrite it.
            with self.db.begin_nested():
                row = self._apply_budget(data)
        self.db.commit()
        self.db.refresh(row)
        logger.info("Upserted budget %s-%02d %s", data.year, data.month, data.category)
        return self.repo.to_budget_record(row)

    def bulk_upsert_budgets(self, items: Sequence[object]) -> list[BudgetRecord]:
        """Upsert each item independently.

        Good items are committed even when others fail; in that case a
        ``PartialWriteError`` carrying both lists is raised after the commit.
        """

        if not items:
            raise ValidationError("At least one budget item is required.")

        records: list[BudgetRecord] = []
        failures: list[ItemFailure] = []
        for index, item in enumerate(items):
            if not isinstance(item, Mapping):
                failures.append(ItemFailure(index=index, reason="Budget item must be an object."))
                continue
            try:
                data = parse_budget_item(item)
                with self.db.begin_nested():
                    row = self._apply_budget(data)
                # Snapshot now; a later item may overwrite the same key.
                records.append(self.repo.to_budget_record(row))
            except ValidationError as exc:
                failures.append(ItemFailure(index=index, reason=exc.message, item=dict(item)))
            except SQLAlchemyError as exc:
                logger.warning("Budget item %d rejected by the database: %s", index, exc)
                failures.append(
                    ItemFailure(
                        index=index,
                        reason=f"Budget was rejected by the database: {exc.__class__.__name__}",
                        item=dict(item),
                    )
                )

        self.db.commit()

        if failures:
            logger.warning(
                "Bulk budget upsert applied %d items, rejected indices %s",
                len(records),
                [failure.index for failure in failures],
            )
            raise PartialWriteError(
                f"{len(failures)} of {len(items)} budget items were rejected.",
                applied=records,
                failures=failures,
            )
        return records

    def list_budgets(self, *, year: int | None = None, month: int | None = None) -> list[BudgetRecord]:
        return self.repo.list_budgets(year=year, month=month)

    def delete_budget(self, budget_id: UUID) -> None:
        row = self.repo.get_budget_by_id(budget_id)
        if row is None:
            raise NotFoundError("Budget not found.", context={"id": str(budget_id)})
        self.repo.delete_budget(row)
        self.db.commit()

    def budget_vs_actual(self, year: int) -> list[BudgetRecord]:
        _validate_period(year, 1)
        budgets = self.repo.list_budgets(year=year)
        return sorted(budgets, key=lambda row: (row.month, row.category))

    def refresh_budget_actuals(self, year: int, month: int) -> list[BudgetRecord]:
        """Set ``actual_amount`` from the month's sales rollups.

        The total-sales category receives total sales; a category named like a
        product category receives that category's sales. Other budgets are
        expense-side and left as they are.
        """

        _validate_period(year, month)
        month_range = DateRange.for_month(year, month)
        analytics = SalesAnalyticsService(self.db)
        by_category = {row.category: row.total_sales for row in analytics.category_breakdown(month_range)}
        total_sales = sum((day.total_sales for day in analytics.daily_trend(month_range)), ZERO)

        refreshed: list[Budget] = []
        now = datetime.utcnow()
        for row in self.repo.list_budget_rows(year=year, month=month):
            if row.category == self.settings.total_sales_budget_category:
                row.actual_amount = total_sales
            elif row.category in by_category:
                row.actual_amount = by_category[row.category]
            else:
                continue
            row.updated_at = now
            refreshed.append(row)

        self.db.commit()
        logger.info("Refreshed %d budget actuals for %s-%02d", len(refreshed), year, month)
        return [self.repo.to_budget_record(row) for row in refreshed]

    # ---------- Sales targets ----------
    def _apply_sales_target(self, data: SalesTargetInput, target_amount: Decimal) -> SalesTarget:
        now = datetime.utcnow()
        existing = self.repo.get_sales_target_row(year=data.year, month=data.month)
        if existing is None:
            row = SalesTarget(
                year=data.year,
                month=data.month,
                target_amount=target_amount,
                target_customers=data.target_customers,
                notes=data.notes,
                created_at=now,
                updated_at=now,
            )
            return self.repo.add_sales_target(row)

        existing.target_amount = target_amount
        existing.target_customers = data.target_customers
        existing.notes = data.notes
        existing.updated_at = now
        self.db.flush()
        return existing

    def upsert_sales_target(self, data: SalesTargetInput) -> SalesTargetRecord:
        _validate_period(data.year, data.month)
        target_amount = _amount(data.target_amount, "target_amount")
        if data.target_customers < 0:
            raise ValidationError("target_customers must be greater or equal zero.")

        try:
            with self.db.begin_nested():
                row = self._apply_sales_target(data, target_amount)
        except IntegrityError:
            # A concurrent insert won the key; overwrite it.
            with self.db.begin_nested():
                row = self._apply_sales_target(data, target_amount)
        self.db.commit()
        self.db.refresh(row)
        logger.info("Upserted sales target %s-%02d", data.year, data.month)
        return self.repo.to_sales_target_record(row)

    def list_sales_targets(self, *, year: int | None = None, month: int | None = None) -> list[SalesTargetRecord]:
        return self.repo.list_sales_targets(year=year, month=month)

    def delete_sales_target(self, target_id: UUID) -> None:
        row = self.repo.get_sales_target_by_id(target_id)
        if row is None:
            raise NotFoundError("Sales target not found.", context={"id": str(target_id)})
        self.repo.delete_sales_target(row)
        self.db.commit()
