"""Read access to the sales ledger, catalog, expenses, budgets and targets."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from decimal import Decimal
from typing import TypeVar
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cafe_analytics.core.errors import ComputationError, SourceUnavailable
from cafe_analytics.domain.records import (
    ZERO,
    BudgetRecord,
    ExpenseRecord,
    MonthlySalesRow,
    ProductInfo,
    SaleRecord,
    SalesTargetRecord,
)
from cafe_analytics.models.entities import (
    Budget,
    Category,
    Expense,
    ExpenseCategory,
    Product,
    ProductSale,
    SalesTarget,
)
from cafe_analytics.services.calendar_buckets import DateRange, year_range

logger = logging.getLogger(__name__)

T = TypeVar("T")


def to_decimal(value: object) -> Decimal:
    """Normalize numeric values returned by different DB drivers."""

    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _date_conditions(column, date_range: DateRange) -> list:
    conditions = []
    if date_range.start is not None:
        conditions.append(column >= date_range.start)
    if date_range.end is not None:
        conditions.append(column <= date_range.end)
    return conditions


class SalesLedgerRepository:
    """Persistence operations used by the analytics and budget services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _read(self, what: str, query: Callable[[], T]) -> T:
        try:
            return query()
        except SQLAlchemyError as exc:
            logger.error("Ledger read failed for %s: %s", what, exc)
            raise ComputationError(
                "Sales ledger is unavailable.",
                context={"source": what},
            ) from exc

    # ---------- Mapping ----------
    @staticmethod
    def _to_sale_record(row: ProductSale) -> SaleRecord:
        return SaleRecord(
            sale_date=row.sale_date,
            product_id=row.product_id,
            quantity_sold=int(row.quantity_sold or 0),
            unit_selling_price=to_decimal(row.unit_selling_price),
            unit_cost_price=to_decimal(row.unit_cost_price),
            sold_at=row.sold_at,
        )

    @staticmethod
    def to_budget_record(row: Budget) -> BudgetRecord:
        return BudgetRecord(
            id=row.id,
            year=row.year,
            month=row.month,
            category=row.category,
            planned_amount=to_decimal(row.planned_amount),
            actual_amount=to_decimal(row.actual_amount),
            notes=row.notes,
        )

    @staticmethod
    def to_sales_target_record(row: SalesTarget) -> SalesTargetRecord:
        return SalesTargetRecord(
            id=row.id,
            year=row.year,
            month=row.month,
            target_amount=to_decimal(row.target_amount),
            target_customers=int(row.target_customers or 0),
            notes=row.notes,
        )

    # ---------- Sales ledger ----------
    def list_sale_records(self, date_range: DateRange) -> list[SaleRecord]:
        def query() -> list[SaleRecord]:
            rows = self.db.scalars(
                select(ProductSale)
                .where(and_(True, *_date_conditions(ProductSale.sale_date, date_range)))
                .order_by(
                    ProductSale.sale_date.asc(),
                    ProductSale.sold_at.asc(),
                    ProductSale.created_at.asc(),
                )
            ).all()
            return [self._to_sale_record(row) for row in rows]

        return self._read("product_sales", query)

    def aggregate_monthly_sales(self, year: int) -> list[MonthlySalesRow]:
        """SQL-grouped monthly totals for ``year``; the precomputed source."""

        start, end = year_range(year)
        month_col = func.extract("month", ProductSale.sale_date).label("sale_month")
        statement = (
            select(
                month_col,
                func.sum(ProductSale.quantity_sold * ProductSale.unit_selling_price).label("total_sales"),
                func.sum(ProductSale.quantity_sold * ProductSale.unit_cost_price).label("total_cost"),
            )
            .where(and_(ProductSale.sale_date >= start, ProductSale.sale_date < end))
            .group_by(month_col)
            .order_by(month_col.asc())
        )
        try:
            with self.db.begin_nested():
                rows = self.db.execute(statement).all()
        except SQLAlchemyError as exc:
            raise SourceUnavailable(
                "Monthly sales aggregate could not be computed.",
                context={"source": "monthly_sales_aggregate", "year": year},
            ) from exc

        return [
            MonthlySalesRow(
                year=year,
                month=int(row.sale_month),
                total_sales=to_decimal(row.total_sales),
                total_cost=to_decimal(row.total_cost),
            )
            for row in rows
        ]

    # ---------- Catalog ----------
    def catalog_lookup(self, product_ids: Iterable[UUID]) -> dict[UUID, ProductInfo]:
        ids = set(product_ids)
        if not ids:
            return {}

        def query() -> dict[UUID, ProductInfo]:
            rows = self.db.execute(
                select(Product.id, Product.name, Product.category_id, Category.name.label("category_name"))
                .outerjoin(Category, Category.id == Product.category_id)
                .where(Product.id.in_(ids))
            ).all()
            return {
                row.id: ProductInfo(
                    product_id=row.id,
                    name=row.name,
                    category_id=row.category_id,
                    category_name=row.category_name,
                )
                for row in rows
            }

        return self._read("catalog", query)

    # ---------- Expenses ----------
    def sum_expenses(self, date_range: DateRange) -> Decimal:
        def query() -> Decimal:
            total = self.db.scalar(
                select(func.coalesce(func.sum(Expense.amount), 0)).where(
                    and_(Expense.deleted_at.is_(None), *_date_conditions(Expense.expense_date, date_range))
                )
            )
            return to_decimal(total)

        return self._read("expenses", query)

    def list_expenses(self, date_range: DateRange) -> list[ExpenseRecord]:
        def query() -> list[ExpenseRecord]:
            rows = self.db.execute(
                select(Expense, ExpenseCategory.name.label("category_name"))
                .outerjoin(ExpenseCategory, ExpenseCategory.id == Expense.category_id)
                .where(and_(Expense.deleted_at.is_(None), *_date_conditions(Expense.expense_date, date_range)))
                .order_by(Expense.expense_date.asc())
            ).all()
            return [
                ExpenseRecord(
                    expense_date=row.Expense.expense_date,
                    category_name=row.category_name,
                    amount=to_decimal(row.Expense.amount),
                    description=row.Expense.description,
                    vendor_name=row.Expense.vendor_name,
                    payment_method=row.Expense.payment_method,
                    status=row.Expense.status,
                )
                for row in rows
            ]

        return self._read("expenses", query)

    # ---------- Budgets ----------
    def list_budget_rows(self, *, year: int | None = None, month: int | None = None) -> list[Budget]:
        conditions = []
        if year is not None:
            conditions.append(Budget.year == year)
        if month is not None:
            conditions.append(Budget.month == month)
        return self._read(
            "budgets",
            lambda: self.db.scalars(
                select(Budget)
                .where(and_(True, *conditions))
                .order_by(Budget.year.desc(), Budget.month.desc(), Budget.category.asc())
            ).all(),
        )

    def list_budgets(self, *, year: int | None = None, month: int | None = None) -> list[BudgetRecord]:
        return [self.to_budget_record(row) for row in self.list_budget_rows(year=year, month=month)]

    def get_budget_row(self, *, year: int, month: int, category: str) -> Budget | None:
        return self.db.scalar(
            select(Budget).where(
                and_(Budget.year == year, Budget.month == month, Budget.category == category)
            )
        )

    def get_budget_by_id(self, budget_id: UUID) -> Budget | None:
        return self.db.scalar(select(Budget).where(Budget.id == budget_id))

    def add_budget(self, row: Budget) -> Budget:
        self.db.add(row)
        self.db.flush()
        return row

    def delete_budget(self, row: Budget) -> None:
        self.db.delete(row)
        self.db.flush()

    # ---------- Sales targets ----------
    def list_sales_targets(self, year: int | None = None, month: int | None = None) -> list[SalesTargetRecord]:
        conditions = []
        if year is not None:
            conditions.append(SalesTarget.year == year)
        if month is not None:
            conditions.append(SalesTarget.month == month)

        def query() -> list[SalesTargetRecord]:
            rows = self.db.scalars(
                select(SalesTarget)
                .where(and_(True, *conditions))
                .order_by(SalesTarget.year.desc(), SalesTarget.month.desc())
            ).all()
            return [self.to_sales_target_record(row) for row in rows]

        return self._read("sales_targets", query)

    def get_sales_target(self, year: int, month: int) -> SalesTargetRecord | None:
        row = self._read("sales_targets", lambda: self.get_sales_target_row(year=year, month=month))
        return self.to_sales_target_record(row) if row is not None else None

    def get_sales_target_row(self, *, year: int, month: int) -> SalesTarget | None:
        return self.db.scalar(
            select(SalesTarget).where(and_(SalesTarget.year == year, SalesTarget.month == month))
        )

    def get_sales_target_by_id(self, target_id: UUID) -> SalesTarget | None:
        return self.db.scalar(select(SalesTarget).where(SalesTarget.id == target_id))

    def add_sales_target(self, row: SalesTarget) -> SalesTarget:
        self.db.add(row)
        self.db.flush()
        return row

    def delete_sales_target(self, row: SalesTarget) -> None:
        self.db.delete(row)
        self.db.flush()
