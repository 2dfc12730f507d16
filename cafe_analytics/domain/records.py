"""Typed records handed from the ledger repository to the aggregation engine.

ORM rows never cross into the engine; the repository maps them into these
frozen dataclasses so that schema changes stay at the storage boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

ZERO = Decimal("0.00")


@dataclass(frozen=True, slots=True)
class SaleRecord:
    sale_date: date
    product_id: UUID
    quantity_sold: int
    unit_selling_price: Decimal
    unit_cost_price: Decimal
    sold_at: datetime

    @property
    def revenue(self) -> Decimal:
        return self.unit_selling_price * self.quantity_sold

    @property
    def cost(self) -> Decimal:
        return self.unit_cost_price * self.quantity_sold


@dataclass(frozen=True, slots=True)
class ProductInfo:
    product_id: UUID
    name: str
    category_id: UUID | None
    category_name: str | None


@dataclass(frozen=True, slots=True)
class MonthlySalesRow:
    year: int
    month: int
    total_sales: Decimal
    total_cost: Decimal


@dataclass(frozen=True, slots=True)
class BudgetRecord:
    id: UUID
    year: int
    month: int
    category: str
    planned_amount: Decimal
    actual_amount: Decimal
    notes: str | None

    @property
    def variance(self) -> Decimal:
        return self.actual_amount - self.planned_amount


@dataclass(frozen=True, slots=True)
class SalesTargetRecord:
    id: UUID
    year: int
    month: int
    target_amount: Decimal
    target_customers: int
    notes: str | None


@dataclass(frozen=True, slots=True)
class ExpenseRecord:
    expense_date: date
    category_name: str | None
    amount: Decimal
    description: str | None
    vendor_name: str | None
    payment_method: str
    status: str
