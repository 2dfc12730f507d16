"""ORM model package."""

from cafe_analytics.models.entities import (
    Budget,
    Category,
    Expense,
    ExpenseCategory,
    Product,
    ProductSale,
    SalesTarget,
)

__all__ = [
    "Budget",
    "Category",
    "Expense",
    "ExpenseCategory",
    "Product",
    "ProductSale",
    "SalesTarget",
]
