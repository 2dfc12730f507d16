"""Seed helpers for sales ledger tests."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy.orm import Session

from cafe_analytics.models.entities import (
    Budget,
    Category,
    Expense,
    ExpenseCategory,
    Product,
    ProductSale,
    SalesTarget,
)


def seed_category(db: Session, name: str, *, sort_order: int = 0) -> Category:
    row = Category(name=name, sort_order=sort_order)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def seed_product(
    db: Session,
    name: str,
    *,
    category: Category | None = None,
    selling_price: str = "500",
    cost_price: str = "200",
) -> Product:
    row = Product(
        name=name,
        category_id=category.id if category is not None else None,
        selling_price=Decimal(selling_price),
        cost_price=Decimal(cost_price),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def seed_sale(
    db: Session,
    product: Product,
    sale_date: date,
    quantity: int,
    *,
    unit_price: str | None = None,
    unit_cost: str | None = None,
    hour: int = 12,
) -> ProductSale:
    row = ProductSale(
        sale_date=sale_date,
        product_id=product.id,
        quantity_sold=quantity,
        unit_selling_price=Decimal(unit_price) if unit_price is not None else product.selling_price,
        unit_cost_price=Decimal(unit_cost) if unit_cost is not None else product.cost_price,
        sold_at=datetime.combine(sale_date, time(hour=hour)),
        created_at=datetime.utcnow(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def seed_expense(
    db: Session,
    expense_date: date,
    amount: str,
    *,
    category_name: str | None = None,
    description: str | None = None,
    deleted: bool = False,
) -> Expense:
    category_id: uuid.UUID | None = None
    if category_name is not None:
        category = ExpenseCategory(name=category_name)
        db.add(category)
        db.flush()
        category_id = category.id
    row = Expense(
        category_id=category_id,
        expense_date=expense_date,
        amount=Decimal(amount),
        description=description,
        deleted_at=datetime.utcnow() if deleted else None,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def seed_target(db: Session, year: int, month: int, amount: str, *, customers: int = 0) -> SalesTarget:
    now = datetime.utcnow()
    row = SalesTarget(
        year=year,
        month=month,
        target_amount=Decimal(amount),
        target_customers=customers,
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def seed_budget(db: Session, year: int, month: int, category: str, planned: str, actual: str = "0") -> Budget:
    now = datetime.utcnow()
    row = Budget(
        year=year,
        month=month,
        category=category,
        planned_amount=Decimal(planned),
        actual_amount=Decimal(actual),
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
