from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import DataError
from sqlalchemy.orm import Session

from cafe_analytics.core.errors import NotFoundError, PartialWriteError, ValidationError
from cafe_analytics.models.entities import Budget, SalesTarget
from cafe_analytics.services.budget_service import BudgetService, SalesTargetInput, parse_budget_item
from ledger_fixtures import seed_budget, seed_category, seed_product, seed_sale, seed_target


def _budget_count(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(Budget))


def test_upsert_budget_twice_keeps_single_row(db_session: Session) -> None:
    service = BudgetService(db_session)

    first = service.upsert_budget(2025, 3, "rent", Decimal("100000"))
    second = service.upsert_budget(2025, 3, "rent", Decimal("120000"), "renegotiated")

    assert _budget_count(db_session) == 1
    assert second.id == first.id
    assert second.planned_amount == Decimal("120000")
    assert second.notes == "renegotiated"


@pytest.mark.parametrize(
    ("year", "month", "category", "amount"),
    [
        (2025, 13, "rent", "1"),
        (2025, 0, "rent", "1"),
        (2025, 1, "  ", "1"),
        (2025, 1, "rent", "-5"),
        (None, 1, "rent", "1"),
    ],
)
def test_upsert_budget_rejects_invalid_input(
    db_session: Session,
    year: int | None,
    month: int,
    category: str,
    amount: str,
) -> None:
    with pytest.raises(ValidationError):
        BudgetService(db_session).upsert_budget(year, month, category, amount)

    assert _budget_count(db_session) == 0


def test_parse_budget_item_defaults_planned_amount_and_strips_category() -> None:
    parsed = parse_budget_item({"year": "2025", "month": 4, "category": " food "})

    assert parsed.year == 2025
    assert parsed.category == "food"
    assert parsed.planned_amount == Decimal("0.00")
    assert parsed.actual_amount is None


def test_bulk_upsert_commits_valid_items_and_reports_failures(db_session: Session) -> None:
    service = BudgetService(db_session)

    with pytest.raises(PartialWriteError) as exc_info:
        service.bulk_upsert_budgets(
            [
                {"year": 2025, "month": 1, "category": "rent", "planned_amount": 1000},
                {"year": 2025, "month": 14, "category": "rent", "planned_amount": 1000},
                {"year": 2025, "month": 2, "category": "food", "planned_amount": "300.50"},
            ]
        )

    error = exc_info.value
    assert [row.category for row in error.applied] == ["rent", "food"]
    assert [failure.index for failure in error.failures] == [1]
    assert error.context == {"applied_count": 2, "failed_count": 1}
    assert _budget_count(db_session) == 2


def test_bulk_upsert_applies_actual_amount_when_given(db_session: Session) -> None:
    rows = BudgetService(db_session).bulk_upsert_budgets(
        [{"year": 2025, "month": 1, "category": "rent", "planned_amount": 1000, "actual_amount": 1200}]
    )

    assert len(rows) == 1
    assert rows[0].actual_amount == Decimal("1200")
    assert rows[0].variance == Decimal("200")


def test_bulk_upsert_requires_items(db_session: Session) -> None:
    with pytest.raises(ValidationError):
        BudgetService(db_session).bulk_upsert_budgets([])


def test_budget_vs_actual_orders_by_month_then_category(db_session: Session) -> None:
    seed_budget(db_session, 2025, 2, "rent", "1000", "900")
    seed_budget(db_session, 2025, 1, "supplies", "200", "250")
    seed_budget(db_session, 2025, 1, "rent", "1000", "1000")
    seed_budget(db_session, 2024, 12, "rent", "1000", "1000")

    rows = BudgetService(db_session).budget_vs_actual(2025)

    assert [(row.month, row.category) for row in rows] == [(1, "rent"), (1, "supplies"), (2, "rent")]
    assert [row.variance for row in rows] == [Decimal("0"), Decimal("50"), Decimal("-100")]


def test_refresh_budget_actuals_from_sales(db_session: Session) -> None:
    drinks = seed_category(db_session, "Drinks")
    coffee = seed_product(db_session, "Coffee", category=drinks, selling_price="500", cost_price="200")
    cake = seed_product(db_session, "Cake", selling_price="1000", cost_price="400")
    seed_sale(db_session, coffee, date(2025, 5, 3), 4)
    seed_sale(db_session, cake, date(2025, 5, 4), 1)
    seed_sale(db_session, cake, date(2025, 6, 1), 9)
    seed_budget(db_session, 2025, 5, "sales", "5000")
    seed_budget(db_session, 2025, 5, "Drinks", "1500")
    seed_budget(db_session, 2025, 5, "rent", "800", "750")

    refreshed = BudgetService(db_session).refresh_budget_actuals(2025, 5)

    assert {row.category: row.actual_amount for row in refreshed} == {
        "sales": Decimal("3000"),
        "Drinks": Decimal("2000"),
    }
    rent = BudgetService(db_session).list_budgets(year=2025, month=5)
    assert {row.category: row.actual_amount for row in rent}["rent"] == Decimal("750")


def test_delete_budget(db_session: Session) -> None:
    row = seed_budget(db_session, 2025, 1, "rent", "1000")
    service = BudgetService(db_session)

    service.delete_budget(row.id)

    assert _budget_count(db_session) == 0
    with pytest.raises(NotFoundError):
        service.delete_budget(row.id)


def test_upsert_sales_target_overwrites_same_month(db_session: Session) -> None:
    service = BudgetService(db_session)

    service.upsert_sales_target(SalesTargetInput(year=2025, month=6, target_amount=Decimal("500000")))
    updated = service.upsert_sales_target(
        SalesTargetInput(year=2025, month=6, target_amount=Decimal("650000"), target_customers=1200, notes="summer")
    )

    assert db_session.scalar(select(func.count()).select_from(SalesTarget)) == 1
    assert updated.target_amount == Decimal("650000")
    assert updated.target_customers == 1200
    assert [row.month for row in service.list_sales_targets(year=2025)] == [6]


def test_upsert_sales_target_rejects_negative_amount(db_session: Session) -> None:
    with pytest.raises(ValidationError):
        BudgetService(db_session).upsert_sales_target(
            SalesTargetInput(year=2025, month=6, target_amount=Decimal("-1"))
        )


def test_delete_missing_sales_target_raises_not_found(db_session: Session) -> None:
    with pytest.raises(NotFoundError):
        BudgetService(db_session).delete_sales_target(uuid.uuid4())


@pytest.mark.parametrize(
    "item",
    [
        {"year": 2025, "month": 1, "category": "rent", "planned_amount": "1E+15"},
        {"year": 2025, "month": 1, "category": "rent", "planned_amount": "10000000000"},
        {"year": 2025, "month": 1, "category": "rent", "planned_amount": "10.005"},
        {"year": 2025, "month": 1, "category": "rent", "actual_amount": "0.001"},
        {"year": 2025.9, "month": 1, "category": "rent", "planned_amount": "10"},
        {"year": 2025, "month": "1.5", "category": "rent", "planned_amount": "10"},
        {"year": "twenty", "month": 1, "category": "rent", "planned_amount": "10"},
    ],
)
def test_parse_budget_item_rejects_values_the_store_cannot_hold(item: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        parse_budget_item(item)


def test_parse_budget_item_accepts_integral_numbers_and_column_maximum() -> None:
    parsed = parse_budget_item(
        {"year": 2025.0, "month": "3", "category": "rent", "planned_amount": "9999999999.99", "actual_amount": 12.5}
    )

    assert (parsed.year, parsed.month) == (2025, 3)
    assert parsed.planned_amount == Decimal("9999999999.99")
    assert parsed.actual_amount == Decimal("12.50")


def test_bulk_upsert_keeps_good_items_when_database_rejects_one(
    db_session: Session,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    apply_budget = BudgetService._apply_budget

    def apply_or_overflow(self: BudgetService, data):
        if data.category == "equipment":
            raise DataError("INSERT INTO budgets", {}, Exception("numeric field overflow"))
        return apply_budget(self, data)

    monkeypatch.setattr(BudgetService, "_apply_budget", apply_or_overflow)

    with pytest.raises(PartialWriteError) as exc_info:
        BudgetService(db_session).bulk_upsert_budgets(
            [
                {"year": 2025, "month": 1, "category": "rent", "planned_amount": 1000},
                {"year": 2025, "month": 1, "category": "equipment", "planned_amount": 5000},
                {"year": 2025, "month": 1, "category": "food", "planned_amount": 300},
            ]
        )

    assert [failure.index for failure in exc_info.value.failures] == [1]
    assert "DataError" in exc_info.value.failures[0].reason
    assert _budget_count(db_session) == 2


def test_bulk_upsert_rejects_non_object_items_individually(db_session: Session) -> None:
    with pytest.raises(PartialWriteError) as exc_info:
        BudgetService(db_session).bulk_upsert_budgets(
            [{"year": 2025, "month": 1, "category": "rent", "planned_amount": 1000}, "oops", 7]
        )

    assert [failure.index for failure in exc_info.value.failures] == [1, 2]
    assert exc_info.value.failures[0].reason == "Budget item must be an object."
    assert _budget_count(db_session) == 1


def test_bulk_upsert_reports_each_write_of_a_repeated_key(db_session: Session) -> None:
    rows = BudgetService(db_session).bulk_upsert_budgets(
        [
            {"year": 2025, "month": 1, "category": "rent", "planned_amount": 10},
            {"year": 2025, "month": 1, "category": "rent", "planned_amount": 20},
        ]
    )

    assert rows[0].id == rows[1].id
    assert [row.planned_amount for row in rows] == [Decimal("10"), Decimal("20")]
    assert _budget_count(db_session) == 1
    stored = BudgetService(db_session).list_budgets(year=2025)
    assert stored[0].planned_amount == Decimal("20")


def test_upsert_budget_overwrites_when_insert_loses_race(
    db_session: Session,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    seed_budget(db_session, 2025, 3, "rent", "1000")
    service = BudgetService(db_session)
    lookup = service.repo.get_budget_row
    calls: list[dict[str, object]] = []

    def stale_then_real(**kwargs):
        calls.append(kwargs)
        return None if len(calls) == 1 else lookup(**kwargs)

    monkeypatch.setattr(service.repo, "get_budget_row", stale_then_real)

    row = service.upsert_budget(2025, 3, "rent", Decimal("1500"))

    assert len(calls) == 2
    assert row.planned_amount == Decimal("1500")
    assert _budget_count(db_session) == 1


def test_upsert_sales_target_overwrites_when_insert_loses_race(
    db_session: Session,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    seed_target(db_session, 2025, 6, "100000")
    service = BudgetService(db_session)
    lookup = service.repo.get_sales_target_row
    calls: list[dict[str, object]] = []

    def stale_then_real(**kwargs):
        calls.append(kwargs)
        return None if len(calls) == 1 else lookup(**kwargs)

    monkeypatch.setattr(service.repo, "get_sales_target_row", stale_then_real)

    row = service.upsert_sales_target(
        SalesTargetInput(year=2025, month=6, target_amount=Decimal("650000"), target_customers=40)
    )

    assert len(calls) == 2
    assert row.target_amount == Decimal("650000")
    assert row.target_customers == 40
    assert db_session.scalar(select(func.count()).select_from(SalesTarget)) == 1
