"""Budget and sales target endpoints."""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from cafe_analytics.core.errors import PartialWriteError
from cafe_analytics.db.dependencies import get_db_session
from cafe_analytics.domain.records import BudgetRecord, SalesTargetRecord
from cafe_analytics.services.budget_service import BudgetService, SalesTargetInput, variance

router = APIRouter(tags=["budgets"])


class BudgetUpsertPayload(BaseModel):
    year: int | None = None
    month: int | None = None
    category: str | None = None
    planned_amount: Decimal | None = None
    notes: str | None = None


class BudgetBulkPayload(BaseModel):
    # Validated per item by BudgetService.bulk_upsert_budgets.
    budgets: list[Any]


class BudgetRefreshPayload(BaseModel):
    year: int
    month: int = Field(ge=1, le=12)


class SalesTargetUpsertPayload(BaseModel):
    year: int
    month: int = Field(ge=1, le=12)
    target_amount: Decimal = Field(default=Decimal("0"), ge=0)
    target_customers: int = Field(default=0, ge=0)
    notes: str | None = None


def serialize_budget(row: BudgetRecord) -> dict[str, object]:
    return {
        "id": str(row.id),
        "year": row.year,
        "month": row.month,
        "category": row.category,
        "planned_amount": str(row.planned_amount),
        "actual_amount": str(row.actual_amount),
        "variance": str(variance(row)),
        "notes": row.notes,
    }


def serialize_sales_target(row: SalesTargetRecord) -> dict[str, object]:
    return {
        "id": str(row.id),
        "year": row.year,
        "month": row.month,
        "target_amount": str(row.target_amount),
        "target_customers": row.target_customers,
        "notes": row.notes,
    }


def _budget_service(db: Session) -> BudgetService:
    return BudgetService(db)


@router.get("/budgets")
def list_budgets(
    year: int | None = None,
    month: int | None = None,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    rows = _budget_service(db).list_budgets(year=year, month=month)
    return {"items": [serialize_budget(row) for row in rows]}


@router.post("/budgets", status_code=201)
def upsert_budget(payload: BudgetUpsertPayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    row = _budget_service(db).upsert_budget(
        payload.year,
        payload.month,
        payload.category,
        payload.planned_amount,
        payload.notes,
    )
    return serialize_budget(row)


@router.put("/budgets/bulk", response_model=None)
def bulk_upsert_budgets(
    payload: BudgetBulkPayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object] | JSONResponse:
    try:
        rows = _budget_service(db).bulk_upsert_budgets(payload.budgets)
    except PartialWriteError as exc:
        return JSONResponse(
            status_code=207,
            content=jsonable_encoder(
                {
                    "detail": exc.message,
                    "updated_entries": len(exc.applied),
                    "items": [serialize_budget(row) for row in exc.applied],
                    "failures": [failure.to_payload() for failure in exc.failures],
                }
            ),
        )
    return {"updated_entries": len(rows), "items": [serialize_budget(row) for row in rows]}


@router.post("/budgets/refresh-actuals")
def refresh_budget_actuals(payload: BudgetRefreshPayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    rows = _budget_service(db).refresh_budget_actuals(payload.year, payload.month)
    return {"updated_entries": len(rows), "items": [serialize_budget(row) for row in rows]}


@router.delete("/budgets/{budget_id}", status_code=204)
def delete_budget(budget_id: UUID, db: Session = Depends(get_db_session)) -> Response:
    _budget_service(db).delete_budget(budget_id)
    return Response(status_code=204)


@router.get("/sales-targets")
def list_sales_targets(
    year: int | None = None,
    month: int | None = None,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    rows = _budget_service(db).list_sales_targets(year=year, month=month)
    return {"items": [serialize_sales_target(row) for row in rows]}


@router.post("/sales-targets", status_code=201)
def upsert_sales_target(
    payload: SalesTargetUpsertPayload,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    row = _budget_service(db).upsert_sales_target(
        SalesTargetInput(
            year=payload.year,
            month=payload.month,
            target_amount=payload.target_amount,
            target_customers=payload.target_customers,
            notes=payload.notes,
        )
    )
    return serialize_sales_target(row)


@router.delete("/sales-targets/{target_id}", status_code=204)
def delete_sales_target(target_id: UUID, db: Session = Depends(get_db_session)) -> Response:
    _budget_service(db).delete_sales_target(target_id)
    return Response(status_code=204)
