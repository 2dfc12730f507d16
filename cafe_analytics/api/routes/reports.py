"""Dashboard report endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from cafe_analytics.db.dependencies import get_db_session
from cafe_analytics.services.report_assembler import ReportShape, ReportType
from cafe_analytics.services.report_dispatcher import ReportDispatcher

router = APIRouter(prefix="/reports", tags=["reports"])


class ReportQueryPayload(BaseModel):
    report_type: str
    start_date: date | None = None
    end_date: date | None = None
    year: int | None = None
    month: int | None = None
    top_n: int | None = None
    as_of: date | None = None
    shape: ReportShape = ReportShape.DASHBOARD


def get_report_dispatcher(db: Session = Depends(get_db_session)) -> ReportDispatcher:
    return ReportDispatcher(db)


@router.get("")
def list_report_types() -> dict[str, object]:
    return {"items": [item.value for item in ReportType]}


@router.post("")
def query_report(
    payload: ReportQueryPayload,
    dispatcher: ReportDispatcher = Depends(get_report_dispatcher),
) -> dict[str, object]:
    return dispatcher.dispatch(payload.model_dump(exclude={"shape"}), payload.shape)


@router.get("/{report_type}")
def get_report(
    report_type: str,
    start_date: date | None = None,
    end_date: date | None = None,
    year: int | None = None,
    month: int | None = None,
    top_n: int | None = None,
    as_of: date | None = None,
    dispatcher: ReportDispatcher = Depends(get_report_dispatcher),
) -> dict[str, object]:
    return dispatcher.dispatch(
        {
            "report_type": report_type,
            "start_date": start_date,
            "end_date": end_date,
            "year": year,
            "month": month,
            "top_n": top_n,
            "as_of": as_of,
        },
        ReportShape.DASHBOARD,
    )
