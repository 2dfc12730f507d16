"""Export endpoint for tabular report datasets.

Returns ``{filename, headers, data}``; rendering to CSV or XLSX is left to the
client.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends

from cafe_analytics.api.routes.reports import get_report_dispatcher
from cafe_analytics.services.report_assembler import ReportShape
from cafe_analytics.services.report_dispatcher import ReportDispatcher

router = APIRouter(prefix="/exports", tags=["exports"])


@router.get("/{report_type}")
def export_report(
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
        ReportShape.EXPORT,
    )
