"""Map inbound report queries onto the report assembler."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import date

import pydantic
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from cafe_analytics.core.errors import ValidationError, describe_field_errors
from cafe_analytics.services.report_assembler import ReportAssembler, ReportParams, ReportShape


class ReportRequest(BaseModel):
    """Inbound query: ``{report_type, start_date?, end_date?, year?, month?}``."""

    model_config = ConfigDict(extra="ignore")

    report_type: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    year: int | None = Field(default=None, ge=1900, le=9998)
    month: int | None = Field(default=None, ge=1, le=12)
    top_n: int | None = None
    as_of: date | None = None


class ReportDispatcher:
    def __init__(self, db: Session, *, today: Callable[[], date] = date.today) -> None:
        self.assembler = ReportAssembler(db)
        self.today = today

    @staticmethod
    def parse(query: Mapping[str, object]) -> ReportRequest:
        try:
            return ReportRequest.model_validate(dict(query))
        except pydantic.ValidationError as exc:
            raise ValidationError(
                "Invalid report request.",
                context={"errors": describe_field_errors(exc.errors())},
            ) from exc

    def to_params(self, request: ReportRequest) -> ReportParams:
        today = self.today()
        return ReportParams(
            start_date=request.start_date,
            end_date=request.end_date,
            year=request.year if request.year is not None else today.year,
            month=request.month if request.month is not None else today.month,
            top_n=request.top_n,
            as_of=request.as_of or today,
        )

    def dispatch(
        self,
        query: Mapping[str, object],
        shape: str | ReportShape = ReportShape.DASHBOARD,
    ) -> dict[str, object]:
        request = self.parse(query)
        return self.assembler.assemble_report(request.report_type, self.to_params(request), shape)
