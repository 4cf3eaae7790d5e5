"""Ledger analytics endpoints. Thin routes; logic lives in the services."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.dependencies import get_db
from app.schemas.analytics import DailyVolumeResponse, GGRResponse, PercentileResponse
from app.schemas.common import ErrorResponse, MessageResponse
from casino.services._helpers import parse_iso_date
from casino.services.errors import (
    InvalidArgumentError,
    NoDataError,
    NotFoundError,
    StoreUnavailableError,
)
from casino.services.percentile import PercentileService
from casino.services.revenue import RevenueService
from casino.services.volume import VolumeService

router: APIRouter = APIRouter(
    tags=["analytics"],
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)


def _date_range(from_: str | None, to: str | None) -> tuple[date, date]:
    try:
        return parse_iso_date(from_, "from"), parse_iso_date(to, "to")
    except InvalidArgumentError as exc:
        raise HTTPException(400, detail=str(exc)) from exc


@router.get("/gross_gaming_rev", response_model=list[GGRResponse])
def gross_gaming_rev(
    from_: str | None = Query(None, alias="from"),
    to: str | None = Query(None),
    db: Session = Depends(get_db),
) -> list[GGRResponse]:
    from_date, to_date = _date_range(from_, to)
    try:
        rows = RevenueService(db).compute_ggr(from_date, to_date)
    except InvalidArgumentError as exc:
        raise HTTPException(400, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise HTTPException(503, detail=str(exc)) from exc
    return [GGRResponse(currency=r.currency, ggr=str(r.ggr), ggr_usd=str(r.ggr_usd)) for r in rows]


@router.get(
    "/daily_wager_volume",
    response_model=list[DailyVolumeResponse] | MessageResponse,
)
def daily_wager_volume(
    from_: str | None = Query(None, alias="from"),
    to: str | None = Query(None),
    db: Session = Depends(get_db),
) -> list[DailyVolumeResponse] | MessageResponse:
    from_date, to_date = _date_range(from_, to)
    try:
        rows = VolumeService(db).compute_daily_volume(from_date, to_date)
    except NoDataError as exc:
        return MessageResponse(message=str(exc))
    except InvalidArgumentError as exc:
        raise HTTPException(400, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise HTTPException(503, detail=str(exc)) from exc
    return [
        DailyVolumeResponse(
            day=r.day,
            currency=r.currency,
            total_amount=str(r.total_amount),
            total_usd_amount=str(r.total_usd_amount),
        )
        for r in rows
    ]


@router.get("/user/{user_id}/wager_percentile", response_model=PercentileResponse)
def user_wager_percentile(
    user_id: str,
    from_: str | None = Query(None, alias="from"),
    to: str | None = Query(None),
    db: Session = Depends(get_db),
) -> PercentileResponse:
    from_date, to_date = _date_range(from_, to)
    try:
        result = PercentileService(db).compute_user_percentile(user_id, from_date, to_date)
    except (InvalidArgumentError, NotFoundError) as exc:
        raise HTTPException(400, detail=str(exc)) from exc
    except StoreUnavailableError as exc:
        raise HTTPException(503, detail=str(exc)) from exc
    return PercentileResponse(
        user_id=result.user_id,
        percentile=result.percentile,
        rank=result.rank,
        total_users=result.total_users,
        total_usd_amount=str(result.total_usd_amount),
    )
