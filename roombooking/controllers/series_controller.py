"""HTTP controller layer for recurring series."""

from __future__ import annotations

from datetime import date, time

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from roombooking.controllers.booking_controller import BookingResponse
from roombooking.controllers.dependencies import (
    get_acting_user,
    get_series_service,
    to_http_exception,
)
from roombooking.domain.models import ActingUser, RecurrenceType
from roombooking.domain.scheduler import SkippedOccurrence
from roombooking.services.booking_service import BookingError
from roombooking.services.series_service import SeriesService
from roombooking.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/series", tags=["series"])


class ExpandRecurrenceRequest(BaseModel):
    start_date: date
    end_date: date
    recurrence_type: RecurrenceType


class ExpandRecurrenceResponse(BaseModel):
    dates: list[date]


class SeriesRequest(BaseModel):
    room_id: int = Field(gt=0)
    title: str = Field(min_length=1, max_length=200)
    start_date: date
    start_time: time
    end_time: time
    recurrence_type: RecurrenceType = RecurrenceType.WEEKLY
    recurrence_end_date: date

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_wall_clock(cls, value: time) -> time:
        if value.tzinfo is not None:
            raise ValueError("times must be local wall-clock values without a UTC offset")
        return value.replace(second=0, microsecond=0)


class SkippedOccurrenceResponse(BaseModel):
    occurrence_date: date
    kind: str
    message: str
    context: dict

    @classmethod
    def from_skipped(cls, item: SkippedOccurrence) -> "SkippedOccurrenceResponse":
        return cls(
            occurrence_date=item.date,
            kind=item.failure.kind.value,
            message=item.failure.message,
            context=dict(item.failure.context),
        )


class SeriesPreviewResponse(BaseModel):
    accepted_dates: list[date]
    skipped: list[SkippedOccurrenceResponse]
    weekend_dates: list[date]


class SeriesResponse(BaseModel):
    series_id: int = Field(gt=0)
    room_id: int = Field(gt=0)
    title: str
    recurrence_type: RecurrenceType
    accepted_count: int = Field(ge=0)
    bookings: list[BookingResponse]
    skipped: list[SkippedOccurrenceResponse]
    weekend_dates: list[date]


class SeriesDeleteResponse(BaseModel):
    series_id: int = Field(gt=0)
    deleted_bookings: int = Field(ge=0)


@router.post("/expand", response_model=ExpandRecurrenceResponse)
async def expand(
    payload: ExpandRecurrenceRequest,
    service: SeriesService = Depends(get_series_service),
) -> ExpandRecurrenceResponse:
    """Calendar dates a rule produces, before weekend and conflict filtering."""
    try:
        dates = service.preview_dates(
            payload.start_date,
            payload.end_date,
            payload.recurrence_type,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return ExpandRecurrenceResponse(dates=dates)


@router.post("/preview", response_model=SeriesPreviewResponse)
async def preview_series(
    payload: SeriesRequest,
    user: ActingUser = Depends(get_acting_user),
    service: SeriesService = Depends(get_series_service),
) -> SeriesPreviewResponse:
    try:
        outcome = service.preview_series(
            user=user,
            room_id=payload.room_id,
            title=payload.title,
            start_date=payload.start_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            recurrence_type=payload.recurrence_type,
            recurrence_end_date=payload.recurrence_end_date,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    if not outcome.ok:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=outcome.failure.to_dict(),
        )
    return SeriesPreviewResponse(
        accepted_dates=outcome.accepted_dates,
        skipped=[SkippedOccurrenceResponse.from_skipped(item) for item in outcome.skipped],
        weekend_dates=outcome.weekend_dates,
    )


@router.post("", response_model=SeriesResponse, status_code=status.HTTP_201_CREATED)
async def create_series(
    payload: SeriesRequest,
    user: ActingUser = Depends(get_acting_user),
    service: SeriesService = Depends(get_series_service),
) -> SeriesResponse:
    try:
        report = service.create_series(
            user=user,
            room_id=payload.room_id,
            title=payload.title,
            start_date=payload.start_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            recurrence_type=payload.recurrence_type,
            recurrence_end_date=payload.recurrence_end_date,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected series creation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create recurring series",
        ) from exc
    return SeriesResponse(
        series_id=report.series.series_id,
        room_id=report.series.room_id,
        title=report.series.title,
        recurrence_type=report.series.recurrence_type,
        accepted_count=report.accepted_count,
        bookings=[BookingResponse.from_booking(booking) for booking in report.accepted],
        skipped=[SkippedOccurrenceResponse.from_skipped(item) for item in report.skipped],
        weekend_dates=report.weekend_dates,
    )


@router.delete("/{series_id}", response_model=SeriesDeleteResponse)
async def delete_series(
    series_id: int,
    user: ActingUser = Depends(get_acting_user),
    service: SeriesService = Depends(get_series_service),
) -> SeriesDeleteResponse:
    try:
        removed = service.delete_series(user, series_id)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return SeriesDeleteResponse(series_id=series_id, deleted_bookings=removed)
