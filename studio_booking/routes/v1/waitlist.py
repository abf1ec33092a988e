# studio_booking/routes/v1/waitlist.py
"""
Waitlist routes - API v1

Endpoints:
    GET /position - Member's assigned position and live place in line
    DELETE /{entry_id} - Leave a waitlist
"""

import asyncio

from fastapi import APIRouter, Depends, Query
from fastapi.params import Path

from ...core.exceptions import DomainException
from ...schemas.booking import ULID_PATTERN, WaitlistLeftResponse, WaitlistPositionResponse
from ...services.booking_lifecycle_service import BookingLifecycleService
from ..dependencies import get_booking_lifecycle_service
from .errors import handle_domain_exception

router = APIRouter(tags=["waitlist-v1"])


@router.get("/position", response_model=WaitlistPositionResponse)
async def get_waitlist_position(
    subscriber_id: str = Query(..., min_length=1, max_length=26),
    class_id: str = Query(..., pattern=ULID_PATTERN),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> WaitlistPositionResponse:
    position = await asyncio.to_thread(service.position_of, subscriber_id, class_id)
    place_in_line = await asyncio.to_thread(service.place_in_line, subscriber_id, class_id)
    return WaitlistPositionResponse(
        subscriber_id=subscriber_id,
        class_id=class_id,
        position=position,
        place_in_line=place_in_line,
    )


@router.delete(
    "/{entry_id}",
    response_model=WaitlistLeftResponse,
    responses={
        404: {"description": "Waitlist entry not found"},
        409: {"description": "Entry was already promoted"},
    },
)
async def leave_waitlist(
    entry_id: str = Path(..., description="WaitlistEntry ULID", pattern=ULID_PATTERN),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> WaitlistLeftResponse:
    try:
        event = await asyncio.to_thread(service.leave_waitlist, entry_id)
    except DomainException as e:
        handle_domain_exception(e)
    return WaitlistLeftResponse.from_event(event)
