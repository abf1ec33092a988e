# studio_booking/routes/v1/bookings.py
"""
Booking routes - API v1

Endpoints:
    POST / - Book a class (confirmed or waitlisted)
    POST /{booking_id}/cancel - Cancel a booking
"""

import asyncio
import logging

from fastapi import APIRouter, Body, Depends, Response, status
from fastapi.params import Path

from ...core.exceptions import DomainException
from ...events.booking_events import BookingConfirmed
from ...schemas.booking import (
    ULID_PATTERN,
    BookingCancelResponse,
    BookingCreate,
    BookingOutcomeResponse,
)
from ...services.booking_lifecycle_service import BookingLifecycleService
from ..dependencies import get_booking_lifecycle_service
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


@router.post(
    "",
    response_model=BookingOutcomeResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        202: {"description": "Class full, member added to the waitlist"},
        422: {"description": "Booking denied; detail.code carries the reason"},
    },
)
async def create_booking(
    response: Response,
    payload: BookingCreate = Body(...),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingOutcomeResponse:
    """Book a class, or join its waitlist when it is full."""
    try:
        outcome = await asyncio.to_thread(service.book, payload.subscriber_id, payload.class_id)
    except DomainException as e:
        handle_domain_exception(e)

    if not isinstance(outcome, BookingConfirmed):
        response.status_code = status.HTTP_202_ACCEPTED
    return BookingOutcomeResponse.from_event(outcome)


@router.post(
    "/{booking_id}/cancel",
    response_model=BookingCancelResponse,
    responses={
        404: {"description": "Booking not found"},
        422: {"description": "Too late to cancel, or already cancelled"},
    },
)
async def cancel_booking(
    booking_id: str = Path(
        ...,
        description="Booking ULID",
        pattern=ULID_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    ),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingCancelResponse:
    """Cancel a booking and hand the seat to the waitlist."""
    try:
        event = await asyncio.to_thread(service.cancel, booking_id)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingCancelResponse.from_event(event)
