# studio_booking/routes/v1/classes.py
"""
Class routes - API v1

Endpoints:
    GET /{class_id}/waitlist - Waiting entries in promotion order
    POST /{class_id}/cancel - Studio cancels a class
"""

import asyncio

from fastapi import APIRouter, Depends
from fastapi.params import Path

from ...core.exceptions import DomainException
from ...schemas.booking import (
    ULID_PATTERN,
    ClassCancelResponse,
    ClassWaitlistResponse,
    WaitlistEntryResponse,
)
from ...services.booking_lifecycle_service import BookingLifecycleService
from ..dependencies import get_booking_lifecycle_service
from .errors import handle_domain_exception

router = APIRouter(tags=["classes-v1"])


@router.get("/{class_id}/waitlist", response_model=ClassWaitlistResponse)
async def list_class_waitlist(
    class_id: str = Path(..., description="ClassSlot ULID", pattern=ULID_PATTERN),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> ClassWaitlistResponse:
    entries = await asyncio.to_thread(service.list_waitlist, class_id)
    return ClassWaitlistResponse(
        class_id=class_id,
        entries=[WaitlistEntryResponse.model_validate(entry) for entry in entries],
    )


@router.post(
    "/{class_id}/cancel",
    response_model=ClassCancelResponse,
    responses={404: {"description": "Class not found"}},
)
async def cancel_class(
    class_id: str = Path(..., description="ClassSlot ULID", pattern=ULID_PATTERN),
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> ClassCancelResponse:
    """Cancel a class for every member; credits are returned."""
    try:
        event = await asyncio.to_thread(service.cancel_class, class_id)
    except DomainException as e:
        handle_domain_exception(e)
    return ClassCancelResponse.from_event(event)
