"""Pydantic schemas for the studio booking API."""

from .booking import (
    BookingCancelResponse,
    BookingCreate,
    BookingOutcomeResponse,
    ClassCancelResponse,
    ClassWaitlistResponse,
    WaitlistEntryResponse,
    WaitlistLeftResponse,
    WaitlistPositionResponse,
)

__all__ = [
    "BookingCancelResponse",
    "BookingCreate",
    "BookingOutcomeResponse",
    "ClassCancelResponse",
    "ClassWaitlistResponse",
    "WaitlistEntryResponse",
    "WaitlistLeftResponse",
    "WaitlistPositionResponse",
]
