from fastapi import HTTPException
import pytest

from studio_booking.core.enums import DenialReason
from studio_booking.core.exceptions import (
    BookingDeniedException,
    CapacityInvariantViolation,
    NotFoundException,
)
from studio_booking.routes.v1.errors import handle_domain_exception


@pytest.mark.unit
class TestHandleDomainException:
    def test_not_found_maps_to_404(self):
        with pytest.raises(HTTPException) as exc_info:
            handle_domain_exception(NotFoundException("Booking not found", code="BOOKING_NOT_FOUND"))

        assert exc_info.value.status_code == 404
        assert exc_info.value.detail["code"] == "BOOKING_NOT_FOUND"

    def test_denial_carries_reason_code(self):
        with pytest.raises(HTTPException) as exc_info:
            handle_domain_exception(BookingDeniedException(DenialReason.TOO_LATE_TO_CANCEL))

        assert exc_info.value.status_code == 422
        assert exc_info.value.detail["code"] == DenialReason.TOO_LATE_TO_CANCEL.value

    def test_service_failure_uses_its_own_status(self):
        error = CapacityInvariantViolation("class-1", enrolled=3, capacity=2)

        with pytest.raises(HTTPException) as exc_info:
            handle_domain_exception(error)

        assert exc_info.value.status_code == error.status_code
        assert exc_info.value.detail["code"] == error.code
