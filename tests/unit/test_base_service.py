from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import OperationalError

from studio_booking.core.exceptions import ServiceException
from studio_booking.services import base as base_module
from studio_booking.services.base import BaseService


class _ProbeService(BaseService):
    @BaseService.measure_operation("probe")
    def probe(self, fail: bool = False) -> str:
        if fail:
            raise ValueError("bad input")
        return "ok"


@pytest.mark.unit
class TestBaseService:
    def test_transaction_commits(self):
        db = Mock()
        service = BaseService(db)
        with service.transaction():
            pass
        db.commit.assert_called_once()
        db.rollback.assert_not_called()

    def test_database_error_becomes_service_exception(self):
        db = Mock()
        service = BaseService(db)
        with pytest.raises(ServiceException):
            with service.transaction():
                raise OperationalError("UPDATE", {}, Exception("disk I/O error"))
        db.rollback.assert_called_once()

    def test_domain_error_rolls_back_and_propagates(self):
        db = Mock()
        service = BaseService(db)
        with pytest.raises(ValueError):
            with service.transaction():
                raise ValueError("denied")
        db.rollback.assert_called_once()
        db.commit.assert_not_called()

    def test_measure_operation_tracks_success_and_failure(self):
        service = _ProbeService(Mock())
        with patch.object(base_module.prometheus_metrics, "record_service_operation") as record:
            assert service.probe() == "ok"
            with pytest.raises(ValueError):
                service.probe(fail=True)

        metrics = service.get_metrics()["probe"]
        assert metrics["count"] == 2
        assert metrics["success_count"] == 1
        assert metrics["failure_count"] == 1
        assert metrics["success_rate"] == 0.5
        assert record.call_args.kwargs["status"] == "error"
        assert record.call_args.kwargs["error_type"] == "ValueError"

    def test_slow_operation_logged(self):
        service = _ProbeService(Mock())
        with patch.object(base_module.prometheus_metrics, "record_service_operation"):
            with patch("studio_booking.services.base.time.time", side_effect=[0.0, 2.0]):
                with patch.object(service.logger, "warning") as mock_warning:
                    service.probe()
        mock_warning.assert_called_once()
