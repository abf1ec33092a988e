from pydantic import ValidationError
import pytest

from studio_booking.core.config import Settings, is_running_tests


@pytest.mark.unit
class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("STUDIO_TIMEZONE", "BOOKING_LOCKOUT_MINUTES", "CANCELLATION_NOTICE_MINUTES"):
            monkeypatch.delenv(name, raising=False)
        config = Settings(_env_file=None)
        assert config.studio_timezone == "Europe/Tirane"
        assert config.booking_lockout_minutes == 15
        assert config.cancellation_notice_minutes == 120
        assert config.unlimited_allotment_sentinel == 999

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("STUDIO_TIMEZONE", "Europe/Rome")
        monkeypatch.setenv("CANCELLATION_NOTICE_MINUTES", "60")
        config = Settings(_env_file=None)
        assert config.studio_timezone == "Europe/Rome"
        assert config.cancellation_notice_minutes == 60

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, studio_timezone="Mars/Olympus")

    def test_negative_window_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, booking_lockout_minutes=-1)

    def test_lock_backend_normalized(self):
        assert Settings(_env_file=None, class_lock_backend=" Redis ").class_lock_backend == "redis"

    def test_unknown_lock_backend_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, class_lock_backend="zookeeper")

    def test_sqlite_detection(self):
        assert Settings(_env_file=None, database_url="sqlite:///x.db").is_sqlite is True
        assert (
            Settings(_env_file=None, database_url="postgresql://u:p@db/studio").is_sqlite
            is False
        )

    def test_running_under_pytest_detected(self):
        assert is_running_tests() is True
