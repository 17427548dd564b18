from datetime import date, datetime, timedelta, timezone

from medaccess.app.core.dates import date_is_expired, ensure_aware, utcnow
from medaccess.app.schemas.user import minimal_adult_birth_date


def test_date_is_expired():
    yesterday = utcnow() - timedelta(days=1)
    assert date_is_expired(yesterday) is True
    # Deadline pushed one day forward (plus a second of slack)
    assert date_is_expired(yesterday, 24 * 60 * 60 + 1) is False

    in_a_minute = utcnow() + timedelta(minutes=1)
    assert date_is_expired(in_a_minute) is False
    assert date_is_expired(in_a_minute, -2 * 60) is True


def test_naive_dates_are_treated_as_utc():
    naive = datetime(2024, 1, 1, 12, 0)
    assert ensure_aware(naive) == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert ensure_aware(None) is None
    assert date_is_expired(naive) is True


def test_minimal_adult_birth_date():
    assert minimal_adult_birth_date(date(2024, 6, 15)) == date(2006, 6, 15)
    assert minimal_adult_birth_date(date(2024, 2, 29)) == date(2006, 2, 28)
