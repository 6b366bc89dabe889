"""Unit tests for the read repositories.

These tests mock the database cursor so they run without Postgres.
"""

from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import pytest

from tourmate.infra.repositories.bookings_repository import get_guest_booking, list_guest_bookings
from tourmate.infra.repositories.cabins_repository import get_booked_dates_by_cabin_id, get_cabin
from tourmate.infra.repositories.guests_repository import get_or_create_guest


@pytest.fixture
def cur():
    """Mocked dict cursor."""
    return MagicMock()


class TestBookedDates:
    def test_expands_rows_and_filters_in_sql(self, cur):
        cur.fetchall.return_value = [
            {"start_date": datetime(2025, 6, 8, tzinfo=timezone.utc),
             "end_date": datetime(2025, 6, 11, tzinfo=timezone.utc),
             "status": "checked-in"},
            {"start_date": datetime(2025, 6, 20, tzinfo=timezone.utc),
             "end_date": datetime(2025, 6, 21, tzinfo=timezone.utc),
             "status": "unconfirmed"},
        ]

        days = get_booked_dates_by_cabin_id(cur, "cabin-1", today=date(2025, 6, 10))

        assert days == [
            date(2025, 6, 8), date(2025, 6, 9), date(2025, 6, 10), date(2025, 6, 11),
            date(2025, 6, 20), date(2025, 6, 21),
        ]
        sql, params = cur.execute.call_args[0]
        assert "status = 'checked-in'" in sql
        assert params == ("cabin-1", date(2025, 6, 10))

    def test_no_bookings(self, cur):
        cur.fetchall.return_value = []
        assert get_booked_dates_by_cabin_id(cur, "cabin-1", today=date(2025, 6, 10)) == []


class TestGetCabin:
    def test_missing_cabin(self, cur):
        cur.fetchone.return_value = None
        assert get_cabin(cur, "nope") is None

    def test_found(self, cur):
        cur.fetchone.return_value = {"id": "cabin-1", "name": "001"}
        assert get_cabin(cur, "cabin-1")["name"] == "001"


class TestGuests:
    def test_first_sign_in_creates_guest(self, cur):
        cur.fetchone.return_value = {"id": "guest-1"}
        assert get_or_create_guest(cur, email="ana@example.com", full_name="Ana") == ("guest-1", True)
        cur.execute.assert_called_once()

    def test_existing_guest_is_looked_up(self, cur):
        cur.fetchone.side_effect = [None, {"id": "guest-1"}]
        assert get_or_create_guest(cur, email="ana@example.com") == ("guest-1", False)
        assert cur.execute.call_count == 2


class TestGuestBookings:
    def test_list_is_scoped_by_guest(self, cur):
        cur.fetchall.return_value = [{"id": "b1"}]
        assert list_guest_bookings(cur, "guest-1") == [{"id": "b1"}]
        sql, params = cur.execute.call_args[0]
        assert "WHERE b.guest_id = %s" in sql
        assert "ORDER BY b.start_date DESC" in sql
        assert params == ("guest-1",)

    def test_get_requires_both_ids(self, cur):
        cur.fetchone.return_value = None
        assert get_guest_booking(cur, "guest-1", "b2") is None
        assert cur.execute.call_args[0][1] == ("guest-1", "b2")
