# backend/tests/routes/test_availability_routes.py
"""
HTTP tests for the v1 availability routes.

Dates are relative to today so that the seeded 24 hour last-minute cutoff
and 30 day advance limit never touch the Monday under test.
"""

from datetime import date, datetime, timedelta

import pytest

from coachbook.core.enums import SessionStatus
from tests.utils.availability_builders import next_monday

BASE = "/api/v1/coaches/coach-1/availability"
PROBLEM_JSON = "application/problem+json"


@pytest.fixture
def monday() -> date:
    return next_monday(date.today() + timedelta(days=7))


def at(day: date, hour: int, minute: int = 0) -> str:
    return f"{day.isoformat()}T{hour:02d}:{minute:02d}:00Z"


def slots_for(client, day: date, **params):
    query = {"start_date": day.isoformat(), "end_date": (day + timedelta(days=1)).isoformat()}
    query.update(params)
    return client.get(f"{BASE}/slots", params=query)


class TestProfileRoutes:
    def test_first_read_seeds_profile(self, client):
        response = client.get(BASE)

        assert response.status_code == 200
        body = response.json()
        assert body["coach_id"] == "coach-1"
        assert body["timezone"] == "UTC"
        assert body["version"] == 1
        assert [entry["day_of_week"] for entry in body["recurring_availability"]] == [1, 2, 3, 4, 5]
        assert body["recurring_availability"][0]["start_time"] == "09:00"
        assert body["approval_mode"] == "manual"
        assert body["date_overrides"] == []

    def test_invalid_coach_id(self, client):
        response = client.get("/api/v1/coaches/not%20valid/availability")

        assert response.status_code == 422
        assert response.headers["content-type"].startswith(PROBLEM_JSON)

    def test_replace_recurring(self, client):
        client.get(BASE)

        response = client.put(
            f"{BASE}/recurring",
            json={
                "recurring_availability": [
                    {"day_of_week": 0, "start_time": "9:00", "end_time": "12:00"},
                    {"day_of_week": 6, "start_time": "20:00", "end_time": "24:00"},
                ],
                "expected_version": 1,
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["version"] == 2
        assert body["recurring_availability"][0]["start_time"] == "09:00"
        assert body["recurring_availability"][1]["end_time"] == "24:00"

    def test_stale_version_is_a_conflict(self, client):
        client.get(BASE)
        payload = {"recurring_availability": [], "expected_version": 1}
        client.put(f"{BASE}/recurring", json=payload)

        response = client.put(f"{BASE}/recurring", json=payload)

        assert response.status_code == 409
        assert response.headers["content-type"].startswith(PROBLEM_JSON)
        body = response.json()
        assert body["code"] == "VERSION_CONFLICT"
        assert body["errors"]["current_version"] == 2

    def test_overlapping_entries_rejected(self, client):
        client.get(BASE)

        response = client.put(
            f"{BASE}/recurring",
            json={
                "recurring_availability": [
                    {"day_of_week": 1, "start_time": "09:00", "end_time": "11:00"},
                    {"day_of_week": 1, "start_time": "10:00", "end_time": "12:00"},
                ],
                "expected_version": 1,
            },
        )

        assert response.status_code == 400
        assert response.json()["errors"]["errors"][0]["code"] == "overlap"
        assert client.get(BASE).json()["version"] == 1

    @pytest.mark.parametrize(
        "entry",
        [
            {"day_of_week": 1, "start_time": "9am", "end_time": "10:00"},
            {"day_of_week": 7, "start_time": "09:00", "end_time": "10:00"},
            {"day_of_week": 1, "start_time": "09:00", "end_time": "10:00", "note": "x"},
        ],
    )
    def test_malformed_entries_rejected(self, client, entry):
        response = client.put(
            f"{BASE}/recurring",
            json={"recurring_availability": [entry], "expected_version": 1},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"


class TestOverrideRoutes:
    def test_add_and_remove_override(self, client, monday):
        client.get(BASE)

        added = client.post(
            f"{BASE}/overrides",
            json={"date": monday.isoformat(), "is_available": False, "reason": "vacation"},
        )
        removed = client.delete(f"{BASE}/overrides/{monday.isoformat()}")

        assert added.status_code == 200
        assert added.json()["date_overrides"] == [
            {"date": monday.isoformat(), "is_available": False, "reason": "vacation", "time_slots": []}
        ]
        assert removed.status_code == 200
        assert removed.json()["date_overrides"] == []
        assert removed.json()["version"] == 3

    def test_blocked_day_with_hours_rejected(self, client, monday):
        client.get(BASE)

        response = client.post(
            f"{BASE}/overrides",
            json={
                "date": monday.isoformat(),
                "is_available": False,
                "time_slots": [{"start_time": "10:00", "end_time": "11:00"}],
            },
        )

        assert response.status_code == 400

    def test_override_with_stale_version(self, client, monday):
        client.get(BASE)
        client.post(f"{BASE}/overrides", json={"date": monday.isoformat(), "is_available": False})

        response = client.post(
            f"{BASE}/overrides",
            json={"date": monday.isoformat(), "is_available": True, "expected_version": 1},
        )

        assert response.status_code == 409


class TestSettingsRoutes:
    def test_read_settings(self, client):
        response = client.get(f"{BASE}/settings")

        assert response.status_code == 200
        body = response.json()
        assert body["buffer_settings"] == {"before_session": 0, "after_session": 0, "between_sessions": 0}
        assert body["allowed_durations"] == [30, 45, 60, 90, 120]
        assert "recurring_availability" not in body

    def test_partial_update(self, client):
        client.get(BASE)

        response = client.patch(
            f"{BASE}/settings",
            json={
                "expected_version": 1,
                "buffer_settings": {"before_session": 15, "after_session": 15},
                "require_approval": False,
                "auto_accept_bookings": True,
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["buffer_settings"]["before_session"] == 15
        assert body["approval_mode"] == "auto"
        assert body["advance_booking_days"] == 30
        assert body["version"] == 2

    def test_unknown_timezone_rejected(self, client):
        client.get(BASE)

        response = client.patch(f"{BASE}/settings", json={"expected_version": 1, "timezone": "Mars/Olympus"})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_unknown_field_rejected(self, client):
        response = client.patch(f"{BASE}/settings", json={"expected_version": 1, "coach_id": "other"})

        assert response.status_code == 422


class TestSlotRoutes:
    def test_slot_listing(self, client, monday):
        response = slots_for(client, monday)

        assert response.status_code == 200
        body = response.json()
        assert body["duration"] == 60
        assert body["total_slots"] == body["available_slots"] == 8
        assert body["slots"][0]["start"].startswith(f"{monday.isoformat()}T09:00:00")
        assert body["slots"][0]["conflict_reason"] is None

    def test_booked_session_is_reported(self, client, add_session, monday):
        add_session("coach-1", datetime.fromisoformat(at(monday, 10).replace("Z", "+00:00")))

        body = slots_for(client, monday).json()

        assert body["available_slots"] == 7
        booked = [slot for slot in body["slots"] if slot["conflict_reason"] == "booked"]
        assert len(booked) == 1
        assert booked[0]["start"].startswith(f"{monday.isoformat()}T10:00:00")

    def test_cancelled_session_does_not_block(self, client, add_session, monday):
        start = datetime.fromisoformat(at(monday, 10).replace("Z", "+00:00"))
        add_session("coach-1", start, status=SessionStatus.CANCELLED)

        assert slots_for(client, monday).json()["available_slots"] == 8

    def test_hide_unavailable(self, client, monday):
        client.get(BASE)
        client.post(f"{BASE}/overrides", json={"date": monday.isoformat(), "is_available": False})

        shown = slots_for(client, monday).json()
        hidden = slots_for(client, monday, include_unavailable="false").json()

        assert shown["total_slots"] == 8
        assert {slot["conflict_reason"] for slot in shown["slots"]} == {"override_blocked"}
        assert hidden["slots"] == []

    def test_custom_duration(self, client, monday):
        body = slots_for(client, monday, duration=120).json()

        assert body["duration"] == 120
        assert body["total_slots"] == 4

    def test_range_too_large(self, client, monday):
        response = client.get(
            f"{BASE}/slots",
            params={"start_date": monday.isoformat(), "end_date": (monday + timedelta(days=120)).isoformat()},
        )

        assert response.status_code == 400
        assert response.headers["content-type"].startswith(PROBLEM_JSON)
        body = response.json()
        assert body["code"] == "RANGE_TOO_LARGE"
        assert body["errors"]["max_days"] == 90

    def test_inverted_range(self, client, monday):
        response = client.get(
            f"{BASE}/slots",
            params={"start_date": monday.isoformat(), "end_date": (monday - timedelta(days=1)).isoformat()},
        )

        assert response.status_code == 400

    def test_missing_dates(self, client):
        assert client.get(f"{BASE}/slots").status_code == 422


class TestCheckSlotRoute:
    def test_open_slot(self, client, monday):
        response = client.post(f"{BASE}/check-slot", json={"start": at(monday, 10), "duration": 60})

        assert response.status_code == 200
        assert response.json() == {"is_available": True, "reason": None}

    def test_booked_slot(self, client, add_session, monday):
        session_id = add_session("coach-1", datetime.fromisoformat(at(monday, 10).replace("Z", "+00:00")))

        booked = client.post(f"{BASE}/check-slot", json={"start": at(monday, 10)})
        moving = client.post(
            f"{BASE}/check-slot", json={"start": at(monday, 10), "exclude_session_id": session_id}
        )

        assert booked.json() == {"is_available": False, "reason": "booked"}
        assert moving.json()["is_available"] is True

    def test_unaligned_start(self, client, monday):
        response = client.post(f"{BASE}/check-slot", json={"start": at(monday, 10, 30)})

        assert response.json() == {"is_available": False, "reason": "no_availability"}

    def test_naive_start_rejected(self, client, monday):
        response = client.post(f"{BASE}/check-slot", json={"start": f"{monday.isoformat()}T10:00:00"})

        assert response.status_code == 422


class TestStatusRoute:
    def test_status_shape(self, client):
        response = client.get(f"{BASE}/status")

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"is_currently_available", "current_session_end", "next_available_slot"}
        assert body["next_available_slot"] is not None


class TestOperationalRoutes:
    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_metrics_exposed(self, client):
        client.get(BASE)

        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert b"coachbook_http_requests_total" in response.content
        assert b"coachbook_service_operations_total" in response.content

    def test_unknown_route_uses_problem_envelope(self, client):
        response = client.get("/api/v1/nowhere")

        assert response.status_code == 404
        assert response.headers["content-type"].startswith(PROBLEM_JSON)
        body = response.json()
        assert body["title"] == "Not Found"
        assert body["instance"] == "/api/v1/nowhere"
        assert "code" not in body

    def test_domain_error_envelope(self, client):
        client.get(BASE)
        client.put(f"{BASE}/recurring", json={"recurring_availability": [], "expected_version": 1})

        body = client.put(f"{BASE}/recurring", json={"recurring_availability": [], "expected_version": 1}).json()

        assert body["status"] == 409
        assert body["title"] == "Conflict"
        assert body["instance"] == f"{BASE}/recurring"
        assert body["detail"]
