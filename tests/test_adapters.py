"""
Tests for the event store adapters.
"""

import asyncio
import json

import pendulum
import pytest
import requests

from schedulr.adapters.mock_event_store import DEFAULT_MOCK_DATA_FILE, MockEventStore
from schedulr.adapters.rows import scheduled_events_from_rows, synced_events_from_rows
from schedulr.adapters.supabase_client import SupabaseEventStore
from schedulr.domain.exceptions import EventStoreError
from schedulr.domain.models import EventOrigin

TZ = "Europe/Berlin"


def _at(value: str):
    return pendulum.parse(value, tz=TZ)


class TestRowConversion:

    def test_scheduled_rows_have_no_end(self):
        events = scheduled_events_from_rows(
            [{"id": 7, "title": "Standup", "event_date": "2024-01-01T09:00:00+00:00"}], TZ
        )

        assert len(events) == 1
        assert events[0].id == "7"
        assert events[0].origin is EventOrigin.SCHEDULED
        assert events[0].end is None
        assert events[0].start == _at("2024-01-01 10:00")
        assert events[0].start.timezone_name == TZ

    def test_synced_rows_keep_their_end(self):
        events = synced_events_from_rows(
            [{
                "id": "g1",
                "title": "Lunch",
                "start_time": "2024-01-01T12:00:00+01:00",
                "end_time": "2024-01-01T12:45:00+01:00",
            }],
            TZ,
        )

        assert events[0].origin is EventOrigin.SYNCED
        assert events[0].end == _at("2024-01-01 12:45")

    def test_invalid_rows_are_skipped(self, caplog):
        rows = [
            {"id": "missing-date", "title": "No date"},
            {"id": "garbage", "title": "Bad", "event_date": "not a date"},
            {"id": "ok", "title": "Fine", "event_date": "2024-01-01T09:00:00+01:00"},
        ]

        events = scheduled_events_from_rows(rows, TZ)

        assert [e.id for e in events] == ["ok"]
        assert "missing-date" in caplog.text

    def test_inverted_synced_rows_are_skipped(self):
        events = synced_events_from_rows(
            [{
                "id": "g1",
                "title": "Broken",
                "start_time": "2024-01-01T12:00:00+01:00",
                "end_time": "2024-01-01T11:00:00+01:00",
            }],
            TZ,
        )

        assert events == []


class TestMockEventStore:
    """Tests for MockEventStore filtering."""

    def _store(self) -> MockEventStore:
        return MockEventStore(
            scheduled_rows=[
                {"id": "a", "user_id": "u1", "title": "A", "event_date": "2024-01-01T10:00:00+01:00"},
                {"id": "done", "user_id": "u1", "title": "Done", "event_date": "2024-01-01T11:00:00+01:00", "is_completed": True},
                {"id": "other", "user_id": "u2", "title": "Other", "event_date": "2024-01-01T10:00:00+01:00"},
                {"id": "edge", "user_id": "u1", "title": "Edge", "event_date": "2024-01-01T13:00:00+01:00"},
                {"id": "outside", "user_id": "u1", "title": "Outside", "event_date": "2024-01-01T13:00:01+01:00"},
            ],
            synced_rows=[
                {"id": "g1", "user_id": "u1", "title": "G1", "start_time": "2024-01-01T09:00:00+01:00", "end_time": "2024-01-01T09:30:00+01:00", "is_busy": True},
                {"id": "free", "user_id": "u1", "title": "Free", "start_time": "2024-01-01T09:00:00+01:00", "end_time": "2024-01-01T09:30:00+01:00", "is_busy": False},
            ],
            timezone=TZ,
        )

    def test_scheduled_filters(self):
        """User, completion flag and the closed window are all applied."""
        events = asyncio.run(
            self._store().list_scheduled_events("u1", _at("2024-01-01 08:00"), _at("2024-01-01 13:00"))
        )

        assert [e.id for e in events] == ["a", "edge"]

    def test_completed_filter(self):
        events = asyncio.run(
            self._store().list_scheduled_events(
                "u1", _at("2024-01-01 08:00"), _at("2024-01-01 13:00"), completed=True
            )
        )

        assert [e.id for e in events] == ["done"]

    def test_synced_busy_filter(self):
        events = asyncio.run(
            self._store().list_synced_events("u1", _at("2024-01-01 08:00"), _at("2024-01-01 13:00"))
        )

        assert [e.id for e in events] == ["g1"]

    def test_from_bundled_json(self):
        store = MockEventStore.from_json(DEFAULT_MOCK_DATA_FILE, timezone=TZ)

        events = asyncio.run(
            store.list_scheduled_events("demo-user", _at("2030-03-04 00:00"), _at("2030-03-04 23:59"))
        )

        assert [e.title for e in events] == ["Team standup", "Design review"]

    def test_from_json_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            MockEventStore.from_json(tmp_path / "missing.json")

    def test_from_json_invalid(self, tmp_path):
        data_file = tmp_path / "events.json"
        data_file.write_text("[1, 2, 3]", encoding="utf-8")

        with pytest.raises(EventStoreError, match="mapping"):
            MockEventStore.from_json(data_file)

    def test_from_json_roundtrip(self, tmp_path):
        data_file = tmp_path / "events.json"
        data_file.write_text(
            json.dumps({
                "scheduled_events": [
                    {"id": "x", "user_id": "u1", "title": "X", "event_date": "2024-01-01T10:00:00+01:00"}
                ]
            }),
            encoding="utf-8",
        )

        store = MockEventStore.from_json(data_file, timezone=TZ)

        assert store.synced_rows == []
        assert len(store.scheduled_rows) == 1


class FakeResponse:

    def __init__(self, payload, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        return self._payload


class FakeSession:
    """Records GET calls and replays a canned response."""

    def __init__(self, response: FakeResponse):
        self.response = response
        self.calls = []

    def get(self, url, headers=None, params=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "params": params, "timeout": timeout})
        return self.response


class TestSupabaseEventStore:
    """Tests for SupabaseEventStore query building and error handling."""

    def _store(self, session: FakeSession) -> SupabaseEventStore:
        return SupabaseEventStore(
            url="https://demo.supabase.co/",
            api_key="secret",
            timezone=TZ,
            timeout_seconds=5,
            session=session,
        )

    def test_scheduled_query(self):
        session = FakeSession(FakeResponse([
            {"id": "e1", "title": "Standup", "event_date": "2024-01-01T09:00:00+00:00"}
        ]))

        events = asyncio.run(
            self._store(session).list_scheduled_events(
                "u1", _at("2024-01-01 08:00"), _at("2024-01-01 13:00")
            )
        )

        assert [e.id for e in events] == ["e1"]
        call = session.calls[0]
        assert call["url"] == "https://demo.supabase.co/rest/v1/scheduled_events"
        assert call["headers"]["apikey"] == "secret"
        assert call["headers"]["Authorization"] == "Bearer secret"
        assert call["timeout"] == 5
        assert call["params"] == [
            ("select", "id,title,event_date"),
            ("user_id", "eq.u1"),
            ("event_date", "gte.2024-01-01T07:00:00Z"),
            ("event_date", "lte.2024-01-01T12:00:00Z"),
            ("is_completed", "eq.false"),
        ]

    def test_synced_query(self):
        session = FakeSession(FakeResponse([
            {
                "id": "g1",
                "title": "Lunch",
                "start_time": "2024-01-01T11:00:00+00:00",
                "end_time": "2024-01-01T11:45:00+00:00",
            }
        ]))

        events = asyncio.run(
            self._store(session).list_synced_events(
                "u1", _at("2024-01-01 00:00"), _at("2024-01-01 23:00")
            )
        )

        assert events[0].end == _at("2024-01-01 12:45")
        params = session.calls[0]["params"]
        assert ("select", "id,title,start_time,end_time") in params
        assert ("is_busy", "eq.true") in params
        assert ("start_time", "gte.2023-12-31T23:00:00Z") in params

    def test_http_error_raises_event_store_error(self):
        session = FakeSession(FakeResponse({"message": "nope"}, status_code=503))

        with pytest.raises(EventStoreError, match="scheduled_events"):
            asyncio.run(
                self._store(session).list_scheduled_events(
                    "u1", _at("2024-01-01 08:00"), _at("2024-01-01 13:00")
                )
            )

    def test_unexpected_payload_raises_event_store_error(self):
        session = FakeSession(FakeResponse({"rows": []}))

        with pytest.raises(EventStoreError, match="expected a list"):
            asyncio.run(
                self._store(session).list_synced_events(
                    "u1", _at("2024-01-01 08:00"), _at("2024-01-01 13:00")
                )
            )
