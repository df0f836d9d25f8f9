"""Tests for candidate deduplication, upsert and the weather reaper."""

from datetime import datetime, timedelta, timezone

import pytest

from eurohazard.services.dedup_service import DeduplicationService
from eurohazard.sources.base import CandidateEvent

T0 = datetime(2024, 7, 15, 12, 0, tzinfo=timezone.utc)


def _weather(minutes_after: float, locality: str = "London") -> CandidateEvent:
    ts = T0 + timedelta(minutes=minutes_after)
    return CandidateEvent(
        id=f"weather_{locality}_{int(ts.timestamp() * 1000)}",
        type="weather",
        severity="high",
        latitude=51.5074,
        longitude=-0.1278,
        timestamp=ts,
        description=f"Severe weather alert for {locality}",
        source="OpenWeatherMap",
        radius=50_000,
        locality=locality,
    )


def _quake(event_id: str = "us7000abcd", severity: str = "medium") -> CandidateEvent:
    return CandidateEvent(
        id=f"earthquake_{event_id}",
        type="earthquake",
        severity=severity,
        latitude=41.9,
        longitude=12.5,
        timestamp=T0,
        description="4.5 magnitude earthquake near Rome",
        source="USGS",
        magnitude=4.5,
        depth=10.0,
    )


@pytest.fixture
def dedup(store, settings, clock):
    return DeduplicationService(store, settings, clock=clock)


class TestStableIds:
    async def test_reingest_is_idempotent(self, dedup, store):
        first = await dedup.ingest([_quake()])
        second = await dedup.ingest([_quake(severity="high")])

        assert len(first) == 1
        assert len(second) == 1
        events = await store.list_events(type="earthquake")
        assert len(events) == 1
        assert events[0].severity == "high"

    async def test_order_is_preserved(self, dedup):
        events = await dedup.ingest([_quake("b"), _quake("a"), _quake("c")])
        assert [e.id for e in events] == ["earthquake_b", "earthquake_a", "earthquake_c"]


class TestDedupWindow:
    async def test_second_alert_inside_window_is_suppressed(self, dedup, store):
        assert len(await dedup.ingest([_weather(0)])) == 1
        assert await dedup.ingest([_weather(10)]) == []

        events = await store.list_events(type="weather")
        assert len(events) == 1

    async def test_alert_after_window_is_accepted(self, dedup, store):
        await dedup.ingest([_weather(0)])
        accepted = await dedup.ingest([_weather(31)])

        assert len(accepted) == 1
        assert len(await store.list_events(type="weather")) == 2

    async def test_other_locality_is_not_a_duplicate(self, dedup):
        await dedup.ingest([_weather(0, "London")])
        accepted = await dedup.ingest([_weather(5, "Paris")])
        assert [e.locality for e in accepted] == ["Paris"]


class TestFailureIsolation:
    async def test_one_failed_write_does_not_abort_batch(self, settings):
        class FlakyStore:
            def __init__(self):
                self.written = []

            async def upsert_event(self, values):
                if values["id"] == "earthquake_bad":
                    raise RuntimeError("disk full")
                self.written.append(values["id"])
                return values["id"]

        store = FlakyStore()
        dedup = DeduplicationService(store, settings)

        result = await dedup.ingest([_quake("one"), _quake("bad"), _quake("two")])

        assert result == ["earthquake_one", "earthquake_two"]
        assert store.written == ["earthquake_one", "earthquake_two"]

    async def test_unknown_vocabulary_is_rejected(self, dedup, store):
        unknown_type = _quake("tsunami")
        unknown_type.type = "tsunami"
        unknown_severity = _quake("extreme", severity="extreme")

        result = await dedup.ingest([unknown_type, _quake("ok"), unknown_severity])

        assert [e.id for e in result] == ["earthquake_ok"]
        assert [e.id for e in await store.list_events()] == ["earthquake_ok"]


class TestReaper:
    async def test_removes_only_expired_weather(self, dedup, store):
        now = T0 + timedelta(hours=2, minutes=1)
        await dedup.ingest([_weather(0, "London")])  # 2h01m old at `now`
        await dedup.ingest([_weather(2, "Paris")])  # 1h59m old at `now`
        await dedup.ingest([_quake()])  # same age, but not weather

        removed = await dedup.reap_weather(now=now)

        assert removed == 1
        remaining = {e.locality or e.id for e in await store.list_events()}
        assert remaining == {"Paris", "earthquake_us7000abcd"}

    async def test_uses_clock_when_now_not_given(self, dedup, store, clock):
        await dedup.ingest([_weather(0)])
        clock.now = T0 + timedelta(hours=1)
        assert await dedup.reap_weather() == 0
        clock.now = T0 + timedelta(hours=3)
        assert await dedup.reap_weather() == 1
