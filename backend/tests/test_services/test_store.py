"""Tests for the Store (upsert semantics and keyed queries)."""

from datetime import datetime, timedelta, timezone

from eurohazard.models import DisasterEvent

T0 = datetime(2024, 7, 15, 11, 0, tzinfo=timezone.utc)


def _event(**overrides):
    values = {
        "id": "earthquake_us7000abcd",
        "type": "earthquake",
        "severity": "medium",
        "latitude": 41.9,
        "longitude": 12.5,
        "timestamp": T0,
        "description": "4.5 magnitude earthquake near Rome",
        "source": "USGS",
        "magnitude": 4.5,
        "depth": 10.0,
        "radius": None,
        "locality": None,
    }
    values.update(overrides)
    return values


def _sample(hours_ago: float, **overrides):
    values = {
        "type": "earthquake",
        "region": "IT",
        "latitude": 41.9,
        "longitude": 12.5,
        "severity": "medium",
        "timestamp": T0 - timedelta(hours=hours_ago),
    }
    values.update(overrides)
    return values


class TestUpsertEvent:
    async def test_insert_returns_persisted_event(self, store):
        event = await store.upsert_event(_event())
        assert isinstance(event, DisasterEvent)
        assert event.id == "earthquake_us7000abcd"
        assert event.timestamp == T0
        assert event.timestamp.tzinfo is not None

    async def test_same_id_twice_keeps_one_record(self, store):
        await store.upsert_event(_event())
        await store.upsert_event(_event())
        events = await store.list_events()
        assert len(events) == 1

    async def test_second_upsert_overwrites_and_keeps_created_at(self, store, clock):
        first = await store.upsert_event(_event())
        created_at = first.created_at

        clock.advance(minutes=5)
        second = await store.upsert_event(_event(severity="high", magnitude=6.1))

        assert second.severity == "high"
        assert second.magnitude == 6.1
        assert second.created_at == created_at
        assert second.updated_at == created_at + timedelta(minutes=5)

    async def test_get_event_missing(self, store):
        assert await store.get_event("nope") is None


class TestEventQueries:
    async def test_find_recent_event_by_type_and_locality(self, store):
        await store.upsert_event(
            _event(id="weather_London_1", type="weather", locality="London", timestamp=T0)
        )

        found = await store.find_recent_event("weather", "London", T0 - timedelta(minutes=30))
        assert found is not None
        assert found.id == "weather_London_1"

        assert await store.find_recent_event("weather", "Paris", T0 - timedelta(minutes=30)) is None
        assert await store.find_recent_event("weather", "London", T0) is None

    async def test_delete_events_before_only_touches_type(self, store):
        old = T0 - timedelta(hours=3)
        await store.upsert_event(_event(id="weather_London_1", type="weather", timestamp=old))
        await store.upsert_event(_event(id="weather_London_2", type="weather", timestamp=T0))
        await store.upsert_event(_event(id="earthquake_old", timestamp=old))

        removed = await store.delete_events_before("weather", T0 - timedelta(hours=2))

        assert removed == 1
        remaining = {e.id for e in await store.list_events()}
        assert remaining == {"weather_London_2", "earthquake_old"}

    async def test_list_events_filters_and_orders(self, store):
        await store.upsert_event(_event(id="a", timestamp=T0 - timedelta(hours=1)))
        await store.upsert_event(_event(id="b", timestamp=T0))
        await store.upsert_event(_event(id="c", type="flood", timestamp=T0))

        quakes = await store.list_events(type="earthquake")
        assert [e.id for e in quakes] == ["b", "a"]

        recent = await store.list_events(since=T0 - timedelta(minutes=30))
        assert {e.id for e in recent} == {"b", "c"}


class TestHistoricalSamples:
    async def test_recent_samples_newest_first_with_limit(self, store):
        for hours in (5, 1, 3):
            await store.add_historical_sample(_sample(hours))
        await store.add_historical_sample(_sample(0, region="GR"))

        samples = await store.recent_samples("IT", "earthquake", limit=2)

        assert len(samples) == 2
        assert samples[0].timestamp == T0 - timedelta(hours=1)
        assert samples[1].timestamp == T0 - timedelta(hours=3)


class TestPredictions:
    async def test_add_and_query_predictions(self, store):
        for region, score in (("UK", 72.5), ("IT", 40.0)):
            await store.add_prediction(
                {
                    "region": region,
                    "disaster_type": "flood",
                    "risk_score": score,
                    "confidence": 0.5,
                    "factors": {"frequency": 0.1},
                    "predicted_at": T0,
                }
            )

        uk = await store.latest_predictions(region="UK")
        assert len(uk) == 1
        assert uk[0].id is not None
        assert uk[0].factors == {"frequency": 0.1}

        high = await store.high_risk_predictions(70.0)
        assert [p.region for p in high] == ["UK"]


async def test_ping(store):
    assert await store.ping() is True
