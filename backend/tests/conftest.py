"""Test configuration and fixtures."""

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest
import respx

from eurohazard.config import Settings
from eurohazard.database import create_all_tables, create_engine, create_session_factory
from eurohazard.services.broadcaster import Broadcaster
from eurohazard.services.regions import area_of_interest
from eurohazard.services.store import Store

USGS_URL = "https://usgs.test"
EONET_URL = "https://eonet.test"
OPENWEATHER_URL = "https://openweather.test"


class FakeClock:
    """Settable clock injected wherever services read the current time."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        app_env="test",
        database_url="sqlite+aiosqlite:///:memory:",
        usgs_base_url=USGS_URL,
        eonet_base_url=EONET_URL,
        openweather_base_url=OPENWEATHER_URL,
        openweather_api_key="test-key",
        http_max_attempts=1,
        scheduler_enabled=False,
    )


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 7, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
async def engine(settings):
    engine = create_engine(settings.effective_database_url)
    await create_all_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine, clock):
    return Store(create_session_factory(engine), clock=clock)


@pytest.fixture
def broadcaster(settings):
    return Broadcaster(
        aoi=area_of_interest(settings),
        queue_size=settings.broadcast_queue_size,
        high_risk_threshold=settings.high_risk_threshold,
    )


@pytest.fixture
async def respx_router() -> AsyncGenerator[respx.MockRouter, None]:
    """Intercepts every outbound httpx request made by the feed clients."""
    async with respx.mock(assert_all_called=False) as mock:
        yield mock
