"""
Persistence for disaster events, risk predictions and historical samples.

One session per operation; every write is its own transaction so concurrent
ticks never share session state.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import delete, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eurohazard.models import DisasterEvent, HistoricalSample, RiskPrediction
from eurohazard.utils.date_helpers import utc_now

logger = structlog.get_logger()

# Columns overwritten when an event id is re-ingested (created_at is kept)
_EVENT_UPDATE_COLUMNS = (
    "type",
    "severity",
    "latitude",
    "longitude",
    "timestamp",
    "description",
    "source",
    "magnitude",
    "depth",
    "radius",
    "locality",
    "updated_at",
)


class Store:
    """Async keyed persistence over an ``async_sessionmaker``."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utc_now,
    ):
        self._session_factory = session_factory
        self._clock = clock

    # ------------------------------------------------------------------
    # Disaster events
    # ------------------------------------------------------------------

    async def upsert_event(self, values: dict[str, Any]) -> DisasterEvent:
        """
        Insert or overwrite a DisasterEvent by ``id``.

        A single ``INSERT ... ON CONFLICT (id) DO UPDATE`` statement, so
        concurrent writers on the same id resolve last-write-wins without
        torn rows. ``updated_at`` is bumped; ``created_at`` survives.
        """
        now = self._clock()
        row = {**values, "created_at": now, "updated_at": now}

        async with self._session_factory() as session:
            insert = self._insert_for(session)
            stmt = insert(DisasterEvent).values(**row)
            stmt = stmt.on_conflict_do_update(
                index_elements=[DisasterEvent.id],
                set_={col: stmt.excluded[col] for col in _EVENT_UPDATE_COLUMNS},
            )
            await session.execute(stmt)
            await session.commit()

            event = await session.get(DisasterEvent, values["id"], populate_existing=True)
            return event

    async def get_event(self, event_id: str) -> DisasterEvent | None:
        async with self._session_factory() as session:
            return await session.get(DisasterEvent, event_id)

    async def list_events(
        self,
        type: str | None = None,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[DisasterEvent]:
        query = select(DisasterEvent)
        if type is not None:
            query = query.where(DisasterEvent.type == type)
        if since is not None:
            query = query.where(DisasterEvent.timestamp >= since)
        query = query.order_by(DisasterEvent.timestamp.desc()).limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def find_recent_event(
        self,
        type: str,
        locality: str,
        since: datetime,
    ) -> DisasterEvent | None:
        """Latest event of ``type`` for ``locality`` with timestamp after ``since``."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(DisasterEvent)
                .where(
                    DisasterEvent.type == type,
                    DisasterEvent.locality == locality,
                    DisasterEvent.timestamp > since,
                )
                .order_by(DisasterEvent.timestamp.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def delete_events_before(self, type: str, cutoff: datetime) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(DisasterEvent).where(
                    DisasterEvent.type == type,
                    DisasterEvent.timestamp < cutoff,
                )
            )
            await session.commit()
            return result.rowcount or 0

    # ------------------------------------------------------------------
    # Risk predictions
    # ------------------------------------------------------------------

    async def add_prediction(self, values: dict[str, Any]) -> RiskPrediction:
        async with self._session_factory() as session:
            prediction = RiskPrediction(**values)
            session.add(prediction)
            await session.commit()
            return prediction

    async def latest_predictions(
        self,
        region: str | None = None,
        since: datetime | None = None,
        limit: int = 50,
    ) -> list[RiskPrediction]:
        query = select(RiskPrediction)
        if region is not None:
            query = query.where(RiskPrediction.region == region)
        if since is not None:
            query = query.where(RiskPrediction.predicted_at >= since)
        query = query.order_by(RiskPrediction.predicted_at.desc()).limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def high_risk_predictions(
        self,
        threshold: float,
        since: datetime | None = None,
        limit: int = 50,
    ) -> list[RiskPrediction]:
        query = select(RiskPrediction).where(RiskPrediction.risk_score > threshold)
        if since is not None:
            query = query.where(RiskPrediction.predicted_at >= since)
        query = query.order_by(RiskPrediction.risk_score.desc()).limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Historical samples
    # ------------------------------------------------------------------

    async def recent_samples(
        self,
        region: str,
        type: str,
        limit: int = 100,
    ) -> list[HistoricalSample]:
        """Most recent samples for a (region, type) key, newest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(HistoricalSample)
                .where(
                    HistoricalSample.type == type,
                    HistoricalSample.region == region,
                )
                .order_by(HistoricalSample.timestamp.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def historical_sample_exists(
        self,
        type: str,
        latitude: float,
        longitude: float,
        timestamp: datetime,
    ) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(HistoricalSample.id)
                .where(
                    HistoricalSample.type == type,
                    HistoricalSample.latitude == latitude,
                    HistoricalSample.longitude == longitude,
                    HistoricalSample.timestamp == timestamp,
                )
                .limit(1)
            )
            return result.first() is not None

    async def add_historical_sample(self, values: dict[str, Any]) -> HistoricalSample:
        async with self._session_factory() as session:
            sample = HistoricalSample(**values)
            session.add(sample)
            await session.commit()
            return sample

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def ping(self) -> bool:
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))
        return True

    @staticmethod
    def _insert_for(session: AsyncSession):
        dialect = session.get_bind().dialect.name
        if dialect == "sqlite":
            return sqlite.insert
        if dialect == "postgresql":
            return postgresql.insert
        raise NotImplementedError(f"Upsert not supported for dialect: {dialect}")
