import asyncio
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from eurohazard.config import Settings, settings as default_settings
from eurohazard.database import create_all_tables, create_engine, create_session_factory
from eurohazard.services.broadcaster import GLOBAL_CHANNEL, Broadcaster, Subscription
from eurohazard.services.dedup_service import DeduplicationService
from eurohazard.services.ingest_service import IngestService
from eurohazard.services.regions import area_of_interest, region_channel
from eurohazard.services.risk_engine import RiskEngine
from eurohazard.services.store import Store
from eurohazard.sources.base import AbstractSource
from eurohazard.sources.eonet import NaturalEventSource
from eurohazard.sources.openweather import WeatherSource
from eurohazard.sources.usgs import SeismicSource
from eurohazard.tasks.runner import Scheduler

logger = structlog.get_logger()


@dataclass
class Pipeline:
    """Every long-lived service, built once by the process root."""

    engine: AsyncEngine
    store: Store
    broadcaster: Broadcaster
    deduplicator: DeduplicationService
    risk_engine: RiskEngine
    scheduler: Scheduler
    sources: list[AbstractSource] = field(default_factory=list)

    async def close(self):
        await self.scheduler.stop()
        for source in self.sources:
            await source.close()
        await self.engine.dispose()


async def build_pipeline(settings: Settings) -> Pipeline:
    """Create tables and wire services. Raises if the store cannot be initialized."""
    engine = create_engine(settings.effective_database_url, echo=settings.app_debug)
    await create_all_tables(engine)

    store = Store(create_session_factory(engine))
    broadcaster = Broadcaster(
        aoi=area_of_interest(settings),
        queue_size=settings.broadcast_queue_size,
        high_risk_threshold=settings.high_risk_threshold,
    )
    deduplicator = DeduplicationService(store, settings)
    risk_engine = RiskEngine(store, broadcaster, settings)

    seismic = SeismicSource(settings)
    natural = NaturalEventSource(settings)
    weather = WeatherSource(settings)

    scheduler = Scheduler()
    scheduler.add("seismic", settings.seismic_interval_seconds,
                  IngestService(seismic, deduplicator, broadcaster).run)
    scheduler.add("natural_events", settings.natural_event_interval_seconds,
                  IngestService(natural, deduplicator, broadcaster).run)
    scheduler.add("weather", settings.weather_interval_seconds,
                  IngestService(weather, deduplicator, broadcaster).run)
    scheduler.add("risk_predictions", settings.risk_interval_seconds, risk_engine.run)
    scheduler.add("weather_reaper", settings.reaper_interval_seconds, deduplicator.reap_weather)

    return Pipeline(
        engine=engine,
        store=store,
        broadcaster=broadcaster,
        deduplicator=deduplicator,
        risk_engine=risk_engine,
        scheduler=scheduler,
        sources=[seismic, natural, weather],
    )


async def forward_notifications(websocket: WebSocket, subscription: Subscription):
    """Relay subscription messages to the socket until a send fails."""
    async for message in subscription:
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.warning("Notification delivery failed", error_type=type(e).__name__, error=str(e))
            return


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    logger.info("Starting EuroHazard", env=settings.app_env)
    for warning in settings.validate_production():
        logger.warning("Configuration warning", detail=warning)

    # Store initialization is the one fatal failure: let it propagate
    pipeline = await build_pipeline(settings)
    app.state.pipeline = pipeline

    db_type = "sqlite" if settings.is_sqlite else "postgresql"
    logger.info("Database ready", backend=db_type)

    if settings.scheduler_enabled:
        pipeline.scheduler.start()

    yield

    await pipeline.close()
    logger.info("Shutting down EuroHazard")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        title="EuroHazard",
        description="Hazard event ingestion, regional fan-out and risk scoring.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        """Database connectivity and per-task scheduler state."""
        pipeline: Pipeline = app.state.pipeline
        result = {
            "status": "healthy",
            "version": "1.0.0",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": "unknown",
            "scheduler_enabled": settings.scheduler_enabled,
            "tasks": pipeline.scheduler.status(),
        }

        try:
            await pipeline.store.ping()
            result["database"] = "connected"
        except Exception as e:
            result["status"] = "degraded"
            result["database"] = f"error: {str(e)[:100]}"

        return result

    @app.websocket("/ws")
    async def notifications(websocket: WebSocket):
        """Push notifications. Send {"action": "join_region", "region": "UK"} to add a region."""
        await websocket.accept()
        pipeline: Pipeline = app.state.pipeline
        subscription = pipeline.broadcaster.subscribe(GLOBAL_CHANNEL)

        sender = asyncio.create_task(forward_notifications(websocket, subscription))
        try:
            while not sender.done():
                try:
                    data = await websocket.receive_json()
                except (KeyError, TypeError, ValueError):
                    # Binary frames arrive without text
                    await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                    continue

                action = data.get("action") if isinstance(data, dict) else None
                region = str(data.get("region") or "").upper() if isinstance(data, dict) else ""
                if action == "join_region" and region:
                    subscription.join(region_channel(region))
                    logger.info("Client joined region", region=region)
                elif action == "leave_region" and region:
                    subscription.leave(region_channel(region))
                else:
                    await websocket.send_json({"type": "error", "message": "Unknown action"})
        except WebSocketDisconnect:
            pass
        finally:
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass
            subscription.close()

    return app


app = create_app()
