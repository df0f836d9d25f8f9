"""Archive persisted disaster events as historical samples for the risk engine.

Weather records are skipped (they are reaped after a few hours and are not
history). Meant to run once a day, e.g. from cron: python3 backfill_history.py
Re-running inside the window only adds events not yet archived.
"""
import asyncio
from datetime import datetime, timedelta, timezone

from eurohazard.config import settings
from eurohazard.database import create_all_tables, create_engine, create_session_factory
from eurohazard.services.history_service import archive_recent_events
from eurohazard.services.regions import area_of_interest
from eurohazard.services.store import Store

WINDOW_DAYS = 1


async def main():
    engine = create_engine(settings.effective_database_url)
    await create_all_tables(engine)
    store = Store(create_session_factory(engine))
    since = datetime.now(timezone.utc) - timedelta(days=WINDOW_DAYS)

    try:
        archived = await archive_recent_events(store, area_of_interest(settings), since)
    finally:
        await engine.dispose()

    for hazard_type, count in archived.items():
        print(f"{hazard_type}: {count} archived")
    print(f"\nDone! Total: {sum(archived.values())} samples archived since {since.isoformat()}")


if __name__ == "__main__":
    asyncio.run(main())
