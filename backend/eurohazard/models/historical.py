from datetime import datetime, timezone

from sqlalchemy import Float, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from eurohazard.database import Base, UTCDateTime


class HistoricalSample(Base):
    __tablename__ = "historical_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(20))
    region: Mapped[str] = mapped_column(String(10))
    latitude: Mapped[float] = mapped_column(Float)
    longitude: Mapped[float] = mapped_column(Float)
    severity: Mapped[str] = mapped_column(String(10))
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, index=True)

    weather_conditions: Mapped[str | None] = mapped_column(Text, nullable=True)
    seasonal_factors: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("idx_historical_region_type_timestamp", region, type, timestamp),
    )
