from datetime import datetime, timezone

from sqlalchemy import Float, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from eurohazard.database import Base, UTCDateTime

HAZARD_TYPES = ("earthquake", "wildfire", "flood", "weather", "volcano")
SEVERITIES = ("low", "medium", "high", "critical")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DisasterEvent(Base):
    __tablename__ = "disasters"

    # "<source>_<providerId>" or, for weather, "weather_<locality>_<epoch ms>"
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    type: Mapped[str] = mapped_column(String(20), index=True)
    severity: Mapped[str] = mapped_column(String(10))
    latitude: Mapped[float] = mapped_column(Float)
    longitude: Mapped[float] = mapped_column(Float)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(50))

    magnitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    depth: Mapped[float | None] = mapped_column(Float, nullable=True)
    radius: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Named locality for feeds without provider ids (weather)
    locality: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)

    __table_args__ = (
        Index("idx_disasters_location", latitude, longitude),
        Index("idx_disasters_type_locality_timestamp", type, locality, timestamp),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "severity": self.severity,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "description": self.description,
            "source": self.source,
            "magnitude": self.magnitude,
            "depth": self.depth,
            "radius": self.radius,
            "locality": self.locality,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
