from datetime import datetime, timezone

from sqlalchemy import Float, Index, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from eurohazard.database import Base, UTCDateTime


class RiskPrediction(Base):
    """One score per (region, hazard type) per prediction run. Append-only."""

    __tablename__ = "risk_predictions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    region: Mapped[str] = mapped_column(String(10), index=True)
    disaster_type: Mapped[str] = mapped_column(String(20))

    risk_score: Mapped[float] = mapped_column(Float)  # 0-100
    confidence: Mapped[float] = mapped_column(Float)  # 0-1

    # Inputs used (stored for reproducibility)
    factors: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    predicted_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("idx_risk_predictions_key_time", region, disaster_type, predicted_at),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "region": self.region,
            "disaster_type": self.disaster_type,
            "risk_score": self.risk_score,
            "confidence": self.confidence,
            "factors": self.factors,
            "predicted_at": self.predicted_at.isoformat() if self.predicted_at else None,
        }
