from eurohazard.models.disaster import DisasterEvent
from eurohazard.models.historical import HistoricalSample
from eurohazard.models.risk import RiskPrediction

__all__ = [
    "DisasterEvent",
    "HistoricalSample",
    "RiskPrediction",
]
