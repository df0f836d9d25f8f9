"""Region bucket resolution by ordered bounding-box containment."""

from dataclasses import dataclass

from eurohazard.config import Settings

GLOBAL_REGION = "GLOBAL"
CONTINENTAL_REGION = "EU"


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon


# Default area of interest (Europe)
EUROPE = BoundingBox(35, 70, -10, 40)

# Checked in order, first match wins. Boxes overlap (e.g. NL sits inside DE/FR
# ranges), so the order is part of the contract.
REGION_BOXES: list[tuple[str, BoundingBox]] = [
    ("UK", BoundingBox(49, 60, -8, 2)),
    ("DE", BoundingBox(47, 55, 5, 15)),
    ("FR", BoundingBox(41, 51, -5, 10)),
    ("IT", BoundingBox(35, 47, 6, 18)),
    ("ES", BoundingBox(36, 44, -10, 5)),
    ("NL", BoundingBox(50, 54, 3, 8)),
    ("AT", BoundingBox(46, 49, 9, 17)),
    ("CH", BoundingBox(45, 48, 5, 11)),
    ("PL", BoundingBox(49, 55, 14, 24)),
]

# Buckets scored by the risk engine (includes buckets fed only by historical data)
RISK_REGIONS: list[str] = [
    "EU", "UK", "DE", "FR", "IT", "ES", "NL", "AT", "CH", "PL",
    "GR", "PT", "BE", "SE", "NO", "DK", "FI",
]


def area_of_interest(settings: Settings) -> BoundingBox:
    return BoundingBox(
        settings.aoi_min_lat,
        settings.aoi_max_lat,
        settings.aoi_min_lon,
        settings.aoi_max_lon,
    )


def resolve_region(lat: float, lon: float, aoi: BoundingBox | None = None) -> str:
    """
    Map a coordinate to its region bucket.

    Returns a named country bucket, ``EU`` for coordinates inside the area of
    interest but outside every named box, or ``GLOBAL`` otherwise.
    """
    aoi = aoi or EUROPE
    if not aoi.contains(lat, lon):
        return GLOBAL_REGION
    for name, box in REGION_BOXES:
        if box.contains(lat, lon):
            return name
    return CONTINENTAL_REGION


def region_channel(region: str) -> str:
    """Broadcast channel name for a region bucket."""
    return f"region_{region}"
