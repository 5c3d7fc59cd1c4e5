"""
Dispatch Manager Global Constants

Limits, pricing tiers and defaults shared by the domain, cache and repositories.
"""

from datetime import datetime, timezone
from decimal import Decimal


# Timestamp Functions
def get_current_timestamp() -> datetime:
    """Timezone-aware UTC now; every created_at/updated_at goes through here."""
    return datetime.now(timezone.utc)


# Application Constants
APP_NAME = "Dispatch Manager"
APP_VERSION = "1.0.0"

# Geo constants
EARTH_RADIUS_KM = 6371.0
MIN_DISTANCE_KM = 1.0
MAX_DISTANCE_KM = 1000.0
COORDINATE_TOLERANCE = 0.0001
DISTANCE_TOLERANCE_KM = 0.01

# Distance tiers: (inclusive upper bound km, interval label, delivery cost)
DISTANCE_TIERS = (
    (50.0, "1-50 km", Decimal("100.00")),
    (200.0, "51-200 km", Decimal("300.00")),
    (500.0, "201-500 km", Decimal("1000.00")),
    (1000.0, "501-1000 km", Decimal("1500.00")),
)

DEFAULT_CURRENCY = "USD"

# Query limits
MAX_PAGE_SIZE = 1000
MAX_SEARCH_TERM_LENGTH = 100

# Cache estimation
ESTIMATED_BYTES_PER_CACHE_ENTRY = 1024
CACHE_HEALTH_PROBE_KEY = "health_check:probe"
