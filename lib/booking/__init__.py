"""Hotel search page objects.

Shared library: search models plus the home and results page objects.
Run orchestration lives in services/search/.
"""

from lib.booking.models import (
    Occupancy,
    PriceSortCheck,
    SearchOutcome,
    SearchReport,
    SearchRequest,
)

__all__ = [
    "Occupancy",
    "SearchRequest",
    "SearchOutcome",
    "SearchReport",
    "PriceSortCheck",
]
