"""
Booking module.
"""

from .resolver import BookingIntentResolver
from .client import BookingAPIClient

__all__ = [
    "BookingIntentResolver",
    "BookingAPIClient",
]
