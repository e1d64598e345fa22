"""
Booking intent resolver.
"""

from typing import List

from ...core.models import BOOKING_FIELD_NAMES, BookingRequest, BookingResolution


class BookingIntentResolver:
    """Decide whether a booking request can be handed to the booking API."""

    # Fixed priority order used when reporting missing fields
    _FIELD_ORDER: List[str] = ["hospital_id", "department_id", "doctor_id", "preferred_time"]

    # Absence of a doctor means "any doctor"
    _OPTIONAL_FIELDS = frozenset({"doctor_id"})

    def missing_fields(self, request: BookingRequest) -> List[str]:
        """Return wire names of required fields that are still empty."""
        missing = []
        for name in self._FIELD_ORDER:
            if name in self._OPTIONAL_FIELDS:
                continue
            value = getattr(request, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(BOOKING_FIELD_NAMES[name])
        return missing

    def resolve(self, request: BookingRequest) -> BookingResolution:
        """Check ``request`` for completeness without touching its status."""
        missing = self.missing_fields(request)
        return BookingResolution(ready=not missing, missing_fields=missing)
