"""
Triage and booking enums.
"""

from enum import Enum


class RiskLevel(str, Enum):
    """Risk level of the reported symptoms, ordered by severity."""

    NORMAL = "normal"
    URGENT = "urgent"
    EMERGENCY = "emergency"

    @property
    def rank(self) -> int:
        return _RISK_ORDER.index(self)

    @classmethod
    def max_of(cls, *levels: "RiskLevel") -> "RiskLevel":
        """Return the most severe of ``levels``."""
        return max(levels, key=lambda level: level.rank, default=cls.NORMAL)


_RISK_ORDER = [RiskLevel.NORMAL, RiskLevel.URGENT, RiskLevel.EMERGENCY]


class Gender(str, Enum):
    """Patient gender as reported in the conversation."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: str) -> "Gender":
        """Convert free text to a Gender, falling back to UNKNOWN."""
        if not value:
            return cls.UNKNOWN

        value = value.strip().lower()

        if value in ["male", "man", "m", "boy", "nam"]:
            return cls.MALE
        if value in ["female", "woman", "f", "girl", "nữ", "nu"]:
            return cls.FEMALE
        if value in ["other", "non-binary", "nonbinary", "khác"]:
            return cls.OTHER

        return cls.UNKNOWN


class BookingStatus(str, Enum):
    """Booking request status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
