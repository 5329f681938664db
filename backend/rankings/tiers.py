"""Pilot tiers derived from accumulated flight hours."""

from __future__ import annotations

from bisect import bisect_right
from decimal import Decimal

# Lower bound (inclusive) of flight hours for each tier, indexed by tier.
TIER_THRESHOLDS: tuple[Decimal, ...] = tuple(
    Decimal(hours) for hours in (0, 10, 25, 50, 100, 200, 350, 550, 800, 1100, 1500)
)
TIER_NAMES: tuple[str, ...] = (
    "Novice",
    "Apprentice",
    "Intermediate",
    "Skilled",
    "Advanced",
    "Expert",
    "Master",
    "Elite",
    "Legend",
    "Supreme",
    "Grand Master",
)
MAX_TIER = len(TIER_THRESHOLDS) - 1


def calculate_tier(flight_hours) -> int:
    """Return the tier reached with ``flight_hours`` total hours flown."""
    hours = Decimal(str(flight_hours))
    if hours <= 0:
        return 0
    return min(bisect_right(TIER_THRESHOLDS, hours) - 1, MAX_TIER)


def tier_name(tier: int) -> str:
    if 0 <= tier <= MAX_TIER:
        return TIER_NAMES[tier]
    return "Unknown"


def hours_to_next_tier(flight_hours) -> Decimal | None:
    """Hours still needed to reach the next tier, or None at the top tier."""
    tier = calculate_tier(flight_hours)
    if tier >= MAX_TIER:
        return None
    return TIER_THRESHOLDS[tier + 1] - Decimal(str(flight_hours))
