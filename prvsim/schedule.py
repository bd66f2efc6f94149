"""
Day/night setpoint schedule.

The utility runs two pressure profiles: a higher target while the network is
busy and a lower one overnight to cut leakage. Hours outside 0-23 are wrapped.
"""

from typing import Tuple

from .config import (
    HOURS_PER_DAY, DAY_START_HOUR, NIGHT_START_HOUR, DAY_TARGET, NIGHT_TARGET
)


def is_daytime(hour: int) -> bool:
    """True while the day profile is active (06:00 to 22:59)."""
    hour = hour % HOURS_PER_DAY
    return DAY_START_HOUR <= hour < NIGHT_START_HOUR


def scheduled_target(hour: int) -> float:
    """Target pressure (m) the schedule asks for at this hour."""
    return DAY_TARGET if is_daytime(hour) else NIGHT_TARGET


def next_schedule_change(hour: int) -> Tuple[int, float]:
    """
    Next profile switch after the given hour.

    Returns:
        Tuple[int, float]: (hour of the switch, target that takes effect)
    """
    if is_daytime(hour):
        return NIGHT_START_HOUR, NIGHT_TARGET
    return DAY_START_HOUR, DAY_TARGET
