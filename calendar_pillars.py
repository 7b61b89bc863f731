"""
calendar_pillars.py - Four Pillars from a Timestamp

Thin adapter over lunar_python. Given a datetime, returns the year, month,
day and hour stem-branch labels. Conversion errors propagate unchanged.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Dict, Tuple

from lunar_python import Solar


@dataclass(frozen=True)
class Pillars:
    """Year/month/day/hour stem-branch pillars, e.g. 甲辰."""
    year: str
    month: str
    day: str
    time: str

    def as_tuple(self) -> Tuple[str, str, str, str]:
        return (self.year, self.month, self.day, self.time)

    def joined(self) -> str:
        return "".join(self.as_tuple())

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def pillars_for(moment: datetime) -> Pillars:
    """
    Compute the four pillars for a wall-clock moment.

    Year and month pillars switch at the solar terms (立春, 节), the day
    pillar switches at 23:00, matching the "exact" variants of the calendar.

    Args:
        moment: naive or aware datetime; its own wall-clock fields are used

    Returns:
        Pillars
    """
    solar = Solar.fromYmdHms(
        moment.year, moment.month, moment.day,
        moment.hour, moment.minute, moment.second,
    )
    lunar = solar.getLunar()
    return Pillars(
        year=str(lunar.getYearInGanZhiExact()),
        month=str(lunar.getMonthInGanZhiExact()),
        day=str(lunar.getDayInGanZhiExact2()),
        time=str(lunar.getTimeInGanZhi()),
    )
