# utils/holiday_calendar.py
"""
Public holiday lookup used to tag schedule records
"""

import logging
from datetime import date
from typing import Optional, Set

import holidays

logger = logging.getLogger(__name__)


class HolidayCalendar:
    """Holiday dates for one country and year, computed once"""

    def __init__(self, country='CO', year: Optional[int] = None):
        self.country = country
        self.year = year or date.today().year
        self._dates = self._load()

    def _load(self) -> Set[date]:
        try:
            calendar = holidays.country_holidays(self.country, years=self.year)
        except NotImplementedError:
            logger.warning(f"No holiday calendar for country {self.country}; no dates will be tagged")
            return set()
        logger.info(f"Loaded {len(calendar)} holidays for {self.country} {self.year}")
        return set(calendar.keys())

    def is_holiday(self, value) -> bool:
        if value is None:
            return False
        return value in self._dates

    @property
    def dates(self) -> Set[date]:
        return set(self._dates)
