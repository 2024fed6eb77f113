"""
Date utilities for curve instruments.

Provides:
- Tenor parsing and date generation
- Business day arithmetic
- Accrual schedule generation for swap legs
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Set, Tuple
import calendar
import re

from .conventions import (
    BusinessDayConvention,
    DayCount,
    adjust_business_day,
    is_business_day,
    year_fraction
)


class DateUtils:
    """Utility class for date manipulation in rates contexts."""

    # Tenor regex pattern: number + unit (D/W/M/Y)
    TENOR_PATTERN = re.compile(r'^(\d+)([DWMY])$', re.IGNORECASE)

    @staticmethod
    def parse_tenor(tenor: str) -> Tuple[int, str]:
        """
        Parse a tenor string into (amount, unit).

        Args:
            tenor: Tenor string like "1D", "3M", "2Y"

        Returns:
            Tuple of (amount, unit) where unit is D/W/M/Y

        Raises:
            ValueError: If tenor format is invalid
        """
        match = DateUtils.TENOR_PATTERN.match(tenor.upper().strip())
        if not match:
            raise ValueError(f"Invalid tenor format: {tenor}. Expected format like '3M', '2Y'")

        return int(match.group(1)), match.group(2).upper()

    @staticmethod
    def add_months(start: date, months: int) -> date:
        """Add calendar months, clamping the day to the target month's length."""
        year = start.year + (start.month + months - 1) // 12
        month = (start.month + months - 1) % 12 + 1
        day = min(start.day, calendar.monthrange(year, month)[1])
        return date(year, month, day)

    @staticmethod
    def add_business_days(start: date, n: int, holidays: Optional[Set[date]] = None) -> date:
        """Move n business days forward (or backward when n is negative)."""
        step = 1 if n >= 0 else -1
        result = start
        remaining = abs(n)
        while remaining > 0:
            result += timedelta(days=step)
            if is_business_day(result, holidays):
                remaining -= 1
        return result

    @staticmethod
    def add_tenor(start: date, tenor: str, holidays: Optional[Set[date]] = None) -> date:
        """
        Add a tenor to a date.

        Day tenors count business days; week, month and year tenors are
        calendar arithmetic (unadjusted).
        """
        amount, unit = DateUtils.parse_tenor(tenor)

        if unit == 'D':
            return DateUtils.add_business_days(start, amount, holidays)
        elif unit == 'W':
            return start + timedelta(weeks=amount)
        elif unit == 'M':
            return DateUtils.add_months(start, amount)
        elif unit == 'Y':
            return DateUtils.add_months(start, 12 * amount)
        else:
            raise ValueError(f"Unknown tenor unit: {unit}")

    @staticmethod
    def generate_schedule(
        start: date,
        end: date,
        frequency: int,
        convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        holidays: Optional[Set[date]] = None
    ) -> List[date]:
        """
        Generate accrual end dates between start and end, rolling backward from end.

        Any stub falls at the front. Dates are adjusted for business days;
        the start date itself is not included.

        Args:
            start: Schedule start (accrual start)
            end: Schedule end (maturity)
            frequency: Payments per year (1=annual, 2=semi, 4=quarterly, 12=monthly)
            convention: Business day adjustment
            holidays: Holiday calendar
        """
        if frequency <= 0 or 12 % frequency != 0:
            raise ValueError(f"Unsupported frequency: {frequency}")
        if end <= start:
            raise ValueError(f"Schedule end {end} must be after start {start}")

        months_per_period = 12 // frequency

        unadjusted = [end]
        k = 1
        while True:
            prev_date = DateUtils.add_months(end, -k * months_per_period)
            if prev_date <= start:
                break
            unadjusted.insert(0, prev_date)
            k += 1

        return [adjust_business_day(d, convention, holidays) for d in unadjusted]


@dataclass
class ScheduleInfo:
    """Container for a leg schedule with accrual information."""
    payment_dates: List[date]
    accrual_starts: List[date]
    accrual_ends: List[date]
    year_fractions: List[float]
    day_count: DayCount

    def __len__(self) -> int:
        return len(self.payment_dates)


def generate_leg_schedule(
    effective: date,
    maturity: date,
    frequency: int,
    day_count: DayCount,
    convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
    payment_lag: int = 0,
    holidays: Optional[Set[date]] = None
) -> ScheduleInfo:
    """
    Generate one swap leg's accrual periods and payment dates.

    Args:
        effective: Leg start date
        maturity: Leg end date
        frequency: Payments per year
        day_count: Accrual day count
        convention: Business day adjustment for accrual dates
        payment_lag: Business days from accrual end to payment
        holidays: Holiday calendar

    Returns:
        ScheduleInfo with payment dates and accrual fractions
    """
    accrual_ends = DateUtils.generate_schedule(effective, maturity, frequency, convention, holidays)
    accrual_starts = [effective] + accrual_ends[:-1]

    payment_dates = [
        DateUtils.add_business_days(d, payment_lag, holidays) if payment_lag else d
        for d in accrual_ends
    ]

    return ScheduleInfo(
        payment_dates=payment_dates,
        accrual_starts=accrual_starts,
        accrual_ends=accrual_ends,
        year_fractions=[
            year_fraction(s, e, day_count) for s, e in zip(accrual_starts, accrual_ends)
        ],
        day_count=day_count
    )


__all__ = [
    "DateUtils",
    "ScheduleInfo",
    "generate_leg_schedule",
]
