"""
Day count, business day and compounding conventions for curve instruments.

Supported Day Counts:
- ACT/360: Actual days / 360 (money markets, OIS)
- ACT/365: Actual days / 365 (curve time axis)
- ACT/ACT: Actual days / actual days in year (ISDA)
- 30/360: 30 days per month / 360 (some swap fixed legs)

Business Day Conventions:
- Modified Following: Move to next business day, unless it falls in next month (then previous)
- Following: Move to next business day
- Preceding: Move to previous business day

Compounding:
- Simple, Continuous and periodically compounded rates, with the
  conversions to and from compound factors used by curve queries.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional, Set
import calendar
import math


class DayCount(Enum):
    """Day count convention enumeration."""
    ACT_360 = "ACT/360"
    ACT_365 = "ACT/365"
    ACT_ACT = "ACT/ACT"
    THIRTY_360 = "30/360"

    @classmethod
    def from_string(cls, s: str) -> "DayCount":
        """Parse day count from string representation."""
        mapping = {
            "ACT/360": cls.ACT_360,
            "ACT360": cls.ACT_360,
            "ACT/365": cls.ACT_365,
            "ACT365": cls.ACT_365,
            "ACT/365F": cls.ACT_365,
            "ACT/ACT": cls.ACT_ACT,
            "ACTACT": cls.ACT_ACT,
            "30/360": cls.THIRTY_360,
            "30360": cls.THIRTY_360,
        }
        key = s.upper().replace(" ", "")
        if key in mapping:
            return mapping[key]
        raise ValueError(f"Unknown day count convention: {s}")


class BusinessDayConvention(Enum):
    """Business day adjustment convention."""
    MODIFIED_FOLLOWING = "ModifiedFollowing"
    FOLLOWING = "Following"
    PRECEDING = "Preceding"
    UNADJUSTED = "Unadjusted"


class CompoundingConvention(Enum):
    """Interest rate compounding convention."""
    CONTINUOUS = "Continuous"
    ANNUAL = "Annual"
    SEMI_ANNUAL = "SemiAnnual"
    QUARTERLY = "Quarterly"
    MONTHLY = "Monthly"
    SIMPLE = "Simple"

    @property
    def periods_per_year(self) -> Optional[int]:
        """Compounding periods per year, None for simple/continuous."""
        return {
            CompoundingConvention.ANNUAL: 1,
            CompoundingConvention.SEMI_ANNUAL: 2,
            CompoundingConvention.QUARTERLY: 4,
            CompoundingConvention.MONTHLY: 12,
        }.get(self)


@dataclass
class Conventions:
    """
    Container for instrument conventions.

    Attributes:
        day_count: Day count convention for accrual
        business_day: Business day adjustment rule
        payment_frequency: Number of payments per year (1=annual, 2=semi, 4=quarterly)
        settlement_days: Business days to settle from the curve reference date
        payment_lag: Business days between accrual end and payment
    """
    day_count: DayCount = DayCount.ACT_360
    business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING
    payment_frequency: int = 1
    settlement_days: int = 2
    payment_lag: int = 0

    @classmethod
    def usd_deposit(cls) -> "Conventions":
        """Standard USD money-market deposit conventions."""
        return cls(
            day_count=DayCount.ACT_360,
            business_day=BusinessDayConvention.MODIFIED_FOLLOWING,
            payment_frequency=0,
            settlement_days=2
        )

    @classmethod
    def usd_ois(cls) -> "Conventions":
        """Standard USD OIS conventions (both legs)."""
        return cls(
            day_count=DayCount.ACT_360,
            business_day=BusinessDayConvention.MODIFIED_FOLLOWING,
            payment_frequency=1,
            settlement_days=2,
            payment_lag=2
        )

    @classmethod
    def usd_swap_fixed(cls) -> "Conventions":
        """Standard USD IRS fixed leg conventions."""
        return cls(
            day_count=DayCount.THIRTY_360,
            business_day=BusinessDayConvention.MODIFIED_FOLLOWING,
            payment_frequency=2,
            settlement_days=2
        )

    @classmethod
    def usd_swap_float(cls) -> "Conventions":
        """Standard USD IRS floating leg conventions."""
        return cls(
            day_count=DayCount.ACT_360,
            business_day=BusinessDayConvention.MODIFIED_FOLLOWING,
            payment_frequency=4,
            settlement_days=2
        )


def days_between(start: date, end: date) -> int:
    """Signed number of calendar days from start to end."""
    return (end - start).days


def year_fraction(start: date, end: date, day_count: DayCount) -> float:
    """
    Calculate year fraction between two dates using specified day count convention.

    Args:
        start: Start date
        end: End date
        day_count: Day count convention

    Returns:
        Year fraction as float (0.0 when end is not after start)

    Conventions:
        ACT/360: (end - start).days / 360
        ACT/365: (end - start).days / 365
        ACT/ACT: ISDA, days in each calendar year over that year's length
        30/360: US 30/360 (bond basis)
    """
    if start >= end:
        return 0.0

    actual_days = (end - start).days

    if day_count == DayCount.ACT_360:
        return actual_days / 360.0

    elif day_count == DayCount.ACT_365:
        return actual_days / 365.0

    elif day_count == DayCount.ACT_ACT:
        total = 0.0
        for year in range(start.year, end.year + 1):
            seg_start = max(start, date(year, 1, 1))
            seg_end = min(end, date(year + 1, 1, 1))
            days_in_year = 366 if calendar.isleap(year) else 365
            total += (seg_end - seg_start).days / days_in_year
        return total

    elif day_count == DayCount.THIRTY_360:
        d1 = min(start.day, 30)
        d2 = end.day
        if d2 == 31 and d1 == 30:
            d2 = 30
        return (360 * (end.year - start.year) + 30 * (end.month - start.month) + (d2 - d1)) / 360.0

    else:
        raise ValueError(f"Unknown day count: {day_count}")


def is_business_day(d: date, holidays: Optional[Set[date]] = None) -> bool:
    """
    Check if a date is a business day.

    Uses weekend-only calendar by default (Saturday/Sunday are non-business days).
    """
    if d.weekday() >= 5:
        return False
    if holidays and d in holidays:
        return False
    return True


def adjust_business_day(
    d: date,
    convention: BusinessDayConvention,
    holidays: Optional[Set[date]] = None
) -> date:
    """
    Adjust a date according to business day convention.

    Args:
        d: Date to adjust
        convention: Business day adjustment rule
        holidays: Optional set of holiday dates

    Returns:
        Adjusted date
    """
    if convention == BusinessDayConvention.UNADJUSTED or is_business_day(d, holidays):
        return d

    if convention == BusinessDayConvention.PRECEDING:
        step = -1
    else:
        step = 1

    adjusted = d
    while not is_business_day(adjusted, holidays):
        adjusted += timedelta(days=step)

    # Modified following: if we crossed into next month, go preceding instead
    if convention == BusinessDayConvention.MODIFIED_FOLLOWING and adjusted.month != d.month:
        adjusted = d
        while not is_business_day(adjusted, holidays):
            adjusted -= timedelta(days=1)

    return adjusted


def compound_factor(
    rate: float,
    t: float,
    compounding: CompoundingConvention
) -> float:
    """
    Growth of one unit invested at `rate` for `t` years.

    Args:
        rate: Interest rate in decimal
        t: Year fraction
        compounding: Compounding convention of `rate`
    """
    if compounding == CompoundingConvention.SIMPLE:
        return 1.0 + rate * t
    if compounding == CompoundingConvention.CONTINUOUS:
        return math.exp(rate * t)

    n = compounding.periods_per_year
    return (1.0 + rate / n) ** (n * t)


def implied_rate(
    factor: float,
    t: float,
    compounding: CompoundingConvention
) -> float:
    """
    Rate that grows one unit into `factor` over `t` years.

    Inverse of compound_factor. Requires t > 0 and factor > 0.
    """
    if t <= 0:
        raise ValueError("Time must be positive to imply a rate")
    if factor <= 0:
        raise ValueError(f"Compound factor must be positive, got {factor}")

    if compounding == CompoundingConvention.SIMPLE:
        return (factor - 1.0) / t
    if compounding == CompoundingConvention.CONTINUOUS:
        return math.log(factor) / t

    n = compounding.periods_per_year
    return n * (factor ** (1.0 / (n * t)) - 1.0)


__all__ = [
    "DayCount",
    "BusinessDayConvention",
    "CompoundingConvention",
    "Conventions",
    "days_between",
    "year_fraction",
    "is_business_day",
    "adjust_business_day",
    "compound_factor",
    "implied_rate",
]
