"""
Rate helpers for bootstrapping.

A rate helper wraps one market instrument and its live quote:
- DepositRateHelper: Money market deposits
- FraRateHelper: Forward Rate Agreements
- FuturesRateHelper: Interest rate futures (quoted as price)
- SwapRateHelper: Fixed vs floating par swaps (single curve)
- OISRateHelper: Overnight Index Swaps

Each helper knows:
1. Its maturity (the curve pillar it determines) and the latest date
   whose discount factor it reads
2. The quote the curve implies for it
3. Its residual: implied quote minus market quote

Helpers only read the curve; during a bootstrap the curve may have fewer
nodes than there are helpers and extrapolates past its last node.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Optional, Set, Union
import math

from ..conventions import (
    BusinessDayConvention,
    Conventions,
    DayCount,
    adjust_business_day,
    year_fraction
)
from ..dates import DateUtils, ScheduleInfo, generate_leg_schedule
from ..errors import HelperError, InvalidInput
from ..quotes import SimpleQuote, as_quote

if TYPE_CHECKING:
    from .curve import Curve

QuoteLike = Union[float, SimpleQuote]


class RateHelper(ABC):
    """
    Interface for curve construction instruments.

    Concrete helpers carry a `quote` (SimpleQuote) and their own
    conventions.
    """

    quote: SimpleQuote
    name: Optional[str]

    @property
    @abstractmethod
    def maturity_date(self) -> date:
        """Pillar date: the curve node this helper determines."""

    @property
    @abstractmethod
    def latest_relevant_date(self) -> date:
        """Latest date at which the helper reads the curve."""

    @abstractmethod
    def implied_quote(self, curve: "Curve") -> float:
        """Quote implied by the curve, in the same units as the market quote."""

    def _validate(self, reference_date: date) -> None:
        """Instrument-specific precondition checks."""

    @property
    def quote_value(self) -> float:
        return self.quote.value

    @property
    def label(self) -> str:
        """Human-readable identity used in diagnostics and errors."""
        if self.name:
            return self.name
        return f"{type(self).__name__}({self.maturity_date.isoformat()})"

    def residual(self, curve: "Curve") -> float:
        """Implied minus market quote; zero when the curve reprices the helper."""
        return self.implied_quote(curve) - self.quote_value

    def validate(self, reference_date: date) -> None:
        """
        Check the helper can be bootstrapped on a curve at reference_date.

        Raises:
            InvalidInput: If the maturity is not after the reference date
            HelperError: If the instrument's own preconditions fail
        """
        if self.maturity_date <= reference_date:
            raise InvalidInput(
                f"{self.label}: maturity {self.maturity_date} is not after "
                f"reference date {reference_date}"
            )
        if self.latest_relevant_date < self.maturity_date:
            raise HelperError(
                f"{self.label}: latest relevant date {self.latest_relevant_date} "
                f"precedes maturity {self.maturity_date}",
                helper=self.label
            )
        self._validate(reference_date)


def _simple_forward(curve: "Curve", start: date, end: date, day_count: DayCount) -> float:
    tau = year_fraction(start, end, day_count)
    return (curve.discount_factor(start) / curve.discount_factor(end) - 1.0) / tau


def _check_period(helper: RateHelper, start: date, end: date, reference_date: date) -> None:
    if start < reference_date:
        raise HelperError(
            f"{helper.label}: start {start} is before reference date {reference_date}",
            helper=helper.label
        )
    if end <= start:
        raise HelperError(
            f"{helper.label}: end {end} is not after start {start}",
            helper=helper.label
        )


@dataclass
class DepositRateHelper(RateHelper):
    """
    Money market deposit.

    Simple interest instrument: the depositor receives (1 + R*tau) at maturity.

    Implied quote: R = (DF(start) / DF(end) - 1) / tau
    """
    quote: QuoteLike
    start_date: date
    end_date: date
    day_count: DayCount = DayCount.ACT_360
    name: Optional[str] = None

    def __post_init__(self):
        self.quote = as_quote(self.quote)

    @classmethod
    def from_tenor(
        cls,
        reference_date: date,
        tenor: str,
        rate: QuoteLike,
        settlement_days: int = 0,
        day_count: DayCount = DayCount.ACT_360,
        convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        holidays: Optional[Set[date]] = None
    ) -> "DepositRateHelper":
        """Deposit settling `settlement_days` business days after reference_date."""
        start = DateUtils.add_business_days(reference_date, settlement_days, holidays)
        end = adjust_business_day(DateUtils.add_tenor(start, tenor, holidays), convention, holidays)
        return cls(rate, start, end, day_count, name=f"DEPOSIT {tenor.upper()}")

    @property
    def maturity_date(self) -> date:
        return self.end_date

    @property
    def latest_relevant_date(self) -> date:
        return self.end_date

    def _validate(self, reference_date: date) -> None:
        _check_period(self, self.start_date, self.end_date, reference_date)
        tau = year_fraction(self.start_date, self.end_date, self.day_count)
        if 1.0 + self.quote_value * tau <= 0:
            raise HelperError(
                f"{self.label}: rate {self.quote_value} implies a non-positive discount factor",
                helper=self.label
            )

    def implied_quote(self, curve: "Curve") -> float:
        return _simple_forward(curve, self.start_date, self.end_date, self.day_count)


@dataclass
class FraRateHelper(RateHelper):
    """
    Forward Rate Agreement.

    FRA rate: F = (DF(T1)/DF(T2) - 1) / tau
    """
    quote: QuoteLike
    start_date: date
    end_date: date
    day_count: DayCount = DayCount.ACT_360
    name: Optional[str] = None

    def __post_init__(self):
        self.quote = as_quote(self.quote)

    @classmethod
    def from_months(
        cls,
        reference_date: date,
        months_to_start: int,
        months_to_end: int,
        rate: QuoteLike,
        settlement_days: int = 2,
        day_count: DayCount = DayCount.ACT_360,
        convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        holidays: Optional[Set[date]] = None
    ) -> "FraRateHelper":
        """FRA such as 3x6: months counted from the spot date."""
        spot = DateUtils.add_business_days(reference_date, settlement_days, holidays)
        start = adjust_business_day(DateUtils.add_months(spot, months_to_start), convention, holidays)
        end = adjust_business_day(DateUtils.add_months(spot, months_to_end), convention, holidays)
        return cls(rate, start, end, day_count, name=f"FRA {months_to_start}x{months_to_end}")

    @property
    def maturity_date(self) -> date:
        return self.end_date

    @property
    def latest_relevant_date(self) -> date:
        return self.end_date

    def _validate(self, reference_date: date) -> None:
        _check_period(self, self.start_date, self.end_date, reference_date)

    def implied_quote(self, curve: "Curve") -> float:
        return _simple_forward(curve, self.start_date, self.end_date, self.day_count)


@dataclass
class FuturesRateHelper(RateHelper):
    """
    Interest rate future (e.g., SOFR or Euribor 3M future).

    Quote is the price, 100 * (1 - rate). The futures rate is the
    forward rate over [start, end] plus a convexity adjustment.
    """
    quote: QuoteLike
    start_date: date
    end_date: date
    day_count: DayCount = DayCount.ACT_360
    convexity_adjustment: float = 0.0
    name: Optional[str] = None

    def __post_init__(self):
        self.quote = as_quote(self.quote)

    @classmethod
    def from_start(
        cls,
        start_date: date,
        price: QuoteLike,
        months: int = 3,
        day_count: DayCount = DayCount.ACT_360,
        convexity_adjustment: float = 0.0,
        convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        holidays: Optional[Set[date]] = None
    ) -> "FuturesRateHelper":
        """Future on a `months`-long rate period starting at start_date."""
        end = adjust_business_day(DateUtils.add_months(start_date, months), convention, holidays)
        return cls(
            price, start_date, end, day_count, convexity_adjustment,
            name=f"FUT {start_date.strftime('%b%y').upper()}"
        )

    @property
    def implied_rate(self) -> float:
        """Forward rate implied by the price, net of convexity adjustment."""
        return (100.0 - self.quote_value) / 100.0 - self.convexity_adjustment

    @property
    def maturity_date(self) -> date:
        return self.end_date

    @property
    def latest_relevant_date(self) -> date:
        return self.end_date

    def _validate(self, reference_date: date) -> None:
        if self.quote_value <= 0:
            raise HelperError(
                f"{self.label}: futures price must be positive, got {self.quote_value}",
                helper=self.label
            )
        _check_period(self, self.start_date, self.end_date, reference_date)

    def implied_quote(self, curve: "Curve") -> float:
        forward = _simple_forward(curve, self.start_date, self.end_date, self.day_count)
        return 100.0 * (1.0 - (forward + self.convexity_adjustment))


@dataclass
class SwapRateHelper(RateHelper):
    """
    Vanilla fixed vs floating swap, single curve.

    The floating leg projects forwards off the curve being built:
        Float PV = sum_j (DF(s_j)/DF(e_j) - 1) * DF(pay_j)
        Annuity  = sum_i tau_i * DF(pay_i)
        Par rate = Float PV / Annuity

    Without a payment lag the float leg telescopes to DF(start) - DF(end).
    The helper introduces one unknown node (its maturity) and reads all
    earlier coupon dates through the partially built curve.
    """
    quote: QuoteLike
    effective_date: date
    termination_date: date
    fixed_frequency: int = 1
    fixed_day_count: DayCount = DayCount.THIRTY_360
    float_frequency: int = 4
    float_day_count: DayCount = DayCount.ACT_360
    convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING
    payment_lag: int = 0
    holidays: Optional[Set[date]] = None
    name: Optional[str] = None
    fixed_leg: ScheduleInfo = field(init=False, repr=False)
    float_leg: ScheduleInfo = field(init=False, repr=False)

    _kind = "SWAP"

    def __post_init__(self):
        self.quote = as_quote(self.quote)
        if self.termination_date <= self.effective_date:
            raise HelperError(
                f"swap termination {self.termination_date} is not after "
                f"effective date {self.effective_date}",
                helper=self.name
            )
        self.fixed_leg = generate_leg_schedule(
            self.effective_date, self.termination_date, self.fixed_frequency,
            self.fixed_day_count, self.convention, self.payment_lag, self.holidays
        )
        self.float_leg = generate_leg_schedule(
            self.effective_date, self.termination_date, self.float_frequency,
            self.float_day_count, self.convention, self.payment_lag, self.holidays
        )

    @classmethod
    def from_tenor(
        cls,
        reference_date: date,
        tenor: str,
        rate: QuoteLike,
        settlement_days: int = 2,
        **kwargs
    ) -> "SwapRateHelper":
        """Spot-starting swap of the given tenor; kwargs set leg conventions."""
        holidays = kwargs.get("holidays")
        effective = DateUtils.add_business_days(reference_date, settlement_days, holidays)
        termination = DateUtils.add_tenor(effective, tenor, holidays)
        kwargs.setdefault("name", f"{cls._kind} {tenor.upper()}")
        return cls(rate, effective, termination, **kwargs)

    @classmethod
    def from_conventions(
        cls,
        reference_date: date,
        tenor: str,
        rate: QuoteLike,
        fixed: Conventions,
        floating: Optional[Conventions] = None,
        holidays: Optional[Set[date]] = None,
        name: Optional[str] = None
    ) -> "SwapRateHelper":
        """
        Spot-starting swap whose legs follow a Conventions preset.

        Settlement, business-day rule and payment lag come from the fixed
        leg; the floating leg defaults to the fixed leg's conventions.

        Example:
            >>> helper = SwapRateHelper.from_conventions(
            ...     date(2025, 1, 2), "5Y", 0.04,
            ...     Conventions.usd_swap_fixed(), Conventions.usd_swap_float()
            ... )
        """
        floating = floating or fixed
        kwargs = {}
        if name is not None:
            kwargs["name"] = name
        return cls.from_tenor(
            reference_date,
            tenor,
            rate,
            settlement_days=fixed.settlement_days,
            fixed_frequency=fixed.payment_frequency,
            fixed_day_count=fixed.day_count,
            float_frequency=floating.payment_frequency,
            float_day_count=floating.day_count,
            convention=fixed.business_day,
            payment_lag=fixed.payment_lag,
            holidays=holidays,
            **kwargs
        )

    @property
    def maturity_date(self) -> date:
        return max(self.fixed_leg.accrual_ends[-1], self.float_leg.accrual_ends[-1])

    @property
    def latest_relevant_date(self) -> date:
        return max(self.fixed_leg.payment_dates[-1], self.float_leg.payment_dates[-1])

    def _validate(self, reference_date: date) -> None:
        if self.effective_date < reference_date:
            raise HelperError(
                f"{self.label}: effective date {self.effective_date} is before "
                f"reference date {reference_date}",
                helper=self.label
            )
        for leg_name, leg in (("fixed", self.fixed_leg), ("float", self.float_leg)):
            prev = self.effective_date
            for start, end, pay in zip(leg.accrual_starts, leg.accrual_ends, leg.payment_dates):
                if end <= prev or pay < end:
                    raise HelperError(
                        f"{self.label}: {leg_name} leg dates are not chronological "
                        f"around {start} -> {end} (paid {pay})",
                        helper=self.label
                    )
                prev = end

    def annuity(self, curve: "Curve") -> float:
        """PV of 1 unit of fixed rate: sum of tau_i * DF(pay_i)."""
        return sum(
            tau * curve.discount_factor(pay)
            for tau, pay in zip(self.fixed_leg.year_fractions, self.fixed_leg.payment_dates)
        )

    def float_leg_pv(self, curve: "Curve") -> float:
        """PV of the floating leg projected off the same curve."""
        pv = 0.0
        for start, end, pay in zip(
            self.float_leg.accrual_starts,
            self.float_leg.accrual_ends,
            self.float_leg.payment_dates
        ):
            growth = curve.discount_factor(start) / curve.discount_factor(end)
            pv += (growth - 1.0) * curve.discount_factor(pay)
        return pv

    def implied_quote(self, curve: "Curve") -> float:
        annuity = self.annuity(curve)
        if annuity <= 0 or not math.isfinite(annuity):
            return math.nan
        return self.float_leg_pv(curve) / annuity


@dataclass
class OISRateHelper(SwapRateHelper):
    """
    Overnight Index Swap.

    Single-curve pricing: compounding the overnight rate over a period
    gives DF(s)/DF(e) - 1, so the OIS is a swap whose legs both pay
    annually on ACT/360, with a two-day payment lag by default.
    """
    fixed_frequency: int = 1
    fixed_day_count: DayCount = DayCount.ACT_360
    float_frequency: int = 1
    float_day_count: DayCount = DayCount.ACT_360
    payment_lag: int = 2

    _kind = "OIS"


__all__ = [
    "RateHelper",
    "DepositRateHelper",
    "FraRateHelper",
    "FuturesRateHelper",
    "SwapRateHelper",
    "OISRateHelper",
]
