"""
Curve bootstrapping engine.

Implements an iterative bootstrap for single-curve discount curves:
1. Validate helpers and sort them by latest relevant date (ties keep the
   caller's order)
2. Solve node values sequentially, each against the curve built so far
   (flat-forward extrapolation past the last solved node)
3. Re-solve every node against the complete curve until no node moves
   by more than the tolerance
4. Verify repricing, freeze and publish the curve

A failed build raises; it never returns a partially bootstrapped curve.

Supports:
- Deposits
- FRAs
- Futures
- Swaps and OIS swaps
"""

from dataclasses import dataclass, field, fields, replace
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union
import logging
import threading

import pandas as pd

from ..conventions import Conventions, DayCount
from ..dates import DateUtils
from ..errors import InvalidInput, NonConvergent, UnreachableQuote
from ..quotes import SimpleQuote
from ..solvers import BrentSolver
from .curve import Curve
from .helpers import (
    DepositRateHelper,
    FraRateHelper,
    FuturesRateHelper,
    OISRateHelper,
    RateHelper,
    SwapRateHelper,
)
from .traits import CurveTrait

logger = logging.getLogger(__name__)


class BootstrapState(Enum):
    """Lifecycle of a bootstrap run."""
    EMPTY = "Empty"
    VALIDATING = "Validating"
    BOOTSTRAPPING = "Bootstrapping"
    CONVERGED = "Converged"
    FAILED = "Failed"


@dataclass
class BootstrapConfig:
    """
    Numerical settings for the bootstrap.

    Attributes:
        accuracy: Max absolute node change (curve-space units) that ends
            the global iteration
        max_iterations: Cap on global passes after the initial pass
        solver_accuracy: Root tolerance for each node solve
        residual_tolerance: Max absolute repricing error accepted at the end
        max_bracket_expansions: Bracket widenings before a quote is unreachable
        bracket_growth: Geometric widening factor for the bracket
        max_solver_iterations: Brent iterations per node solve
        max_rate: Largest absolute (average forward or zero) rate searched
        allow_negative_rates: If False, forwards/rates must be non-negative
    """
    accuracy: float = 1e-12
    max_iterations: int = 100
    solver_accuracy: float = 1e-14
    residual_tolerance: float = 1e-10
    max_bracket_expansions: int = 40
    bracket_growth: float = 2.0
    max_solver_iterations: int = 200
    max_rate: float = 1.0
    allow_negative_rates: bool = True

    def __post_init__(self):
        for name in ("accuracy", "solver_accuracy", "residual_tolerance", "max_rate"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if self.bracket_growth <= 0:
            raise ValueError("bracket_growth must be positive")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BootstrapConfig":
        """Build a config from a dict, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(d) - known
        if unknown:
            raise ValueError(f"Unknown bootstrap settings: {sorted(unknown)}")
        return cls(**d)

    def solver(self) -> BrentSolver:
        return BrentSolver(
            accuracy=self.solver_accuracy,
            max_iterations=self.max_solver_iterations,
            max_expansions=self.max_bracket_expansions,
            growth=self.bracket_growth
        )


@dataclass
class BootstrapResult:
    """Result of a converged curve bootstrap."""
    curve: Curve
    helpers: List[RateHelper]
    iterations: int
    max_change: float
    repricing_errors: List[float] = field(default_factory=list)

    def to_frame(self) -> pd.DataFrame:
        """Per-helper repricing report in bootstrap order."""
        rows = []
        for helper, error in zip(self.helpers, self.repricing_errors):
            rows.append({
                "helper": helper.label,
                "maturity": helper.maturity_date,
                "latest_relevant_date": helper.latest_relevant_date,
                "quote": helper.quote_value,
                "implied": helper.quote_value + error,
                "error": error,
            })
        return pd.DataFrame(rows)


class IterativeBootstrapper:
    """
    Bootstrap a curve from rate helpers.

    The bootstrapper:
    1. Orders helpers deterministically and validates them
    2. Solves one node per helper with Brent's method
    3. Repeats full passes until the node vector is stable
    4. Verifies that every helper reprices within tolerance

    Attributes:
        reference_date: Valuation date
        trait: Quantity the curve's nodes hold
        interpolation_method: Method for inter-node interpolation
        day_count: Day count for curve construction
        allow_extrapolation: Extrapolation policy of the published curve
        config: Numerical settings
        state: Current BootstrapState
        iteration: Global passes completed in the current/last run
        max_change: Max node change seen in the last completed pass
    """

    def __init__(
        self,
        reference_date: date,
        trait: Union[CurveTrait, str] = CurveTrait.DISCOUNT,
        interpolation_method: Optional[str] = None,
        day_count: DayCount = DayCount.ACT_365,
        allow_extrapolation: bool = True,
        config: Optional[BootstrapConfig] = None,
        currency: str = "USD"
    ):
        self.reference_date = reference_date
        self.trait = CurveTrait.from_string(trait) if isinstance(trait, str) else trait
        self.interpolation_method = interpolation_method
        self.day_count = day_count
        self.allow_extrapolation = allow_extrapolation
        self.config = config or BootstrapConfig()
        self.currency = currency

        self.state = BootstrapState.EMPTY
        self.iteration = 0
        self.max_change = float("nan")
        self._solver = self.config.solver()

    def bootstrap(self, helpers: Sequence[RateHelper]) -> BootstrapResult:
        """
        Bootstrap a curve from helpers.

        Args:
            helpers: Rate helpers with live quotes

        Returns:
            BootstrapResult holding the frozen curve and diagnostics

        Raises:
            InvalidInput: Empty or inconsistent helper set
            UnreachableQuote: A helper's quote cannot be matched
            NonConvergent: Passes or a node solve did not converge
        """
        self.iteration = 0
        self.max_change = float("nan")
        try:
            self.state = BootstrapState.VALIDATING
            ordered = self._validate(helpers)

            self.state = BootstrapState.BOOTSTRAPPING
            logger.info(
                "Bootstrapping %d helpers on %s (%s, %s)",
                len(ordered), self.reference_date, self.trait.value,
                self.interpolation_method or self.trait.default_interpolation
            )
            curve = self._new_curve()
            self._initial_pass(curve, ordered)
            self._converge(curve, ordered)
            result = self._finalize(curve, ordered)
        except Exception:
            self.state = BootstrapState.FAILED
            raise

        self.state = BootstrapState.CONVERGED
        return result

    def build(self, helpers: Sequence[RateHelper]) -> Curve:
        """Bootstrap and return only the finished curve."""
        return self.bootstrap(helpers).curve

    def _new_curve(self) -> Curve:
        return Curve(
            reference_date=self.reference_date,
            trait=self.trait,
            interpolation_method=self.interpolation_method,
            day_count=self.day_count,
            allow_extrapolation=True,
            currency=self.currency
        )

    def _validate(self, helpers: Sequence[RateHelper]) -> List[RateHelper]:
        """Validate helpers and return them in bootstrap order."""
        helpers = list(helpers)
        if not helpers:
            raise InvalidInput("No rate helpers provided")

        for helper in helpers:
            helper.validate(self.reference_date)

        # sorted() is stable: equal latest dates keep insertion order
        ordered = sorted(helpers, key=lambda h: h.latest_relevant_date)

        for prev, helper in zip(ordered, ordered[1:]):
            if helper.maturity_date <= prev.maturity_date:
                raise InvalidInput(
                    f"Helper maturities are not chronological in bootstrap order: "
                    f"{helper.label} ({helper.maturity_date}) follows "
                    f"{prev.label} ({prev.maturity_date})"
                )
        return ordered

    def _initial_pass(self, curve: Curve, ordered: List[RateHelper]) -> None:
        """Solve each node against the nodes confirmed so far."""
        for index, helper in enumerate(ordered, start=1):
            guess = curve.nodes[index - 1].value
            curve.add_node_from_date(helper.maturity_date, guess)
            value = self._solve_node(curve, index, helper, guess)
            logger.debug(
                "  %s: maturity=%s, quote=%.8f, value=%.12f",
                helper.label, helper.maturity_date, helper.quote_value, value
            )

    def _converge(self, curve: Curve, ordered: List[RateHelper]) -> None:
        """Re-solve all nodes on the full curve until the node vector settles."""
        cfg = self.config
        for iteration in range(1, cfg.max_iterations + 1):
            max_change = 0.0
            for index, helper in enumerate(ordered, start=1):
                old = curve.nodes[index].value
                new = self._solve_node(curve, index, helper, old)
                max_change = max(max_change, abs(new - old))

            self.iteration = iteration
            self.max_change = max_change
            logger.debug("Pass %d: max node change %.3e", iteration, max_change)

            if max_change < cfg.accuracy:
                return

        raise NonConvergent(
            f"Bootstrap did not converge after {cfg.max_iterations} passes "
            f"(max node change {self.max_change:.3e}, tolerance {cfg.accuracy:.1e})",
            iterations=self.iteration,
            max_change=self.max_change
        )

    def _solve_node(
        self,
        curve: Curve,
        index: int,
        helper: RateHelper,
        guess: float
    ) -> float:
        """Find the value of node `index` that zeroes the helper's residual."""
        cfg = self.config
        nodes = curve.nodes
        previous, node = nodes[index - 1], nodes[index]
        dt = node.time - previous.time

        lower, upper = self.trait.solver_domain(
            previous.value, dt, cfg.max_rate, cfg.allow_negative_rates
        )
        step = self.trait.initial_step(guess, dt)

        def objective(x: float) -> float:
            curve.set_node_value(index, x)
            return helper.residual(curve)

        try:
            value = self._solver.solve(objective, guess, step, lower, upper)
        except UnreachableQuote as exc:
            raise UnreachableQuote(
                f"{helper.label}: quote {helper.quote_value} cannot be matched for "
                f"maturity {helper.maturity_date} within [{lower:.12g}, {upper:.12g}] ({exc})",
                helper=helper.label,
                maturity=helper.maturity_date
            ) from exc
        except NonConvergent as exc:
            raise NonConvergent(
                f"{helper.label}: node solve did not converge ({exc})",
                iterations=exc.iterations,
                helper=helper.label
            ) from exc

        curve.set_node_value(index, value)
        return value

    def _finalize(self, curve: Curve, ordered: List[RateHelper]) -> BootstrapResult:
        """Check repricing, apply the extrapolation policy and freeze."""
        errors = [helper.residual(curve) for helper in ordered]

        worst = max(abs(e) for e in errors)
        if worst > self.config.residual_tolerance:
            raise NonConvergent(
                f"Repricing error {worst:.2e} exceeds tolerance "
                f"{self.config.residual_tolerance:.2e}",
                iterations=self.iteration,
                max_change=self.max_change
            )

        curve.allow_extrapolation = self.allow_extrapolation
        curve.freeze()
        logger.info(
            "Bootstrap converged: %d nodes, %d passes, max change %.2e, max repricing error %.2e",
            len(curve), self.iteration, self.max_change, worst
        )

        return BootstrapResult(
            curve=curve,
            helpers=ordered,
            iterations=self.iteration,
            max_change=self.max_change,
            repricing_errors=errors
        )


class PiecewiseYieldCurve:
    """
    A rebuildable curve over a fixed set of helpers.

    Watches the helpers' quotes and flags itself stale when one changes.
    Reading never rebuilds: callers decide when to call rebuild(), which
    bootstraps a new frozen Curve and swaps it in under a lock so readers
    only ever see complete curves.
    """

    def __init__(
        self,
        reference_date: date,
        helpers: Iterable[RateHelper],
        trait: Union[CurveTrait, str] = CurveTrait.DISCOUNT,
        interpolation_method: Optional[str] = None,
        day_count: DayCount = DayCount.ACT_365,
        allow_extrapolation: bool = True,
        config: Optional[BootstrapConfig] = None
    ):
        self.helpers = list(helpers)
        self._bootstrapper = IterativeBootstrapper(
            reference_date,
            trait=trait,
            interpolation_method=interpolation_method,
            day_count=day_count,
            allow_extrapolation=allow_extrapolation,
            config=config
        )
        self._lock = threading.Lock()
        self._result: Optional[BootstrapResult] = None
        self._stale = True

        for helper in self.helpers:
            helper.quote.add_observer(self._on_quote_changed)

    def _on_quote_changed(self, quote: SimpleQuote) -> None:
        self._stale = True

    @property
    def reference_date(self) -> date:
        return self._bootstrapper.reference_date

    @property
    def state(self) -> BootstrapState:
        return self._bootstrapper.state

    @property
    def is_stale(self) -> bool:
        """True if never built or a quote changed since the last build."""
        return self._stale

    @property
    def curve(self) -> Curve:
        """Last successfully built curve (possibly stale)."""
        if self._result is None:
            raise RuntimeError("Curve has not been built; call rebuild()")
        return self._result.curve

    @property
    def result(self) -> Optional[BootstrapResult]:
        return self._result

    def rebuild(self) -> Curve:
        """
        Bootstrap a new curve from the current quotes.

        On failure the previous curve stays published and the handle
        remains stale.
        """
        with self._lock:
            self._stale = False
            try:
                result = self._bootstrapper.bootstrap(self.helpers)
            except Exception:
                self._stale = True
                raise
            self._result = result
        return result.curve

    def detach(self) -> None:
        """Stop observing the helpers' quotes."""
        for helper in self.helpers:
            helper.quote.remove_observer(self._on_quote_changed)


_FREQUENCIES = {
    "ANNUAL": 1,
    "SEMI": 2,
    "SEMI_ANNUAL": 2,
    "SEMIANNUAL": 2,
    "QUARTERLY": 4,
    "MONTHLY": 12,
}


def _parse_frequency(value: Union[str, int]) -> int:
    key = str(value).upper().replace("-", "_")
    if key in _FREQUENCIES:
        return _FREQUENCIES[key]
    try:
        return int(float(value))
    except ValueError:
        raise InvalidInput(f"Unknown payment frequency: {value}") from None


def _apply_overrides(
    preset: Conventions,
    q: Dict[str, Any],
    freq_key: Optional[str] = None,
    day_count_key: str = "day_count"
) -> Conventions:
    """Conventions preset with any fields given in the quote dictionary."""
    changes: Dict[str, Any] = {}
    if freq_key is not None and freq_key in q:
        changes["payment_frequency"] = _parse_frequency(q[freq_key])
    if day_count_key in q:
        changes["day_count"] = DayCount.from_string(q[day_count_key])
    if "settlement_days" in q:
        changes["settlement_days"] = int(q["settlement_days"])
    if "payment_lag" in q:
        changes["payment_lag"] = int(q["payment_lag"])
    return replace(preset, **changes)


def helper_from_quote(reference_date: date, q: Dict[str, Any]) -> RateHelper:
    """
    Build one rate helper from a quote dictionary.

    Example quote formats:
        {"instrument_type": "DEPOSIT", "tenor": "1D", "quote": 0.053}
        {"instrument_type": "FRA", "start_tenor": "3M", "tenor": "3M", "quote": 0.052}
        {"instrument_type": "FUTURE", "tenor": "6M", "quote": 94.85}
        {"instrument_type": "SWAP", "tenor": "5Y", "quote": 0.045, "fixed_freq": "SEMI"}
        {"instrument_type": "OIS", "tenor": "2Y", "quote": 0.0505}
    """
    inst_type = str(q.get("instrument_type", "")).upper()
    tenor = q.get("tenor", "")
    quote = q.get("quote")
    if quote is None:
        raise InvalidInput(f"Quote missing for {inst_type} {tenor}")
    day_count = DayCount.from_string(q.get("day_count", "ACT/360"))
    settlement_days = int(q.get("settlement_days", 2))

    if inst_type == "DEPOSIT":
        conv = _apply_overrides(replace(Conventions.usd_deposit(), settlement_days=0), q)
        return DepositRateHelper.from_tenor(
            reference_date, tenor, quote,
            settlement_days=conv.settlement_days,
            day_count=conv.day_count,
            convention=conv.business_day
        )

    elif inst_type == "FRA":
        spot = DateUtils.add_business_days(reference_date, settlement_days)
        start = DateUtils.add_tenor(spot, q.get("start_tenor", "0M"))
        end = DateUtils.add_tenor(start, tenor)
        return FraRateHelper(
            quote, start, end, day_count,
            name=f"FRA {q.get('start_tenor', '0M')}+{tenor}"
        )

    elif inst_type in ("FUT", "FUTURE"):
        start = DateUtils.add_tenor(reference_date, tenor)
        return FuturesRateHelper.from_start(
            start, quote,
            months=int(q.get("months", 3)),
            day_count=day_count,
            convexity_adjustment=float(q.get("convexity", 0.0))
        )

    elif inst_type in ("SWAP", "IRS"):
        fixed = _apply_overrides(
            Conventions.usd_swap_fixed(), q, "fixed_freq", "fixed_day_count"
        )
        floating = _apply_overrides(Conventions.usd_swap_float(), q, "float_freq")
        return SwapRateHelper.from_conventions(reference_date, tenor, quote, fixed, floating)

    elif inst_type == "OIS":
        conv = _apply_overrides(Conventions.usd_ois(), q, "pay_freq")
        return OISRateHelper.from_conventions(reference_date, tenor, quote, conv)

    raise InvalidInput(f"Unknown instrument type: {inst_type or '<missing>'}")


def bootstrap_from_quotes(
    reference_date: date,
    quotes: List[Dict[str, Any]],
    interpolation: Optional[str] = None,
    trait: Union[CurveTrait, str] = CurveTrait.DISCOUNT,
    config: Optional[BootstrapConfig] = None
) -> Curve:
    """
    Convenience function to bootstrap a curve from quote dictionaries.

    Args:
        reference_date: Valuation date
        quotes: List of dicts with keys: instrument_type, tenor, quote, ...
            (see helper_from_quote)
        interpolation: Interpolation method (trait default if None)
        trait: Curve trait
        config: Numerical settings

    Returns:
        Bootstrapped, frozen curve
    """
    helpers = [helper_from_quote(reference_date, q) for q in quotes]
    bootstrapper = IterativeBootstrapper(
        reference_date,
        trait=trait,
        interpolation_method=interpolation,
        config=config
    )
    return bootstrapper.build(helpers)


__all__ = [
    "BootstrapState",
    "BootstrapConfig",
    "BootstrapResult",
    "IterativeBootstrapper",
    "PiecewiseYieldCurve",
    "helper_from_quote",
    "bootstrap_from_quotes",
]
