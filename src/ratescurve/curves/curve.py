"""
Yield curve representation and queries.

The Curve class provides:
- Discount factor P(0,t)
- Zero rate z(t) under any compounding convention
- Forward rate f(t1, t2)
- Instantaneous forward rate f(t)

Nodes hold trait-space values (discount factors, zero rates or
instantaneous forwards) at year fractions from the reference date, with an
implicit node at t = 0. Past the last node the curve extrapolates flat
forward: the instantaneous forward at the last node is held constant.

Node mutation recomputes the interpolator immediately unless the caller
defers it (refresh=False); a curve with deferred changes is stale and
refuses queries until refresh() is called. A frozen curve is read-only.
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple, Union
import math

import numpy as np
import pandas as pd

from ..conventions import CompoundingConvention, DayCount, implied_rate, year_fraction
from ..errors import ExtrapolationDisallowed, FrozenCurveError, InvalidInput
from .interpolation import create_interpolator, normalize_method
from .traits import CurveTrait

TimeLike = Union[float, date]

# Horizon used for the zero rate at t = 0
SHORT_END_TIME = 1e-4


@dataclass(frozen=True)
class CurveNode:
    """A single point on the curve."""
    time: float  # Year fraction from reference date
    value: float  # Trait-space value
    date: Optional[date] = None


class Curve:
    """
    Interpolated yield curve.

    Attributes:
        reference_date: Valuation date (time 0)
        trait: Quantity stored at the nodes
        interpolation_method: Canonical name of the interpolation method
        day_count: Day count mapping dates to curve times
        allow_extrapolation: Whether queries past the last node are allowed
        currency: Currency code (informational)

    Conventions:
        - Times are year fractions from the reference date
        - Discount factor at t <= 0 is exactly 1.0
        - Zero rates are continuously compounded unless requested otherwise
    """

    def __init__(
        self,
        reference_date: date,
        trait: Union[CurveTrait, str] = CurveTrait.DISCOUNT,
        interpolation_method: Optional[str] = None,
        day_count: DayCount = DayCount.ACT_365,
        allow_extrapolation: bool = True,
        currency: str = "USD"
    ):
        if isinstance(trait, str):
            trait = CurveTrait.from_string(trait)
        method = normalize_method(interpolation_method or trait.default_interpolation)
        if not trait.supports(method):
            raise InvalidInput(
                f"Interpolation '{method}' is not supported for {trait.value} curves"
            )

        self.reference_date = reference_date
        self.trait = trait
        self.interpolation_method = method
        self.day_count = day_count
        self.currency = currency
        self._allow_extrapolation = allow_extrapolation

        self._nodes: List[CurveNode] = [CurveNode(0.0, trait.identity, reference_date)]
        self._interpolator = create_interpolator(method)
        self._last_forward = 0.0
        self._fresh = False
        self._frozen = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_fresh(self) -> bool:
        """True when derived interpolation state matches the nodes."""
        return self._fresh

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    @property
    def allow_extrapolation(self) -> bool:
        return self._allow_extrapolation

    @allow_extrapolation.setter
    def allow_extrapolation(self, allow: bool) -> None:
        self._check_mutable()
        self._allow_extrapolation = allow

    @property
    def max_time(self) -> float:
        """Time of the last node (extrapolation boundary)."""
        return self._nodes[-1].time

    @property
    def max_date(self) -> Optional[date]:
        """Date of the last node, if nodes were added by date."""
        return self._nodes[-1].date

    @property
    def nodes(self) -> Tuple[CurveNode, ...]:
        """All nodes, including the implicit node at t = 0."""
        return tuple(self._nodes)

    def __len__(self) -> int:
        """Number of solved nodes (the t = 0 node is not counted)."""
        return len(self._nodes) - 1

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def add_node(
        self,
        time: float,
        value: float,
        node_date: Optional[date] = None,
        refresh: bool = True
    ) -> int:
        """
        Add a node to the curve.

        Args:
            time: Year fraction from reference date (> 0)
            value: Trait-space value at that time
            node_date: Calendar date of the node, if known
            refresh: Recompute the interpolator now

        Returns:
            Index of the new node in the node list
        """
        self._check_mutable()
        if time <= 0:
            raise InvalidInput(f"Node time must be positive, got {time}")
        self.trait.validate(value)

        times = [n.time for n in self._nodes]
        idx = int(np.searchsorted(times, time))
        if idx < len(times) and times[idx] == time:
            raise InvalidInput(f"A node already exists at time {time}")

        self._nodes.insert(idx, CurveNode(time, value, node_date))
        self._fresh = False
        if refresh:
            self.refresh()
        return idx

    def add_node_from_date(
        self,
        d: date,
        value: float,
        refresh: bool = True
    ) -> int:
        """Add a node using a date instead of year fraction."""
        return self.add_node(self._to_time(d), value, d, refresh)

    def set_node_value(self, index: int, value: float, refresh: bool = True) -> None:
        """
        Replace the value of a solved node.

        Args:
            index: Node index (1-based; 0 is the implicit t = 0 node)
            value: New trait-space value
            refresh: Recompute the interpolator now
        """
        self._check_mutable()
        if index < 1 or index >= len(self._nodes):
            raise IndexError(f"Invalid node index: {index}")
        self.trait.validate(value)

        node = self._nodes[index]
        self._nodes[index] = CurveNode(node.time, value, node.date)
        self._fresh = False
        if refresh:
            self.refresh()

    def refresh(self) -> None:
        """Recompute interpolation state from the current nodes."""
        self._check_mutable()
        if len(self._nodes) < 2:
            raise RuntimeError("Curve has no nodes beyond the reference date")

        anchor = self.trait.anchor_value(self._nodes[1].value)
        if anchor != self._nodes[0].value:
            self._nodes[0] = CurveNode(0.0, anchor, self.reference_date)

        times = np.array([n.time for n in self._nodes])
        values = np.array([n.value for n in self._nodes])
        self._interpolator.fit(times, values)
        self._last_forward = self.trait.instantaneous_forward(self._interpolator, times[-1])
        self._fresh = True

    def freeze(self) -> "Curve":
        """Make the curve read-only. Returns self."""
        if not self._fresh:
            raise RuntimeError("Cannot freeze a stale curve; call refresh() first")
        self._frozen = True
        return self

    def copy(self) -> "Curve":
        """Create an unfrozen copy with the same nodes and settings."""
        new_curve = Curve(
            reference_date=self.reference_date,
            trait=self.trait,
            interpolation_method=self.interpolation_method,
            day_count=self.day_count,
            allow_extrapolation=self._allow_extrapolation,
            currency=self.currency
        )
        new_curve._nodes = list(self._nodes)
        if len(new_curve._nodes) > 1:
            new_curve.refresh()
        return new_curve

    def _check_mutable(self) -> None:
        if self._frozen:
            raise FrozenCurveError("Curve is frozen; build a new curve instead")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _to_time(self, t: TimeLike) -> float:
        if isinstance(t, date):
            return year_fraction(self.reference_date, t, self.day_count)
        return float(t)

    def _check_query(self, t: float) -> None:
        if not self._fresh:
            raise RuntimeError("Curve is stale; call refresh() before querying")
        if t > self.max_time and not self._allow_extrapolation:
            raise ExtrapolationDisallowed(t, self.max_time)

    def discount_factor(self, t: TimeLike) -> float:
        """
        Get discount factor P(0,t).

        Args:
            t: Year fraction or date

        Returns:
            Discount factor
        """
        t = self._to_time(t)
        if t <= 0:
            return 1.0

        self._check_query(t)
        t_max = self.max_time
        if t <= t_max:
            return self.trait.discount_factor(self._interpolator, t)

        df_max = self.trait.discount_factor(self._interpolator, t_max)
        return df_max * math.exp(-self._last_forward * (t - t_max))

    def value_at(self, t: TimeLike) -> float:
        """Trait-space value at t (discount factor, zero rate or forward)."""
        t = self._to_time(t)
        if t <= 0:
            if not self._fresh:
                raise RuntimeError("Curve is stale; call refresh() before querying")
            return self._nodes[0].value

        self._check_query(t)
        if t <= self.max_time:
            return self._interpolator.interpolate(t)

        if self.trait is CurveTrait.DISCOUNT:
            return self.discount_factor(t)
        if self.trait is CurveTrait.ZERO_RATE:
            return -math.log(self.discount_factor(t)) / t
        return self._last_forward

    def instantaneous_forward(self, t: TimeLike) -> float:
        """
        Get the continuously compounded instantaneous forward rate f(t).

        f(t) = -d/dt log P(0,t); constant past the last node.
        """
        t = max(self._to_time(t), 0.0)
        self._check_query(t)
        if t >= self.max_time:
            return self._last_forward
        return self.trait.instantaneous_forward(self._interpolator, t)

    def zero_rate(
        self,
        t: TimeLike,
        compounding: CompoundingConvention = CompoundingConvention.CONTINUOUS
    ) -> float:
        """
        Get zero rate z(t).

        Args:
            t: Year fraction or date
            compounding: Compounding convention for output

        Returns:
            Zero rate (default continuously compounded). At t = 0 the rate
            over a short horizon is returned.
        """
        t = self._to_time(t)
        if t <= 0:
            t = SHORT_END_TIME
        return implied_rate(1.0 / self.discount_factor(t), t, compounding)

    def forward_rate(
        self,
        t1: TimeLike,
        t2: TimeLike,
        compounding: CompoundingConvention = CompoundingConvention.SIMPLE
    ) -> float:
        """
        Get forward rate f(t1, t2).

        Args:
            t1: Start time (year fraction or date)
            t2: End time (year fraction or date)
            compounding: Compounding convention

        Returns:
            Forward rate between t1 and t2; the instantaneous forward when
            t1 == t2
        """
        t1 = self._to_time(t1)
        t2 = self._to_time(t2)

        if t2 < t1:
            raise ValueError("t2 must not be before t1")
        if t2 == t1:
            return self.instantaneous_forward(t1)

        df1 = self.discount_factor(t1)
        df2 = self.discount_factor(t2)
        return implied_rate(df1 / df2, t2 - t1, compounding)

    # ------------------------------------------------------------------
    # Node access
    # ------------------------------------------------------------------

    def get_nodes(self) -> List[Tuple[float, float]]:
        """
        Get all curve nodes.

        Returns:
            List of (time, value) tuples, including t = 0
        """
        return [(n.time, n.value) for n in self._nodes]

    def get_node_times(self) -> np.ndarray:
        """Get array of node times."""
        return np.array([n.time for n in self._nodes])

    def get_node_values(self) -> np.ndarray:
        """Get array of trait-space node values."""
        return np.array([n.value for n in self._nodes])

    def get_node_dfs(self) -> np.ndarray:
        """Get array of discount factors at the node times."""
        return np.array([self.discount_factor(n.time) for n in self._nodes])

    def to_frame(self) -> pd.DataFrame:
        """Node table with discount factors and continuous zero rates."""
        rows = []
        for n in self._nodes:
            rows.append({
                "date": n.date,
                "time": n.time,
                "value": n.value,
                "discount_factor": self.discount_factor(n.time),
                "zero_rate": self.zero_rate(n.time) if n.time > 0 else np.nan,
                "forward": self.instantaneous_forward(n.time),
            })
        return pd.DataFrame(rows)

    def __repr__(self) -> str:
        return (f"Curve(reference={self.reference_date}, trait={self.trait.value}, "
                f"nodes={len(self)}, method={self.interpolation_method}, "
                f"frozen={self._frozen})")


__all__ = [
    "Curve",
    "CurveNode",
]
