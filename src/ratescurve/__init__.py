"""
RatesCurve: Single-Curve Yield Curve Bootstrapping

A library for:
- Building discount curves that exactly reprice deposits, FRAs, futures,
  swaps and OIS quotes
- Querying discount factors, zero rates and forward rates
- Rebuilding curves when live quotes change

Scope: single-currency, single-curve construction (projection and
discounting off the same curve).
"""

__version__ = "0.1.0"

# Core modules
from .conventions import (
    DayCount,
    BusinessDayConvention,
    CompoundingConvention,
    Conventions,
    year_fraction,
)
from .dates import DateUtils, ScheduleInfo
from .errors import (
    CurveError,
    InvalidInput,
    HelperError,
    UnreachableQuote,
    NonConvergent,
    ExtrapolationDisallowed,
    FrozenCurveError,
)
from .quotes import SimpleQuote
from .solvers import BrentSolver

# Curves
from .curves import (
    Curve,
    CurveNode,
    CurveTrait,
    LinearInterpolator,
    LogLinearInterpolator,
    CubicSplineInterpolator,
    BackwardFlatInterpolator,
    RateHelper,
    DepositRateHelper,
    FraRateHelper,
    FuturesRateHelper,
    SwapRateHelper,
    OISRateHelper,
    BootstrapState,
    BootstrapConfig,
    BootstrapResult,
    IterativeBootstrapper,
    PiecewiseYieldCurve,
    bootstrap_from_quotes,
)

__all__ = [
    # Version
    "__version__",
    # Conventions
    "DayCount",
    "BusinessDayConvention",
    "CompoundingConvention",
    "Conventions",
    "year_fraction",
    # Dates
    "DateUtils",
    "ScheduleInfo",
    # Errors
    "CurveError",
    "InvalidInput",
    "HelperError",
    "UnreachableQuote",
    "NonConvergent",
    "ExtrapolationDisallowed",
    "FrozenCurveError",
    # Quotes and solver
    "SimpleQuote",
    "BrentSolver",
    # Curves
    "Curve",
    "CurveNode",
    "CurveTrait",
    "LinearInterpolator",
    "LogLinearInterpolator",
    "CubicSplineInterpolator",
    "BackwardFlatInterpolator",
    # Helpers
    "RateHelper",
    "DepositRateHelper",
    "FraRateHelper",
    "FuturesRateHelper",
    "SwapRateHelper",
    "OISRateHelper",
    # Bootstrap
    "BootstrapState",
    "BootstrapConfig",
    "BootstrapResult",
    "IterativeBootstrapper",
    "PiecewiseYieldCurve",
    "bootstrap_from_quotes",
]
