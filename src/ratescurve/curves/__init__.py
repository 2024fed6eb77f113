"""
Curves package - yield curve bootstrapping and queries.

Provides:
- Curve: Interpolated curve with discount factors, zero and forward rates
- CurveTrait: What the curve's nodes hold (DFs, zero rates, forwards)
- Rate helpers: Deposits, FRAs, futures, swaps and OIS
- IterativeBootstrapper: Build a curve that reprices its helpers
- PiecewiseYieldCurve: Rebuildable curve over live quotes
"""

from .curve import Curve, CurveNode
from .traits import CurveTrait
from .interpolation import (
    Interpolator,
    LinearInterpolator,
    LogLinearInterpolator,
    CubicSplineInterpolator,
    BackwardFlatInterpolator,
    create_interpolator,
)
from .helpers import (
    RateHelper,
    DepositRateHelper,
    FraRateHelper,
    FuturesRateHelper,
    SwapRateHelper,
    OISRateHelper,
)
from .bootstrap import (
    BootstrapState,
    BootstrapConfig,
    BootstrapResult,
    IterativeBootstrapper,
    PiecewiseYieldCurve,
    helper_from_quote,
    bootstrap_from_quotes,
)

__all__ = [
    "Curve",
    "CurveNode",
    "CurveTrait",
    "Interpolator",
    "LinearInterpolator",
    "LogLinearInterpolator",
    "CubicSplineInterpolator",
    "BackwardFlatInterpolator",
    "create_interpolator",
    "RateHelper",
    "DepositRateHelper",
    "FraRateHelper",
    "FuturesRateHelper",
    "SwapRateHelper",
    "OISRateHelper",
    "BootstrapState",
    "BootstrapConfig",
    "BootstrapResult",
    "IterativeBootstrapper",
    "PiecewiseYieldCurve",
    "helper_from_quote",
    "bootstrap_from_quotes",
]
