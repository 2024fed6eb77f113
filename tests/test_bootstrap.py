"""
Unit tests for curve bootstrapping.
"""

from datetime import date
import math
import logging
import threading
import numpy as np
import pytest

from ratescurve.conventions import CompoundingConvention, DayCount, year_fraction
from ratescurve.curves import (
    BootstrapConfig,
    BootstrapState,
    Curve,
    CurveTrait,
    DepositRateHelper,
    FraRateHelper,
    FuturesRateHelper,
    IterativeBootstrapper,
    OISRateHelper,
    PiecewiseYieldCurve,
    SwapRateHelper,
    bootstrap_from_quotes,
    helper_from_quote,
)
from ratescurve.errors import (
    ExtrapolationDisallowed,
    FrozenCurveError,
    InvalidInput,
    NonConvergent,
    UnreachableQuote,
)
from ratescurve.quotes import SimpleQuote


REFERENCE = date(2025, 1, 2)


def market_helpers():
    """A typical USD-style strip: deposits, FRA, future and swaps."""
    helpers = [
        DepositRateHelper.from_tenor(REFERENCE, "1D", 0.0430),
        DepositRateHelper.from_tenor(REFERENCE, "1M", 0.0435),
        DepositRateHelper.from_tenor(REFERENCE, "3M", 0.0440),
        FraRateHelper.from_months(REFERENCE, 3, 6, 0.0420),
        FuturesRateHelper.from_start(date(2025, 9, 17), 96.00),
    ]
    for tenor, rate in [("2Y", 0.039), ("3Y", 0.038), ("5Y", 0.0385),
                        ("7Y", 0.039), ("10Y", 0.040)]:
        helpers.append(SwapRateHelper.from_tenor(REFERENCE, tenor, rate))
    return helpers


class TestIterativeBootstrapper:
    """Tests for the bootstrap orchestrator."""

    @pytest.fixture
    def bootstrapper(self):
        return IterativeBootstrapper(REFERENCE)

    def test_single_deposit(self, bootstrapper):
        """A 1y 5% deposit on ACT/365 gives DF = 1/1.05."""
        helper = DepositRateHelper(0.05, REFERENCE, date(2026, 1, 2), day_count=DayCount.ACT_365)
        curve = bootstrapper.build([helper])

        assert curve.discount_factor(REFERENCE) == 1.0
        assert abs(curve.discount_factor(date(2026, 1, 2)) - 1 / 1.05) < 1e-12
        assert bootstrapper.state == BootstrapState.CONVERGED

    def test_overnight_deposit_and_swap(self, bootstrapper):
        """A 1y swap with quarterly float reprices to its par rate."""
        deposit = DepositRateHelper.from_tenor(REFERENCE, "1D", 0.03)
        swap = SwapRateHelper(
            0.04, REFERENCE, date(2026, 1, 2),
            fixed_frequency=1, fixed_day_count=DayCount.ACT_365,
            float_frequency=4, float_day_count=DayCount.ACT_360
        )
        result = bootstrapper.bootstrap([deposit, swap])
        curve = result.curve

        # Float leg telescopes to 1 - DF(T); annuity is DF(T) with tau = 1
        forward = curve.forward_rate(0.0, date(2026, 1, 2), CompoundingConvention.SIMPLE)
        assert abs(forward - 0.04) < 1e-8
        assert abs(deposit.residual(curve)) < 1e-10
        assert abs(swap.residual(curve)) < 1e-10

    def test_round_trip(self, bootstrapper):
        """Every helper reprices on the bootstrapped curve."""
        helpers = market_helpers()
        result = bootstrapper.bootstrap(helpers)

        assert len(result.curve) == len(helpers)
        for helper in helpers:
            assert abs(helper.residual(result.curve)) < 1e-10
        assert max(abs(e) for e in result.repricing_errors) < 1e-10
        assert result.max_change < 1e-12

    def test_reference_discount_factor_is_one(self, bootstrapper):
        curve = bootstrapper.build(market_helpers())
        assert curve.discount_factor(REFERENCE) == 1.0
        assert curve.get_node_values()[0] == 1.0

    def test_monotone_discount_factors(self, bootstrapper):
        """Positive rates give strictly decreasing discount factors."""
        curve = bootstrapper.build(market_helpers())
        dfs = curve.get_node_dfs()
        for i in range(1, len(dfs)):
            assert dfs[i] < dfs[i-1], "DFs should be monotonically decreasing"

    def test_nodes_at_helper_maturities(self, bootstrapper):
        helpers = market_helpers()
        curve = bootstrapper.build(helpers)
        node_dates = [n.date for n in curve.nodes[1:]]
        assert node_dates == [h.maturity_date for h in helpers]
        assert curve.max_date == helpers[-1].maturity_date

    def test_idempotent(self):
        """Bootstrapping the same inputs twice gives identical nodes."""
        helpers = market_helpers()
        first = IterativeBootstrapper(REFERENCE).build(helpers)
        second = IterativeBootstrapper(REFERENCE).build(helpers)
        np.testing.assert_array_equal(first.get_node_values(), second.get_node_values())

    def test_input_order_does_not_matter(self):
        helpers = market_helpers()
        forward = IterativeBootstrapper(REFERENCE).build(helpers)
        backward = IterativeBootstrapper(REFERENCE).build(list(reversed(helpers)))
        np.testing.assert_array_equal(forward.get_node_values(), backward.get_node_values())

    def test_result_is_frozen(self, bootstrapper):
        curve = bootstrapper.build(market_helpers())
        assert curve.is_frozen
        with pytest.raises(FrozenCurveError):
            curve.set_node_value(1, 0.99)

    def test_repricing_report(self, bootstrapper):
        helpers = market_helpers()
        report = bootstrapper.bootstrap(helpers).to_frame()
        assert len(report) == len(helpers)
        assert list(report["helper"])[:2] == ["DEPOSIT 1D", "DEPOSIT 1M"]
        assert (report["error"].abs() < 1e-10).all()

    def test_repricing_report_keeps_duplicate_labels(self, bootstrapper):
        helpers = [
            DepositRateHelper(0.040, REFERENCE, date(2025, 4, 2), name="DEP"),
            DepositRateHelper(0.042, REFERENCE, date(2025, 7, 2), name="DEP"),
        ]
        result = bootstrapper.bootstrap(helpers)
        report = result.to_frame()

        assert len(result.repricing_errors) == 2
        assert list(report["helper"]) == ["DEP", "DEP"]
        assert list(report["maturity"]) == [date(2025, 4, 2), date(2025, 7, 2)]
        assert abs(report["implied"].iloc[1] - 0.042) < 1e-10

    def test_logs_build(self, bootstrapper, caplog):
        with caplog.at_level(logging.INFO, logger="ratescurve.curves.bootstrap"):
            bootstrapper.build(market_helpers())
        assert "Bootstrap converged" in caplog.text


class TestBootstrapInterpolationAndTraits:
    """Tests for non-default traits and interpolation."""

    @pytest.mark.parametrize("trait,method", [
        (CurveTrait.DISCOUNT, "linear"),
        (CurveTrait.ZERO_RATE, "linear"),
        (CurveTrait.FORWARD_RATE, "backward_flat"),
    ])
    def test_round_trip_traits(self, trait, method):
        helpers = market_helpers()
        curve = IterativeBootstrapper(REFERENCE, trait=trait, interpolation_method=method).build(helpers)
        for helper in helpers:
            assert abs(helper.residual(curve)) < 1e-10
        assert curve.discount_factor(REFERENCE) == 1.0

    @pytest.mark.parametrize("trait", ["discount", "zero_rate", "forward_rate"])
    def test_single_deposit_all_traits(self, trait):
        helper = DepositRateHelper(0.05, REFERENCE, date(2026, 1, 2), day_count=DayCount.ACT_365)
        curve = IterativeBootstrapper(REFERENCE, trait=trait).build([helper])
        assert abs(curve.discount_factor(1.0) - 1 / 1.05) < 1e-12

    def test_cubic_spline_needs_global_passes(self):
        """A non-local interpolator converges through repeated passes."""
        helpers = market_helpers()
        bootstrapper = IterativeBootstrapper(REFERENCE, interpolation_method="cubic_spline")
        result = bootstrapper.bootstrap(helpers)

        assert result.iterations > 1
        for helper in helpers:
            assert abs(helper.residual(result.curve)) < 1e-10

    @pytest.mark.parametrize("method", ["log_linear", "linear", "cubic_spline"])
    def test_recovers_known_curve(self, method):
        """Quotes implied by a known curve bootstrap back to its nodes."""
        helpers = [
            DepositRateHelper.from_tenor(REFERENCE, "1M", 0.0),
            DepositRateHelper.from_tenor(REFERENCE, "6M", 0.0),
            FraRateHelper.from_months(REFERENCE, 6, 12, 0.0),
            SwapRateHelper.from_tenor(REFERENCE, "2Y", 0.0),
            SwapRateHelper.from_tenor(REFERENCE, "5Y", 0.0),
            SwapRateHelper.from_tenor(REFERENCE, "10Y", 0.0),
        ]
        source = Curve(REFERENCE, interpolation_method=method)
        for helper in helpers:
            t = year_fraction(REFERENCE, helper.maturity_date, DayCount.ACT_365)
            source.add_node_from_date(helper.maturity_date, math.exp(-(0.03 + 0.004 * t) * t))
        for helper in helpers:
            helper.quote.set_value(helper.implied_quote(source))

        rebuilt = IterativeBootstrapper(REFERENCE, interpolation_method=method).build(helpers)

        np.testing.assert_array_equal(rebuilt.get_node_times(), source.get_node_times())
        assert np.max(np.abs(rebuilt.get_node_values() - source.get_node_values())) < 1e-10

    def test_pass_cap(self):
        config = BootstrapConfig(max_iterations=1)
        bootstrapper = IterativeBootstrapper(
            REFERENCE, interpolation_method="cubic_spline", config=config
        )
        with pytest.raises(NonConvergent) as exc_info:
            bootstrapper.bootstrap(market_helpers())
        assert exc_info.value.iterations == 1
        assert bootstrapper.state == BootstrapState.FAILED


class TestBootstrapErrors:
    """Tests for invalid inputs and failed builds."""

    def test_empty_helpers(self):
        bootstrapper = IterativeBootstrapper(REFERENCE)
        with pytest.raises(InvalidInput):
            bootstrapper.bootstrap([])
        assert bootstrapper.state == BootstrapState.FAILED

    def test_maturity_not_after_reference(self):
        helper = DepositRateHelper(0.05, date(2024, 10, 2), REFERENCE)
        with pytest.raises(InvalidInput):
            IterativeBootstrapper(REFERENCE).bootstrap([helper])

    def test_duplicate_maturities(self):
        helpers = [
            DepositRateHelper(0.05, REFERENCE, date(2025, 7, 2)),
            FraRateHelper(0.05, date(2025, 4, 2), date(2025, 7, 2)),
        ]
        with pytest.raises(InvalidInput):
            IterativeBootstrapper(REFERENCE).bootstrap(helpers)

    def test_unreachable_quote(self):
        """A large negative deposit cannot be matched when rates must be positive."""
        config = BootstrapConfig(allow_negative_rates=False)
        helper = DepositRateHelper.from_tenor(REFERENCE, "1Y", -0.5)
        bootstrapper = IterativeBootstrapper(REFERENCE, config=config)

        with pytest.raises(UnreachableQuote) as exc_info:
            bootstrapper.bootstrap([helper])
        assert exc_info.value.helper == "DEPOSIT 1Y"
        assert exc_info.value.maturity == helper.maturity_date
        assert bootstrapper.state == BootstrapState.FAILED

    def test_negative_rates_allowed_by_default(self):
        helper = DepositRateHelper.from_tenor(REFERENCE, "1Y", -0.005)
        curve = IterativeBootstrapper(REFERENCE).build([helper])
        assert curve.discount_factor(helper.maturity_date) > 1.0

    def test_extrapolation_disallowed(self):
        bootstrapper = IterativeBootstrapper(REFERENCE, allow_extrapolation=False)
        curve = bootstrapper.build(market_helpers())

        assert curve.discount_factor(curve.max_time) > 0
        with pytest.raises(ExtrapolationDisallowed):
            curve.discount_factor(curve.max_time + 1.0)

    def test_extrapolation_allowed(self):
        curve = IterativeBootstrapper(REFERENCE).build(market_helpers())
        t = curve.max_time
        last_forward = curve.instantaneous_forward(t)
        expected = curve.discount_factor(t) * np.exp(-last_forward * 5.0)
        assert abs(curve.discount_factor(t + 5.0) - expected) < 1e-14


class TestHelperOrdering:
    """Tests for ordering by latest relevant date."""

    @pytest.fixture
    def ois(self):
        # Matures Tue 6 Jan 2026, pays Thu 8 Jan 2026
        return OISRateHelper.from_tenor(REFERENCE, "1Y", 0.040)

    @pytest.fixture
    def deposit(self):
        return DepositRateHelper(0.040, REFERENCE, date(2026, 1, 8))

    def test_tie_keeps_insertion_order(self, ois, deposit):
        assert ois.latest_relevant_date == deposit.latest_relevant_date
        result = IterativeBootstrapper(REFERENCE).bootstrap([ois, deposit])

        assert result.helpers == [ois, deposit]
        assert [n.date for n in result.curve.nodes[1:]] == [date(2026, 1, 6), date(2026, 1, 8)]
        assert abs(ois.residual(result.curve)) < 1e-10
        assert abs(deposit.residual(result.curve)) < 1e-10

    def test_tie_with_out_of_order_maturities(self, ois, deposit):
        """Inserted the other way round, the pillars are not chronological."""
        with pytest.raises(InvalidInput):
            IterativeBootstrapper(REFERENCE).bootstrap([deposit, ois])


class TestBootstrapConfig:
    """Tests for bootstrap settings."""

    def test_defaults(self):
        config = BootstrapConfig()
        assert config.accuracy == 1e-12
        assert config.max_iterations == 100
        assert config.residual_tolerance == 1e-10
        assert config.max_rate == 1.0
        assert config.allow_negative_rates

    def test_from_dict(self):
        config = BootstrapConfig.from_dict({"max_iterations": 5, "allow_negative_rates": False})
        assert config.max_iterations == 5
        assert not config.allow_negative_rates

    def test_from_dict_unknown_key(self):
        with pytest.raises(ValueError):
            BootstrapConfig.from_dict({"tolerance": 1e-8})

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            BootstrapConfig(accuracy=0.0)
        with pytest.raises(ValueError):
            BootstrapConfig(max_iterations=0)

    def test_solver_settings(self):
        solver = BootstrapConfig(solver_accuracy=1e-13, bracket_growth=1.5).solver()
        assert solver.accuracy == 1e-13
        assert solver.growth == 1.5


class TestPiecewiseYieldCurve:
    """Tests for the rebuildable curve handle."""

    @pytest.fixture
    def quotes(self):
        return {"3M": SimpleQuote(0.044), "1Y": SimpleQuote(0.042)}

    @pytest.fixture
    def handle(self, quotes):
        helpers = [
            DepositRateHelper.from_tenor(REFERENCE, "3M", quotes["3M"]),
            DepositRateHelper.from_tenor(REFERENCE, "1Y", quotes["1Y"]),
        ]
        return PiecewiseYieldCurve(
            REFERENCE, helpers, config=BootstrapConfig(allow_negative_rates=False)
        )

    def test_not_built(self, handle):
        assert handle.is_stale
        assert handle.state == BootstrapState.EMPTY
        with pytest.raises(RuntimeError):
            handle.curve

    def test_rebuild(self, handle):
        curve = handle.rebuild()
        assert not handle.is_stale
        assert handle.curve is curve
        assert handle.state == BootstrapState.CONVERGED

    def test_quote_change_marks_stale_without_rebuilding(self, handle, quotes):
        old = handle.rebuild()
        old_df = old.discount_factor(1.0)

        quotes["1Y"].set_value(0.045)

        assert handle.is_stale
        assert handle.curve is old
        assert old.discount_factor(1.0) == old_df

        new = handle.rebuild()
        assert new is not old
        assert new.discount_factor(1.0) < old_df
        assert old.is_frozen and new.is_frozen

    def test_same_value_does_not_mark_stale(self, handle, quotes):
        handle.rebuild()
        quotes["3M"].set_value(0.044)
        assert not handle.is_stale

    def test_failed_rebuild_keeps_previous_curve(self, handle, quotes):
        good = handle.rebuild()
        quotes["1Y"].set_value(-0.5)

        with pytest.raises(UnreachableQuote):
            handle.rebuild()
        assert handle.curve is good
        assert handle.is_stale
        assert handle.state == BootstrapState.FAILED

    def test_detach(self, handle, quotes):
        handle.rebuild()
        handle.detach()
        quotes["1Y"].set_value(0.05)
        assert not handle.is_stale

    def test_concurrent_rebuilds(self, handle):
        curves = []
        errors = []

        def worker():
            try:
                curves.append(handle.rebuild())
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(curves) == 4
        assert handle.curve in curves
        assert all(c.is_frozen for c in curves)
        np.testing.assert_array_equal(curves[0].get_node_values(), curves[-1].get_node_values())


class TestBootstrapFromQuotes:
    """Tests for the quote-dictionary entry point."""

    def test_bootstrap_simple(self):
        """Deposits and OIS swaps."""
        anchor_date = date(2024, 1, 15)
        quotes = [
            {"instrument_type": "DEPOSIT", "tenor": "1W", "quote": 0.0530},
            {"instrument_type": "DEPOSIT", "tenor": "1M", "quote": 0.0525},
            {"instrument_type": "OIS", "tenor": "3M", "quote": 0.0520},
            {"instrument_type": "OIS", "tenor": "6M", "quote": 0.0510},
            {"instrument_type": "OIS", "tenor": "1Y", "quote": 0.0500},
        ]

        curve = bootstrap_from_quotes(anchor_date, quotes)

        assert len(curve) == 5
        assert curve.discount_factor(anchor_date) == 1.0
        dfs = curve.get_node_dfs()
        for i in range(1, len(dfs)):
            assert dfs[i] < dfs[i-1], "DFs should be monotonically decreasing"

    def test_mixed_instruments(self):
        anchor_date = date(2024, 1, 15)
        quotes = [
            {"instrument_type": "DEPOSIT", "tenor": "1M", "quote": 0.0530},
            {"instrument_type": "FRA", "start_tenor": "3M", "tenor": "3M", "quote": 0.0520},
            {"instrument_type": "FUTURE", "tenor": "9M", "quote": 95.10, "convexity": 0.0001},
            {"instrument_type": "SWAP", "tenor": "2Y", "quote": 0.0470},
            {"instrument_type": "SWAP", "tenor": "3Y", "quote": 0.0450, "fixed_freq": "ANNUAL"},
        ]

        curve = bootstrap_from_quotes(anchor_date, quotes, interpolation="linear",
                                      trait="zero_rate")

        assert len(curve) == 5
        assert curve.trait is CurveTrait.ZERO_RATE
        assert 0.04 < curve.zero_rate(2.0) < 0.06

    def test_swap_quote_uses_usd_presets(self):
        helper = helper_from_quote(REFERENCE, {"instrument_type": "SWAP", "tenor": "5Y", "quote": 0.04})
        assert isinstance(helper, SwapRateHelper)
        assert helper.effective_date == date(2025, 1, 6)
        assert helper.fixed_frequency == 2
        assert helper.fixed_day_count == DayCount.THIRTY_360
        assert helper.float_frequency == 4
        assert helper.float_day_count == DayCount.ACT_360
        assert helper.payment_lag == 0

    def test_swap_quote_overrides_preset(self):
        helper = helper_from_quote(REFERENCE, {
            "instrument_type": "SWAP", "tenor": "5Y", "quote": 0.04,
            "fixed_freq": "ANNUAL", "settlement_days": 0,
        })
        assert helper.fixed_frequency == 1
        assert helper.float_frequency == 4
        assert helper.effective_date == REFERENCE

    def test_ois_and_deposit_quotes_use_presets(self):
        ois = helper_from_quote(REFERENCE, {"instrument_type": "OIS", "tenor": "1Y", "quote": 0.04})
        assert isinstance(ois, OISRateHelper)
        assert ois.fixed_frequency == ois.float_frequency == 1
        assert ois.payment_lag == 2
        assert ois.latest_relevant_date == date(2026, 1, 8)

        deposit = helper_from_quote(REFERENCE, {"instrument_type": "DEPOSIT", "tenor": "1M", "quote": 0.04})
        assert deposit.start_date == REFERENCE
        assert deposit.day_count == DayCount.ACT_360

    def test_unknown_instrument(self):
        with pytest.raises(InvalidInput):
            bootstrap_from_quotes(REFERENCE, [{"instrument_type": "BOND", "tenor": "5Y", "quote": 0.04}])

    def test_missing_quote(self):
        with pytest.raises(InvalidInput):
            bootstrap_from_quotes(REFERENCE, [{"instrument_type": "DEPOSIT", "tenor": "1M"}])
