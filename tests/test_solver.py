import numpy as np
import pytest

from bond_analysis_engine.config import SolverSettings
from bond_analysis_engine.errors import ConvergenceFailureError, InvalidParameterError
from bond_analysis_engine.solver import (
    annualize_rate,
    bracketed_periodic_rate,
    newton_periodic_rate,
    npv,
    npv_derivative,
    solve_periodic_rate,
)


def flows_at(rate, payments):
    """Flow vector whose price is the PV of `payments` at `rate`, so its IRR is `rate`."""
    t = np.arange(1, len(payments) + 1)
    price = float(np.sum(np.asarray(payments) / (1.0 + rate) ** t))
    return [-price] + list(payments)


@pytest.mark.parametrize("r0", [0.0, 0.0125, 0.036822, 0.08, 0.25])
def test_newton_recovers_known_rate(r0):
    flows = flows_at(r0, [120.0, 80.0, 150.0, 60.0, 1100.0])
    assert newton_periodic_rate(flows) == pytest.approx(r0, abs=1e-6)


def test_bracketed_recovers_known_rate():
    flows = flows_at(0.045, [45.0] * 19 + [1045.0])
    assert bracketed_periodic_rate(flows) == pytest.approx(0.045, abs=1e-6)
    assert solve_periodic_rate(flows, SolverSettings(method="brentq")) == pytest.approx(0.045, abs=1e-6)


def test_npv_derivative_matches_finite_difference():
    flows = [-1000.0, 50.0, 50.0, 1050.0]
    h = 1e-6
    numeric = (npv(flows, 0.04 + h) - npv(flows, 0.04 - h)) / (2 * h)
    assert npv_derivative(flows, 0.04) == pytest.approx(numeric, rel=1e-6)


def test_flat_slope_returns_initial_guess():
    # NPV' is identically zero: the solver stops and returns its best estimate
    assert newton_periodic_rate([-100.0, 0.0]) == 0.05


def test_updates_are_floored():
    # True root is -0.99; the first Newton step lands far below and is clamped
    assert newton_periodic_rate([-100.0, 1.0]) == pytest.approx(-0.99, abs=1e-9)


def test_iteration_budget_exhausted_carries_estimate():
    flows = flows_at(0.036822, [3682.2] * 9 + [103682.2])
    with pytest.raises(ConvergenceFailureError) as info:
        newton_periodic_rate(flows, SolverSettings(max_iter=1))
    err = info.value
    assert np.isfinite(err.estimate)
    assert err.estimate != 0.05, "estimate is the last Newton update, not the seed"
    assert err.iterations == 1


def test_bracket_without_sign_change_fails():
    with pytest.raises(ConvergenceFailureError):
        bracketed_periodic_rate([100.0, 10.0, 10.0])


@pytest.mark.parametrize("flows", [[], [-100.0], [-100.0, float("inf")]])
def test_bad_flow_vectors(flows):
    with pytest.raises(InvalidParameterError):
        newton_periodic_rate(flows)


def test_unknown_method():
    with pytest.raises(InvalidParameterError):
        solve_periodic_rate([-100.0, 110.0], SolverSettings(method="secant"))


def test_annualize_rate():
    assert annualize_rate(1.075 ** 0.5 - 1.0, 2) == pytest.approx(0.075, abs=1e-14)
    assert annualize_rate(0.01, 12) == pytest.approx(1.01 ** 12 - 1.0)
    with pytest.raises(InvalidParameterError):
        annualize_rate(0.01, 0)
