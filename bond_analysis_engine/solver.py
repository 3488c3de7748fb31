from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np
from scipy.optimize import brentq

from .config import DEFAULT_SOLVER_SETTINGS, SolverSettings
from .errors import ConvergenceFailureError, InvalidParameterError, NumericInstabilityError

logger = logging.getLogger(__name__)


def _as_flows(flows: Sequence[float]) -> np.ndarray:
    cfs = np.asarray(list(flows), dtype=float)
    if cfs.ndim != 1 or len(cfs) < 2:
        raise InvalidParameterError("Need an initial exchange and at least one subsequent flow.")
    if not np.all(np.isfinite(cfs)):
        raise InvalidParameterError("Cash flows must be finite.")
    return cfs


def npv(flows: Sequence[float], rate: float) -> float:
    """Sum of flows[t] / (1 + rate)^t, t = 0..k."""
    cfs = np.asarray(flows, dtype=float)
    t = np.arange(len(cfs), dtype=float)
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        return float(np.sum(cfs * (1.0 + rate) ** (-t)))


def npv_derivative(flows: Sequence[float], rate: float) -> float:
    """d NPV / d rate. The t = 0 term has no rate dependence and is left out."""
    cfs = np.asarray(flows, dtype=float)[1:]
    t = np.arange(1, len(cfs) + 1, dtype=float)
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        return float(np.sum(-t * cfs * (1.0 + rate) ** (-(t + 1.0))))


def newton_periodic_rate(flows: Sequence[float], settings: Optional[SolverSettings] = None) -> float:
    """
    Periodic internal rate of `flows` by Newton-Raphson.

    Stops when |NPV| < tol, when |NPV'| < tol (degenerate slope: the current guess is
    returned as the best estimate), or when a step moves the guess by less than tol.
    Every update is floored at settings.rate_floor. Raises ConvergenceFailureError,
    carrying the last estimate, if max_iter steps pass without a stop.
    """
    s = settings or DEFAULT_SOLVER_SETTINGS
    cfs = _as_flows(flows)

    guess = float(s.initial_guess)
    for it in range(1, s.max_iter + 1):
        value = npv(cfs, guess)
        slope = npv_derivative(cfs, guess)

        if not (np.isfinite(value) and np.isfinite(slope)):
            raise NumericInstabilityError(f"NPV not finite at rate {guess!r} (iteration {it}).")

        if abs(value) < s.tol:
            logger.debug("IRR converged on |NPV| after %d iterations: %.10f", it, guess)
            return guess

        if abs(slope) < s.tol:
            logger.warning("IRR stopped on flat NPV slope after %d iterations, best estimate %.10f", it, guess)
            return guess

        new_guess = max(guess - value / slope, s.rate_floor)

        if abs(new_guess - guess) < s.tol:
            logger.debug("IRR converged on step size after %d iterations: %.10f", it, new_guess)
            return new_guess

        guess = new_guess

    raise ConvergenceFailureError(
        f"IRR did not converge in {s.max_iter} iterations (last estimate {guess!r}).",
        estimate=guess,
        iterations=s.max_iter,
    )


def bracketed_periodic_rate(flows: Sequence[float], settings: Optional[SolverSettings] = None) -> float:
    """
    Periodic internal rate by Brent's method on settings.bracket.

    Needs NPV to change sign over the bracket; series with several sign changes may
    hold more than one root and Brent returns whichever it brackets.
    """
    s = settings or DEFAULT_SOLVER_SETTINGS
    cfs = _as_flows(flows)
    lo, hi = s.bracket

    f_lo, f_hi = npv(cfs, lo), npv(cfs, hi)
    if not (np.isfinite(f_lo) and np.isfinite(f_hi)):
        raise NumericInstabilityError(f"NPV not finite on bracket [{lo}, {hi}].")
    if f_lo * f_hi > 0:
        best = lo if abs(f_lo) < abs(f_hi) else hi
        raise ConvergenceFailureError(f"NPV has the same sign on [{lo}, {hi}]; no bracketed root.", estimate=best)

    try:
        root, info = brentq(lambda r: npv(cfs, r), lo, hi, xtol=s.tol, maxiter=s.max_iter, full_output=True, disp=False)
    except (RuntimeError, ValueError) as exc:
        raise ConvergenceFailureError(f"Brent solve failed: {exc}", estimate=float("nan")) from exc

    if not info.converged:
        raise ConvergenceFailureError(
            f"Brent solve did not converge in {info.iterations} iterations.",
            estimate=float(root),
            iterations=info.iterations,
        )

    logger.debug("Bracketed IRR converged after %d iterations: %.10f", info.iterations, root)
    return float(root)


def solve_periodic_rate(flows: Sequence[float], settings: Optional[SolverSettings] = None) -> float:
    s = settings or DEFAULT_SOLVER_SETTINGS
    if s.method == "newton":
        return newton_periodic_rate(flows, s)
    if s.method == "brentq":
        return bracketed_periodic_rate(flows, s)
    raise InvalidParameterError(f"Unknown solver method {s.method!r}; use 'newton' or 'brentq'.")


def annualize_rate(periodic_rate: float, freq: int) -> float:
    """(1 + periodic)^freq - 1, decimal."""
    if freq <= 0:
        raise InvalidParameterError("freq must be positive")
    return (1.0 + periodic_rate) ** freq - 1.0
