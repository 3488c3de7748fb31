from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .cashflows import CashFlowPeriod
from .errors import InvalidParameterError, NumericInstabilityError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValuationResult:
    present_value: float
    macaulay_duration: float  # years
    modified_duration: float  # years
    convexity: float
    market_period_rate: float


def discounted_payments(schedule: Sequence[CashFlowPeriod], market_period_rate: float) -> np.ndarray:
    """payment_t / (1 + m)^t for t = 1..N."""
    cfs = np.array([cf.payment for cf in schedule], dtype=float)
    t = np.arange(1, len(cfs) + 1, dtype=float)
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        return cfs * (1.0 + market_period_rate) ** (-t)


def value_schedule(schedule: Sequence[CashFlowPeriod], market_period_rate: float, freq: int) -> ValuationResult:
    """
    Present value and duration/convexity of a schedule at a flat per-period market rate.

    Durations are converted from periods to years (divided by freq); convexity stays in
    periods squared.
    """
    if len(schedule) == 0:
        raise InvalidParameterError("Cannot value an empty schedule.")
    if freq <= 0:
        raise InvalidParameterError("freq must be positive")
    if not np.isfinite(market_period_rate) or market_period_rate <= -1.0:
        raise InvalidParameterError(f"market period rate must be finite and > -1, got {market_period_rate!r}.")

    disc = discounted_payments(schedule, market_period_rate)
    t = np.arange(1, len(disc) + 1, dtype=float)

    pv = float(np.sum(disc))
    weighted_time = float(np.sum(t * disc))
    weighted_time_sq = float(np.sum(t * t * disc))

    if not np.all(np.isfinite(disc)) or not np.isfinite(pv):
        raise NumericInstabilityError(f"Non-finite present value at market period rate {market_period_rate!r}.")
    if pv <= 0.0:
        raise NumericInstabilityError(f"Present value must be positive, got {pv!r}.")

    one_plus_m = 1.0 + market_period_rate
    macaulay = weighted_time / pv
    modified = macaulay / one_plus_m
    convexity = weighted_time_sq / (pv * one_plus_m ** 2)

    if not all(np.isfinite(x) for x in (macaulay, modified, convexity)):
        raise NumericInstabilityError("Non-finite duration or convexity.")

    logger.debug("Valued %d periods at %.8f per period: PV=%.6f", len(disc), market_period_rate, pv)

    return ValuationResult(
        present_value=pv,
        macaulay_duration=macaulay / freq,
        modified_duration=modified / freq,
        convexity=convexity,
        market_period_rate=market_period_rate,
    )
