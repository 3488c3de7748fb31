from __future__ import annotations

from typing import Sequence

from .analysis import BondAnalysisReport
from .bonds import BondTerms
from .cashflows import CashFlowPeriod
from .config import BASIS_POINT
from .rates import market_period_rate
from .valuation import value_schedule


def price_at(bond: BondTerms, schedule: Sequence[CashFlowPeriod], market_rate_percent: float) -> float:
    return value_schedule(schedule, market_period_rate(bond, market_rate_percent), bond.frequency).present_value


def market_rate_dv01(
    bond: BondTerms,
    schedule: Sequence[CashFlowPeriod],
    market_rate_percent: float,
    bp: float = 1.0,
) -> float:
    """Price change for a +bp move in the annual market rate (negative for a long position)."""
    base = price_at(bond, schedule, market_rate_percent)
    bumped = price_at(bond, schedule, market_rate_percent + bp * BASIS_POINT * 100.0)
    return bumped - base


def effective_convexity(
    bond: BondTerms,
    schedule: Sequence[CashFlowPeriod],
    market_rate_percent: float,
    bp: float = 1.0,
) -> float:
    """Central finite-difference convexity with respect to the annual market rate (decimal)."""
    h = bp * BASIS_POINT
    base = price_at(bond, schedule, market_rate_percent)
    up = price_at(bond, schedule, market_rate_percent + h * 100.0)
    down = price_at(bond, schedule, market_rate_percent - h * 100.0)
    return (up + down - 2 * base) / (base * h**2)


def duration_from_dv01(dv01: float, price: float, bp: float = 1.0) -> float:
    """Effective modified duration (years) implied by a DV01."""
    return -dv01 / (price * bp * BASIS_POINT)


def price_change_estimate(bond: BondTerms, report: BondAnalysisReport, shift_bp: float) -> float:
    """
    Second-order price change for a parallel shift of the market rate:
      dP ~ P * (-D_mod * dm + 0.5 * C * dm^2)
    with dm the change in the per-period market rate, D_mod in periods and C the
    report's convexity (periods squared).
    """
    m0 = market_period_rate(bond, report.market_rate)
    m1 = market_period_rate(bond, report.market_rate + shift_bp * BASIS_POINT * 100.0)
    dm = m1 - m0

    mod_dur_periods = report.modified_duration * bond.frequency
    return report.market_price * (-mod_dur_periods * dm + 0.5 * report.convexity * dm**2)
