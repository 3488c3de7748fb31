from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Optional, Sequence

from .bonds import BondTerms
from .cashflows import CashFlowPeriod, generate_schedule, investment_flows
from .config import SolverSettings
from .errors import InvalidParameterError
from .rates import market_period_rate
from .solver import annualize_rate, solve_periodic_rate
from .valuation import value_schedule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BondAnalysisReport:
    """
    Risk/return metrics of one bond at one market rate.

    Rates are annual effective percentages (7.5 = 7.5%), the same unit as the bond's
    interest_rate and the market rate supplied. Durations are in years.
    """
    macaulay_duration: float
    modified_duration: float
    convexity: float
    effective_cost_rate: float  # TCEA, issuer view
    effective_yield_rate: float  # TREA, investor view
    market_price: float
    market_rate: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def analyze(
    bond: BondTerms,
    schedule: Sequence[CashFlowPeriod],
    market_rate_percent: float,
    settings: Optional[SolverSettings] = None,
) -> BondAnalysisReport:
    """
    Price the schedule at the market rate and derive durations, convexity, TCEA and TREA.

    TCEA solves [-nominal_value, payments...]; TREA solves [-market_price, payments...].
    Both periodic rates are annualized with the bond's frequency.
    """
    bond.validate()
    if len(schedule) == 0:
        raise InvalidParameterError(f"{bond.label}: schedule is empty.")
    if len(schedule) != bond.total_periods:
        raise InvalidParameterError(
            f"{bond.label}: schedule has {len(schedule)} periods, bond terms imply {bond.total_periods}."
        )

    m = market_period_rate(bond, market_rate_percent)
    valuation = value_schedule(schedule, m, bond.frequency)
    price = valuation.present_value

    tcea_periodic = solve_periodic_rate(investment_flows(bond.nominal_value, schedule), settings)
    trea_periodic = solve_periodic_rate(investment_flows(price, schedule), settings)

    tcea = annualize_rate(tcea_periodic, bond.frequency) * 100.0
    trea = annualize_rate(trea_periodic, bond.frequency) * 100.0

    logger.info(
        "Analyzed %s at %.4f%%: price=%.4f TCEA=%.6f%% TREA=%.6f%%",
        bond.label, market_rate_percent, price, tcea, trea,
    )

    return BondAnalysisReport(
        macaulay_duration=valuation.macaulay_duration,
        modified_duration=valuation.modified_duration,
        convexity=valuation.convexity,
        effective_cost_rate=tcea,
        effective_yield_rate=trea,
        market_price=price,
        market_rate=float(market_rate_percent),
    )


def analyze_bond(bond: BondTerms, market_rate_percent: float, settings: Optional[SolverSettings] = None) -> BondAnalysisReport:
    """Generate the schedule and analyze it in one call."""
    return analyze(bond, generate_schedule(bond), market_rate_percent, settings)
