from __future__ import annotations

import logging

import pandas as pd
from typing import Iterable, Optional, Sequence, Tuple

from .analysis import analyze
from .bonds import BondTerms
from .cashflows import CashFlowPeriod
from .config import BASIS_POINT, SolverSettings
from .portfolio import analyze_portfolio

logger = logging.getLogger(__name__)

DEFAULT_SHIFTS_BP = (-100, -50, -25, 0, 25, 50, 100)


def run_market_rate_scenarios(
    bond: BondTerms,
    schedule: Sequence[CashFlowPeriod],
    base_rate_percent: float,
    shifts_bp: Iterable[float] = DEFAULT_SHIFTS_BP,
    settings: Optional[SolverSettings] = None,
) -> pd.DataFrame:
    """
    Re-analyze one bond across parallel shifts of the market rate.

    Shifts that would push the market rate below zero are skipped.
    """
    base = analyze(bond, schedule, base_rate_percent, settings)

    rows = []
    for shift in shifts_bp:
        rate = base_rate_percent + shift * BASIS_POINT * 100.0
        if rate < 0:
            logger.warning("Skipping %+gbp scenario for %s: market rate %.4f%% < 0", shift, bond.label, rate)
            continue

        report = base if shift == 0 else analyze(bond, schedule, rate, settings)
        rows.append(
            {
                "shift_bp": shift,
                "market_rate": rate,
                "market_price": report.market_price,
                "price_change": report.market_price - base.market_price,
                "modified_duration": report.modified_duration,
                "convexity": report.convexity,
                "effective_yield_rate": report.effective_yield_rate,
            }
        )

    return pd.DataFrame(rows).sort_values("shift_bp").reset_index(drop=True)


def run_portfolio_rate_scenarios(
    portfolio: pd.DataFrame,
    base_rate_percent: float,
    shifts_bp: Iterable[float] = DEFAULT_SHIFTS_BP,
    settings: Optional[SolverSettings] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Per-bond market prices under each shift, and total price change per scenario.

    Returns (per_bond, summary).
    """
    base = analyze_portfolio(portfolio, base_rate_percent, settings)[["bond_id", "market_price"]]
    per_bond = base.rename(columns={"market_price": "base"})

    for shift in shifts_bp:
        if shift == 0:
            continue
        rate = base_rate_percent + shift * BASIS_POINT * 100.0
        if rate < 0:
            logger.warning("Skipping %+gbp portfolio scenario: market rate %.4f%% < 0", shift, rate)
            continue

        name = f"MKT_{shift:+g}bp"
        px = analyze_portfolio(portfolio, rate, settings)[["bond_id", "market_price"]].rename(columns={"market_price": name})
        per_bond = per_bond.merge(px, on="bond_id", how="left")
        per_bond[name + "_PnL"] = per_bond[name] - per_bond["base"]

    pnl_cols = [c for c in per_bond.columns if c.endswith("_PnL")]
    summary = pd.DataFrame({"scenario": pnl_cols, "total_price_change": [per_bond[c].sum() for c in pnl_cols]})

    return per_bond, summary
