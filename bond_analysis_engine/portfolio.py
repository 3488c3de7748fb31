from __future__ import annotations

import logging

import numpy as np
import pandas as pd
from typing import List, Optional

from .analysis import analyze
from .bonds import BondTerms, GraceType, RateType, bond_from_record, record_bond_id
from .cashflows import generate_schedule, schedule_to_frame
from .config import SolverSettings
from .errors import EngineError

logger = logging.getLogger(__name__)

REPORT_COLUMNS = [
    "market_price",
    "macaulay_duration",
    "modified_duration",
    "convexity",
    "effective_cost_rate",
    "effective_yield_rate",
]


def qc_flags_for_bond(bond: BondTerms) -> List[str]:
    """Informational flags for terms that are valid but worth a second look."""
    flags: List[str] = []

    if bond.rate_type is RateType.NOMINAL and bond.capitalization:
        flags.append("CAPITALIZATION_IGNORED")

    if bond.grace_type is GraceType.TOTAL and bond.grace_periods > 0:
        flags.append("CAPITALIZED_GRACE")

    if bond.interest_rate == 0:
        flags.append("ZERO_COUPON_RATE")

    return flags


def build_cashflow_table(portfolio: pd.DataFrame) -> pd.DataFrame:
    """Stack every bond's schedule into one table keyed by bond_id. Invalid bonds are skipped."""
    frames = []

    for _, r in portfolio.iterrows():
        try:
            bond = bond_from_record(r.to_dict())
            frame = schedule_to_frame(generate_schedule(bond))
        except EngineError as exc:
            logger.warning("Skipping bond %r in cashflow table: %s", record_bond_id(r.to_dict()), exc)
            continue

        frame.insert(0, "bond_id", bond.bond_id)
        frames.append(frame)

    if not frames:
        return pd.DataFrame(columns=["bond_id"] + list(schedule_to_frame([]).columns))

    return pd.concat(frames, ignore_index=True)


def analyze_portfolio(
    portfolio: pd.DataFrame,
    market_rate_percent: float,
    settings: Optional[SolverSettings] = None,
) -> pd.DataFrame:
    """
    Analyze every bond row of `portfolio` at one market rate.

    A bond whose analysis fails keeps its row with NaN metrics and the error class name in
    `flags`; QC flags of valid bonds are joined with '|'.
    """
    rows = []

    for _, r in portfolio.iterrows():
        record = r.to_dict()
        bond_id = record_bond_id(record)
        row = {"bond_id": bond_id, "market_rate": float(market_rate_percent)}

        try:
            bond = bond_from_record(record)
            report = analyze(bond, generate_schedule(bond), market_rate_percent, settings)
        except EngineError as exc:
            logger.warning("Analysis failed for bond %r: %s", bond_id, exc)
            row.update({c: np.nan for c in REPORT_COLUMNS})
            row["flags"] = type(exc).__name__
            rows.append(row)
            continue

        row.update({c: getattr(report, c) for c in REPORT_COLUMNS})
        flags = qc_flags_for_bond(bond)
        row["flags"] = "|".join(flags) if flags else ""
        rows.append(row)

    return pd.DataFrame(rows, columns=["bond_id", "market_rate"] + REPORT_COLUMNS + ["flags"])
