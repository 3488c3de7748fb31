import numpy as np
import pandas as pd
import pytest

from bond_analysis_engine.analysis import analyze
from bond_analysis_engine.bonds import BondTerms
from bond_analysis_engine.cashflows import generate_schedule
from bond_analysis_engine.portfolio import analyze_portfolio, build_cashflow_table
from bond_analysis_engine.risk import (
    duration_from_dv01,
    effective_convexity,
    market_rate_dv01,
    price_at,
    price_change_estimate,
)
from bond_analysis_engine.scenarios import run_market_rate_scenarios, run_portfolio_rate_scenarios


@pytest.fixture(scope="module")
def bond():
    return BondTerms(
        bond_id="BOND_10Y_6",
        nominal_value=50000.0,
        interest_rate=6.0,
        term=10,
        frequency=2,
        emission_date=pd.Timestamp("2025-03-15"),
    )


@pytest.fixture(scope="module")
def schedule(bond):
    return generate_schedule(bond)


@pytest.fixture(scope="module")
def portfolio_df():
    """
    Deterministic mini-portfolio; the last row has grace_periods == total periods and must fail.
    """
    return pd.DataFrame(
        {
            "id": ["B_001", "B_002", "B_003", "B_004", "B_BAD"],
            "nominal_value": [100000.0, 25000.0, 10000.0, 75000.0, 10000.0],
            "interest_rate": [7.5, 5.0, 9.0, 6.0, 8.0],
            "term": [5, 3, 2, 8, 1],
            "frequency": [2, 12, 4, 1, 2],
            "amortization_type": ["American"] * 5,
            "grace_type": ["None", "Partial", "Total", "None", "Total"],
            "grace_periods": [0, 6, 2, 0, 2],
            "emission_date": pd.to_datetime(["2024-01-01", "2024-06-30", "2025-02-15", "2023-11-01", "2024-01-01"]),
            "interest_rate_type": ["Effective", "Nominal", "Effective", "Nominal", "Effective"],
            "capitalization": [np.nan, "Monthly", np.nan, "Semiannual", np.nan],
            "currency": ["PEN", "USD", "PEN", "EUR", "PEN"],
        }
    )


def test_dv01_sign_and_duration(bond, schedule):
    """
    +1bp market rate => price down. Under the effective convention the implied duration
    with respect to the annual rate is Macaulay / (1 + y).
    """
    dv01 = market_rate_dv01(bond, schedule, 6.0)
    assert dv01 < 0.0

    report = analyze(bond, schedule, 6.0)
    eff_dur = duration_from_dv01(dv01, report.market_price)
    assert eff_dur == pytest.approx(report.macaulay_duration / 1.06, rel=1e-3)


def test_effective_convexity_positive(bond, schedule):
    assert effective_convexity(bond, schedule, 6.0) > 0.0


def test_price_change_estimate_matches_reprice(bond, schedule):
    report = analyze(bond, schedule, 6.0)
    for shift_bp in (-10.0, 10.0):
        actual = price_at(bond, schedule, 6.0 + shift_bp / 100.0) - report.market_price
        estimate = price_change_estimate(bond, report, shift_bp)
        assert estimate == pytest.approx(actual, rel=1e-2), f"{shift_bp}bp estimate off"


def test_market_rate_scenarios_monotone(bond, schedule):
    out = run_market_rate_scenarios(bond, schedule, 6.0)
    assert list(out["shift_bp"]) == [-100, -50, -25, 0, 25, 50, 100]
    assert out["market_price"].is_monotonic_decreasing, "higher market rates lower the price"
    assert out.loc[out["shift_bp"] == 0, "price_change"].iloc[0] == 0.0
    assert out["effective_yield_rate"].to_numpy() == pytest.approx(out["market_rate"].to_numpy(), abs=1e-4)


def test_market_rate_scenarios_skip_negative_rates(bond, schedule):
    out = run_market_rate_scenarios(bond, schedule, 0.25, shifts_bp=[-50, -10, 0, 25])
    assert list(out["shift_bp"]) == [-10, 0, 25]


def test_portfolio_analysis_flags_failures(portfolio_df):
    out = analyze_portfolio(portfolio_df, 7.0)
    assert list(out["bond_id"]) == list(portfolio_df["id"])

    bad = out.set_index("bond_id").loc["B_BAD"]
    assert bad["flags"] == "InvalidParameterError"
    assert np.isnan(bad["market_price"])

    good = out[out["bond_id"] != "B_BAD"]
    assert np.isfinite(good["market_price"]).all()
    assert (good["modified_duration"] > 0).all()

    flags = out.set_index("bond_id")["flags"]
    assert "CAPITALIZATION_IGNORED" in flags["B_002"]
    assert flags["B_003"] == "CAPITALIZED_GRACE"
    assert flags["B_001"] == ""


def test_cashflow_table_stacks_valid_bonds(portfolio_df):
    table = build_cashflow_table(portfolio_df)
    assert set(table["bond_id"]) == {"B_001", "B_002", "B_003", "B_004"}
    assert len(table) == 10 + 36 + 8 + 8
    assert table.groupby("bond_id")["period"].max().to_dict() == {"B_001": 10, "B_002": 36, "B_003": 8, "B_004": 8}


def test_portfolio_scenarios_total_pnl_sign(portfolio_df):
    per_bond, summary = run_portfolio_rate_scenarios(portfolio_df, 7.0, shifts_bp=[-50, 0, 50])
    totals = dict(zip(summary["scenario"], summary["total_price_change"]))
    assert totals["MKT_+50bp_PnL"] < 0.0 < totals["MKT_-50bp_PnL"]
    assert "base" in per_bond.columns


def test_portfolio_analysis_survives_malformed_rows():
    """A garbage cell fails its own row only; a NaN id stays blank rather than 'nan'."""
    df = pd.DataFrame(
        {
            "id": ["B_OK", "B_TEXT", np.nan],
            "nominal_value": [10000.0, 10000.0, 10000.0],
            "interest_rate": [6.0, 6.0, 6.0],
            "term": [2, 2, 2.5],
            "frequency": [2, 2, 2],
            "grace_type": ["Partial", "Partial", "None"],
            "grace_periods": [1, "one", 0],
            "emission_date": ["2024-01-01", "2024-01-01", "2024-01-01"],
        }
    )
    out = analyze_portfolio(df, 6.0)
    assert list(out["bond_id"]) == ["B_OK", "B_TEXT", ""]

    assert np.isfinite(out.loc[0, "market_price"])
    for i in (1, 2):
        assert out.loc[i, "flags"] == "InvalidParameterError"
        assert np.isnan(out.loc[i, "market_price"])

    assert set(build_cashflow_table(df)["bond_id"]) == {"B_OK"}
