from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Callable, Dict, List, Sequence

import pandas as pd

from .bonds import AmortizationType, BondTerms, GraceType
from .errors import InvalidParameterError
from .rates import bond_period_rate
from .utils import cached_payment_dates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CashFlowPeriod:
    period: int
    date: pd.Timestamp
    initial_balance: float
    interest: float
    amortization: float
    payment: float
    final_balance: float
    capitalized_interest: float = 0.0


# ---- Amortization policies ----
# Each policy maps (period, total_periods, initial_balance, period_rate, bond) -> principal repaid
# in a non-grace period.

AmortizationRule = Callable[[int, int, float, float, BondTerms], float]


def bullet_amortization(period: int, total_periods: int, initial_balance: float, period_rate: float, bond: BondTerms) -> float:
    """All outstanding principal at maturity, nothing before."""
    return initial_balance if period == total_periods else 0.0


AMORTIZATION_RULES: Dict[AmortizationType, AmortizationRule] = {
    AmortizationType.BULLET: bullet_amortization,
}


def amortization_rule(amortization_type: AmortizationType) -> AmortizationRule:
    try:
        return AMORTIZATION_RULES[amortization_type]
    except KeyError:
        raise InvalidParameterError(f"No amortization rule registered for {amortization_type!r}.") from None


# ---- Schedule ----

def generate_schedule(bond: BondTerms) -> List[CashFlowPeriod]:
    """
    Periodic amortization schedule for periods 1..N (N = term * frequency).

    Grace periods (1..grace_periods) repay no principal. Partial grace pays the interest;
    total grace pays nothing and capitalizes the interest into the outstanding balance.
    """
    bond.validate()

    n = bond.total_periods
    if n <= 0:
        raise InvalidParameterError(f"{bond.label}: schedule has no periods.")

    period_rate = bond_period_rate(bond)
    rule = amortization_rule(bond.amortization_type)
    dates = cached_payment_dates(pd.Timestamp(bond.emission_date), n, int(bond.frequency))

    grace_periods = int(bond.grace_periods) if bond.grace_type is not GraceType.NONE else 0

    logger.debug(
        "Generating %d-period schedule for %s (period rate %.8f, grace %s x %d)",
        n, bond.label, period_rate, bond.grace_type.value, grace_periods,
    )

    schedule: List[CashFlowPeriod] = []
    balance = float(bond.nominal_value)

    for i in range(1, n + 1):
        interest = balance * period_rate
        capitalized = 0.0

        if i <= grace_periods:
            amortization = 0.0
            if bond.grace_type is GraceType.TOTAL:
                capitalized = interest
                interest = 0.0
        else:
            amortization = float(rule(i, n, balance, period_rate, bond))

        payment = interest + amortization
        final_balance = balance + capitalized - amortization

        schedule.append(
            CashFlowPeriod(
                period=i,
                date=dates[i - 1],
                initial_balance=balance,
                interest=interest,
                amortization=amortization,
                payment=payment,
                final_balance=final_balance,
                capitalized_interest=capitalized,
            )
        )
        balance = final_balance

    return schedule


def payments(schedule: Sequence[CashFlowPeriod]) -> List[float]:
    return [cf.payment for cf in schedule]


def investment_flows(initial_exchange: float, schedule: Sequence[CashFlowPeriod]) -> List[float]:
    """Signed flow vector [-initial_exchange, payment_1, ..., payment_N] for the yield solver."""
    return [-float(initial_exchange)] + payments(schedule)


def schedule_to_frame(schedule: Sequence[CashFlowPeriod]) -> pd.DataFrame:
    """One row per period, columns in CashFlowPeriod field order."""
    columns = list(CashFlowPeriod.__dataclass_fields__.keys())
    return pd.DataFrame([asdict(cf) for cf in schedule], columns=columns)


def schedule_totals(schedule: Sequence[CashFlowPeriod]) -> Dict[str, float]:
    return {
        "interest": float(sum(cf.interest for cf in schedule)),
        "amortization": float(sum(cf.amortization for cf in schedule)),
        "payment": float(sum(cf.payment for cf in schedule)),
        "capitalized_interest": float(sum(cf.capitalized_interest for cf in schedule)),
    }
