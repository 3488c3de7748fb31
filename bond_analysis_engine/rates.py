from __future__ import annotations

import logging
import math
from typing import Optional

from .bonds import BondTerms, RateType
from .errors import InvalidParameterError

logger = logging.getLogger(__name__)


def convert_rate(
    rate_percent: float,
    rate_type: RateType,
    freq: int,
    capitalization: Optional[str] = None,
) -> float:
    """
    Annual rate in percent -> decimal rate per payment period.

    - Effective: (1 + r)^(1/freq) - 1
    - Nominal:   r / freq

    The capitalization tag of a nominal rate is accepted but not applied: the nominal
    rate is split linearly across payment periods whatever its compounding.
    """
    if freq is None or freq <= 0:
        raise InvalidParameterError(f"freq must be positive, got {freq!r}.")
    if rate_percent is None or not math.isfinite(rate_percent) or rate_percent < 0:
        raise InvalidParameterError(f"rate must be a finite percentage >= 0, got {rate_percent!r}.")

    r = rate_percent / 100.0
    try:
        rate_type = RateType(rate_type)
    except ValueError as exc:
        raise InvalidParameterError(f"Unknown rate type {rate_type!r}.") from exc

    if rate_type is RateType.EFFECTIVE:
        return (1.0 + r) ** (1.0 / freq) - 1.0

    if capitalization:
        logger.debug("Nominal rate %.6f%% with capitalization %r split linearly over %d periods", rate_percent, capitalization, freq)
    return r / freq


def bond_period_rate(bond: BondTerms) -> float:
    """Coupon rate per period for a bond, under its own rate convention."""
    return convert_rate(bond.interest_rate, bond.rate_type, bond.frequency, bond.capitalization)


def market_period_rate(bond: BondTerms, market_rate_percent: float) -> float:
    """Market rate per period, converted with the bond's convention and frequency."""
    return convert_rate(market_rate_percent, bond.rate_type, bond.frequency, bond.capitalization)
