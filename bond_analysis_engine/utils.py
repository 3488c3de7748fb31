from __future__ import annotations

import pandas as pd
from typing import Tuple
from functools import lru_cache

from .config import MONTHS_PER_YEAR, SUPPORTED_FREQUENCIES
from .errors import InvalidParameterError


_FREQUENCY_LABELS = {
    1: "Annual",
    2: "Semiannual",
    4: "Quarterly",
    12: "Monthly",
}

_CURRENCY_SYMBOLS = {
    "PEN": "S/.",
    "USD": "$",
    "EUR": "€",
}


def months_per_period(freq: int) -> int:
    """Months between two payments for a payments-per-year frequency."""
    if freq <= 0:
        raise InvalidParameterError("freq must be positive")
    if freq not in SUPPORTED_FREQUENCIES:
        raise InvalidParameterError(f"Supported frequencies: {SUPPORTED_FREQUENCIES}, got {freq}.")
    return MONTHS_PER_YEAR // freq


def payment_date(emission_date: pd.Timestamp, period: int, freq: int) -> pd.Timestamp:
    """
    Payment date of `period` (1-based): emission date + period * (12 / freq) months.

    Always stepped from the emission date, so a month-end emission clamps to each
    month's last day instead of drifting.
    """
    months = months_per_period(freq)
    return pd.Timestamp(emission_date) + pd.DateOffset(months=period * months)


@lru_cache(maxsize=10_000)
def cached_payment_dates(emission_date: pd.Timestamp, n_periods: int, freq: int) -> Tuple[pd.Timestamp, ...]:
    """Cache payment calendars by (emission_date, n_periods, freq)."""
    emission_date = pd.Timestamp(emission_date)
    return tuple(payment_date(emission_date, i, freq) for i in range(1, n_periods + 1))


def frequency_label(freq: int) -> str:
    if freq in _FREQUENCY_LABELS:
        return _FREQUENCY_LABELS[freq]
    if freq <= 0:
        raise InvalidParameterError("freq must be positive")
    return f"Every {MONTHS_PER_YEAR / freq:g} months"


def format_currency(amount: float, currency: str) -> str:
    """Render an amount with its currency symbol and two decimals, e.g. 'S/. 3,685.40'."""
    code = getattr(currency, "value", currency)
    symbol = _CURRENCY_SYMBOLS.get(str(code).upper(), "")
    return f"{symbol} {amount:,.2f}".strip()
