from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

import pandas as pd

from .config import SUPPORTED_FREQUENCIES
from .errors import InvalidParameterError


class _LabelEnum(str, Enum):
    """String enum that also accepts labels case-insensitively ('total' -> TOTAL)."""

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if key in (member.value.lower(), member.name.lower()):
                    return member
        return None


class RateType(_LabelEnum):
    EFFECTIVE = "Effective"
    NOMINAL = "Nominal"


class AmortizationType(_LabelEnum):
    # Bullet: interest every period, all principal at maturity
    BULLET = "American"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str) and value.strip().lower() == "bullet":
            return cls.BULLET
        return super()._missing_(value)


class GraceType(_LabelEnum):
    NONE = "None"
    PARTIAL = "Partial"
    TOTAL = "Total"


class Currency(_LabelEnum):
    PEN = "PEN"
    USD = "USD"
    EUR = "EUR"


@dataclass(frozen=True)
class BondTerms:
    nominal_value: float
    interest_rate: float  # annual, percent, e.g. 7.5 = 7.5%
    term: int  # years
    frequency: int  # payments per year
    emission_date: pd.Timestamp
    rate_type: RateType = RateType.EFFECTIVE
    capitalization: Optional[str] = None  # compounding tag, only meaningful for nominal rates
    amortization_type: AmortizationType = AmortizationType.BULLET
    grace_type: GraceType = GraceType.NONE
    grace_periods: int = 0
    currency: Currency = Currency.PEN
    bond_id: str = ""
    name: str = ""

    @property
    def total_periods(self) -> int:
        return int(self.term) * int(self.frequency)

    @property
    def maturity_date(self) -> pd.Timestamp:
        return pd.Timestamp(self.emission_date) + pd.DateOffset(years=int(self.term))

    @property
    def label(self) -> str:
        return self.bond_id or self.name or "<unnamed bond>"

    def validate(self) -> None:
        """Raise InvalidParameterError if any term is outside its domain."""
        label = self.label

        if not _is_finite_number(self.nominal_value) or self.nominal_value <= 0:
            raise InvalidParameterError(f"{label}: nominal_value must be positive, got {self.nominal_value!r}.")
        if not _is_finite_number(self.interest_rate) or self.interest_rate < 0:
            raise InvalidParameterError(f"{label}: interest_rate must be >= 0, got {self.interest_rate!r}.")
        if not _is_whole(self.term) or self.term <= 0:
            raise InvalidParameterError(f"{label}: term must be a positive whole number of years, got {self.term!r}.")
        if not _is_whole(self.frequency) or self.frequency <= 0:
            raise InvalidParameterError(f"{label}: frequency must be positive, got {self.frequency!r}.")
        if self.frequency not in SUPPORTED_FREQUENCIES:
            raise InvalidParameterError(f"{label}: supported frequencies are {SUPPORTED_FREQUENCIES}, got {self.frequency}.")
        if not _is_whole(self.grace_periods) or self.grace_periods < 0:
            raise InvalidParameterError(f"{label}: grace_periods must be >= 0, got {self.grace_periods!r}.")
        if self.grace_periods >= self.total_periods:
            raise InvalidParameterError(
                f"{label}: grace_periods ({self.grace_periods}) must be less than total periods ({self.total_periods})."
            )
        if not isinstance(self.rate_type, RateType):
            raise InvalidParameterError(f"{label}: unknown rate type {self.rate_type!r}.")
        if not isinstance(self.amortization_type, AmortizationType):
            raise InvalidParameterError(f"{label}: unknown amortization type {self.amortization_type!r}.")
        if not isinstance(self.grace_type, GraceType):
            raise InvalidParameterError(f"{label}: unknown grace type {self.grace_type!r}.")
        try:
            emission = pd.Timestamp(self.emission_date)
        except (TypeError, ValueError) as exc:
            raise InvalidParameterError(f"{label}: invalid emission_date {self.emission_date!r}.") from exc
        if pd.isna(emission):
            raise InvalidParameterError(f"{label}: emission_date is missing.")


def _is_finite_number(x: Any) -> bool:
    return isinstance(x, numbers.Real) and not isinstance(x, bool) and math.isfinite(x)


def _is_whole(x: Any) -> bool:
    return _is_finite_number(x) and float(x) == int(x)


def _optional(record: Mapping[str, Any], key: str):
    """Column value, or None when absent, blank or NaN (rows coming from a DataFrame)."""
    value = record.get(key)
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def _whole_number(value: Any, field: str) -> int:
    """int(value) for whole numbers only; 2.5 is rejected rather than truncated."""
    number = float(value)
    if not number.is_integer():
        raise InvalidParameterError(f"{field} must be a whole number, got {value!r}.")
    return int(number)


def _parse_enum(enum_cls, value, default, field: str):
    if value is None:
        return default
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise InvalidParameterError(f"Unknown {field}: {value!r}.") from exc


def bond_from_record(record: Mapping[str, Any]) -> BondTerms:
    """
    Build BondTerms from a storage row (snake_case columns as persisted by the bonds table).

    Missing optional columns fall back to the BondTerms defaults. The result is validated.
    """
    try:
        nominal_value = float(record["nominal_value"])
        interest_rate = float(record["interest_rate"])
        term = _whole_number(record["term"], "term")
        frequency = _whole_number(record["frequency"], "frequency")
        grace_periods = _whole_number(_optional(record, "grace_periods") or 0, "grace_periods")
        emission_date = pd.Timestamp(record["emission_date"])
    except KeyError as exc:
        raise InvalidParameterError(f"Bond record is missing required field {exc.args[0]!r}.") from exc
    except (TypeError, ValueError, OverflowError) as exc:
        raise InvalidParameterError(f"Bond record has a malformed field: {exc}") from exc

    if pd.isna(emission_date):
        raise InvalidParameterError("Bond record has no emission_date.")

    capitalization = _optional(record, "capitalization")

    bond = BondTerms(
        nominal_value=nominal_value,
        interest_rate=interest_rate,
        term=term,
        frequency=frequency,
        emission_date=emission_date,
        rate_type=_parse_enum(RateType, _optional(record, "interest_rate_type"), RateType.EFFECTIVE, "interest_rate_type"),
        capitalization=capitalization,
        amortization_type=_parse_enum(
            AmortizationType, _optional(record, "amortization_type"), AmortizationType.BULLET, "amortization_type"
        ),
        grace_type=_parse_enum(GraceType, _optional(record, "grace_type"), GraceType.NONE, "grace_type"),
        grace_periods=grace_periods,
        currency=_parse_enum(Currency, _optional(record, "currency"), Currency.PEN, "currency"),
        bond_id=record_bond_id(record),
        name=str(_optional(record, "name") or ""),
    )
    bond.validate()
    return bond


def record_bond_id(record: Mapping[str, Any]) -> str:
    """Identifier of a storage row: `id`, else `bond_id`, else ''. Blank or NaN cells count as missing."""
    return str(_optional(record, "id") or _optional(record, "bond_id") or "")
