# config.py
# Purpose: Numerical constants and solver settings shared by the engine modules

from __future__ import annotations

from dataclasses import dataclass

MONTHS_PER_YEAR = 12
SUPPORTED_FREQUENCIES = (1, 2, 4, 12)

# Newton-Raphson IRR policy
IRR_INITIAL_GUESS = 0.05
IRR_MAX_ITER = 1000
IRR_TOLERANCE = 1e-6
IRR_RATE_FLOOR = -0.99

# Bracket for the optional brentq solve (periodic rates)
BRACKET_LOW = -0.5
BRACKET_HIGH = 10.0

BASIS_POINT = 1 / 10000.0


@dataclass(frozen=True)
class SolverSettings:
    initial_guess: float = IRR_INITIAL_GUESS
    max_iter: int = IRR_MAX_ITER
    tol: float = IRR_TOLERANCE
    rate_floor: float = IRR_RATE_FLOOR
    method: str = "newton"  # "newton" or "brentq"
    bracket: tuple = (BRACKET_LOW, BRACKET_HIGH)


DEFAULT_SOLVER_SETTINGS = SolverSettings()
