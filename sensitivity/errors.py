"""
OFAT Engine — Sensitivity Errors
"""

from typing import Optional


class SensitivityError(Exception):
    """Base class for every error raised by the sensitivity engine."""


class ValidationError(SensitivityError, ValueError):
    """Malformed or missing engine configuration (calculation, parameters, delta)."""


class CalculationError(SensitivityError):
    """
    The user calculation failed or returned a non-numeric value.
    `parameter`, `direction` and `case` identify the perturbation that
    triggered it; all three are None for the base case.
    """

    def __init__(
        self,
        message: str,
        parameter: Optional[str] = None,
        direction: Optional[int] = None,
        case: Optional[str] = None,
    ):
        super().__init__(message)
        self.parameter = parameter
        self.direction = direction
        self.case = case


class ReportError(SensitivityError):
    """A report cannot be derived from the given results."""
