"""
OFAT Engine — Sensitivity Analysis Data Models
Configuration record for one-factor-at-a-time perturbation analysis,
the result snapshot it produces, and the API request/response schemas.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, field_validator

Number = Union[StrictInt, StrictFloat]


class SensitivityConfig(BaseModel):
    """
    Immutable engine configuration.
    `parameters` is copied on validation and stored as a read-only view, so
    neither the caller's dict nor `config.parameters` can alter the recorded
    base case.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    calculation: Callable[..., Any] = Field(
        ..., description="Function of a parameter mapping returning a single number.",
    )
    parameters: dict[str, Number] = Field(
        ..., min_length=1, description="Base-case parameter values by name.",
    )
    delta: Number = Field(
        ..., description="Relative perturbation as a fraction (0.1 = ±10%).",
    )

    @field_validator("parameters", mode="after")
    @classmethod
    def freeze_parameters(cls, v):
        # read-only view; the base case only changes by replacing the config
        return MappingProxyType(v)


class ResultSet(Mapping):
    """
    Read-only result of a sensitivity run.

    Maps each parameter name to ``{positive_case: value, negative_case: value}``
    and remembers the delta it was computed under, since the case labels are
    only meaningful for that delta.
    """

    def __init__(self, delta: float, cases: tuple[str, str], results: Mapping[str, Mapping[str, float]]):
        self._delta = delta
        self._cases = cases
        self._results = {
            name: MappingProxyType(dict(values)) for name, values in results.items()
        }

    @property
    def delta(self) -> float:
        return self._delta

    @property
    def labels(self) -> tuple[str, str]:
        """(positive, negative) case labels for this result's delta."""
        return self._cases

    def __getitem__(self, key: str) -> Mapping[str, float]:
        return self._results[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def as_dict(self) -> dict[str, dict[str, float]]:
        return {name: dict(values) for name, values in self._results.items()}

    def __repr__(self) -> str:
        return f"ResultSet(delta={self._delta!r}, results={self.as_dict()!r})"


# ─── API schemas ───

class SensitivityRequest(BaseModel):
    """
    Sensitivity analysis request.
    Names a calculation registered with the server, the base-case parameters
    and the perturbation fraction.
    """
    calculation: str = Field(..., description="Name of a registered calculation, e.g. 'sum'.")
    parameters: dict[str, float] = Field(
        ..., min_length=1,
        description="Base-case parameter values by name. Example: {'alpha': 1.1, 'beta': 0.2}.",
    )
    delta: float = Field(0.1, description="Perturbation fraction. 0.1 perturbs every parameter by ±10%.")
    max_workers: Optional[int] = Field(
        None, ge=1, le=32,
        description="Evaluate perturbations on a thread pool of this size. Sequential if omitted.",
    )


class SensitivityResponse(BaseModel):
    """
    Complete sensitivity analysis response.
    Raw perturbed outputs, their percentage deviation from the base case,
    and the rendered text report.
    """
    status: str = Field(..., description="'completed' or 'error'.")
    message: str
    delta: float = Field(0)
    base: Optional[float] = Field(None, description="Calculation output at the base case.")
    cases: list[str] = Field(default_factory=list, description="[positive, negative] case labels.")
    results: dict[str, dict[str, float]] = Field(default_factory=dict)
    impacts: dict[str, dict[str, float]] = Field(
        default_factory=dict,
        description="% change in output vs base case, per parameter and case.",
    )
    report: str = Field("", description="Plain-text report.")
