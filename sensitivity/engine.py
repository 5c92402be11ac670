"""
OFAT Engine — Sensitivity Analysis Engine
One-factor-at-a-time perturbation analysis: scale each parameter up and
down by delta while holding the others at their base values, and record
the calculation output for every case.

Perturbations are independent, so they can optionally be evaluated on a
thread pool; the result is identical to the sequential run.
"""

import logging
import numbers
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from .errors import CalculationError, ValidationError
from .labels import DIRECTIONS, case_label, case_labels
from .models import ResultSet, SensitivityConfig
from .report import text_report

logger = logging.getLogger(__name__)


# ─── Helpers ───

def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _validate(**fields) -> SensitivityConfig:
    try:
        return SensitivityConfig(**fields)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid sensitivity configuration: {problems}") from e


def _perturbed(parameters: Mapping[str, float], name: str, direction: int, delta: float) -> dict[str, float]:
    """Copy of `parameters` with only `name` scaled by (1 + direction * delta)."""
    p = dict(parameters)
    p[name] = (1 + direction * delta) * parameters[name]
    return p


def _evaluate(config: SensitivityConfig, name: str, direction: int) -> float:
    case = case_label(direction, config.delta)
    p = _perturbed(config.parameters, name, direction, config.delta)
    try:
        value = config.calculation(p)
    except Exception as e:
        logger.warning("Calculation failed for %s %s: %s", name, case, e)
        raise CalculationError(
            f"Calculation failed for parameter '{name}' case {case}: {e}",
            parameter=name, direction=direction, case=case,
        ) from e
    if not _is_number(value):
        raise CalculationError(
            f"Calculation returned non-numeric value {value!r} for parameter '{name}' case {case}",
            parameter=name, direction=direction, case=case,
        )
    return value


# ─── Functional core ───

def base(config: SensitivityConfig) -> float:
    """
    Output of the calculation at the base case.
    Exceptions raised by the calculation propagate unchanged.
    """
    value = config.calculation(dict(config.parameters))
    if not _is_number(value):
        raise CalculationError(f"Calculation returned non-numeric base value {value!r}")
    return value


def run(config: SensitivityConfig, max_workers: Optional[int] = None) -> ResultSet:
    """
    Evaluate every parameter at +delta and -delta.

    Returns a ResultSet keyed by parameter name, then by case label.
    Any failing case raises CalculationError; no partial result is returned.
    """
    if max_workers is not None and max_workers < 1:
        raise ValueError(f"max_workers must be at least 1, got {max_workers!r}")

    cases = [(name, d) for name in config.parameters for d in DIRECTIONS]

    if max_workers is not None and max_workers > 1 and len(cases) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = [pool.submit(_evaluate, config, name, d) for name, d in cases]
            try:
                values = [f.result() for f in futures]
            except CalculationError:
                for f in futures:
                    f.cancel()
                raise
    else:
        values = [_evaluate(config, name, d) for name, d in cases]

    results: dict[str, dict[str, float]] = {name: {} for name in config.parameters}
    for (name, d), value in zip(cases, values):
        results[name][case_label(d, config.delta)] = value

    logger.debug(
        "Sensitivity run: %d parameters, %d evaluations, delta=%s",
        len(results), len(values), config.delta,
    )
    return ResultSet(config.delta, case_labels(config.delta), results)


# ─── Engine object ───

class SensitivityEngine:
    """
    Holds a calculation, its base-case parameters and a perturbation delta.

    Each accessor can be reassigned after construction; assignment
    re-validates and replaces the whole configuration record.

        engine = SensitivityEngine(
            calculation=lambda p: p["alpha"] + p["beta"],
            parameters={"alpha": 1.1, "beta": 0.2},
            delta=0.1,
        )
        results = engine.run()
        print(engine.text_report(results))
    """

    def __init__(self, **config):
        # calculation, parameters and delta are all required
        self._config = _validate(**config)

    @property
    def config(self) -> SensitivityConfig:
        return self._config

    def _replace(self, **changes):
        fields = {
            "calculation": self._config.calculation,
            "parameters": self._config.parameters,
            "delta": self._config.delta,
        }
        fields.update(changes)
        self._config = _validate(**fields)

    @property
    def calculation(self) -> Callable[[dict], float]:
        return self._config.calculation

    @calculation.setter
    def calculation(self, value: Callable[[dict], float]):
        self._replace(calculation=value)

    @property
    def parameters(self) -> dict[str, float]:
        return dict(self._config.parameters)

    @parameters.setter
    def parameters(self, value: Mapping[str, float]):
        self._replace(parameters=value)

    @property
    def delta(self) -> float:
        return self._config.delta

    @delta.setter
    def delta(self, value: float):
        self._replace(delta=value)

    def case(self, direction: int) -> str:
        """Case label for direction +1/-1 at the current delta."""
        return case_label(direction, self._config.delta)

    def base(self) -> float:
        return base(self._config)

    def run(self, max_workers: Optional[int] = None) -> ResultSet:
        return run(self._config, max_workers=max_workers)

    def text_report(self, results: Mapping[str, Mapping[str, float]]) -> str:
        return text_report(self, results)

    def __repr__(self) -> str:
        return (
            f"SensitivityEngine(parameters={self.parameters!r}, delta={self.delta!r})"
        )
