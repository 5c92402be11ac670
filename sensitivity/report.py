"""
OFAT Engine — Sensitivity Report
Percentage impact of each perturbation relative to the base case,
and the plain-text table built from it.
"""

import math
from typing import Mapping, Optional

from .errors import ReportError
from .labels import case_labels

NAME_WIDTH = 12
CASE_WIDTH = 9
RULE = "-" * 36


def percent_impacts(
    engine,
    results: Mapping[str, Mapping[str, float]],
    base: Optional[float] = None,
) -> dict[str, dict[str, float]]:
    """
    % change in output vs the base case for every parameter and case:
    (value / base - 1) * 100.

    `base` defaults to engine.base(); pass it when already computed.

    `results` must come from a run under the engine's current delta. A
    ResultSet computed under another delta raises ReportError instead of
    being read against the wrong labels.
    """
    if base is None:
        base = engine.base()
    if not base or math.isnan(base):
        raise ReportError("Base case is zero or undefined. Cannot generate report.")

    delta = engine.delta
    result_delta = getattr(results, "delta", delta)
    if result_delta != delta:
        raise ReportError(
            f"Results were computed with delta {result_delta!r} but the engine delta is now "
            f"{delta!r}. Re-run the analysis before reporting."
        )

    labels = case_labels(delta)
    impacts = {}
    for name, cases in results.items():
        row = {}
        for label in labels:
            if label not in cases:
                raise ReportError(f"Parameter '{name}' has no result for case {label}")
            row[label] = (cases[label] / base - 1) * 100
        impacts[name] = row
    return impacts


def format_report(engine, impacts: Mapping[str, Mapping[str, float]]) -> str:
    """Render percentage impacts as a text table under the engine's current case labels."""
    pos, neg = case_labels(engine.delta)

    lines = [f"{'Parameter':>{NAME_WIDTH}} {pos:>{CASE_WIDTH}} {neg:>{CASE_WIDTH}}", RULE]
    for name, row in impacts.items():
        lines.append(
            f"{name:>{NAME_WIDTH}} {row[pos]:>+{CASE_WIDTH}.2f}% {row[neg]:>+{CASE_WIDTH}.2f}%"
        )
    return "\n".join(lines) + "\n"


def text_report(engine, results: Mapping[str, Mapping[str, float]]) -> str:
    """Multi-line text table of percentage impacts, one row per parameter."""
    return format_report(engine, percent_impacts(engine, results))
