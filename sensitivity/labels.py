"""
OFAT Engine — Case Labels
Text labels identifying the two perturbation cases of a delta.
"""

DIRECTIONS = (1, -1)


def case_label(direction: int, delta: float) -> str:
    """
    Label for a perturbation case, e.g. "+10%" / "-10%" for delta 0.1.
    The percentage is written with 15 significant digits ('%.15g'), which
    drops float noise such as 0.07 * 100 == 7.000000000000001.
    """
    if direction == 1:
        sign = "+"
    elif direction == -1:
        sign = "-"
    else:
        raise ValueError(f"direction must be +1 or -1, got {direction!r}")
    return f"{sign}{delta * 100:.15g}%"


def case_labels(delta: float) -> tuple[str, str]:
    """(positive, negative) labels for a delta."""
    return case_label(1, delta), case_label(-1, delta)
