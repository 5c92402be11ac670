"""OFAT Engine Sensitivity — One-Factor-at-a-Time Sensitivity Analysis."""
from .models import *  # noqa: F401,F403
from .errors import SensitivityError, ValidationError, CalculationError, ReportError  # noqa: F401
from .labels import case_label, case_labels  # noqa: F401
from .engine import SensitivityEngine, base, run  # noqa: F401
from .report import format_report, percent_impacts, text_report  # noqa: F401
