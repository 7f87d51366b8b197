"""SafeSolidity: heuristic smart-contract vulnerability scanner."""

__version__ = "0.1.0"

from .engine import analyze, analyze_with_backend  # noqa: E402
from .models import (  # noqa: E402
    AnalysisConfig,
    AuditResult,
    AuditStatus,
    Category,
    Finding,
    Severity,
)

__all__ = [
    "analyze",
    "analyze_with_backend",
    "AnalysisConfig",
    "AuditResult",
    "AuditStatus",
    "Category",
    "Finding",
    "Severity",
]
