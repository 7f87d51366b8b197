"""Summary statistics, risk score and recommendation list."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .models import Category, Finding, Severity, VulnerabilitySummary

# Single canonical weight table for the risk score
SEVERITY_WEIGHTS: dict[Severity, int] = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 10,
    Severity.MEDIUM: 5,
    Severity.LOW: 2,
    Severity.INFO: 1,
}

MAX_RISK_SCORE = 100

CATEGORY_RECOMMENDATIONS: dict[Category, tuple[str, ...]] = {
    Category.REENTRANCY: (
        "Implement reentrancy guards using OpenZeppelin's ReentrancyGuard",
        "Follow the checks-effects-interactions pattern",
    ),
    Category.TX_ORIGIN_MISUSE: (
        "Replace tx.origin with msg.sender for authorization",
    ),
    Category.ACCESS_CONTROL: (
        "Use OpenZeppelin's AccessControl or Ownable contracts",
    ),
    Category.UNCHECKED_CALL: (
        "Always check the return value of external calls",
        "Consider using SafeERC20 for token interactions",
    ),
    Category.INTEGER_OVERFLOW: (
        "Use Solidity ^0.8.0 for automatic overflow protection",
        "Consider using OpenZeppelin's SafeMath for older versions",
    ),
    Category.TIMESTAMP_DEPENDENCE: (
        "Avoid using block.timestamp for randomness or precise timing decisions",
    ),
}

GENERAL_RECOMMENDATIONS: tuple[str, ...] = (
    "Conduct thorough testing including edge cases",
    "Consider getting a professional security audit",
    "Implement proper event logging for important state changes",
)

# (lower bound, level), checked top-down
_RISK_LEVELS: tuple[tuple[int, str], ...] = (
    (80, "critical"),
    (60, "high"),
    (40, "medium"),
    (20, "low"),
)


def risk_score(findings: Iterable[Finding]) -> int:
    total = sum(SEVERITY_WEIGHTS[f.severity] for f in findings)
    return min(MAX_RISK_SCORE, total)


def summarize(findings: Sequence[Finding]) -> VulnerabilitySummary:
    counts = {s: 0 for s in Severity}
    for f in findings:
        counts[f.severity] += 1
    return VulnerabilitySummary(
        total=len(findings),
        critical=counts[Severity.CRITICAL],
        high=counts[Severity.HIGH],
        medium=counts[Severity.MEDIUM],
        low=counts[Severity.LOW],
        info=counts[Severity.INFO],
        risk_score=risk_score(findings),
    )


def generate_recommendations(findings: Iterable[Finding]) -> list[str]:
    """Category advice in finding order, then the general advice, deduplicated.

    Findings arrive ranked by severity, so advice for the worst categories
    comes first.
    """
    recommendations: dict[str, None] = {}
    for f in findings:
        for rec in CATEGORY_RECOMMENDATIONS.get(f.category, ()):
            recommendations.setdefault(rec)
    for rec in GENERAL_RECOMMENDATIONS:
        recommendations.setdefault(rec)
    return list(recommendations)


def risk_level(score: int) -> str:
    """Band a 0-100 risk score into critical/high/medium/low/minimal."""
    for bound, level in _RISK_LEVELS:
        if score >= bound:
            return level
    return "minimal"
