"""Markdown / JSON renderings of an ``AuditResult``."""

from __future__ import annotations

from enum import Enum

from .aggregator import risk_level
from .models import AuditResult, AuditStatus, Severity


class ReportFormat(str, Enum):
    MARKDOWN = "markdown"
    JSON = "json"


_SEVERITY_BADGE: dict[Severity, str] = {
    Severity.CRITICAL: "🔴",
    Severity.HIGH: "🟠",
    Severity.MEDIUM: "🟡",
    Severity.LOW: "🔵",
    Severity.INFO: "⚪",
}


def generate_report(
    result: AuditResult,
    fmt: ReportFormat | str = ReportFormat.MARKDOWN,
    *,
    include_code: bool = True,
) -> str:
    fmt = ReportFormat(fmt)
    if fmt is ReportFormat.JSON:
        return result.to_json()
    return _markdown(result, include_code=include_code)


def _markdown(result: AuditResult, *, include_code: bool) -> str:
    meta = result.metadata
    title = f"Smart Contract Audit Report: {meta.name}" if meta.name else "Smart Contract Audit Report"
    out: list[str] = [f"# {title}", ""]

    if result.status is AuditStatus.FAILED:
        out += ["**Status:** FAILED", "", f"> {result.error}", ""]
        return "\n".join(out)

    s = result.summary
    level = risk_level(s.risk_score)
    out += [
        "## Summary",
        "",
        f"**Risk score:** {s.risk_score}/100 ({level.upper()} RISK)",
        "",
        "| Severity | Count |",
        "|----------|-------|",
        f"| Critical | {s.critical} |",
        f"| High | {s.high} |",
        f"| Medium | {s.medium} |",
        f"| Low | {s.low} |",
        f"| Info | {s.info} |",
        f"| **Total** | **{s.total}** |",
        "",
    ]

    out += ["## Findings", ""]
    if not result.vulnerabilities:
        out += ["No issues detected.", ""]
    for f in result.vulnerabilities:
        out += [
            f"### {_SEVERITY_BADGE[f.severity]} [{f.severity.value}] {f.title}",
            "",
            f"- **ID:** `{f.id}`",
            f"- **Category:** {f.category.value}",
            f"- **Location:** line {f.location.line}, column {f.location.column}",
            f"- **Confidence:** {f.confidence}%",
            "",
        ]
        if f.description:
            out += [f.description, ""]
        if include_code and f.snippet:
            out += ["```solidity", f.snippet, "```", ""]
        if f.recommendation:
            out += [f"**Recommendation:** {f.recommendation}", ""]
        if f.references:
            out += ["**References:** " + ", ".join(f.references), ""]

    if result.recommendations:
        out += ["## Recommendations", ""]
        out += [f"{i}. {rec}" for i, rec in enumerate(result.recommendations, 1)]
        out.append("")

    out += [
        "## Contract Metadata",
        "",
        f"- **Name:** {meta.name or 'n/a'}",
        f"- **Compiler:** {meta.compiler or 'n/a'}",
        f"- **Size:** {meta.size} bytes",
        f"- **Lines of code:** {meta.lines_of_code}",
        f"- **Functions:** {meta.functions}",
        f"- **Complexity:** {meta.complexity}",
    ]
    if meta.duration is not None:
        out.append(f"- **Analysis time:** {_format_duration(meta.duration)}")
    if result.engines:
        engines = ", ".join(f"{e.name} {e.version}" for e in result.engines)
        out.append(f"- **Engine:** {engines}")
    out.append("")

    return "\n".join(out)


def _format_duration(ms: int) -> str:
    if ms < 1000:
        return f"{ms}ms"
    return f"{round(ms / 100) / 10}s"
