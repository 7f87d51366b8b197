"""SafeSolidity MCP server: heuristic Solidity audits as tools.

Exposes the following MCP tools:

  Analysis
  ────────
  analyze_source       Analyze Solidity source text → Markdown report
  analyze_source_json  Same, but return the raw JSON AuditResult
  analyze_file         Analyze a .sol file on disk → Markdown report
  list_rules           List the built-in detection rules
  regenerate_report    Re-render the last result (Markdown or JSON)
  get_audit_json       Raw JSON of the last result
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .backends import BackendState, SlitherBackend
from .detectors import RULES
from .engine import analyze_with_backend
from .models import AnalysisConfig, AuditResult, Category
from .report import ReportFormat, generate_report

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s  %(name)s  %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("safesolidity_mcp")

# ---------------------------------------------------------------------------
# MCP server instance
# ---------------------------------------------------------------------------
mcp = FastMCP(
    "safesolidity-mcp",
    instructions=(
        "Rapid smart-contract auditing: scans Solidity source for reentrancy, "
        "tx.origin misuse, timestamp dependence, unchecked low-level calls, "
        "integer overflow and missing access control, with scored findings and "
        "a Markdown or JSON report. Optionally defers to Slither when installed."
    ),
)

# Shared state
_last_result: AuditResult | None = None

# Owned by the server; started lazily, disposed in main()
_backend = SlitherBackend()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _config_from_args(
    enabled_categories: list[str] | None,
    max_size_bytes: int | None,
) -> AnalysisConfig:
    """Build an AnalysisConfig from the raw tool arguments."""
    categories: frozenset[Category] | None = None
    if enabled_categories is not None:
        try:
            categories = frozenset(Category(c.upper()) for c in enabled_categories)
        except ValueError:
            valid = ", ".join(c.value for c in RULES)
            raise ValueError(
                f"Unknown category in {enabled_categories!r}; expected one of: {valid}"
            ) from None
    if max_size_bytes is None:
        return AnalysisConfig(enabled_categories=categories)
    return AnalysisConfig(enabled_categories=categories, max_size_bytes=max_size_bytes)


async def _run(
    source: str,
    enabled_categories: list[str] | None,
    max_size_bytes: int | None,
    use_backend: bool,
) -> AuditResult:
    global _last_result

    config = _config_from_args(enabled_categories, max_size_bytes)
    backend = None
    if use_backend:
        if _backend.state is BackendState.CREATED:
            await _backend.start()
        backend = _backend

    result = await analyze_with_backend(source, config, backend=backend)
    logger.info(
        "Analysis %s: %d findings, risk score %d",
        result.status.value, result.summary.total, result.summary.risk_score,
    )
    _last_result = result
    return result


# ---------------------------------------------------------------------------
# MCP Tools
# ---------------------------------------------------------------------------

@mcp.tool()
async def analyze_source(
    source: str,
    enabled_categories: list[str] | None = None,
    max_size_bytes: int | None = None,
    use_backend: bool = False,
) -> str:
    """Analyze Solidity source code and return a Markdown audit report.

    Args:
        source: Solidity source text.
        enabled_categories: Subset of rule categories to run (default: all),
            e.g. ["REENTRANCY", "TX_ORIGIN_MISUSE"].
        max_size_bytes: Override the input size cap (default: 1 MiB).
        use_backend: Try Slither first when it is installed.

    Returns:
        A full Markdown audit report.
    """
    result = await _run(source, enabled_categories, max_size_bytes, use_backend)
    return generate_report(result)


@mcp.tool()
async def analyze_source_json(
    source: str,
    enabled_categories: list[str] | None = None,
    max_size_bytes: int | None = None,
    use_backend: bool = False,
) -> str:
    """Analyze Solidity source code and return the AuditResult as JSON.

    Args:
        source: Solidity source text.
        enabled_categories: Subset of rule categories to run (default: all).
        max_size_bytes: Override the input size cap (default: 1 MiB).
        use_backend: Try Slither first when it is installed.
    """
    result = await _run(source, enabled_categories, max_size_bytes, use_backend)
    return result.to_json()


@mcp.tool()
async def analyze_file(
    file_path: str,
    enabled_categories: list[str] | None = None,
    use_backend: bool = False,
) -> str:
    """Analyze a Solidity file on disk and return a Markdown audit report.

    Args:
        file_path: Path to a .sol file.
        enabled_categories: Subset of rule categories to run (default: all).
        use_backend: Try Slither first when it is installed.
    """
    fp = Path(file_path)
    if not fp.is_file():
        return json.dumps({"error": f"File not found: {file_path}"})
    source = fp.read_text(errors="replace")
    result = await _run(source, enabled_categories, None, use_backend)
    return generate_report(result)


@mcp.tool()
async def list_rules() -> str:
    """List the built-in detection rules with severity and confidence."""
    rules = []
    for r in RULES.values():
        rules.append({
            "id": r.id,
            "category": r.category.value,
            "title": r.title,
            "severity": r.default_severity.value,
            "confidence": r.confidence,
            "enabled": r.enabled,
        })
    return json.dumps(rules, indent=2)


@mcp.tool()
async def regenerate_report(fmt: str = "markdown") -> str:
    """Re-render the report from the last analysis run.

    Args:
        fmt: "markdown" or "json".
    """
    if _last_result is None:
        return "No analysis result cached. Run `analyze_source` first."
    return generate_report(_last_result, ReportFormat(fmt.lower()))


@mcp.tool()
async def get_audit_json() -> str:
    """Return the last analysis result as raw JSON (for programmatic consumption)."""
    if _last_result is None:
        return json.dumps({"error": "No analysis result cached. Run `analyze_source` first."})
    return _last_result.to_json()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    try:
        mcp.run(transport="stdio")
    finally:
        _backend.dispose()


if __name__ == "__main__":
    main()
