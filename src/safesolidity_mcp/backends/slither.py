"""Native backend for Trail of Bits Slither static analyser."""

from __future__ import annotations

import json
import logging
import re
import shutil
import tempfile
from pathlib import Path

from thefuzz import fuzz, process

from ..assembler import sort_findings
from ..detectors.registry import RULES
from ..models import Category, Finding, Location, Severity
from .base import BackendUnavailableError, NativeBackend

logger = logging.getLogger(__name__)

# Slither impact/confidence strings -> our scale
_SEV_MAP: dict[str, Severity] = {
    "High": Severity.HIGH,
    "Medium": Severity.MEDIUM,
    "Low": Severity.LOW,
    "Informational": Severity.INFO,
    "Optimization": Severity.INFO,
}
_CONF_MAP: dict[str, int] = {
    "High": 85,
    "Medium": 60,
    "Low": 35,
}

# Detectors whose presence almost always warrants Critical
_CRITICAL_DETECTORS = frozenset({
    "suicidal",
    "unprotected-upgrade",
    "arbitrary-send-eth",
    "controlled-delegatecall",
    "reentrancy-eth",
})

# Slither checks that correspond to one of our categories
_CHECK_ALIASES: dict[str, Category] = {
    "reentrancy-eth": Category.REENTRANCY,
    "reentrancy-no-eth": Category.REENTRANCY,
    "reentrancy-benign": Category.REENTRANCY,
    "reentrancy-events": Category.REENTRANCY,
    "reentrancy-unlimited-gas": Category.REENTRANCY,
    "tx-origin": Category.TX_ORIGIN_MISUSE,
    "timestamp": Category.TIMESTAMP_DEPENDENCE,
    "unchecked-lowlevel": Category.UNCHECKED_CALL,
    "unchecked-send": Category.UNCHECKED_CALL,
    "low-level-calls": Category.UNCHECKED_CALL,
    "controlled-delegatecall": Category.UNCHECKED_CALL,
    "divide-before-multiply": Category.INTEGER_OVERFLOW,
    "suicidal": Category.ACCESS_CONTROL,
    "unprotected-upgrade": Category.ACCESS_CONTROL,
    "arbitrary-send-eth": Category.ACCESS_CONTROL,
}

# Keywords for checks the alias table doesn't know, matched fuzzily
_CATEGORY_KEYWORDS: dict[str, Category] = {
    "reentrancy": Category.REENTRANCY,
    "tx origin": Category.TX_ORIGIN_MISUSE,
    "timestamp": Category.TIMESTAMP_DEPENDENCE,
    "unchecked low level call": Category.UNCHECKED_CALL,
    "unchecked send": Category.UNCHECKED_CALL,
    "integer overflow": Category.INTEGER_OVERFLOW,
    "arithmetic": Category.INTEGER_OVERFLOW,
    "unprotected access control": Category.ACCESS_CONTROL,
}
_FUZZY_THRESHOLD = 80

_SOURCE_NAME = "Contract.sol"


def category_for_check(check: str) -> Category:
    """Map a Slither detector name onto a category (``OTHER`` if none fits)."""
    if check in _CHECK_ALIASES:
        return _CHECK_ALIASES[check]
    query = check.replace("-", " ").replace("_", " ")
    best = process.extractOne(
        query,
        list(_CATEGORY_KEYWORDS),
        scorer=fuzz.token_set_ratio,
        score_cutoff=_FUZZY_THRESHOLD,
    )
    if best is None:
        return Category.OTHER
    return _CATEGORY_KEYWORDS[best[0]]


class SlitherBackend(NativeBackend):
    name = "slither"

    def __init__(self, executable: str = "slither") -> None:
        super().__init__()
        self.executable = executable

    async def _probe(self) -> str:
        if shutil.which(self.executable) is None:
            raise BackendUnavailableError(f"{self.executable} not found on PATH")
        stdout, stderr, rc = await self._exec(
            [self.executable, "--version"], cwd=Path.cwd(), timeout=30,
        )
        if rc != 0:
            raise RuntimeError(f"{self.executable} --version exited {rc}: {stderr[:200]}")
        return stdout.strip() or "unknown"

    async def _analyze(self, source_code: str, *, timeout: int) -> list[Finding]:
        with tempfile.TemporaryDirectory(prefix="safesolidity-") as tmp:
            workdir = Path(tmp)
            (workdir / _SOURCE_NAME).write_text(source_code)
            out_path = workdir / "slither.json"

            _stdout, stderr, rc = await self._exec(
                [self.executable, _SOURCE_NAME, "--json", str(out_path)],
                cwd=workdir, timeout=timeout,
            )
            # Slither exits non-zero when it finds issues; that's expected
            if not out_path.exists():
                raise RuntimeError(f"slither exited {rc} without output: {stderr[:500]}")
            raw = out_path.read_text()

        return self.parse(raw, source_code)

    # -----------------------------------------------------------------------

    def parse(self, raw: str, source_code: str) -> list[Finding]:
        """Convert Slither JSON output to findings located in *source_code*."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise RuntimeError("Failed to parse slither JSON output") from exc

        if not data.get("success", True):
            raise RuntimeError(data.get("error") or "slither reported failure")

        results: list[dict] = (data.get("results") or {}).get("detectors", [])
        lines = source_code.split("\n")
        counters: dict[str, int] = {}
        findings: list[Finding] = []

        for det in results:
            check = det.get("check", "unknown")
            severity = _SEV_MAP.get(det.get("impact", "Informational"), Severity.INFO)
            # Promote to critical for known dangerous detectors
            if check in _CRITICAL_DETECTORS:
                severity = Severity.CRITICAL

            category = category_for_check(check)
            line, column = self._first_location(det.get("elements", []), len(lines))
            counters[check] = counters.get(check, 0) + 1
            rule = RULES.get(category)

            findings.append(Finding(
                id=f"slither-{check}-{counters[check]}",
                title=det.get("title") or check.replace("-", " ").capitalize(),
                description=re.sub(r"\s+", " ", det.get("description", "")).strip(),
                severity=severity,
                category=category,
                location=Location(line=line, column=column),
                snippet="\n".join(lines[max(0, line - 3):min(len(lines), line + 2)]),
                confidence=_CONF_MAP.get(det.get("confidence", "Medium"), 60),
                recommendation=rule.recommendation if rule else "",
                references=tuple(r for r in [det.get("wiki_url") or det.get("wiki", "")] if r),
            ))

        return sort_findings(findings)

    @staticmethod
    def _first_location(elements: list[dict], line_count: int) -> tuple[int, int]:
        for el in elements:
            src = el.get("source_mapping") or {}
            src_lines = src.get("lines") or []
            if src_lines:
                line = min(max(min(src_lines), 1), line_count)
                return line, max(int(src.get("starting_column") or 1), 1)
        return 1, 1
