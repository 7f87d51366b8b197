"""Finding assembly: raw matches -> deduplicated, scored, ordered findings.

Two matches with the same category on the same line collapse into one
finding; the first one seen keeps its column and matched text.  Severity,
confidence and wording always come from the static rule, never from the
matcher.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping

from .detectors.registry import RULES, Rule
from .models import Category, Finding, Location, RawMatch
from .scanner import SourceDocument

logger = logging.getLogger(__name__)


def extract_snippet(doc: SourceDocument, line: int, context: int = 2) -> str:
    """Original source lines ``[line-context, line+context]``, clamped."""
    first = max(1, line - context)
    last = min(doc.line_count, line + context)
    return "\n".join(doc.lines[first - 1:last])


def sort_findings(findings: Iterable[Finding]) -> list[Finding]:
    """Severity descending, then line, column and category ascending."""
    return sorted(
        findings,
        key=lambda f: (f.severity.rank, f.location.line, f.location.column, f.category.value),
    )


def assemble(
    doc: SourceDocument,
    matches: Iterable[RawMatch],
    *,
    rules: Mapping[Category, Rule] = RULES,
    context: int = 2,
) -> list[Finding]:
    """Turn raw matches into findings.

    Returns findings ordered by severity (CRITICAL first), ties broken by
    ascending line.
    """
    first_seen: dict[tuple[Category, int], RawMatch] = {}
    dropped = 0
    for m in matches:
        line = min(max(m.line_number, 1), doc.line_count)
        key = (m.category, line)
        if key in first_seen:
            dropped += 1
            continue
        first_seen[key] = m

    unordered: list[tuple[Rule, int, RawMatch]] = []
    for (category, line), m in first_seen.items():
        rule = rules.get(category)
        if rule is None:
            logger.debug("No rule for category %s; dropping match", category.value)
            continue
        unordered.append((rule, line, m))

    drafts = sort_findings(
        Finding(
            id="",
            title=rule.title,
            description=rule.description,
            severity=rule.default_severity,
            category=rule.category,
            location=Location(line=line, column=max(m.column_start, 1)),
            snippet=extract_snippet(doc, line, context),
            confidence=rule.confidence,
            recommendation=rule.recommendation,
            references=rule.references,
        )
        for rule, line, m in unordered
    )

    # Ids are per-run sequence numbers within each category
    counters: dict[Category, int] = defaultdict(int)
    findings: list[Finding] = []
    for f in drafts:
        counters[f.category] += 1
        rule_id = rules[f.category].id
        findings.append(f.model_copy(update={"id": f"{rule_id}-{counters[f.category]}"}))

    if dropped:
        logger.debug("Assembler collapsed %d duplicate matches", dropped)
    return findings
