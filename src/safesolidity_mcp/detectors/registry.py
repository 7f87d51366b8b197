"""Rule table and detector registry."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Collection, Iterator
from dataclasses import dataclass
from types import MappingProxyType

from ..errors import InternalAnalysisFailure
from ..models import Category, RawMatch, Severity
from ..scanner import SourceDocument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rule:
    """Static definition of one category's detection rule."""

    id: str
    category: Category
    title: str
    default_severity: Severity
    confidence: int  # fixed heuristic weight, 0-100
    description: str
    recommendation: str
    references: tuple[str, ...] = ()
    enabled: bool = True


# ---------------------------------------------------------------------------
# Process-wide constant rule table
# ---------------------------------------------------------------------------
RULES: MappingProxyType[Category, Rule] = MappingProxyType({
    Category.REENTRANCY: Rule(
        id="SS-REENTRANCY",
        category=Category.REENTRANCY,
        title="Reentrancy: external call before state update",
        default_severity=Severity.CRITICAL,
        confidence=85,
        description=(
            "An external call that transfers value happens before the contract "
            "updates its own state. A malicious receiver can re-enter the "
            "function and act on the stale state, e.g. withdraw repeatedly."
        ),
        recommendation=(
            "Follow checks-effects-interactions: update balances before the "
            "external call, or protect the function with a `nonReentrant` guard."
        ),
        references=("https://swcregistry.io/docs/SWC-107",),
    ),
    Category.TX_ORIGIN_MISUSE: Rule(
        id="SS-TX-ORIGIN",
        category=Category.TX_ORIGIN_MISUSE,
        title="Authorization through tx.origin",
        default_severity=Severity.HIGH,
        confidence=90,
        description=(
            "`tx.origin` is compared or required in an authorization check. Any "
            "contract the legitimate user calls can relay into this one and pass "
            "the check on the user's behalf."
        ),
        recommendation="Use `msg.sender` instead of `tx.origin` for authorization.",
        references=("https://swcregistry.io/docs/SWC-115",),
    ),
    Category.TIMESTAMP_DEPENDENCE: Rule(
        id="SS-TIMESTAMP",
        category=Category.TIMESTAMP_DEPENDENCE,
        title="Control flow depends on block timestamp",
        default_severity=Severity.MEDIUM,
        confidence=60,
        description=(
            "`block.timestamp` (or `now`) decides a branch or a return value. "
            "Block producers can shift the timestamp within a tolerance window "
            "to influence the outcome."
        ),
        recommendation=(
            "Do not use the block timestamp as a source of randomness or for "
            "fine-grained timing decisions; tolerate a drift of several seconds."
        ),
        references=("https://swcregistry.io/docs/SWC-116",),
    ),
    Category.UNCHECKED_CALL: Rule(
        id="SS-UNCHECKED-CALL",
        category=Category.UNCHECKED_CALL,
        title="Unchecked low-level call",
        default_severity=Severity.HIGH,
        confidence=80,
        description=(
            "The boolean returned by a low-level `call`, `send` or `delegatecall` "
            "is neither checked in the same statement nor in the next one. A "
            "failed call will be silently ignored."
        ),
        recommendation=(
            "Capture the return value: `(bool success, ) = addr.call{value: amt}(\"\");` "
            "and `require(success, \"call failed\");`"
        ),
        references=("https://swcregistry.io/docs/SWC-104",),
    ),
    Category.INTEGER_OVERFLOW: Rule(
        id="SS-INTEGER-OVERFLOW",
        category=Category.INTEGER_OVERFLOW,
        title="Unprotected integer arithmetic",
        default_severity=Severity.HIGH,
        confidence=75,
        description=(
            "Integer arithmetic runs without overflow protection: the compiler "
            "pragma allows versions below 0.8.0 and SafeMath is not used, or "
            "the operation sits inside an `unchecked` block."
        ),
        recommendation=(
            "Compile with Solidity ^0.8.0 for checked arithmetic, or use "
            "OpenZeppelin's SafeMath on older compilers."
        ),
        references=("https://swcregistry.io/docs/SWC-101",),
    ),
    Category.ACCESS_CONTROL: Rule(
        id="SS-ACCESS-CONTROL",
        category=Category.ACCESS_CONTROL,
        title="State-changing function without access control",
        default_severity=Severity.MEDIUM,
        confidence=70,
        description=(
            "A public or external function writes contract-wide state but has no "
            "recognizable authorization modifier or `msg.sender` check, so any "
            "account can call it."
        ),
        recommendation=(
            "Restrict the function with `onlyOwner`/`onlyRole` (OpenZeppelin "
            "Ownable or AccessControl) or an explicit `msg.sender` check."
        ),
        references=(
            "https://swcregistry.io/docs/SWC-105",
            "https://swcregistry.io/docs/SWC-106",
        ),
    ),
})


# ---------------------------------------------------------------------------
# Detector interface
# ---------------------------------------------------------------------------

class BaseDetector(ABC):
    """Every detector inherits from this.

    Subclasses yield candidate matches from :meth:`iter_matches`; :meth:`match`
    keeps the first one per line so a single line never triggers twice.
    """

    name: str  # unique slug, e.g. "reentrancy"
    category: Category
    description: str = ""

    @property
    def rule(self) -> Rule:
        return RULES[self.category]

    @abstractmethod
    def iter_matches(self, doc: SourceDocument) -> Iterator[RawMatch]:
        """Scan the stripped source and yield raw hits."""

    def match(self, doc: SourceDocument) -> list[RawMatch]:
        seen: set[int] = set()
        results: list[RawMatch] = []
        for m in self.iter_matches(doc):
            if m.line_number in seen:
                continue
            seen.add(m.line_number)
            results.append(m)
        return results

    def _hit(self, doc: SourceDocument, offset: int, text: str) -> RawMatch:
        line, column = doc.line_col(offset)
        return RawMatch(
            category=self.category,
            line_number=line,
            column_start=column,
            matched_text=text,
        )


class DetectorRegistry:
    """Holds detector instances keyed by category."""

    def __init__(self) -> None:
        self._detectors: dict[Category, BaseDetector] = {}

    def register(self, detector: BaseDetector) -> None:
        self._detectors[detector.category] = detector
        logger.debug("Registered detector: %s", detector.name)

    @property
    def all(self) -> list[BaseDetector]:
        return list(self._detectors.values())

    def run_all(
        self,
        doc: SourceDocument,
        *,
        only: Collection[Category] | None = None,
    ) -> list[RawMatch]:
        """Run selected (or all enabled) detectors and collect raw matches.

        A detector that raises aborts the whole run: partial results would
        silently under-report.
        """
        matches: list[RawMatch] = []

        for det in self._detectors.values():
            if only is not None and det.category not in only:
                continue
            if only is None and not det.rule.enabled:
                continue
            try:
                results = det.match(doc)
            except Exception as exc:
                logger.exception("Detector %s failed", det.name)
                raise InternalAnalysisFailure(f"detector {det.name}") from exc
            logger.debug("  %s -> %d raw matches", det.name, len(results))
            matches.extend(results)

        return matches

