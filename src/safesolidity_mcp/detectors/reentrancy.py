"""Detector: reentrancy through value-transferring external calls.

Flags a ``.call{value: ...}`` / ``.call.value(...)`` that appears textually
before a write to contract state in the same function body.  This is an
ordering heuristic over the source text, not control-flow analysis: it will
both miss and over-report some cases.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from ..models import Category, RawMatch
from ..scanner import SourceDocument
from .registry import BaseDetector

_VALUE_CALL = re.compile(
    r"\.\s*call\s*\{[^{}]*\bvalue\s*:|\.\s*call\s*\.\s*value\s*\("
)

# Indexed write (``balances[x] = 0``, ``credit[a][b] -= v``), a write to a
# balance-like name, or a ``delete``.
_STATE_WRITE = re.compile(
    r"\b\w+\s*(?:\[[^\[\]]*\]\s*)+(?:[-+*/%]?=(?!=)|\+\+|--)"
    r"|\b\w*[Bb]alance\w*\s*[-+*/%]?=(?!=)"
    r"|\bdelete\s+\w+"
)

_GUARDS = re.compile(r"\b(nonReentrant|noReentrancy|reentrancyGuard|lock|mutex)\b", re.IGNORECASE)


class ReentrancyDetector(BaseDetector):
    name = "reentrancy"
    category = Category.REENTRANCY
    description = "Value-transferring external call before a state update in the same function"

    def iter_matches(self, doc: SourceDocument) -> Iterator[RawMatch]:
        src = doc.stripped_text

        for fn in doc.functions:
            if any(_GUARDS.search(m) for m in fn.modifiers):
                continue

            last_write = max((w.start() for w in _STATE_WRITE.finditer(fn.body)), default=-1)
            for call in _VALUE_CALL.finditer(fn.body):
                # A state write after the call's value expression
                if last_write >= call.end():
                    offset = fn.body_start + call.start()
                    yield self._hit(doc, offset, src[offset:fn.body_start + call.end()])
