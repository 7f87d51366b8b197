"""Detector: block timestamp deciding a branch or a return value."""

from __future__ import annotations

import re
from collections.abc import Iterator

from ..models import Category, RawMatch
from ..scanner import SourceDocument
from ._solidity_helpers import statement_bounds
from .registry import BaseDetector

_TIMESTAMP = re.compile(r"\bblock\s*\.\s*timestamp\b|(?<![.\w])now\b(?!\s*\()")

# Conditional statements, return expressions and ternaries
_DECISION = re.compile(
    r"^\s*(?:else\s+)?(?:if|while|for)\s*\("
    r"|^\s*(?:return|require|assert)\b"
    r"|\?"
)


class TimestampDependenceDetector(BaseDetector):
    name = "timestamp-dependence"
    category = Category.TIMESTAMP_DEPENDENCE
    description = "block.timestamp / now inside a condition or return expression"

    def iter_matches(self, doc: SourceDocument) -> Iterator[RawMatch]:
        src = doc.stripped_text
        decides: dict[int, bool] = {}
        for m in _TIMESTAMP.finditer(src):
            start, end = statement_bounds(doc, m.start())
            if start not in decides:
                decides[start] = _DECISION.search(src[start:end]) is not None
            if decides[start]:
                yield self._hit(doc, m.start(), m.group(0))
