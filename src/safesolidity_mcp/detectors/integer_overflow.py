"""Detector: integer arithmetic without overflow protection.

Solidity 0.8.0 made arithmetic checked by default, and SafeMath covers older
compilers.  Arithmetic on integer-typed names is flagged when neither applies,
and also inside ``unchecked { ... }`` blocks where the 0.8 checks are off.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from ..models import Category, RawMatch
from ..scanner import SourceDocument
from ._solidity_helpers import integer_variables, match_brace
from .registry import BaseDetector

_PRAGMA = re.compile(r"\bpragma\s+solidity\s+((?:(?!\bpragma\b)[^;])+);")
_CONSTRAINT = re.compile(r"(\^|~|>=|<=|>|<|=)?\s*v?(\d+)\.(\d+)(?:\.(\d+))?")
_SAFEMATH = re.compile(r"\busing\s+SafeMath\b|\bSafeMath\s*\.")
_UNCHECKED = re.compile(r"\bunchecked\s*\{")

_CHECKED_SINCE = (0, 8, 0)

_OPERAND = r"\b(?P<name>[A-Za-z_]\w*)\b(?:\s*\[[^\[\]]*\])*"
# name as left operand: x + y, x += y, x++, balances[a] -= v
_LEFT_OPERAND = re.compile(
    rf"{_OPERAND}\s*(?:\+\+|--|\*\*|[-+*]=(?!=)|[-+*](?![-+*=>]))"
)
# name as right operand: a + x, a * x, ++x
_RIGHT_OPERAND = re.compile(rf"(?:\+\+|--|(?<![-+*=<>!])[-+*]=?)\s*{_OPERAND}")


def pragma_enforces_checked_math(stripped: str) -> bool:
    """True if some ``pragma solidity`` lower bound is at least 0.8.0.

    Constraints inside one pragma (and across pragmas) are all required, so a
    single lower bound >= 0.8.0 is enough.
    """
    for pm in _PRAGMA.finditer(stripped):
        for cm in _CONSTRAINT.finditer(pm.group(1)):
            op = cm.group(1) or "="
            if op in ("<", "<="):
                continue
            version = (int(cm.group(2)), int(cm.group(3)), int(cm.group(4) or 0))
            if version >= _CHECKED_SINCE:
                return True
    return False


def _unchecked_regions(doc: SourceDocument) -> list[tuple[int, int]]:
    regions: list[tuple[int, int]] = []
    for m in _UNCHECKED.finditer(doc.stripped_text):
        if regions and m.start() < regions[-1][1]:
            continue
        regions.append((m.end() - 1, match_brace(doc, m.end() - 1)))
    return regions


class IntegerOverflowDetector(BaseDetector):
    name = "integer-overflow"
    category = Category.INTEGER_OVERFLOW
    description = "Arithmetic on integers without 0.8 checked math or SafeMath"

    def iter_matches(self, doc: SourceDocument) -> Iterator[RawMatch]:
        src = doc.stripped_text
        names = integer_variables(src)
        if not names:
            return

        if pragma_enforces_checked_math(src):
            regions = _unchecked_regions(doc)
        elif _SAFEMATH.search(src):
            return
        else:
            regions = [(0, len(src))]

        for start, end in regions:
            hits = [
                m
                for pattern in (_LEFT_OPERAND, _RIGHT_OPERAND)
                for m in pattern.finditer(src, start, end)
                if m.group("name") in names
            ]
            for m in sorted(hits, key=lambda h: h.start()):
                yield self._hit(doc, m.start(), m.group(0).strip())
