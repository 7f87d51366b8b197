"""Detector: low-level calls whose success flag is ignored.

A ``.call(``, ``.send(`` or ``.delegatecall(`` is considered checked when the
statement holding it is itself a check (``require``, ``assert``, ``if``,
``return``), or when its result is assigned and one of the assigned names is
referenced in the same or the next statement.
"""

from __future__ import annotations

import re
from bisect import bisect_left, bisect_right
from collections.abc import Iterator
from dataclasses import dataclass

from ..models import Category, RawMatch
from ..scanner import SourceDocument
from ._solidity_helpers import match_paren, next_statement_end, statement_bounds
from .registry import BaseDetector

_LOW_LEVEL = re.compile(
    r"\.\s*(call|send|delegatecall)\b"
    r"(?:\s*\{[^{}]*\})?"  # call options: {value: x, gas: y}
    r"(?:\s*\.\s*(?:value|gas)\s*\([^()]*\))*"  # legacy .value(x).gas(y)
    r"\s*\("
)

_CHECK_OPEN = re.compile(r"\b(?:require|assert|if|while)\s*\(")
_RETURN = re.compile(r"\breturn\b")
_WORD = re.compile(r"\b[A-Za-z_]\w*")

# ``=`` that is an assignment, not part of ``==``, ``!=``, ``<=``, ``>=``
_ASSIGN = re.compile(r"(?<![=!<>])=(?!=)")

_TYPE_WORDS = {
    "bool", "bytes", "memory", "storage", "calldata", "address", "payable",
    "string", "var",
}


def _assigned_names(lhs: str) -> set[str]:
    names = set(re.findall(r"[A-Za-z_]\w*", lhs)) - _TYPE_WORDS
    return {n for n in names if not re.fullmatch(r"u?int\d*|bytes\d+", n)}


@dataclass(frozen=True)
class _Statement:
    """Check context of one statement, shared by every call inside it."""

    check_opens: tuple[int, ...]  # end offsets of ``require(`` etc., ascending
    reach: tuple[int, ...]  # running max of the matching close offsets
    return_end: int | None
    assign_at: int | None
    names: frozenset[str]

    @classmethod
    def read(cls, doc: SourceDocument, start: int, end: int) -> _Statement:
        src = doc.stripped_text
        opens: list[int] = []
        reach: list[int] = []
        for km in _CHECK_OPEN.finditer(src, start, end):
            opens.append(km.end())
            close = match_paren(doc, km.end() - 1)
            reach.append(max(close, reach[-1]) if reach else close)

        ret = _RETURN.search(src, start, end)
        assign = _ASSIGN.search(src, start, end)
        names = _assigned_names(src[start:assign.start()]) if assign else set()
        return cls(
            check_opens=tuple(opens),
            reach=tuple(reach),
            return_end=ret.end() if ret else None,
            assign_at=assign.start() if assign else None,
            names=frozenset(names),
        )

    def checks(self, call_pos: int) -> bool:
        """True when the call sits inside a require/assert/if/while condition or a return."""
        idx = bisect_right(self.check_opens, call_pos)
        if idx and self.reach[idx - 1] > call_pos:
            return True
        return self.return_end is not None and self.return_end <= call_pos

    def captured_by(self, call_pos: int) -> frozenset[str]:
        """Names the call's result is assigned to."""
        if self.assign_at is None or self.assign_at >= call_pos:
            return frozenset()
        return self.names


class UncheckedCallDetector(BaseDetector):
    name = "unchecked-call"
    category = Category.UNCHECKED_CALL
    description = "Low-level call/send/delegatecall with an unchecked return value"

    def iter_matches(self, doc: SourceDocument) -> Iterator[RawMatch]:
        src = doc.stripped_text
        statements: dict[int, _Statement] = {}
        # (statement start, statement end) -> offsets where a captured name is used
        uses: dict[tuple[int, int], list[int]] = {}

        for m in _LOW_LEVEL.finditer(src):
            stmt_start, head_end = statement_bounds(doc, m.start())
            stmt = statements.get(stmt_start)
            if stmt is None:
                stmt = statements[stmt_start] = _Statement.read(doc, stmt_start, head_end)
            if stmt.checks(m.start()):
                continue

            names = stmt.captured_by(m.start())
            if names:
                # The statement ends after the argument list
                args_end = match_paren(doc, m.end() - 1)
                _, stmt_end = statement_bounds(doc, args_end)
                key = (stmt_start, stmt_end)
                if key not in uses:
                    uses[key] = [
                        w.start()
                        for w in _WORD.finditer(src, stmt_start, next_statement_end(doc, stmt_end))
                        if w.group() in names
                    ]
                found = uses[key]
                if bisect_left(found, args_end) < len(found):
                    continue

            yield self._hit(doc, m.start(), m.group(0))
