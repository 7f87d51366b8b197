"""Shared Solidity source-scanning helpers used by multiple detectors.

Everything here works on ``SourceDocument.stripped_text`` so braces, keywords
and identifiers inside comments or string literals are invisible.  Contract
and function blocks are already on the document (``doc.contracts`` and
``doc.functions``).
"""

from __future__ import annotations

import re
from bisect import bisect_left

from ..scanner import NON_MODIFIER_KW, SolContract, SourceDocument


def match_brace(doc: SourceDocument, open_pos: int) -> int:
    """Return the offset just past the brace closing the one at *open_pos*.

    Unbalanced input runs to the end of the text.
    """
    return doc.brace_pairs.get(open_pos, len(doc.stripped_text))


def match_paren(doc: SourceDocument, open_pos: int) -> int:
    """Same as :func:`match_brace` for parentheses."""
    return doc.paren_pairs.get(open_pos, len(doc.stripped_text))


def statement_bounds(doc: SourceDocument, offset: int) -> tuple[int, int]:
    """Return ``(start, end)`` of the statement around *offset*.

    A statement starts just after the previous ``;``, ``{`` or ``}`` and ends
    at the next ``;``, ``{`` or ``}`` (exclusive).  Good enough for
    ``if (...) {`` headers, ``return ...;`` and plain expression statements.
    """
    marks = doc.statement_marks
    idx = bisect_left(marks, offset)
    start = marks[idx - 1] + 1 if idx else 0
    end = marks[idx] if idx < len(marks) else len(doc.stripped_text)
    return start, end


def next_statement_end(doc: SourceDocument, stmt_end: int) -> int:
    """End offset of the statement following the one ending at *stmt_end*."""
    if stmt_end >= len(doc.stripped_text):
        return stmt_end
    return statement_bounds(doc, stmt_end + 1)[1]


def state_variables(doc: SourceDocument, contract: SolContract) -> set[str]:
    """Names of storage variables declared at contract level.

    Constants and immutables are excluded since they can't be written after
    construction.
    """
    src = doc.stripped_text
    top_level: list[str] = []
    depth, pos, seg_start = 0, contract.body_start + 1, contract.body_start + 1
    end = contract.body_end - 1
    while pos < end:
        ch = src[pos]
        if ch == "{":
            if depth == 0:
                top_level.append(src[seg_start:pos])
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                seg_start = pos + 1
        elif ch == ";" and depth == 0:
            top_level.append(src[seg_start:pos])
            seg_start = pos + 1
        pos += 1

    names: set[str] = set()
    for stmt in top_level:
        stmt = stmt.strip()
        if not stmt or re.match(
            r"(function|modifier|event|error|struct|enum|using|constructor"
            r"|receive|fallback|pragma|import)\b",
            stmt,
        ):
            continue
        if re.search(r"\b(constant|immutable)\b", stmt):
            continue
        # Initialiser ``=``, not the ``=>`` inside a mapping type
        decl = re.split(r"=(?!>)", stmt, maxsplit=1)[0].strip()
        m = re.search(r"(\w+)\s*$", decl)
        if m and not decl.endswith(")"):
            names.add(m.group(1))
    return names


def integer_variables(text: str) -> set[str]:
    """Names declared with an integer type: state vars, params, locals, mappings."""
    names: set[str] = set()
    for m in re.finditer(
        r"\bu?int\d*\s+(?:(?:public|private|internal|constant|immutable|override"
        r"|memory|calldata|storage)\s+)*([A-Za-z_]\w*)",
        text,
    ):
        names.add(m.group(1))
    for m in re.finditer(
        r"\bmapping\s*\((?:(?!\bmapping\b)[^;{}])*=>\s*u?int\d*\s*\)+\s*"
        r"(?:(?:public|private|internal)\s+)*([A-Za-z_]\w*)",
        text,
    ):
        names.add(m.group(1))
    return names - NON_MODIFIER_KW
