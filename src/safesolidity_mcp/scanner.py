"""Lightweight Solidity source scanner.

Blanks out comments and string-literal bodies so the detectors never fire on
text the compiler would ignore.  The blanked copy has exactly the same length
and newline positions as the original, so any offset found in it maps back to
the same line and column of the real source.

The scan also indexes the blanked text once: bracket pairs, statement
boundaries, and the contract and function blocks the detectors work on.
Every lookup after that is a dictionary hit or a bisect.
"""

from __future__ import annotations

import re
from bisect import bisect_left, bisect_right
from collections.abc import Mapping
from dataclasses import dataclass, field

FILLER = " "

_STRUCTURE = re.compile(r"[{}();]")

# The inheritance list may not run into the next declaration keyword
_CONTRACT_RE = re.compile(
    r"\b(?:abstract\s+)?(contract|library|interface)\s+(\w+)"
    r"(?:(?!\b(?:contract|library|interface)\b)[^{;])*\{"
)
_FUNC_HEAD_RE = re.compile(r"\bfunction\s+(\w+)\s*\(")
_IDENT_RE = re.compile(r"[A-Za-z_$][\w$]*")

VISIBILITY_KW = frozenset({"public", "external", "internal", "private"})
MUTABILITY_KW = frozenset({"view", "pure", "payable"})
NON_MODIFIER_KW = VISIBILITY_KW | MUTABILITY_KW | {
    "virtual", "override", "returns", "constant", "memory", "calldata", "storage",
}


def strip_comments_and_strings(text: str) -> str:
    """Return *text* with ``//``, ``/* */`` comments and quoted contents blanked.

    Quote characters themselves are kept so ``""`` still reads as an empty
    argument; comment markers are blanked along with the comment.  Newlines
    are always preserved.  Unterminated comments and strings run to the end
    of the text.
    """
    out: list[str] = []
    i, n = 0, len(text)

    def blank(ch: str) -> str:
        return ch if ch == "\n" else FILLER

    while i < n:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ""

        if ch == "/" and nxt == "/":
            end = text.find("\n", i)
            end = n if end == -1 else end
            out.append(FILLER * (end - i))
            i = end
        elif ch == "/" and nxt == "*":
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            out.extend(blank(c) for c in text[i:end])
            i = end
        elif ch in ('"', "'"):
            out.append(ch)
            i += 1
            while i < n:
                c = text[i]
                if c == "\\" and i + 1 < n:
                    out.append(FILLER)
                    out.append(blank(text[i + 1]))
                    i += 2
                    continue
                if c == ch:
                    out.append(ch)
                    i += 1
                    break
                out.append(blank(c))
                i += 1
        else:
            out.append(ch)
            i += 1

    return "".join(out)


@dataclass(frozen=True)
class SolContract:
    """Minimal representation of a contract/library/interface block."""

    name: str
    kind: str  # "contract", "library", "interface"
    start: int  # offset of the declaration keyword
    body_start: int  # offset of the opening brace
    body_end: int  # offset just past the closing brace


@dataclass(frozen=True)
class SolFunction:
    """Minimal representation of a Solidity function found via regex."""

    name: str
    contract: str
    start: int  # offset of the ``function`` keyword
    header: str  # text between the parameter list and the body
    body_start: int  # offset of the opening brace
    body_end: int  # offset just past the closing brace
    body: str  # stripped body text, braces included
    visibility: str  # "public", "external", "internal", "private"
    mutability: str | None  # "view", "pure", "payable" or None
    modifiers: tuple[str, ...]


@dataclass(frozen=True)
class SourceDocument:
    """Read-only scan of one source text, shared by every detector."""

    raw_text: str
    lines: tuple[str, ...]
    stripped_text: str
    line_starts: tuple[int, ...] = field(repr=False)
    # opening offset -> offset just past its closer (text length if unclosed)
    brace_pairs: Mapping[int, int] = field(repr=False, compare=False)
    paren_pairs: Mapping[int, int] = field(repr=False, compare=False)
    # sorted offsets of every ``;``, ``{`` and ``}``
    statement_marks: tuple[int, ...] = field(repr=False, compare=False)
    contracts: tuple[SolContract, ...] = field(repr=False, compare=False)
    functions: tuple[SolFunction, ...] = field(repr=False, compare=False)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def line_col(self, offset: int) -> tuple[int, int]:
        """Map an offset to a 1-indexed ``(line, column)`` pair."""
        offset = min(max(offset, 0), len(self.raw_text))
        line = bisect_right(self.line_starts, offset)
        return line, offset - self.line_starts[line - 1] + 1


def _index_structure(text: str) -> tuple[dict[int, int], dict[int, int], list[int]]:
    """One stack pass pairing braces and parentheses independently."""
    braces: dict[int, int] = {}
    parens: dict[int, int] = {}
    open_braces: list[int] = []
    open_parens: list[int] = []
    marks: list[int] = []

    for m in _STRUCTURE.finditer(text):
        pos, ch = m.start(), m.group()
        if ch == "{":
            open_braces.append(pos)
            marks.append(pos)
        elif ch == "}":
            marks.append(pos)
            if open_braces:
                braces[open_braces.pop()] = pos + 1
        elif ch == ";":
            marks.append(pos)
        elif ch == "(":
            open_parens.append(pos)
        elif open_parens:
            parens[open_parens.pop()] = pos + 1

    end = len(text)
    braces.update(dict.fromkeys(open_braces, end))
    parens.update(dict.fromkeys(open_parens, end))
    return braces, parens, marks


def _extract_contracts(text: str, braces: Mapping[int, int]) -> list[SolContract]:
    contracts: list[SolContract] = []
    pos = 0
    while True:
        m = _CONTRACT_RE.search(text, pos)
        if not m:
            break
        brace = m.end() - 1
        end = braces[brace]
        contracts.append(SolContract(
            name=m.group(2),
            kind=m.group(1),
            start=m.start(),
            body_start=brace,
            body_end=end,
        ))
        # Contracts don't nest; skip over the body
        pos = end
    return contracts


def _extract_functions(
    text: str,
    braces: Mapping[int, int],
    parens: Mapping[int, int],
    marks: list[int],
    contracts: list[SolContract],
) -> list[SolFunction]:
    """Quick-and-dirty function extraction.

    This is intentionally simple: it doesn't need to be a full parser for the
    pattern-matching detectors to work.  Bodiless declarations (interfaces,
    abstract functions) are skipped, and so is anything inside a function
    body, since functions don't nest.
    """
    contract_starts = [c.body_start for c in contracts]
    funcs: list[SolFunction] = []

    pos = 0
    while True:
        m = _FUNC_HEAD_RE.search(text, pos)
        if not m:
            break
        pos = m.end()
        params_end = parens[m.end() - 1]
        # The body brace must come before any ``;`` or ``}``
        idx = bisect_left(marks, params_end)
        if idx == len(marks) or text[marks[idx]] != "{":
            continue

        brace = marks[idx]
        header = text[params_end:brace]
        body_end = braces[brace]
        pos = body_end

        contract_name = "Unknown"
        ci = bisect_right(contract_starts, m.start()) - 1
        if ci >= 0 and m.start() < contracts[ci].body_end:
            contract_name = contracts[ci].name

        vis = "public"  # pre-0.5 default when unspecified
        mutability: str | None = None
        modifiers: list[str] = []
        # Drop the ``returns (...)`` clause before tokenising
        head_tokens = re.sub(r"\breturns\s*\([^)]*\)", " ", header)
        head_tokens = re.sub(r"\([^)]*\)", " ", head_tokens)
        for token in _IDENT_RE.findall(head_tokens):
            if token in VISIBILITY_KW:
                vis = token
            elif token in MUTABILITY_KW:
                mutability = token
            elif token not in NON_MODIFIER_KW:
                modifiers.append(token)

        funcs.append(SolFunction(
            name=m.group(1),
            contract=contract_name,
            start=m.start(),
            header=header,
            body_start=brace,
            body_end=body_end,
            body=text[brace:body_end],
            visibility=vis,
            mutability=mutability,
            modifiers=tuple(modifiers),
        ))

    return funcs


def scan(raw_text: str) -> SourceDocument:
    """Build a :class:`SourceDocument`.  Accepts any text; never fails."""
    stripped = strip_comments_and_strings(raw_text)

    starts = [0]
    starts.extend(m.end() for m in re.finditer("\n", raw_text))
    braces, parens, marks = _index_structure(stripped)
    contracts = _extract_contracts(stripped, braces)
    functions = _extract_functions(stripped, braces, parens, marks, contracts)

    return SourceDocument(
        raw_text=raw_text,
        lines=tuple(raw_text.split("\n")),
        stripped_text=stripped,
        line_starts=tuple(starts),
        brace_pairs=braces,
        paren_pairs=parens,
        statement_marks=tuple(marks),
        contracts=tuple(contracts),
        functions=tuple(functions),
    )
