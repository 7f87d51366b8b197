"""Contract-level facts derived from the source text.

Independent of the detectors.  Regexes run over the comment/string-blanked
text so a ``contract Foo`` in a comment is not picked up as the name.
"""

from __future__ import annotations

import re

from .models import ContractMetadata
from .scanner import strip_comments_and_strings

_NAME_RE = re.compile(r"\bcontract\s+([A-Za-z_$][\w$]*)")
_PRAGMA_RE = re.compile(r"\bpragma\s+solidity\s+([^;]+)")
_FUNCTION_RE = re.compile(r"\bfunction\s+\w+\s*\(")

# Cyclomatic complexity approximation: 1 + branch/loop/logical tokens
_CONTROL_STRUCTURES: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bif\s*\("),
    re.compile(r"\belse\b"),
    re.compile(r"\bfor\s*\("),
    re.compile(r"\bwhile\s*\("),
    re.compile(r"\bdo\s*\{"),
    re.compile(r"\?[^?:;\n]*:"),  # ternary
    re.compile(r"&&"),
    re.compile(r"\|\|"),
)


def count_functions(text: str) -> int:
    return len(_FUNCTION_RE.findall(text))


def estimate_complexity(text: str) -> int:
    return 1 + sum(len(rx.findall(text)) for rx in _CONTROL_STRUCTURES)


def extract_metadata(raw_text: str) -> ContractMetadata:
    """Pure function of *raw_text*; every field defaults to absent/zero."""
    text = strip_comments_and_strings(raw_text)

    name_m = _NAME_RE.search(text)
    pragma_m = _PRAGMA_RE.search(text)
    version = pragma_m.group(1).strip() if pragma_m else None

    return ContractMetadata(
        name=name_m.group(1) if name_m else None,
        version=version or None,
        compiler=version or None,
        size=len(raw_text.encode("utf-8")),
        lines_of_code=len(raw_text.split("\n")),
        functions=count_functions(text),
        complexity=estimate_complexity(text),
    )
