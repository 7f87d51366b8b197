"""Detector: ``tx.origin`` used for authorization."""

from __future__ import annotations

import re
from collections.abc import Iterator

from ..models import Category, RawMatch
from ..scanner import SourceDocument
from ._solidity_helpers import statement_bounds
from .registry import BaseDetector

_TX_ORIGIN = re.compile(r"\btx\s*\.\s*origin\b")
_AUTH_CONTEXT = re.compile(r"==|!=|\brequire\s*\(|\bassert\s*\(|\bif\s*\(")


class TxOriginDetector(BaseDetector):
    name = "tx-origin"
    category = Category.TX_ORIGIN_MISUSE
    description = "tx.origin in a comparison, require/assert or if condition"

    def iter_matches(self, doc: SourceDocument) -> Iterator[RawMatch]:
        src = doc.stripped_text
        in_check: dict[int, bool] = {}
        for m in _TX_ORIGIN.finditer(src):
            start, end = statement_bounds(doc, m.start())
            if start not in in_check:
                in_check[start] = _AUTH_CONTEXT.search(src, start, end) is not None
            if in_check[start]:
                yield self._hit(doc, m.start(), m.group(0))
