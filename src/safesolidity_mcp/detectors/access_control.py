"""Detector: state-changing entry points without authorization.

A public/external, non-view function is flagged when it writes a
contract-level storage variable (other than an entry keyed by
``msg.sender``) or self-destructs, and neither carries an authorization
modifier nor checks ``msg.sender`` in its body.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from ..models import Category, RawMatch
from ..scanner import SolFunction, SourceDocument
from ._solidity_helpers import state_variables
from .registry import BaseDetector

_AUTH_MODIFIER = re.compile(
    r"^(only\w*|\w*[Oo]nly|auth|requiresAuth|restricted|authorized|isAuthorized|ownerOnly)$"
)
_AUTH_CHECK = re.compile(
    r"\bmsg\s*\.\s*sender\s*(?:==|!=)"
    r"|(?:==|!=)\s*msg\s*\.\s*sender\b"
    r"|\b(?:_checkOwner|_checkRole|hasRole|isOwner|_onlyOwner|_authorize\w*)\s*\("
)
_SELFDESTRUCT = re.compile(r"\b(?:selfdestruct|suicide)\s*\(")
# Mapping writes keyed by the caller only touch the caller's own entry
_SENDER_KEYED = re.compile(r"^\s*\[\s*msg\s*\.\s*sender\s*\]")

_INDEX = r"(?:\s*\[[^\[\]]*\])*"
_WRITE = re.compile(
    rf"(?<![.\w])(?P<name>[A-Za-z_]\w*)(?P<index>{_INDEX})"
    rf"\s*(?:[-+*/%|&^]?=(?!=)|\+\+|--)"
    rf"|\bdelete\s+(?P<dname>[A-Za-z_]\w*)(?P<dindex>{_INDEX})"
)


def _is_authorized(fn: SolFunction) -> bool:
    if any(_AUTH_MODIFIER.match(m) for m in fn.modifiers):
        return True
    return _AUTH_CHECK.search(fn.body) is not None


def _writes_state(fn: SolFunction, state: set[str]) -> bool:
    for wm in _WRITE.finditer(fn.body):
        if wm.group("name") is not None:
            name, index = wm.group("name"), wm.group("index")
        else:
            name, index = wm.group("dname"), wm.group("dindex")
        if name in state and not _SENDER_KEYED.match(index):
            return True
    return False


class AccessControlDetector(BaseDetector):
    name = "access-control"
    category = Category.ACCESS_CONTROL
    description = "Public/external state-changing function without an authorization check"

    def iter_matches(self, doc: SourceDocument) -> Iterator[RawMatch]:
        src = doc.stripped_text
        contracts = {c.name: c for c in doc.contracts if c.kind == "contract"}
        state: dict[str, set[str]] = {}

        for fn in doc.functions:
            contract = contracts.get(fn.contract)
            if contract is None:
                continue
            if fn.visibility not in ("public", "external") or fn.mutability in ("view", "pure"):
                continue
            if _is_authorized(fn):
                continue

            if fn.contract not in state:
                state[fn.contract] = state_variables(doc, contract)

            if _SELFDESTRUCT.search(fn.body) or _writes_state(fn, state[fn.contract]):
                end = src.find("(", fn.start)
                yield self._hit(doc, fn.start, src[fn.start:end].strip())
