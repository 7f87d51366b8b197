"""Tests for the per-category pattern detectors."""

from __future__ import annotations

import pytest

from safesolidity_mcp.detectors import (
    AccessControlDetector,
    IntegerOverflowDetector,
    ReentrancyDetector,
    TimestampDependenceDetector,
    TxOriginDetector,
    UncheckedCallDetector,
    build_default_registry,
)
from safesolidity_mcp.detectors.integer_overflow import pragma_enforces_checked_math
from safesolidity_mcp.models import Category
from safesolidity_mcp.scanner import scan


def _lines(detector, src: str) -> list[int]:
    return [m.line_number for m in detector.match(scan(src))]


def _contract(body: str, pragma: str = "^0.8.0") -> str:
    return f"pragma solidity {pragma};\ncontract C {{\n{body}\n}}\n"


# ---------------------------------------------------------------------------
# Reentrancy
# ---------------------------------------------------------------------------

def test_reentrancy_one_line_vault(vault_one_line):
    matches = ReentrancyDetector().match(scan(vault_one_line))
    assert len(matches) == 1
    assert matches[0].category is Category.REENTRANCY
    assert matches[0].line_number == 1
    assert matches[0].matched_text.startswith(".call")


def test_reentrancy_call_before_reset(vulnerable_source):
    assert _lines(ReentrancyDetector(), vulnerable_source) == [12]


def test_reentrancy_state_updated_first_is_clean():
    src = _contract(
        "    mapping(address => uint) balances;\n"
        "    function withdraw() external {\n"
        "        uint amount = balances[msg.sender];\n"
        "        balances[msg.sender] = 0;\n"
        "        (bool ok, ) = msg.sender.call{value: amount}(\"\");\n"
        "        require(ok);\n"
        "    }"
    )
    assert _lines(ReentrancyDetector(), src) == []


def test_reentrancy_guard_modifier_suppresses():
    src = _contract(
        "    mapping(address => uint) balances;\n"
        "    function withdraw() external nonReentrant {\n"
        "        (bool ok, ) = msg.sender.call{value: balances[msg.sender]}(\"\");\n"
        "        require(ok);\n"
        "        balances[msg.sender] = 0;\n"
        "    }"
    )
    assert _lines(ReentrancyDetector(), src) == []


def test_reentrancy_legacy_call_value():
    src = _contract(
        "    mapping(address => uint) balances;\n"
        "    function withdraw() public {\n"
        "        require(msg.sender.call.value(balances[msg.sender])());\n"
        "        balances[msg.sender] = 0;\n"
        "    }",
        pragma="^0.4.24",
    )
    assert _lines(ReentrancyDetector(), src) == [5]


def test_reentrancy_inside_comment_ignored():
    src = _contract(
        "    mapping(address => uint) balances;\n"
        "    function withdraw() external {\n"
        "        // msg.sender.call{value: 1}(\"\");\n"
        "        balances[msg.sender] = 0;\n"
        "    }"
    )
    assert _lines(ReentrancyDetector(), src) == []


# ---------------------------------------------------------------------------
# tx.origin
# ---------------------------------------------------------------------------

def test_tx_origin_in_require():
    src = _contract("    function f() external { require(tx.origin == msg.sender); }")
    matches = TxOriginDetector().match(scan(src))
    assert len(matches) == 1
    assert matches[0].line_number == 3
    assert matches[0].matched_text == "tx.origin"


def test_tx_origin_plain_read_not_flagged():
    src = _contract("    function f() external { address who = tx.origin; }")
    assert _lines(TxOriginDetector(), src) == []


def test_tx_origin_every_occurrence_flagged():
    src = _contract(
        "    function f() external { require(tx.origin == owner); }\n"
        "    function g() external { if (tx.origin != owner) { revert(); } }"
    )
    assert _lines(TxOriginDetector(), src) == [3, 4]


def test_tx_origin_in_comment_or_string_ignored():
    src = _contract(
        "    // require(tx.origin == msg.sender);\n"
        "    string constant NOTE = \"require(tx.origin == msg.sender)\";"
    )
    assert _lines(TxOriginDetector(), src) == []


# ---------------------------------------------------------------------------
# Timestamp
# ---------------------------------------------------------------------------

def test_timestamp_in_return(vulnerable_source):
    assert _lines(TimestampDependenceDetector(), vulnerable_source) == [22]


def test_now_in_if_condition():
    src = _contract("    function f() external { if (now > deadline) { open = true; } }", "^0.4.24")
    assert _lines(TimestampDependenceDetector(), src) == [3]


def test_timestamp_assignment_not_flagged():
    src = _contract(
        "    function f() external {\n"
        "        uint start = block.timestamp;\n"
        "        emit Started(block.timestamp);\n"
        "    }"
    )
    assert _lines(TimestampDependenceDetector(), src) == []


def test_timestamp_in_ternary():
    src = _contract("    function f() external view returns (uint) { uint x = block.timestamp > 5 ? 1 : 2; return x; }")
    assert _lines(TimestampDependenceDetector(), src) == [3]


# ---------------------------------------------------------------------------
# Unchecked low-level calls
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("stmt", [
    "payable(to).send(1);",
    "to.call{value: 1}(\"\");",
    "target.delegatecall(data);",
])
def test_unchecked_call_flagged(stmt):
    src = _contract(f"    function f(address to) external {{ {stmt} }}")
    assert _lines(UncheckedCallDetector(), src) == [3]


@pytest.mark.parametrize("stmt", [
    "require(payable(to).send(1));",
    "if (!payable(to).send(1)) { revert(); }",
    "(bool ok, ) = to.call{value: 1}(\"\"); require(ok, \"failed\");",
    "bool sent = payable(to).send(1); if (!sent) { revert(); }",
])
def test_checked_call_not_flagged(stmt):
    src = _contract(f"    function f(address to) external {{ {stmt} }}")
    assert _lines(UncheckedCallDetector(), src) == []


def test_captured_but_unused_result_flagged():
    src = _contract(
        "    function f(address to) external {\n"
        "        (bool ok, ) = to.call(\"\");\n"
        "        counter = 1;\n"
        "    }"
    )
    assert _lines(UncheckedCallDetector(), src) == [4]


def test_call_inside_unrelated_if_body_still_flagged():
    src = _contract("    function f(address to) external { if (flag) to.call(\"\"); }")
    assert _lines(UncheckedCallDetector(), src) == [3]


# ---------------------------------------------------------------------------
# Integer overflow
# ---------------------------------------------------------------------------

_ADDER = "    uint total;\n    function add(uint x) public { total += x; }"


def test_overflow_flagged_before_0_8():
    assert _lines(IntegerOverflowDetector(), _contract(_ADDER, "^0.7.6")) == [4]


def test_overflow_not_flagged_from_0_8():
    assert _lines(IntegerOverflowDetector(), _contract(_ADDER, "^0.8.0")) == []


def test_overflow_flagged_with_open_lower_bound():
    assert _lines(IntegerOverflowDetector(), _contract(_ADDER, ">=0.7.0 <0.9.0")) == [4]


def test_overflow_safemath_suppresses():
    body = "    using SafeMath for uint256;\n" + _ADDER
    assert _lines(IntegerOverflowDetector(), _contract(body, "^0.6.0")) == []


def test_overflow_in_unchecked_block_flagged_on_0_8():
    body = (
        "    uint total;\n"
        "    function add(uint x) public {\n"
        "        total = x;\n"
        "        unchecked { total += x; }\n"
        "    }"
    )
    assert _lines(IntegerOverflowDetector(), _contract(body, "^0.8.4")) == [6]


def test_overflow_one_match_per_line():
    body = "    uint a;\n    function f(uint b) public { a = a + b * b - 1; }"
    assert _lines(IntegerOverflowDetector(), _contract(body, "0.6.12")) == [4]


@pytest.mark.parametrize("pragma,expected", [
    ("pragma solidity ^0.8.0;", True),
    ("pragma solidity 0.8.19;", True),
    ("pragma solidity >=0.8.0 <0.9.0;", True),
    ("pragma solidity >=0.7.0 <0.9.0;", False),
    ("pragma solidity ^0.7.6;", False),
    ("pragma solidity <0.9.0;", False),
    ("contract C {}", False),
])
def test_pragma_checked_math(pragma, expected):
    assert pragma_enforces_checked_math(pragma) is expected


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------

def test_unprotected_owner_setter_flagged():
    src = _contract(
        "    address public owner;\n"
        "    function setOwner(address o) public { owner = o; }"
    )
    matches = AccessControlDetector().match(scan(src))
    assert [m.line_number for m in matches] == [4]
    assert matches[0].matched_text == "function setOwner"


@pytest.mark.parametrize("fn", [
    "function setOwner(address o) public onlyOwner { owner = o; }",
    "function setOwner(address o) public { require(msg.sender == owner); owner = o; }",
    "function setOwner(address o) internal { owner = o; }",
    "function getOwner() public view returns (address) { return owner; }",
])
def test_protected_or_readonly_not_flagged(fn):
    src = _contract(f"    address public owner;\n    {fn}")
    assert _lines(AccessControlDetector(), src) == []


def test_sender_keyed_write_not_flagged(vulnerable_source):
    assert _lines(AccessControlDetector(), vulnerable_source) == []


def test_selfdestruct_flagged():
    src = _contract("    function kill() external { selfdestruct(payable(msg.sender)); }")
    assert _lines(AccessControlDetector(), src) == [3]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def test_default_registry_covers_every_rule():
    reg = build_default_registry()
    assert {d.category for d in reg.all} == {
        Category.REENTRANCY,
        Category.TX_ORIGIN_MISUSE,
        Category.TIMESTAMP_DEPENDENCE,
        Category.UNCHECKED_CALL,
        Category.INTEGER_OVERFLOW,
        Category.ACCESS_CONTROL,
    }


def test_registry_only_filter(vulnerable_source):
    reg = build_default_registry()
    matches = reg.run_all(scan(vulnerable_source), only={Category.TX_ORIGIN_MISUSE})
    assert [m.category for m in matches] == [Category.TX_ORIGIN_MISUSE]


def test_detectors_are_order_independent(vulnerable_source):
    doc = scan(vulnerable_source)
    forward = [m for d in build_default_registry().all for m in d.match(doc)]
    backward = [m for d in reversed(build_default_registry().all) for m in d.match(doc)]
    assert sorted(forward, key=repr) == sorted(backward, key=repr)
