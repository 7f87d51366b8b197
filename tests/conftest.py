"""Shared fixtures for SafeSolidity tests."""

from __future__ import annotations

import pytest

from safesolidity_mcp.examples import SAFE_EXAMPLE, VULNERABLE_EXAMPLE
from safesolidity_mcp.models import Category, Finding, Location, Severity

# One-line Vault from the README scenario
VAULT_ONE_LINE = (
    'pragma solidity ^0.8.0; contract Vault { mapping(address=>uint) balances; '
    'function withdraw() external { (bool ok,) = msg.sender.call{value: '
    'balances[msg.sender]}(""); balances[msg.sender]=0; } }'
)


@pytest.fixture
def vulnerable_source() -> str:
    return VULNERABLE_EXAMPLE


@pytest.fixture
def safe_source() -> str:
    return SAFE_EXAMPLE


@pytest.fixture
def vault_one_line() -> str:
    return VAULT_ONE_LINE


def make_finding(
    severity: Severity = Severity.HIGH,
    category: Category = Category.REENTRANCY,
    line: int = 1,
    fid: str = "f-1",
) -> Finding:
    return Finding(
        id=fid,
        title="t",
        severity=severity,
        category=category,
        location=Location(line=line),
    )
