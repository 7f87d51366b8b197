"""Tests for the MCP tool functions."""

from __future__ import annotations

import json

import pytest

from safesolidity_mcp import server


@pytest.fixture(autouse=True)
def _reset_cache(monkeypatch):
    monkeypatch.setattr(server, "_last_result", None)


async def test_analyze_source_json(vulnerable_source):
    payload = json.loads(await server.analyze_source_json(vulnerable_source))
    assert payload["status"] == "COMPLETED"
    assert payload["summary"]["riskScore"] == 40
    assert payload["metadata"]["duration"] is not None


async def test_analyze_source_markdown_and_cache(vulnerable_source):
    md = await server.analyze_source(vulnerable_source)
    assert md.startswith("# Smart Contract Audit Report: Vault")

    again = await server.regenerate_report("markdown")
    assert again == md
    cached = json.loads(await server.get_audit_json())
    assert cached["summary"]["total"] == 3
    assert json.loads(await server.regenerate_report("JSON")) == cached


async def test_category_filter_is_case_insensitive(vulnerable_source):
    payload = json.loads(await server.analyze_source_json(
        vulnerable_source, enabled_categories=["tx_origin_misuse"],
    ))
    assert [v["category"] for v in payload["vulnerabilities"]] == ["TX_ORIGIN_MISUSE"]


async def test_unknown_category_rejected(vulnerable_source):
    with pytest.raises(ValueError, match="Unknown category"):
        await server.analyze_source_json(vulnerable_source, enabled_categories=["GAS"])


async def test_size_override(vulnerable_source):
    payload = json.loads(await server.analyze_source_json(vulnerable_source, max_size_bytes=64))
    assert payload["status"] == "FAILED"
    assert payload["error"].startswith("Contract size exceeds maximum limit")


async def test_analyze_file(tmp_path, vulnerable_source):
    path = tmp_path / "Vault.sol"
    path.write_text(vulnerable_source)
    md = await server.analyze_file(str(path))
    assert "SS-TIMESTAMP-1" in md


async def test_analyze_missing_file(tmp_path):
    out = json.loads(await server.analyze_file(str(tmp_path / "nope.sol")))
    assert out["error"].startswith("File not found")


async def test_no_cached_result():
    assert "No analysis result cached" in await server.regenerate_report()
    assert "error" in json.loads(await server.get_audit_json())


async def test_list_rules():
    rules = json.loads(await server.list_rules())
    assert [r["id"] for r in rules] == [
        "SS-REENTRANCY",
        "SS-TX-ORIGIN",
        "SS-TIMESTAMP",
        "SS-UNCHECKED-CALL",
        "SS-INTEGER-OVERFLOW",
        "SS-ACCESS-CONTROL",
    ]
    assert rules[0]["severity"] == "CRITICAL"
    assert rules[1]["confidence"] == 90
