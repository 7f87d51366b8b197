"""Analysis orchestration.

``analyze`` is the synchronous, deterministic heuristic pipeline::

    scan -> detectors -> assemble -> summarize + recommendations
                      \\-> extract_metadata (independent of the findings)

It never raises: every failure becomes a fully-formed ``FAILED`` result.
``analyze_with_backend`` is the caller-level entry point that may defer to a
native backend, falls back to ``analyze`` on anything but success, and stamps
wall-clock timing onto the result.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from datetime import datetime, timezone

from . import __version__
from .aggregator import generate_recommendations, summarize
from .assembler import assemble
from .backends.base import BackendOk, NativeBackend
from .detectors import DetectorRegistry, build_default_registry
from .errors import AnalysisError, InputEmpty, InputTooLarge, InternalAnalysisFailure
from .metadata import extract_metadata
from .models import (
    AnalysisConfig,
    AuditResult,
    AuditStatus,
    EngineInfo,
    Finding,
)
from .scanner import scan

logger = logging.getLogger(__name__)

RULE_ENGINE = "SafeSolidity Rule Engine"
GENERIC_FAILURE = "Internal analysis failure"


def validate_input(source_code: str, config: AnalysisConfig) -> None:
    """Raise ``InputEmpty`` / ``InputTooLarge`` for unusable input."""
    if not isinstance(source_code, str) or not source_code.strip():
        raise InputEmpty()
    size = len(source_code.encode("utf-8"))
    if size > config.max_size_bytes:
        raise InputTooLarge(size, config.max_size_bytes)


def _build_result(
    source_code: str,
    findings: Sequence[Finding],
    engine: EngineInfo,
) -> AuditResult:
    try:
        metadata = extract_metadata(source_code)
    except Exception as exc:
        raise InternalAnalysisFailure("metadata extraction") from exc
    return AuditResult(
        status=AuditStatus.COMPLETED,
        vulnerabilities=tuple(findings),
        summary=summarize(findings),
        metadata=metadata,
        recommendations=tuple(generate_recommendations(findings)),
        engines=(engine,),
    )


def _failed(source_code: object, exc: Exception) -> AuditResult:
    text = source_code if isinstance(source_code, str) else ""
    if isinstance(exc, AnalysisError) and not isinstance(exc, InternalAnalysisFailure):
        logger.info("Analysis rejected: %s", exc)
        return AuditResult.failed(text, str(exc))
    logger.error("Analysis failed: %s", exc)
    return AuditResult.failed(text, GENERIC_FAILURE)


def analyze(
    source_code: str,
    config: AnalysisConfig | None = None,
    *,
    registry: DetectorRegistry | None = None,
) -> AuditResult:
    """Run the heuristic pipeline over *source_code*.

    Args:
        source_code: Solidity source text.
        config: Size cap, enabled categories and snippet context.
        registry: Detector set to run (default: all built-in detectors).

    Returns:
        A ``COMPLETED`` result, or a ``FAILED`` one with ``error`` populated.
    """
    config = config or AnalysisConfig()
    try:
        validate_input(source_code, config)

        doc = scan(source_code)
        registry = registry or build_default_registry()
        matches = registry.run_all(doc, only=config.enabled_categories)
        findings = assemble(doc, matches, context=config.snippet_context)
        logger.info(
            "Heuristic analysis: %d raw matches -> %d findings",
            len(matches), len(findings),
        )
        return _build_result(
            source_code, findings, EngineInfo(name=RULE_ENGINE, version=__version__),
        )
    except Exception as exc:
        if not isinstance(exc, AnalysisError):
            logger.exception("Unexpected error during analysis")
        return _failed(source_code, exc)


def _from_backend(
    source_code: str,
    outcome: BackendOk,
    config: AnalysisConfig,
) -> AuditResult:
    findings = outcome.findings
    if config.enabled_categories is not None:
        findings = [f for f in findings if f.category in config.enabled_categories]
    return _build_result(
        source_code, findings, EngineInfo(name=outcome.engine, version=outcome.version),
    )


async def analyze_with_backend(
    source_code: str,
    config: AnalysisConfig | None = None,
    *,
    backend: NativeBackend | None = None,
    registry: DetectorRegistry | None = None,
) -> AuditResult:
    """Defer to *backend* when it is ready, else run the heuristic pipeline.

    The elapsed time and a UTC timestamp are attached to the result's
    metadata; ``analyze`` itself stays time-unaware.
    """
    config = config or AnalysisConfig()
    started = time.monotonic()
    result: AuditResult | None = None

    if backend is not None and backend.is_ready:
        try:
            validate_input(source_code, config)
        except AnalysisError:
            pass  # analyze() below reports it
        else:
            outcome = await backend.analyze(source_code, timeout=config.backend_timeout)
            if isinstance(outcome, BackendOk):
                try:
                    result = _from_backend(source_code, outcome, config)
                except Exception:
                    logger.exception(
                        "Failed to build result from %s output; falling back to heuristics",
                        outcome.engine,
                    )
            else:
                logger.warning(
                    "Native backend %s not used (%s); falling back to heuristics",
                    backend.name, outcome.reason,
                )

    if result is None:
        result = analyze(source_code, config, registry=registry)

    elapsed_ms = round((time.monotonic() - started) * 1000)
    metadata = result.metadata.model_copy(update={
        "duration": elapsed_ms,
        "analysis_timestamp": datetime.now(timezone.utc).isoformat(),
    })
    return result.model_copy(update={"metadata": metadata})
