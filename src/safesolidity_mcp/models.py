"""Canonical data models shared across scanner, detectors, assembler, and reports."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        return {
            Severity.CRITICAL: 0,
            Severity.HIGH: 1,
            Severity.MEDIUM: 2,
            Severity.LOW: 3,
            Severity.INFO: 4,
        }[self]


class Category(str, Enum):
    REENTRANCY = "REENTRANCY"
    TX_ORIGIN_MISUSE = "TX_ORIGIN_MISUSE"
    TIMESTAMP_DEPENDENCE = "TIMESTAMP_DEPENDENCE"
    UNCHECKED_CALL = "UNCHECKED_CALL"
    INTEGER_OVERFLOW = "INTEGER_OVERFLOW"
    ACCESS_CONTROL = "ACCESS_CONTROL"
    # Native backend checks that map onto none of the built-in rules
    OTHER = "OTHER"


class AuditStatus(str, Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# ---------------------------------------------------------------------------
# Matcher output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RawMatch:
    """An unprocessed, matcher-local hit before assembly."""

    category: Category
    line_number: int  # 1-indexed
    column_start: int  # 1-indexed
    matched_text: str


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------

class _Record(BaseModel):
    """Immutable record serialised with camelCase field names."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class Location(_Record):
    line: int = Field(ge=1)
    column: int = Field(default=1, ge=1)


class Finding(_Record):
    """Single normalised vulnerability report."""

    id: str
    title: str
    description: str = ""
    severity: Severity
    category: Category
    location: Location
    snippet: str | None = None
    confidence: int = Field(default=50, ge=0, le=100)
    recommendation: str = ""
    references: tuple[str, ...] = ()


class VulnerabilitySummary(_Record):
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    info: int = 0
    risk_score: int = Field(default=0, ge=0, le=100)


class ContractMetadata(_Record):
    name: str | None = None
    version: str | None = None
    compiler: str | None = None
    size: int = 0  # bytes
    lines_of_code: int = 0
    functions: int = 0
    complexity: int = 0
    # Stamped by the caller, never by the deterministic core
    duration: int | None = None  # milliseconds
    analysis_timestamp: str | None = None


class EngineInfo(_Record):
    name: str
    version: str
    enabled: bool = True


class AuditResult(_Record):
    """Top-level outcome of one analysis invocation."""

    status: AuditStatus
    vulnerabilities: tuple[Finding, ...] = ()
    summary: VulnerabilitySummary = Field(default_factory=VulnerabilitySummary)
    metadata: ContractMetadata = Field(default_factory=ContractMetadata)
    recommendations: tuple[str, ...] = ()
    engines: tuple[EngineInfo, ...] = ()
    error: str | None = None

    @classmethod
    def failed(cls, source_code: str, message: str) -> AuditResult:
        """Fully-valid FAILED record: zero summary, size/line facts only."""
        return cls(
            status=AuditStatus.FAILED,
            metadata=ContractMetadata(
                size=len(source_code.encode("utf-8")),
                lines_of_code=len(source_code.split("\n")) if source_code else 0,
            ),
            engines=(EngineInfo(name="Error Handler", version="1.0.0"),),
            error=message,
        )

    # --- convenience helpers ------------------------------------------------

    @property
    def by_severity(self) -> dict[Severity, list[Finding]]:
        groups: dict[Severity, list[Finding]] = {s: [] for s in Severity}
        for f in self.vulnerabilities:
            groups[f.severity].append(f)
        return groups

    def to_json(self, indent: int | None = 2) -> str:
        return self.model_dump_json(indent=indent, by_alias=True)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class AnalysisConfig(BaseModel):
    """Runtime configuration for a single analysis run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    max_size_bytes: int = Field(default=1_048_576, gt=0)
    enabled_categories: frozenset[Category] | None = None  # None = all enabled rules
    snippet_context: int = Field(default=2, ge=0)
    backend_timeout: int = Field(default=60, gt=0)
