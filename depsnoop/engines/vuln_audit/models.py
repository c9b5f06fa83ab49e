"""Data models for the vulnerability audit engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from depsnoop.engines.dependency_scanner.models import (
    Ecosystem,
    ManifestKind,
    ScanResult,
)
from depsnoop.exceptions import DepsnoopError


class Severity(str, Enum):
    """Five-level severity scale shared by every vulnerability source."""

    CRITICAL = "critical"
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        return _RANK[self]

    @classmethod
    def parse(cls, label: str | None, default: Severity) -> Severity:
        """Map a free-form label onto the scale; unknown labels get *default*."""
        if not label:
            return default
        normalized = label.strip().lower()
        if normalized == "medium":
            return cls.MODERATE
        try:
            return cls(normalized)
        except ValueError:
            return default


_RANK: dict[Severity, int] = {
    Severity.INFO: 0,
    Severity.LOW: 1,
    Severity.MODERATE: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


@dataclass
class Vulnerability:
    """A known vulnerability affecting one declared package."""

    id: str
    package: str
    version: str  # "" when the query covered every version
    ecosystem: Ecosystem
    severity: Severity
    aliases: list[str] = field(default_factory=list)
    fix_versions: list[str] = field(default_factory=list)
    description: str = ""
    affected_ranges: list[str] = field(default_factory=list)
    is_direct: bool | None = None  # only known for npm audit results

    def cves(self) -> list[str]:
        return [a for a in self.aliases if a.startswith("CVE-")]


@dataclass
class VulnerabilitySummary:
    """Per-severity counts.

    Only mutate through :meth:`add` and :meth:`merge` so that ``total``
    always equals the sum of the buckets.
    """

    critical: int = 0
    high: int = 0
    moderate: int = 0
    low: int = 0
    info: int = 0
    total: int = 0

    def add(self, severity: Severity) -> None:
        setattr(self, severity.value, getattr(self, severity.value) + 1)
        self.total += 1

    def merge(self, other: VulnerabilitySummary) -> None:
        for severity in Severity:
            setattr(
                self,
                severity.value,
                getattr(self, severity.value) + getattr(other, severity.value),
            )
        self.total += other.total

    def count(self, severity: Severity) -> int:
        return getattr(self, severity.value)

    def to_dict(self) -> dict[str, int]:
        return {
            "critical": self.critical,
            "high": self.high,
            "moderate": self.moderate,
            "low": self.low,
            "info": self.info,
            "total": self.total,
        }


@dataclass
class AuditResult:
    """Audit outcome for a single manifest.

    ``error`` is set when auditing stopped early; vulnerabilities gathered
    before that point are kept.
    """

    manifest_path: Path
    kind: ManifestKind
    vulnerabilities: list[Vulnerability] = field(default_factory=list)
    summary: VulnerabilitySummary = field(default_factory=VulnerabilitySummary)
    packages_scanned: int = 0
    error: DepsnoopError | None = None

    @property
    def ecosystem(self) -> Ecosystem:
        return self.kind.ecosystem

    def add(self, vuln: Vulnerability) -> None:
        self.vulnerabilities.append(vuln)
        self.summary.add(vuln.severity)

    def has_vulnerabilities(self) -> bool:
        return self.summary.total > 0


@dataclass
class AuditReport:
    """Everything one run produced: the scan, per-manifest results and totals."""

    scan: ScanResult
    results: list[AuditResult] = field(default_factory=list)
    summary: VulnerabilitySummary = field(default_factory=VulnerabilitySummary)

    def add(self, result: AuditResult) -> None:
        self.results.append(result)
        self.summary.merge(result.summary)

    def by_ecosystem(self) -> dict[Ecosystem, list[AuditResult]]:
        grouped: dict[Ecosystem, list[AuditResult]] = {}
        for result in self.results:
            grouped.setdefault(result.ecosystem, []).append(result)
        return grouped

    def has_errors(self) -> bool:
        return any(r.error is not None for r in self.results)


def filter_by_severity(
    vulnerabilities: list[Vulnerability], minimum: Severity
) -> list[Vulnerability]:
    """Keep vulnerabilities at or above *minimum*."""
    return [v for v in vulnerabilities if v.severity.rank >= minimum.rank]
