"""Data models for the supply-chain heuristics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}[self]

    def at_least(self, other: RiskLevel) -> RiskLevel:
        return self if self.rank >= other.rank else other


@dataclass
class TyposquattingRisk:
    package_name: str
    similar_to: str
    distance: int
    confidence: RiskLevel


@dataclass
class Maintainer:
    name: str = ""
    email: str = ""


@dataclass
class PackageMetadata:
    """Registry metadata for one npm package (latest version)."""

    name: str
    version: str = ""
    description: str = ""
    last_modified: datetime | None = None
    maintainers: list[Maintainer] = field(default_factory=list)
    repository: dict[str, Any] = field(default_factory=dict)
    scripts: dict[str, str] = field(default_factory=dict)


@dataclass
class MaintainerRisk:
    package_name: str
    issues: list[str] = field(default_factory=list)
    risk_level: RiskLevel = RiskLevel.LOW
    last_update: datetime | None = None
    maintainer_count: int = 0


@dataclass
class SuspiciousScript:
    package_name: str
    script_type: str  # preinstall | install | postinstall
    script_content: str
    risk_level: RiskLevel


@dataclass
class SecurityReport:
    package_name: str
    typosquatting: TyposquattingRisk | None = None
    maintainer: MaintainerRisk | None = None
    suspicious_scripts: list[SuspiciousScript] = field(default_factory=list)
    overall_risk: RiskLevel = RiskLevel.LOW

    def has_findings(self) -> bool:
        return bool(self.typosquatting or self.maintainer or self.suspicious_scripts)
