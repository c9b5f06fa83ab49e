"""Vulnerability sources: the two shapes the orchestrator can drive.

A *package-scoped* source answers one query per declared package. A
*manifest-scoped* source audits a whole manifest directory in one call
(``npm audit``). Both return :class:`Vulnerability` objects on the shared
five-level severity scale.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Protocol, runtime_checkable

from depsnoop.engines.dependency_scanner.models import Package
from depsnoop.engines.vuln_audit.models import Severity, Vulnerability
from depsnoop.engines.vuln_audit.osv_client import OSVClient, OSVVulnerability


@runtime_checkable
class PackageSource(Protocol):
    scope: Literal["package"]

    def query(self, package: Package) -> list[Vulnerability]: ...


@runtime_checkable
class ManifestSource(Protocol):
    scope: Literal["manifest"]

    def audit(self, manifest_path: Path) -> list[Vulnerability]: ...


VulnerabilitySource = PackageSource | ManifestSource


def osv_severity(vuln: OSVVulnerability) -> Severity:
    """Placeholder severity for OSV records.

    The query response carries no first-class level, so any record with an
    alias (CVE, GHSA, ...) is reported as high, and records without one
    default to high as well. The result is always a defined level.
    """
    # TODO: derive the level from the CVSS vectors in ``vuln.severity``.
    return Severity.HIGH


def _description(vuln: OSVVulnerability) -> str:
    if vuln.summary:
        return vuln.summary
    return vuln.details.strip().splitlines()[0] if vuln.details.strip() else ""


class OSVSource:
    """Package-scoped source backed by the OSV database (PyPI, Go, Maven)."""

    scope: Literal["package"] = "package"

    def __init__(self, client: OSVClient) -> None:
        self._client = client

    def query(self, package: Package) -> list[Vulnerability]:
        records = self._client.query_package(
            package.name, package.version, package.ecosystem.value
        )
        return [self._convert(package, record) for record in records]

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _convert(package: Package, record: OSVVulnerability) -> Vulnerability:
        ranges = [
            described
            for affected in record.affected
            for vrange in affected.ranges
            if (described := vrange.describe())
        ]
        return Vulnerability(
            id=record.id,
            package=package.name,
            version=package.version,
            ecosystem=package.ecosystem,
            severity=osv_severity(record),
            aliases=list(record.aliases),
            fix_versions=record.fix_versions(),
            description=_description(record),
            affected_ranges=ranges,
        )
