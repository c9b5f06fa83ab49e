"""AuditOrchestrator: route each manifest to its parser and vulnerability source."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

import structlog

from depsnoop.engines.dependency_scanner.models import (
    DetectedFile,
    Ecosystem,
    ManifestKind,
    Package,
    ScanResult,
)
from depsnoop.engines.dependency_scanner.registry import parse_manifest
from depsnoop.engines.vuln_audit.models import AuditReport, AuditResult, Severity, Vulnerability
from depsnoop.engines.vuln_audit.npm_audit import NpmAuditSource
from depsnoop.engines.vuln_audit.osv_client import OSVClient
from depsnoop.engines.vuln_audit.sources import OSVSource, VulnerabilitySource
from depsnoop.exceptions import (
    BackendError,
    ManifestParseError,
    PackageQueryError,
    ToolUnavailableError,
)

if TYPE_CHECKING:
    from depsnoop.core.config import AuditConfig

log = structlog.get_logger("depsnoop.engine")

# Manifest kinds that are audited, and the ecosystem whose source handles them.
# Lockfiles and go.sum are detected but not audited separately.
AUDIT_ROUTES: dict[ManifestKind, Ecosystem] = {
    ManifestKind.PACKAGE_JSON: Ecosystem.NPM,
    ManifestKind.REQUIREMENTS_TXT: Ecosystem.PYPI,
    ManifestKind.PIPFILE: Ecosystem.PYPI,
    ManifestKind.PYPROJECT_TOML: Ecosystem.PYPI,
    ManifestKind.GO_MOD: Ecosystem.GO,
    ManifestKind.POM_XML: Ecosystem.MAVEN,
}


class AuditOrchestrator:
    """Audit manifests one at a time, packages strictly in extraction order.

    Failures are attached to the narrowest result: a failed package query
    is logged and skipped, a parse or backend failure sets
    ``AuditResult.error``. Nothing is retried.
    """

    def __init__(
        self,
        sources: Mapping[Ecosystem, VulnerabilitySource],
        min_severity: Severity = Severity.LOW,
    ) -> None:
        self._sources = dict(sources)
        self._min_severity = min_severity
        self._disabled: dict[Ecosystem, ToolUnavailableError] = {}

    @classmethod
    def from_config(cls, config: AuditConfig) -> AuditOrchestrator:
        """Build the default sources: npm audit for npm, one OSV client for the rest."""
        osv = OSVSource(OSVClient(url=config.osv_url, timeout=config.osv_timeout))
        sources: dict[Ecosystem, VulnerabilitySource] = {
            Ecosystem.NPM: NpmAuditSource(timeout=config.npm_timeout),
            Ecosystem.PYPI: osv,
            Ecosystem.GO: osv,
            Ecosystem.MAVEN: osv,
        }
        return cls(sources, min_severity=config.min_severity)

    # ── lifecycle ──────────────────────────────────────────────────────────

    def close(self) -> None:
        closed: set[int] = set()
        for source in self._sources.values():
            close = getattr(source, "close", None)
            if close is not None and id(source) not in closed:
                closed.add(id(source))
                close()

    def __enter__(self) -> AuditOrchestrator:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ── public ─────────────────────────────────────────────────────────────

    def is_disabled(self, ecosystem: Ecosystem) -> bool:
        return ecosystem in self._disabled

    def disable(self, ecosystem: Ecosystem, reason: ToolUnavailableError) -> None:
        """Stop auditing *ecosystem* for the rest of the run."""
        if ecosystem not in self._disabled:
            log.warning("audit.ecosystem_disabled", ecosystem=ecosystem.value, reason=str(reason))
        self._disabled[ecosystem] = reason

    def run(self, manifest: DetectedFile) -> AuditResult:
        """Audit a single manifest."""
        result = AuditResult(manifest_path=manifest.path, kind=manifest.kind)

        ecosystem = AUDIT_ROUTES.get(manifest.kind)
        source = self._sources.get(ecosystem) if ecosystem is not None else None
        if ecosystem is None or source is None:
            log.debug("audit.not_routed", kind=manifest.kind.value, path=str(manifest.path))
            return result

        if ecosystem in self._disabled:
            result.error = self._disabled[ecosystem]
            return result

        try:
            packages = parse_manifest(manifest)
        except ManifestParseError as exc:
            log.warning("audit.parse_failed", path=str(manifest.path), error=str(exc))
            result.error = exc
            return result

        result.packages_scanned = len(packages)
        log.info(
            "audit.manifest_start",
            path=str(manifest.path),
            kind=manifest.kind.value,
            packages=len(packages),
        )

        if source.scope == "manifest":
            self._audit_manifest(source, manifest, ecosystem, result)
        else:
            self._query_packages(source, packages, result)

        log.info(
            "audit.manifest_done",
            path=str(manifest.path),
            vulnerabilities=result.summary.total,
            error=str(result.error) if result.error else None,
        )
        return result

    def run_all(self, scan: ScanResult) -> AuditReport:
        """Audit every detected manifest in discovery order."""
        report = AuditReport(scan=scan)
        self._probe_tools(scan)
        for manifest in scan.files:
            report.add(self.run(manifest))
        return report

    # ── internal ───────────────────────────────────────────────────────────

    def _probe_tools(self, scan: ScanResult) -> None:
        """Check external tools once up front for ecosystems present in the scan."""
        for ecosystem, source in self._sources.items():
            check = getattr(source, "check_available", None)
            if check is None or ecosystem in self._disabled:
                continue
            if not any(AUDIT_ROUTES.get(f.kind) is ecosystem for f in scan.files):
                continue
            try:
                check()
            except ToolUnavailableError as exc:
                self.disable(ecosystem, exc)

    def _audit_manifest(
        self,
        source: VulnerabilitySource,
        manifest: DetectedFile,
        ecosystem: Ecosystem,
        result: AuditResult,
    ) -> None:
        try:
            vulns = source.audit(manifest.path)
        except ToolUnavailableError as exc:
            self.disable(ecosystem, exc)
            result.error = exc
            return
        except BackendError as exc:
            log.warning("audit.backend_failed", path=str(manifest.path), error=str(exc))
            result.error = exc
            return

        for vuln in vulns:
            self._keep(vuln, result)

    def _query_packages(
        self,
        source: VulnerabilitySource,
        packages: list[Package],
        result: AuditResult,
    ) -> None:
        for package in packages:
            log.debug(
                "audit.query",
                package=package.name,
                version=package.version or "*",
                ecosystem=package.ecosystem.value,
            )
            try:
                vulns = source.query(package)
            except PackageQueryError as exc:
                log.warning("osv.query_failed", package=package.name, error=str(exc))
                continue
            for vuln in vulns:
                self._keep(vuln, result)

    def _keep(self, vuln: Vulnerability, result: AuditResult) -> None:
        if vuln.severity.rank >= self._min_severity.rank:
            result.add(vuln)
