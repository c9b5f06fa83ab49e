"""Vulnerability audit engine: query sources for each detected manifest."""

from depsnoop.engines.vuln_audit.models import (
    AuditReport,
    AuditResult,
    Severity,
    Vulnerability,
    VulnerabilitySummary,
    filter_by_severity,
)
from depsnoop.engines.vuln_audit.npm_audit import NpmAuditReport, NpmAuditSource
from depsnoop.engines.vuln_audit.orchestrator import AUDIT_ROUTES, AuditOrchestrator
from depsnoop.engines.vuln_audit.osv_client import OSV_API_URL, OSVClient, OSVVulnerability
from depsnoop.engines.vuln_audit.sources import (
    ManifestSource,
    OSVSource,
    PackageSource,
    osv_severity,
)

__all__ = [
    "AUDIT_ROUTES",
    "OSV_API_URL",
    "AuditOrchestrator",
    "AuditReport",
    "AuditResult",
    "ManifestSource",
    "NpmAuditReport",
    "NpmAuditSource",
    "OSVClient",
    "OSVSource",
    "OSVVulnerability",
    "PackageSource",
    "Severity",
    "Vulnerability",
    "VulnerabilitySummary",
    "filter_by_severity",
    "osv_severity",
]
