"""Render an AuditReport as json, table or markdown text."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import click

from depsnoop import __version__
from depsnoop.engines.dependency_scanner.models import Ecosystem
from depsnoop.engines.supply_chain.models import RiskLevel, SecurityReport
from depsnoop.engines.vuln_audit.models import (
    AuditReport,
    AuditResult,
    Severity,
    Vulnerability,
    VulnerabilitySummary,
)

TOOL_NAME = "depsnoop"
FORMATS = ("json", "table", "markdown")

_SEVERITY_COLORS = {
    Severity.CRITICAL: "red",
    Severity.HIGH: "bright_red",
    Severity.MODERATE: "yellow",
    Severity.LOW: "blue",
    Severity.INFO: "white",
}
_RISK_COLORS = {RiskLevel.HIGH: "red", RiskLevel.MEDIUM: "yellow", RiskLevel.LOW: "green"}

_SEVERITY_BADGES = {
    Severity.CRITICAL: "🔴 Critical",
    Severity.HIGH: "🟠 High",
    Severity.MODERATE: "🟡 Moderate",
    Severity.LOW: "🔵 Low",
    Severity.INFO: "Info",
}

_ECOSYSTEM_TITLES = {
    Ecosystem.NPM: "Node.js Packages",
    Ecosystem.PYPI: "Python Packages",
    Ecosystem.GO: "Go Modules",
    Ecosystem.MAVEN: "Maven Dependencies",
}


@dataclass
class RenderContext:
    """What the renderers need besides the report itself."""

    directory: Path
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    supply_chain: list[SecurityReport] = field(default_factory=list)


def render(report: AuditReport, output_format: str, ctx: RenderContext) -> str:
    if output_format == "json":
        return render_json(report, ctx)
    if output_format == "markdown":
        return render_markdown(report, ctx)
    if output_format == "table":
        return render_table(report, ctx)
    raise ValueError(f"unknown output format: {output_format}")


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def _fixes(vuln: Vulnerability) -> str:
    return ", ".join(vuln.fix_versions) or "N/A"


# ── json ──────────────────────────────────────────────────────────────────


def _vuln_dict(vuln: Vulnerability) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": vuln.id,
        "package": vuln.package,
        "version": vuln.version,
        "ecosystem": vuln.ecosystem.value,
        "severity": vuln.severity.value,
        "aliases": vuln.aliases,
        "fixVersions": vuln.fix_versions,
        "description": vuln.description,
        "affectedRanges": vuln.affected_ranges,
    }
    if vuln.is_direct is not None:
        data["isDirect"] = vuln.is_direct
    return data


def _result_dict(result: AuditResult) -> dict[str, Any]:
    data: dict[str, Any] = {
        "manifestPath": str(result.manifest_path),
        "manifestType": result.kind.value,
        "ecosystem": result.ecosystem.value,
        "packagesScanned": result.packages_scanned,
        "vulnerabilities": [_vuln_dict(v) for v in result.vulnerabilities],
        "summary": result.summary.to_dict(),
    }
    if result.error is not None:
        data["error"] = str(result.error)
    return data


def _security_dict(sec: SecurityReport) -> dict[str, Any]:
    data: dict[str, Any] = {"package": sec.package_name, "overallRisk": sec.overall_risk.value}
    if sec.typosquatting:
        data["typosquatting"] = {
            "similarTo": sec.typosquatting.similar_to,
            "distance": sec.typosquatting.distance,
            "confidence": sec.typosquatting.confidence.value,
        }
    if sec.maintainer:
        data["maintainer"] = {
            "issues": sec.maintainer.issues,
            "riskLevel": sec.maintainer.risk_level.value,
            "maintainerCount": sec.maintainer.maintainer_count,
        }
    if sec.suspicious_scripts:
        data["suspiciousScripts"] = [
            {"type": s.script_type, "content": s.script_content, "riskLevel": s.risk_level.value}
            for s in sec.suspicious_scripts
        ]
    return data


def render_json(report: AuditReport, ctx: RenderContext) -> str:
    payload: dict[str, Any] = {
        "metadata": {
            "timestamp": ctx.timestamp.isoformat(),
            "directory": str(ctx.directory),
            "toolName": TOOL_NAME,
            "toolVersion": __version__,
        },
        "manifestsFound": len(report.scan.files),
        "manifestFiles": [
            {"path": str(f.path), "type": f.kind.value} for f in report.scan.files
        ],
        "scanErrors": [str(e) for e in report.scan.errors],
        "audits": [_result_dict(r) for r in report.results],
        "totalVulnerabilities": report.summary.total,
        "summary": report.summary.to_dict(),
    }
    if ctx.supply_chain:
        payload["supplyChain"] = [
            _security_dict(s) for s in ctx.supply_chain if s.has_findings()
        ]
    return json.dumps(payload, indent=2)


# ── table ─────────────────────────────────────────────────────────────────


def _styled_severity(severity: Severity, width: int = 10) -> str:
    return click.style(f"{severity.value:<{width}}", fg=_SEVERITY_COLORS[severity])


def format_summary(summary: VulnerabilitySummary) -> str:
    if summary.total == 0:
        return "No vulnerabilities found!\n"
    lines = [f"Found {summary.total} vulnerabilities:"]
    for severity in Severity:
        count = summary.count(severity)
        if count:
            label = click.style(severity.value.capitalize(), fg=_SEVERITY_COLORS[severity])
            lines.append(f"  {label}: {count}")
    return "\n".join(lines) + "\n"


def render_table(report: AuditReport, ctx: RenderContext) -> str:
    out: list[str] = [
        "",
        f"{TOOL_NAME} Scan Results",
        "=" * 80,
        f"Directory: {ctx.directory}",
        f"Timestamp: {ctx.timestamp.isoformat(timespec='seconds')}",
        "",
        f"Found {len(report.scan.files)} manifest file(s)",
        "",
    ]
    for warning in report.scan.errors:
        out.append(click.style(f"Warning: {warning}", fg="yellow"))

    for result in report.results:
        if result.error is not None:
            out.append(f"Error auditing {result.manifest_path}: {result.error}")
            out.append("")
            continue
        out.append(f"{result.ecosystem.value}: {result.manifest_path} ({result.kind.value})")
        out.append(format_summary(result.summary))
        if not result.vulnerabilities:
            continue
        out.append(f"{'Package':<40} {'Version':<12} {'Severity':<10} {'ID':<20} Fix Versions")
        out.append("-" * 96)
        for vuln in result.vulnerabilities:
            out.append(
                f"{_truncate(vuln.package, 38):<40} "
                f"{_truncate(vuln.version or '*', 10):<12} "
                f"{_styled_severity(vuln.severity)} "
                f"{_truncate(vuln.id, 18):<20} "
                f"{_fixes(vuln)}"
            )
        out.append("")

    flagged = [s for s in ctx.supply_chain if s.has_findings()]
    if flagged:
        out.append("Supply-chain findings")
        out.append("-" * 80)
        for sec in flagged:
            risk = click.style(sec.overall_risk.value, fg=_RISK_COLORS[sec.overall_risk])
            out.append(f"{sec.package_name} [{risk}]")
            for line in _security_lines(sec):
                out.append(f"  - {line}")
        out.append("")

    out.append("=" * 80)
    out.append(f"Total vulnerabilities: {report.summary.total}")
    return "\n".join(out) + "\n"


def _security_lines(sec: SecurityReport) -> list[str]:
    lines: list[str] = []
    if sec.typosquatting:
        t = sec.typosquatting
        lines.append(
            f"similar to '{t.similar_to}' (distance {t.distance}, {t.confidence.value} confidence)"
        )
    if sec.maintainer:
        lines.extend(sec.maintainer.issues)
    for script in sec.suspicious_scripts:
        lines.append(f"{script.script_type} script ({script.risk_level.value}): {script.script_content}")
    return lines


# ── markdown ──────────────────────────────────────────────────────────────


def render_markdown(report: AuditReport, ctx: RenderContext) -> str:
    out: list[str] = [
        f"# {TOOL_NAME} Scan Results",
        "",
        f"**Directory:** {ctx.directory}  ",
        f"**Timestamp:** {ctx.timestamp.isoformat(timespec='seconds')}  ",
        f"**Version:** {__version__}  ",
        "",
        "## Manifest Files",
        "",
        f"Found **{len(report.scan.files)}** manifest file(s):",
        "",
    ]
    out.extend(f"- `{f.path}` ({f.kind.value})" for f in report.scan.files)
    out += ["", "## Security Audit Results", ""]

    for ecosystem, results in report.by_ecosystem().items():
        out += [f"### {_ECOSYSTEM_TITLES[ecosystem]}", ""]
        for result in results:
            out += [f"#### {result.manifest_path}", ""]
            if result.error is not None:
                out += [f"**Error:** {result.error}", ""]
                continue
            if result.summary.total == 0:
                out += ["✅ No vulnerabilities found!", ""]
                continue
            out.append(f"- Total: **{result.summary.total}**")
            for severity in Severity:
                count = result.summary.count(severity)
                if count:
                    out.append(f"- {_SEVERITY_BADGES[severity]}: **{count}**")
            out += [
                "",
                "| Package | Version | Severity | ID | Fix Versions |",
                "|---------|---------|----------|----|--------------|",
            ]
            for vuln in result.vulnerabilities:
                out.append(
                    f"| `{vuln.package}` | {vuln.version or '*'} | "
                    f"{_SEVERITY_BADGES[vuln.severity]} | {vuln.id} | {_fixes(vuln)} |"
                )
            out.append("")

    flagged = [s for s in ctx.supply_chain if s.has_findings()]
    if flagged:
        out += ["## Supply-Chain Findings", ""]
        for sec in flagged:
            out.append(f"### `{sec.package_name}` ({sec.overall_risk.value})")
            out.append("")
            out.extend(f"- {line}" for line in _security_lines(sec))
            out.append("")

    out += ["## Summary", "", f"**Total vulnerabilities:** {report.summary.total}", ""]
    return "\n".join(out)
