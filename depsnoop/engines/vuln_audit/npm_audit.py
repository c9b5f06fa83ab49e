"""npm audit source: run ``npm audit --json`` next to a package.json."""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import structlog

from depsnoop.engines.dependency_scanner.models import Ecosystem
from depsnoop.engines.vuln_audit.models import Severity, Vulnerability, VulnerabilitySummary
from depsnoop.exceptions import AuditTimeoutError, InvocationError, ToolUnavailableError

log = structlog.get_logger("depsnoop.engine")

DEFAULT_TIMEOUT = 60.0


@dataclass
class NpmAuditReport:
    """Parsed ``npm audit --json`` output (report version 2)."""

    vulnerabilities: dict[str, dict[str, Any]] = field(default_factory=dict)
    metadata_counts: dict[str, int] = field(default_factory=dict)
    dependencies: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> NpmAuditReport:
        """Raises InvocationError when the report sections have the wrong shape."""
        metadata = data.get("metadata") or {}
        vulnerabilities = data.get("vulnerabilities") or {}
        if not isinstance(metadata, dict) or not isinstance(vulnerabilities, dict):
            raise InvocationError("npm audit output has an unexpected structure")
        bad = [name for name, entry in vulnerabilities.items() if not isinstance(entry, dict)]
        if bad:
            raise InvocationError(f"npm audit entry for {bad[0]} is not an object")
        if not isinstance(metadata.get("vulnerabilities") or {}, dict) or not isinstance(
            metadata.get("dependencies") or {}, dict
        ):
            raise InvocationError("npm audit metadata has an unexpected structure")
        return cls(
            vulnerabilities=dict(vulnerabilities),
            metadata_counts=dict(metadata.get("vulnerabilities") or {}),
            dependencies=dict(metadata.get("dependencies") or {}),
        )

    def to_vulnerabilities(self) -> list[Vulnerability]:
        return [_convert(name, entry) for name, entry in self.vulnerabilities.items()]

    def summary(self) -> VulnerabilitySummary:
        summary = VulnerabilitySummary()
        for vuln in self.to_vulnerabilities():
            summary.add(vuln.severity)
        return summary


def _advisory_id(advisory: dict[str, Any]) -> str:
    """GHSA id from the advisory URL, else ``npm:<source>``."""
    url = str(advisory.get("url") or "")
    tail = url.rstrip("/").rsplit("/", 1)[-1]
    if tail.startswith("GHSA-"):
        return tail
    return f"npm:{advisory.get('source', advisory.get('name', 'unknown'))}"


def _convert(name: str, entry: dict[str, Any]) -> Vulnerability:
    """One vulnerabilities[<name>] entry → one Vulnerability.

    ``via`` holds advisory objects for packages that are vulnerable
    themselves and plain package names for packages that are only
    vulnerable through a dependency.
    """
    via = entry.get("via")
    if not isinstance(via, list):
        via = []
    advisories = [v for v in via if isinstance(v, dict)]
    if advisories:
        ids = [_advisory_id(a) for a in advisories]
        vuln_id, aliases = ids[0], ids[1:]
        description = str(advisories[0].get("title") or "")
    else:
        via_names = [v for v in via if isinstance(v, str)]
        vuln_id, aliases = f"npm:{name}", []
        description = f"vulnerable through {', '.join(via_names)}" if via_names else ""

    fix = entry.get("fixAvailable")
    fix_versions = [str(fix["version"])] if isinstance(fix, dict) and fix.get("version") else []

    affected = entry.get("range")
    return Vulnerability(
        id=vuln_id,
        package=name,
        version="",
        ecosystem=Ecosystem.NPM,
        severity=Severity.parse(str(entry.get("severity") or ""), default=Severity.HIGH),
        aliases=aliases,
        fix_versions=fix_versions,
        description=description,
        affected_ranges=[str(affected)] if affected else [],
        is_direct=entry.get("isDirect"),
    )


class NpmAuditSource:
    """Manifest-scoped source that shells out to npm.

    npm exits non-zero whenever it finds vulnerabilities, so the exit code
    is ignored and stdout is always parsed. Only a timeout, a binary that
    cannot be launched, or output that is not an audit report count as
    failures. Launch failures raise ToolUnavailableError, which disables
    the ecosystem for the rest of the run.
    """

    scope: Literal["manifest"] = "manifest"

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, command: str = "npm") -> None:
        self._timeout = timeout if timeout > 0 else DEFAULT_TIMEOUT
        self._command = command

    @property
    def timeout(self) -> float:
        return self._timeout

    def check_available(self) -> None:
        """Raise ToolUnavailableError unless ``npm --version`` succeeds."""
        try:
            proc = subprocess.run(
                [self._command, "--version"],
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise ToolUnavailableError(
                f"{self._command} is not installed or not available in PATH"
            ) from exc
        if proc.returncode != 0 or not proc.stdout.strip():
            raise ToolUnavailableError(f"{self._command} is not properly configured")

    def run_audit(self, manifest_path: Path) -> NpmAuditReport:
        """Run the audit in the manifest's directory and parse its report."""
        directory = manifest_path.parent
        cmd = [self._command, "audit", "--json"]
        log.debug("npm.audit_start", cwd=str(directory))

        try:
            proc = subprocess.run(
                cmd,
                cwd=directory,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise AuditTimeoutError("npm audit", self._timeout) from exc
        except FileNotFoundError as exc:
            raise ToolUnavailableError(
                f"{self._command} is not installed or not available in PATH"
            ) from exc
        except OSError as exc:
            # A launch failure will repeat for every manifest.
            raise ToolUnavailableError(f"failed to launch {self._command}: {exc}") from exc

        if proc.returncode != 0:
            log.debug("npm.audit_exit", code=proc.returncode, cwd=str(directory))

        try:
            data = json.loads(proc.stdout or "")
        except json.JSONDecodeError as exc:
            stderr = (proc.stderr or "").strip()[:200]
            raise InvocationError(f"failed to parse npm audit output: {stderr or exc}") from exc

        if not isinstance(data, dict):
            raise InvocationError("npm audit output is not a JSON object")
        if "error" in data:
            error = data["error"]
            summary = error.get("summary") if isinstance(error, dict) else str(error)
            raise InvocationError(f"npm audit failed: {summary}")

        return NpmAuditReport.from_json(data)

    def audit(self, manifest_path: Path) -> list[Vulnerability]:
        return self.run_audit(manifest_path).to_vulnerabilities()
