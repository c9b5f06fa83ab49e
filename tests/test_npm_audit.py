"""Tests for the npm audit source."""

from __future__ import annotations

import json
import subprocess
from unittest.mock import patch

import pytest

from depsnoop.engines.dependency_scanner import Ecosystem
from depsnoop.engines.vuln_audit import NpmAuditReport, NpmAuditSource, Severity
from depsnoop.exceptions import AuditTimeoutError, InvocationError, ToolUnavailableError

_SUBPROCESS_RUN = "depsnoop.engines.vuln_audit.npm_audit.subprocess.run"

_AUDIT_OUTPUT = {
    "auditReportVersion": 2,
    "vulnerabilities": {
        "lodash": {
            "name": "lodash",
            "severity": "critical",
            "isDirect": True,
            "via": [
                {
                    "source": 1094499,
                    "name": "lodash",
                    "title": "Prototype Pollution in lodash",
                    "url": "https://github.com/advisories/GHSA-jf85-cpcp-j695",
                    "severity": "critical",
                    "range": "<4.17.12",
                },
                {
                    "source": 1096305,
                    "name": "lodash",
                    "title": "Command Injection in lodash",
                    "url": "https://github.com/advisories/GHSA-35jh-r3h4-6jhm",
                    "severity": "high",
                },
            ],
            "range": "<=4.17.20",
            "fixAvailable": {"name": "lodash", "version": "4.17.21", "isSemVerMajor": False},
        },
        "express": {
            "name": "express",
            "severity": "moderate",
            "isDirect": False,
            "via": ["body-parser", "qs"],
            "range": "4.0.0 - 4.17.2",
            "fixAvailable": True,
        },
        "odd": {
            "name": "odd",
            "severity": "weird",
            "via": [{"source": 42, "title": "No url"}],
            "range": "*",
        },
    },
    "metadata": {
        "vulnerabilities": {"critical": 1, "high": 0, "moderate": 1, "low": 0, "info": 0, "total": 2},
        "dependencies": {"prod": 10, "dev": 3, "total": 13},
    },
}


def _completed(stdout: str, returncode: int = 1, stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=["npm"], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def manifest(tmp_path):
    path = tmp_path / "package.json"
    path.write_text('{"dependencies": {"lodash": "4.17.4"}}')
    return path


# ── NpmAuditReport ───────────────────────────────────────────────────────


class TestNpmAuditReport:
    def test_converts_entries(self):
        vulns = {v.package: v for v in NpmAuditReport.from_json(_AUDIT_OUTPUT).to_vulnerabilities()}

        lodash = vulns["lodash"]
        assert lodash.id == "GHSA-jf85-cpcp-j695"
        assert lodash.aliases == ["GHSA-35jh-r3h4-6jhm"]
        assert lodash.severity is Severity.CRITICAL
        assert lodash.is_direct is True
        assert lodash.fix_versions == ["4.17.21"]
        assert lodash.affected_ranges == ["<=4.17.20"]
        assert lodash.description == "Prototype Pollution in lodash"
        assert lodash.ecosystem is Ecosystem.NPM

        express = vulns["express"]
        assert express.id == "npm:express"
        assert express.description == "vulnerable through body-parser, qs"
        assert express.fix_versions == []
        assert express.is_direct is False

    def test_unknown_severity_defaults_high(self):
        vulns = {v.package: v for v in NpmAuditReport.from_json(_AUDIT_OUTPUT).to_vulnerabilities()}
        assert vulns["odd"].severity is Severity.HIGH
        assert vulns["odd"].id == "npm:42"

    def test_metadata_kept(self):
        report = NpmAuditReport.from_json(_AUDIT_OUTPUT)
        assert report.metadata_counts["total"] == 2
        assert report.dependencies["total"] == 13

    def test_summary_matches_entries(self):
        summary = NpmAuditReport.from_json(_AUDIT_OUTPUT).summary()
        assert summary.total == 3
        assert summary.critical == 1
        assert summary.moderate == 1
        assert summary.high == 1

    def test_empty_report(self):
        assert NpmAuditReport.from_json({}).to_vulnerabilities() == []

    @pytest.mark.parametrize(
        "payload",
        [
            {"vulnerabilities": ["lodash"]},
            {"vulnerabilities": {"lodash": "critical"}},
            {"metadata": "none"},
            {"metadata": {"vulnerabilities": [1, 0]}},
        ],
    )
    def test_malformed_sections_raise(self, payload):
        with pytest.raises(InvocationError, match="unexpected structure|not an object"):
            NpmAuditReport.from_json(payload)

    def test_odd_entry_fields_tolerated(self):
        entry = {"severity": 7, "via": "lodash", "range": ["<1.0.0"]}
        (vuln,) = NpmAuditReport.from_json({"vulnerabilities": {"x": entry}}).to_vulnerabilities()
        assert vuln.id == "npm:x"
        assert vuln.severity is Severity.HIGH
        assert vuln.affected_ranges == ["['<1.0.0']"]


# ── NpmAuditSource ───────────────────────────────────────────────────────


class TestNpmAuditSource:
    def test_nonzero_exit_is_parsed(self, manifest):
        with patch(_SUBPROCESS_RUN, return_value=_completed(json.dumps(_AUDIT_OUTPUT), returncode=1)) as run:
            vulns = NpmAuditSource(timeout=5).audit(manifest)
        assert len(vulns) == 3
        args, kwargs = run.call_args
        assert args[0] == ["npm", "audit", "--json"]
        assert kwargs["cwd"] == manifest.parent
        assert kwargs["timeout"] == 5

    def test_timeout(self, manifest):
        with patch(_SUBPROCESS_RUN, side_effect=subprocess.TimeoutExpired(cmd="npm", timeout=5)):
            with pytest.raises(AuditTimeoutError, match="timed out after 5s"):
                NpmAuditSource(timeout=5).audit(manifest)

    def test_missing_binary(self, manifest):
        with patch(_SUBPROCESS_RUN, side_effect=FileNotFoundError("npm")):
            with pytest.raises(ToolUnavailableError):
                NpmAuditSource().audit(manifest)

    def test_launch_failure_is_tool_unavailable(self, manifest):
        with patch(_SUBPROCESS_RUN, side_effect=PermissionError("denied")):
            with pytest.raises(ToolUnavailableError, match="failed to launch npm"):
                NpmAuditSource().audit(manifest)

    def test_malformed_report_is_invocation_error(self, manifest):
        payload = json.dumps({"vulnerabilities": {"lodash": ["critical"]}})
        with patch(_SUBPROCESS_RUN, return_value=_completed(payload)):
            with pytest.raises(InvocationError, match="lodash") as excinfo:
                NpmAuditSource().audit(manifest)
        assert not isinstance(excinfo.value, ToolUnavailableError)

    def test_non_json_output(self, manifest):
        with patch(_SUBPROCESS_RUN, return_value=_completed("npm ERR! oops", stderr="ENOLOCK")):
            with pytest.raises(InvocationError, match="ENOLOCK"):
                NpmAuditSource().audit(manifest)

    def test_error_payload(self, manifest):
        payload = json.dumps({"error": {"code": "ENOLOCK", "summary": "requires a lockfile"}})
        with patch(_SUBPROCESS_RUN, return_value=_completed(payload)):
            with pytest.raises(InvocationError, match="requires a lockfile"):
                NpmAuditSource().audit(manifest)

    def test_non_positive_timeout_uses_default(self):
        assert NpmAuditSource(timeout=0).timeout == 60.0

    def test_check_available(self):
        with patch(_SUBPROCESS_RUN, return_value=_completed("10.2.0\n", returncode=0)):
            NpmAuditSource().check_available()

    def test_check_available_missing(self):
        with patch(_SUBPROCESS_RUN, side_effect=FileNotFoundError("npm")):
            with pytest.raises(ToolUnavailableError, match="not installed"):
                NpmAuditSource().check_available()

    def test_check_available_bad_exit(self):
        with patch(_SUBPROCESS_RUN, return_value=_completed("", returncode=127)):
            with pytest.raises(ToolUnavailableError, match="not properly configured"):
                NpmAuditSource().check_available()
