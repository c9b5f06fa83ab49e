"""Tests for the OSV client and the OSV-backed vulnerability source."""

from __future__ import annotations

import json

import httpx
import pytest

from depsnoop.engines.dependency_scanner import Ecosystem, Package
from depsnoop.engines.vuln_audit import OSVClient, OSVSource, OSVVulnerability, Severity, osv_severity
from depsnoop.exceptions import PackageQueryError

# ── helpers ──────────────────────────────────────────────────────────────

_RECORD = {
    "id": "GHSA-xxxx-yyyy-zzzz",
    "summary": "Path traversal in send_file",
    "details": "Long description.",
    "aliases": ["CVE-2023-0001", "PYSEC-2023-1"],
    "affected": [
        {
            "package": {"name": "flask", "ecosystem": "PyPI"},
            "ranges": [
                {
                    "type": "ECOSYSTEM",
                    "events": [{"introduced": "0"}, {"fixed": "2.2.5"}],
                },
                {
                    "type": "ECOSYSTEM",
                    "events": [{"introduced": "2.3.0"}, {"fixed": "2.3.2"}],
                },
            ],
        },
        {
            "package": {"name": "flask", "ecosystem": "PyPI"},
            "ranges": [{"type": "ECOSYSTEM", "events": [{"fixed": "2.2.5"}]}],
        },
    ],
}


def _client(handler) -> OSVClient:
    return OSVClient(url="https://osv.test/v1/query", transport=httpx.MockTransport(handler))


def _json_handler(payload, status=200, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(json.loads(request.content))
        return httpx.Response(status, json=payload)

    return handler


# ── OSVVulnerability ─────────────────────────────────────────────────────


class TestOSVVulnerability:
    def test_fix_versions_deduplicated_in_order(self):
        vuln = OSVVulnerability.from_dict(_RECORD)
        assert vuln.fix_versions() == ["2.2.5", "2.3.2"]

    def test_cves(self):
        assert OSVVulnerability.from_dict(_RECORD).cves() == ["CVE-2023-0001"]

    def test_missing_fields_default(self):
        vuln = OSVVulnerability.from_dict({"id": "OSV-1"})
        assert vuln.aliases == []
        assert vuln.fix_versions() == []

    def test_range_describe(self):
        vuln = OSVVulnerability.from_dict(_RECORD)
        assert vuln.affected[0].ranges[0].describe() == ">=0, <2.2.5"


class TestOSVSeverity:
    def test_alias_is_high(self):
        assert osv_severity(OSVVulnerability.from_dict(_RECORD)) is Severity.HIGH

    def test_no_alias_still_defined(self):
        assert osv_severity(OSVVulnerability(id="OSV-1")) is Severity.HIGH


# ── OSVClient ────────────────────────────────────────────────────────────


class TestOSVClient:
    def test_request_body_with_version(self):
        seen: list[dict] = []
        with _client(_json_handler({"vulns": [_RECORD]}, seen=seen)) as client:
            records = client.query_package("flask", "2.0.1", "PyPI")
        assert seen == [{"package": {"name": "flask", "ecosystem": "PyPI", "version": "2.0.1"}}]
        assert [r.id for r in records] == ["GHSA-xxxx-yyyy-zzzz"]

    def test_version_omitted_when_empty(self):
        seen: list[dict] = []
        with _client(_json_handler({}, seen=seen)) as client:
            assert client.query_package("requests", "", "PyPI") == []
        assert seen == [{"package": {"name": "requests", "ecosystem": "PyPI"}}]

    def test_non_200_raises(self):
        with _client(_json_handler({"message": "boom"}, status=500)) as client:
            with pytest.raises(PackageQueryError, match="status 500"):
                client.query_package("flask", "2.0.1", "PyPI")

    def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with _client(handler) as client:
            with pytest.raises(PackageQueryError, match="request failed"):
                client.query_package("flask", "2.0.1", "PyPI")

    def test_invalid_json_raises(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>")

        with _client(handler) as client:
            with pytest.raises(PackageQueryError, match="not valid JSON"):
                client.query_package("flask", "2.0.1", "PyPI")

    @pytest.mark.parametrize(
        "payload",
        [
            {"vulns": ["GHSA-bogus"]},
            {"vulns": {"id": "GHSA-bogus"}},
            {"vulns": [{"id": "GHSA-bogus", "affected": ["flask"]}]},
            {"vulns": [{"id": "GHSA-bogus", "affected": [{"ranges": [{"events": ["0"]}]}]}]},
        ],
    )
    def test_malformed_vulns_raise(self, payload):
        with _client(_json_handler(payload)) as client:
            with pytest.raises(PackageQueryError):
                client.query_package("flask", "2.0.1", "PyPI")


# ── OSVSource ────────────────────────────────────────────────────────────


class TestOSVSource:
    def test_converts_records(self):
        source = OSVSource(_client(_json_handler({"vulns": [_RECORD]})))
        pkg = Package(name="flask", version="2.0.1", ecosystem=Ecosystem.PYPI)
        [vuln] = source.query(pkg)
        source.close()

        assert vuln.id == "GHSA-xxxx-yyyy-zzzz"
        assert vuln.package == "flask"
        assert vuln.version == "2.0.1"
        assert vuln.ecosystem is Ecosystem.PYPI
        assert vuln.severity is Severity.HIGH
        assert vuln.fix_versions == ["2.2.5", "2.3.2"]
        assert vuln.description == "Path traversal in send_file"
        assert vuln.affected_ranges == [">=0, <2.2.5", ">=2.3.0, <2.3.2", "<2.2.5"]
        assert vuln.cves() == ["CVE-2023-0001"]
        assert vuln.is_direct is None

    def test_description_falls_back_to_details(self):
        record = {"id": "GO-2023-1", "details": "\nFirst line.\nSecond line."}
        source = OSVSource(_client(_json_handler({"vulns": [record]})))
        pkg = Package(name="golang.org/x/net", version="0.1.0", ecosystem=Ecosystem.GO)
        assert source.query(pkg)[0].description == "First line."

    def test_scope(self):
        assert OSVSource.scope == "package"
