"""OSV.dev API client: one synchronous query per package."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from depsnoop.exceptions import PackageQueryError

log = structlog.get_logger("depsnoop.engine")

OSV_API_URL = "https://api.osv.dev/v1/query"


@dataclass
class OSVEvent:
    introduced: str | None = None
    fixed: str | None = None
    last_affected: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OSVEvent:
        return cls(
            introduced=data.get("introduced"),
            fixed=data.get("fixed"),
            last_affected=data.get("last_affected"),
        )


@dataclass
class OSVRange:
    type: str
    events: list[OSVEvent] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OSVRange:
        return cls(
            type=data.get("type", ""),
            events=[OSVEvent.from_dict(e) for e in data.get("events") or []],
        )

    def describe(self) -> str:
        """Render the range as ``introduced/fixed`` pairs, e.g. ``>=0, <2.3.1``."""
        parts: list[str] = []
        for event in self.events:
            if event.introduced is not None:
                parts.append(f">={event.introduced}")
            if event.fixed is not None:
                parts.append(f"<{event.fixed}")
            if event.last_affected is not None:
                parts.append(f"<={event.last_affected}")
        return ", ".join(parts)


@dataclass
class OSVAffected:
    package: dict[str, Any] = field(default_factory=dict)
    ranges: list[OSVRange] = field(default_factory=list)
    versions: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OSVAffected:
        return cls(
            package=data.get("package") or {},
            ranges=[OSVRange.from_dict(r) for r in data.get("ranges") or []],
            versions=list(data.get("versions") or []),
        )


@dataclass
class OSVVulnerability:
    """A single record from the ``vulns`` array of an OSV query response."""

    id: str
    summary: str = ""
    details: str = ""
    aliases: list[str] = field(default_factory=list)
    modified: str = ""
    published: str = ""
    references: list[dict[str, Any]] = field(default_factory=list)
    severity: list[dict[str, Any]] = field(default_factory=list)
    affected: list[OSVAffected] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OSVVulnerability:
        return cls(
            id=data.get("id", "OSV-UNKNOWN"),
            summary=data.get("summary") or "",
            details=data.get("details") or "",
            aliases=list(data.get("aliases") or []),
            modified=data.get("modified") or "",
            published=data.get("published") or "",
            references=list(data.get("references") or []),
            severity=list(data.get("severity") or []),
            affected=[OSVAffected.from_dict(a) for a in data.get("affected") or []],
        )

    def fix_versions(self) -> list[str]:
        """All ``fixed`` events across every affected range, de-duplicated in order."""
        seen: set[str] = set()
        fixes: list[str] = []
        for affected in self.affected:
            for vrange in affected.ranges:
                for event in vrange.events:
                    if event.fixed and event.fixed not in seen:
                        seen.add(event.fixed)
                        fixes.append(event.fixed)
        return fixes

    def cves(self) -> list[str]:
        return [a for a in self.aliases if a.startswith("CVE-")]


class OSVClient:
    """Thin synchronous wrapper around the OSV query endpoint.

    No retries: a failed query raises :class:`PackageQueryError` and the
    caller decides whether to skip the package.
    """

    def __init__(
        self,
        url: str = OSV_API_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._url = url
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> OSVClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ── public ─────────────────────────────────────────────────────────────

    def query_package(
        self,
        name: str,
        version: str,
        ecosystem: str,
    ) -> list[OSVVulnerability]:
        """Return OSV records for *name* at *version* (every version when empty)."""
        package: dict[str, str] = {"name": name, "ecosystem": ecosystem}
        if version:
            package["version"] = version

        try:
            resp = self._client.post(self._url, json={"package": package})
        except httpx.HTTPError as exc:
            raise PackageQueryError(name, f"request failed: {exc}") from exc

        if resp.status_code != 200:
            raise PackageQueryError(
                name, f"OSV API returned status {resp.status_code}: {resp.text[:200]}"
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise PackageQueryError(name, "response is not valid JSON") from exc

        if not isinstance(data, dict):
            raise PackageQueryError(name, "response is not a JSON object")

        vulns = data.get("vulns") or []
        if not isinstance(vulns, list) or not all(isinstance(v, dict) for v in vulns):
            raise PackageQueryError(name, "response 'vulns' is not a list of objects")

        try:
            records = [OSVVulnerability.from_dict(v) for v in vulns]
        except (AttributeError, TypeError) as exc:
            raise PackageQueryError(name, f"malformed vulnerability record: {exc}") from exc
        log.debug("osv.queried", package=name, version=version or "*", vulns=len(records))
        return records
