"""npm registry metadata client with an explicit per-run cache."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from depsnoop.engines.supply_chain.models import Maintainer, PackageMetadata
from depsnoop.exceptions import RegistryError

log = structlog.get_logger("depsnoop.engine")

NPM_REGISTRY_URL = "https://registry.npmjs.org"


class MetadataCache:
    """Name → metadata map that lives for one run and never expires."""

    def __init__(self) -> None:
        self._entries: dict[str, PackageMetadata] = {}

    def get(self, name: str) -> PackageMetadata | None:
        return self._entries.get(name)

    def put(self, name: str, metadata: PackageMetadata) -> None:
        self._entries[name] = metadata

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def _parse_time(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _section(name: str, data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise RegistryError(f"unexpected '{key}' in metadata for {name}")
    return value


def parse_metadata(name: str, data: dict[str, Any]) -> PackageMetadata:
    """Build :class:`PackageMetadata` from a registry packument.

    Raises RegistryError when a section read here is not an object.
    """
    latest = _section(name, data, "dist-tags").get("latest", "")
    if not isinstance(latest, str):
        raise RegistryError(f"unexpected 'dist-tags.latest' in metadata for {name}")
    version_doc = _section(name, _section(name, data, "versions"), latest) if latest else {}
    scripts_doc = _section(name, version_doc, "scripts")
    times = data.get("time") or {}
    repository = data.get("repository")
    if isinstance(repository, str):
        repository = {"url": repository}

    raw_maintainers = data.get("maintainers") or []
    if not isinstance(raw_maintainers, list):
        raise RegistryError(f"unexpected 'maintainers' in metadata for {name}")
    maintainers = [
        Maintainer(name=str(m.get("name") or ""), email=str(m.get("email") or ""))
        for m in raw_maintainers
        if isinstance(m, dict)
    ]
    scripts = {str(k): v for k, v in scripts_doc.items() if isinstance(v, str)}
    return PackageMetadata(
        name=str(data.get("name") or name),
        version=latest,
        description=str(data.get("description") or ""),
        last_modified=_parse_time(times.get("modified") if isinstance(times, dict) else None),
        maintainers=maintainers,
        repository=repository if isinstance(repository, dict) else {},
        scripts=scripts,
    )


class RegistryClient:
    """Fetch package metadata from the npm registry, consulting the cache first.

    Failed fetches raise :class:`RegistryError` and are not cached, so a
    later call for the same name tries again.
    """

    def __init__(
        self,
        cache: MetadataCache | None = None,
        url: str = NPM_REGISTRY_URL,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._cache = cache if cache is not None else MetadataCache()
        self._url = url.rstrip("/")
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @property
    def cache(self) -> MetadataCache:
        return self._cache

    # ── lifecycle ──────────────────────────────────────────────────────────

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> RegistryClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ── public ─────────────────────────────────────────────────────────────

    def fetch_metadata(self, name: str) -> PackageMetadata:
        cached = self._cache.get(name)
        if cached is not None:
            log.debug("registry.cache_hit", package=name)
            return cached

        url = f"{self._url}/{quote(name, safe='@')}"
        try:
            resp = self._client.get(url)
        except httpx.HTTPError as exc:
            raise RegistryError(f"failed to fetch metadata for {name}: {exc}") from exc

        if resp.status_code != 200:
            raise RegistryError(f"npm registry returned status {resp.status_code} for {name}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise RegistryError(f"failed to parse metadata for {name}") from exc
        if not isinstance(data, dict):
            raise RegistryError(f"unexpected metadata shape for {name}")

        metadata = parse_metadata(name, data)
        self._cache.put(name, metadata)
        log.debug("registry.fetched", package=name, version=metadata.version)
        return metadata
