"""Data models for the dependency scanner engine."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from depsnoop.exceptions import ScanWarning


class Ecosystem(str, Enum):
    """Packaging ecosystems, valued by their OSV ecosystem tag."""

    NPM = "npm"
    PYPI = "PyPI"
    GO = "Go"
    MAVEN = "Maven"


class ManifestKind(str, Enum):
    """Recognized manifest files, matched by exact basename."""

    PACKAGE_JSON = "package.json"
    PACKAGE_LOCK_JSON = "package-lock.json"
    YARN_LOCK = "yarn.lock"
    PNPM_LOCK_YAML = "pnpm-lock.yaml"
    REQUIREMENTS_TXT = "requirements.txt"
    PIPFILE = "Pipfile"
    PIPFILE_LOCK = "Pipfile.lock"
    POETRY_LOCK = "poetry.lock"
    PYPROJECT_TOML = "pyproject.toml"
    GO_MOD = "go.mod"
    GO_SUM = "go.sum"
    POM_XML = "pom.xml"

    @property
    def ecosystem(self) -> Ecosystem:
        return _KIND_ECOSYSTEM[self]

    @classmethod
    def from_filename(cls, name: str) -> ManifestKind | None:
        """Return the kind whose filename equals *name* exactly, else None."""
        return _BY_FILENAME.get(name)


_KIND_ECOSYSTEM: dict[ManifestKind, Ecosystem] = {
    ManifestKind.PACKAGE_JSON: Ecosystem.NPM,
    ManifestKind.PACKAGE_LOCK_JSON: Ecosystem.NPM,
    ManifestKind.YARN_LOCK: Ecosystem.NPM,
    ManifestKind.PNPM_LOCK_YAML: Ecosystem.NPM,
    ManifestKind.REQUIREMENTS_TXT: Ecosystem.PYPI,
    ManifestKind.PIPFILE: Ecosystem.PYPI,
    ManifestKind.PIPFILE_LOCK: Ecosystem.PYPI,
    ManifestKind.POETRY_LOCK: Ecosystem.PYPI,
    ManifestKind.PYPROJECT_TOML: Ecosystem.PYPI,
    ManifestKind.GO_MOD: Ecosystem.GO,
    ManifestKind.GO_SUM: Ecosystem.GO,
    ManifestKind.POM_XML: Ecosystem.MAVEN,
}

_BY_FILENAME: dict[str, ManifestKind] = {kind.value: kind for kind in ManifestKind}


@dataclass(frozen=True)
class DetectedFile:
    """A manifest file found during a scan."""

    path: Path  # absolute
    kind: ManifestKind


@dataclass
class ScanResult:
    """Result of walking one project tree.

    ``files`` keeps walk-discovery order. ``errors`` collects entries that
    could not be read; they never abort the walk.
    """

    files: list[DetectedFile] = field(default_factory=list)
    errors: list[ScanWarning] = field(default_factory=list)

    def has_manifests(self) -> bool:
        return len(self.files) > 0

    def by_kind(self, kind: ManifestKind) -> list[DetectedFile]:
        return [f for f in self.files if f.kind is kind]

    def by_ecosystem(self, ecosystem: Ecosystem) -> list[DetectedFile]:
        return [f for f in self.files if f.kind.ecosystem is ecosystem]

    def summary(self) -> dict[ManifestKind, int]:
        """Count detected files per manifest kind."""
        return dict(Counter(f.kind for f in self.files))


@dataclass(frozen=True)
class Package:
    """A declared dependency extracted from a manifest.

    An empty ``version`` means "any version": the query is broadened
    rather than treated as an error.
    """

    name: str
    ecosystem: Ecosystem
    version: str = ""
