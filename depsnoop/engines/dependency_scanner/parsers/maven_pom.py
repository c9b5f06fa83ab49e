"""Parser for Maven pom.xml files."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from pathlib import Path

from depsnoop.engines.dependency_scanner.models import Ecosystem, ManifestKind, Package
from depsnoop.engines.dependency_scanner.registry import register_parser
from depsnoop.exceptions import ManifestParseError

_PROP_RE = re.compile(r"\$\{([^}]+)\}")


def _resolve_props(value: str, props: dict[str, str]) -> str:
    """Replace ${property} placeholders with values from <properties>."""

    def _replace(m: re.Match) -> str:
        key = m.group(1)
        return props.get(key, m.group(0))  # keep original if not found

    return _PROP_RE.sub(_replace, value)


def _text(element: ET.Element | None) -> str | None:
    if element is None:
        return None
    return element.text.strip() if element.text and element.text.strip() else None


def _namespace(root: ET.Element) -> str:
    """Return the ``{uri}`` prefix of the root tag, or "" for plain POMs."""
    if root.tag.startswith("{"):
        return root.tag[: root.tag.index("}") + 1]
    return ""


class MavenPomParser:
    """Direct ``<project><dependencies>`` entries with an explicit version.

    Dependencies without a version are managed by a parent POM or BOM and
    cannot be resolved without a full dependency-resolution pass, so they
    are skipped, as are versions that reference an unknown property.
    """

    kinds = (ManifestKind.POM_XML,)
    ecosystem = Ecosystem.MAVEN

    def parse(self, file_path: Path, content: str) -> list[Package]:
        try:
            root = ET.fromstring(content)
        except ET.ParseError as exc:
            raise ManifestParseError(str(file_path), f"invalid XML ({exc})") from exc

        ns = _namespace(root)
        props = self._extract_properties(root, ns)

        packages: list[Package] = []
        deps_el = root.find(f"{ns}dependencies")
        if deps_el is None:
            return packages

        for dep_el in deps_el.findall(f"{ns}dependency"):
            group_id = _text(dep_el.find(f"{ns}groupId"))
            artifact_id = _text(dep_el.find(f"{ns}artifactId"))
            version = _text(dep_el.find(f"{ns}version"))

            if not group_id or not artifact_id or not version:
                continue

            version = _resolve_props(version, props)
            if "${" in version:
                continue

            packages.append(
                Package(
                    name=f"{_resolve_props(group_id, props)}:{artifact_id}",
                    version=version,
                    ecosystem=self.ecosystem,
                )
            )

        return packages

    @staticmethod
    def _extract_properties(root: ET.Element, ns: str) -> dict[str, str]:
        """Extract <properties> key-value pairs plus the project coordinates."""
        props: dict[str, str] = {}

        parent_el = root.find(f"{ns}parent")
        project_version = _text(root.find(f"{ns}version")) or _text(
            parent_el.find(f"{ns}version") if parent_el is not None else None
        )
        project_group = _text(root.find(f"{ns}groupId")) or _text(
            parent_el.find(f"{ns}groupId") if parent_el is not None else None
        )
        if project_version:
            props["project.version"] = project_version
        if project_group:
            props["project.groupId"] = project_group

        props_el = root.find(f"{ns}properties")
        if props_el is not None:
            for child in props_el:
                # Strip namespace from tag name
                tag = child.tag.split("}")[-1] if "}" in child.tag else child.tag
                if child.text:
                    props[tag] = child.text.strip()
        return props


register_parser(MavenPomParser())
