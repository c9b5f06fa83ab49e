"""Parser for pip requirements.txt files."""

from __future__ import annotations

import re
from pathlib import Path

from depsnoop.engines.dependency_scanner.models import Ecosystem, ManifestKind, Package
from depsnoop.engines.dependency_scanner.registry import register_parser

# Matches: package_name, optional extras, then everything else as the constraint
_REQ_RE = re.compile(
    r"^([A-Za-z0-9]([A-Za-z0-9._-]*[A-Za-z0-9])?)"  # package name
    r"\s*(\[[^\]]*\])?"  # optional extras
    r"\s*"
    r"(.*)$",  # everything after name = constraint
)

_OPERATOR_RE = re.compile(r"^(===|==|~=|!=|>=|<=|>|<)")

_EXACT_VERSION_RE = re.compile(r"^==\s*([^\s,;*=]+)$")

_INLINE_COMMENT_RE = re.compile(r"\s+#.*$")

# Includes, constraints, editable installs and global options
_OPTION_PREFIXES = ("-r", "-c", "-e", "--")


def split_requirement(spec: str) -> tuple[str, str] | None:
    """Split ``name<op>version`` into (name, version).

    The version is kept only for an exact ``==`` pin; any other operator
    yields ``""`` so the lookup covers every version. Returns None when the
    spec is not a recognizable requirement.
    """
    marker_pos = spec.find(";")
    if marker_pos != -1:
        spec = spec[:marker_pos]
    spec = spec.strip()

    m = _REQ_RE.match(spec)
    if not m:
        return None

    name = m.group(1)
    constraint = m.group(4).strip()
    if not constraint:
        return name, ""
    if not _OPERATOR_RE.match(constraint):
        return None

    exact = _EXACT_VERSION_RE.match(constraint)
    return name, exact.group(1) if exact else ""


class PipRequirementsParser:
    kinds = (ManifestKind.REQUIREMENTS_TXT,)
    ecosystem = Ecosystem.PYPI

    def parse(self, file_path: Path, content: str) -> list[Package]:
        packages: list[Package] = []

        for raw_line in content.splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith(_OPTION_PREFIXES):
                continue
            if "://" in line:
                continue

            line = _INLINE_COMMENT_RE.sub("", line)
            parsed = split_requirement(line)
            if parsed is None:
                continue

            name, version = parsed
            packages.append(Package(name=name, version=version, ecosystem=self.ecosystem))

        return packages


register_parser(PipRequirementsParser())
