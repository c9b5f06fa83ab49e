"""Parser for Pipenv Pipfile [packages] sections."""

from __future__ import annotations

import re
from pathlib import Path

from depsnoop.engines.dependency_scanner.models import Ecosystem, ManifestKind, Package
from depsnoop.engines.dependency_scanner.registry import register_parser

_TARGET_SECTION = "[packages]"

# flask = "==2.0.1"
_PINNED_RE = re.compile(r"""^([A-Za-z0-9._-]+)\s*=\s*["']==\s*([^"'\s]+)["']""")

# flask = "*"
_WILDCARD_RE = re.compile(r"""^([A-Za-z0-9._-]+)\s*=\s*["']\*["']""")


class PipfileParser:
    kinds = (ManifestKind.PIPFILE,)
    ecosystem = Ecosystem.PYPI

    def parse(self, file_path: Path, content: str) -> list[Package]:
        packages: list[Package] = []
        in_section = False

        for raw_line in content.splitlines():
            line = raw_line.strip()

            if line.startswith("["):
                in_section = line == _TARGET_SECTION
                continue

            if not in_section or not line or line.startswith("#"):
                continue

            m = _PINNED_RE.match(line)
            if m:
                packages.append(
                    Package(name=m.group(1), version=m.group(2), ecosystem=self.ecosystem)
                )
                continue

            m = _WILDCARD_RE.match(line)
            if m:
                packages.append(Package(name=m.group(1), ecosystem=self.ecosystem))

        return packages


register_parser(PipfileParser())
