"""Parser for Go go.mod files."""

from __future__ import annotations

import re
from pathlib import Path

from depsnoop.engines.dependency_scanner.models import Ecosystem, ManifestKind, Package
from depsnoop.engines.dependency_scanner.registry import register_parser

_VERSION = r"v?([0-9]+\.[0-9]+\.[0-9]+\S*)"

# Single require: require github.com/foo/bar v1.2.3
_SINGLE_RE = re.compile(r"^require\s+(\S+)\s+" + _VERSION)

# Inside require block: github.com/foo/bar v1.2.3
_BLOCK_RE = re.compile(r"^(\S+)\s+" + _VERSION)

_BLOCK_START_RE = re.compile(r"^require\s*\($")


class GoModParser:
    kinds = (ManifestKind.GO_MOD,)
    ecosystem = Ecosystem.GO

    def parse(self, file_path: Path, content: str) -> list[Package]:
        packages: list[Package] = []
        in_require_block = False

        for raw_line in content.splitlines():
            line = raw_line.strip()

            if not line or line.startswith("//"):
                continue

            # Detect require block boundaries
            if _BLOCK_START_RE.match(line):
                in_require_block = True
                continue
            if in_require_block and line.startswith(")"):
                in_require_block = False
                continue

            if in_require_block:
                if "// indirect" in line:
                    continue
                m = _BLOCK_RE.match(line)
            else:
                m = _SINGLE_RE.match(line)

            if m:
                packages.append(
                    Package(name=m.group(1), version=m.group(2), ecosystem=self.ecosystem)
                )

        return packages


register_parser(GoModParser())
