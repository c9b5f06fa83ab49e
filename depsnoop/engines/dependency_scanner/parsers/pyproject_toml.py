"""Parser for Python pyproject.toml dependency arrays."""

from __future__ import annotations

import re
from pathlib import Path

from depsnoop.engines.dependency_scanner.models import Ecosystem, ManifestKind, Package
from depsnoop.engines.dependency_scanner.parsers.pip_requirements import split_requirement
from depsnoop.engines.dependency_scanner.registry import register_parser

# dependencies = [   (table headers such as [project.optional-dependencies] do not count)
_ARRAY_START_RE = re.compile(r"^[\w.\"'-]*dependencies[\"']?\s*=\s*\[")

_QUOTED_RE = re.compile(r""""([^"]*)"|'([^']*)'""")


def _closing_bracket(segment: str) -> int:
    """Index of the first ``]`` outside quoted strings, or -1."""
    masked = _QUOTED_RE.sub(lambda m: " " * len(m.group(0)), segment)
    return masked.find("]")


class PyprojectTomlParser:
    """Line-oriented scan of ``dependencies = [ ... ]`` arrays.

    The document is not loaded as TOML, so a file with unrelated syntax
    errors still yields whatever dependency entries it declares.
    """

    kinds = (ManifestKind.PYPROJECT_TOML,)
    ecosystem = Ecosystem.PYPI

    def parse(self, file_path: Path, content: str) -> list[Package]:
        packages: list[Package] = []
        in_array = False

        for raw_line in content.splitlines():
            line = raw_line.strip()

            if not in_array:
                start = _ARRAY_START_RE.match(line)
                if not start:
                    continue
                in_array = True
                line = line[start.end() :]

            if line.startswith("#"):
                continue

            end = _closing_bracket(line)
            segment = line if end == -1 else line[:end]

            for double, single in _QUOTED_RE.findall(segment):
                parsed = split_requirement(double or single)
                if parsed is None:
                    continue
                name, version = parsed
                packages.append(Package(name=name, version=version, ecosystem=self.ecosystem))

            if end != -1:
                in_array = False

        return packages


register_parser(PyprojectTomlParser())
