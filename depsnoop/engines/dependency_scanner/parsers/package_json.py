"""Parser for npm package.json dependency maps."""

from __future__ import annotations

import json
import re
from pathlib import Path

from depsnoop.engines.dependency_scanner.models import Ecosystem, ManifestKind, Package
from depsnoop.engines.dependency_scanner.registry import register_parser
from depsnoop.exceptions import ManifestParseError

_DEPENDENCY_FIELDS = ("dependencies", "devDependencies", "optionalDependencies")

# 1.2.3, =1.2.3, v1.2.3, 1.2.3-beta.1
_EXACT_SEMVER_RE = re.compile(r"^[=v]?(\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.+-]+)?)$")


class PackageJsonParser:
    kinds = (ManifestKind.PACKAGE_JSON,)
    ecosystem = Ecosystem.NPM

    def parse(self, file_path: Path, content: str) -> list[Package]:
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ManifestParseError(str(file_path), f"invalid JSON ({exc.msg})") from exc
        if not isinstance(data, dict):
            raise ManifestParseError(str(file_path), "top-level value is not an object")

        packages: list[Package] = []
        for field_name in _DEPENDENCY_FIELDS:
            deps = data.get(field_name)
            if not isinstance(deps, dict):
                continue
            for name, spec in deps.items():
                version = ""
                if isinstance(spec, str):
                    exact = _EXACT_SEMVER_RE.match(spec.strip())
                    if exact:
                        version = exact.group(1)
                packages.append(Package(name=name, version=version, ecosystem=self.ecosystem))

        return packages


register_parser(PackageJsonParser())
