"""Manifest parsers: auto-registered on import."""

from depsnoop.engines.dependency_scanner.parsers import (
    go_mod,  # noqa: F401
    maven_pom,  # noqa: F401
    package_json,  # noqa: F401
    pip_requirements,  # noqa: F401
    pipfile,  # noqa: F401
    pyproject_toml,  # noqa: F401
)
