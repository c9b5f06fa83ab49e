"""Parser registry: map manifest kinds to their parsers."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from depsnoop.engines.dependency_scanner.models import (
    DetectedFile,
    Ecosystem,
    ManifestKind,
    Package,
)
from depsnoop.exceptions import ManifestParseError


@runtime_checkable
class ManifestParser(Protocol):
    """Interface that every manifest parser must satisfy.

    ``parse`` skips malformed lines or entries. It raises
    :class:`ManifestParseError` only when the document as a whole cannot be
    understood (e.g. invalid XML).
    """

    kinds: tuple[ManifestKind, ...]
    ecosystem: Ecosystem

    def parse(self, file_path: Path, content: str) -> list[Package]: ...


PARSER_REGISTRY: dict[ManifestKind, ManifestParser] = {}


def register_parser(parser: ManifestParser) -> None:
    """Register a parser instance for each manifest kind it handles."""
    for kind in parser.kinds:
        PARSER_REGISTRY[kind] = parser


def get_parser(kind: ManifestKind) -> ManifestParser | None:
    return PARSER_REGISTRY.get(kind)


def parse_manifest(manifest: DetectedFile) -> list[Package]:
    """Read *manifest* and extract its packages with the registered parser.

    Raises ManifestParseError on read failure, or when no parser handles
    the manifest kind.
    """
    parser = PARSER_REGISTRY.get(manifest.kind)
    if parser is None:
        raise ManifestParseError(
            str(manifest.path), f"no parser registered for {manifest.kind.value}"
        )
    try:
        content = manifest.path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise ManifestParseError(str(manifest.path), str(exc)) from exc
    return parser.parse(manifest.path, content)
