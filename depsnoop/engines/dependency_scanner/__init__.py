"""Dependency scanner engine: find manifests and extract declared packages."""

# Ensure parsers are registered before any manifest is parsed.
import depsnoop.engines.dependency_scanner.parsers  # noqa: F401
from depsnoop.engines.dependency_scanner.models import (
    DetectedFile,
    Ecosystem,
    ManifestKind,
    Package,
    ScanResult,
)
from depsnoop.engines.dependency_scanner.registry import (
    PARSER_REGISTRY,
    get_parser,
    parse_manifest,
)
from depsnoop.engines.dependency_scanner.scanner import NOISE_DIRS, DirectoryScanner, scan

__all__ = [
    "NOISE_DIRS",
    "PARSER_REGISTRY",
    "DetectedFile",
    "DirectoryScanner",
    "Ecosystem",
    "ManifestKind",
    "Package",
    "ScanResult",
    "get_parser",
    "parse_manifest",
    "scan",
]
