"""DirectoryScanner: locate manifest files under a project root."""

from __future__ import annotations

import os
from pathlib import Path

import structlog

from depsnoop.engines.dependency_scanner.models import DetectedFile, ManifestKind, ScanResult
from depsnoop.exceptions import PathError, ScanWarning

log = structlog.get_logger("depsnoop.engine")

# Subtrees that never hold meaningful manifests and can be arbitrarily large.
NOISE_DIRS: frozenset[str] = frozenset(
    {
        # dependency caches
        "node_modules",
        "bower_components",
        # virtual environments
        ".venv",
        "venv",
        "__pycache__",
        ".tox",
        # vendored sources
        "vendor",
        # build output
        "target",
        "build",
        "dist",
        # VCS metadata
        ".git",
    }
)


class DirectoryScanner:
    """Depth-first manifest discovery with noise-subtree pruning."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        path = Path(root).expanduser()
        try:
            is_dir = path.is_dir()
            exists = is_dir or path.exists()
        except OSError as exc:
            raise PathError(str(path), f"cannot access directory ({exc})") from exc
        if not exists:
            raise PathError(str(path), "directory does not exist")
        if not is_dir:
            raise PathError(str(path), "path is not a directory")
        self._root = path.resolve()

    @property
    def root(self) -> Path:
        return self._root

    def scan(self) -> ScanResult:
        """Walk the tree and return detected manifests plus non-fatal errors.

        Entries of each directory are visited in lexical order. Pruned
        directories are never listed.
        """
        result = ScanResult()
        stack: list[os.DirEntry[str]] = []
        self._push_children(str(self._root), stack, result)

        while stack:
            entry = stack.pop()
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError as exc:
                result.errors.append(ScanWarning(entry.path, str(exc)))
                continue

            if is_dir:
                if entry.name in NOISE_DIRS:
                    log.debug("scanner.pruned", path=entry.path)
                    continue
                self._push_children(entry.path, stack, result)
                continue

            kind = ManifestKind.from_filename(entry.name)
            if kind is None:
                continue

            if entry.is_symlink() and not os.path.exists(entry.path):
                result.errors.append(ScanWarning(entry.path, "broken symlink"))
                continue

            result.files.append(DetectedFile(path=Path(entry.path), kind=kind))
            log.debug("scanner.found", kind=kind.value, path=entry.path)

        log.info(
            "scanner.done",
            root=str(self._root),
            manifests=len(result.files),
            errors=len(result.errors),
        )
        return result

    @staticmethod
    def _push_children(
        directory: str,
        stack: list[os.DirEntry[str]],
        result: ScanResult,
    ) -> None:
        """List *directory* and push its entries so the smallest name pops first."""
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            result.errors.append(ScanWarning(directory, str(exc)))
            return
        stack.extend(reversed(entries))


def scan(root: str | os.PathLike[str]) -> ScanResult:
    """Scan *root* for manifests (raises PathError for an invalid root)."""
    return DirectoryScanner(root).scan()
