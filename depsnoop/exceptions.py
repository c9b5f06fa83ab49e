"""Custom exceptions for depsnoop."""

from __future__ import annotations


class DepsnoopError(Exception):
    """Base exception for all depsnoop errors."""


class PathError(DepsnoopError):
    """Raised when the scan root does not exist or is not a directory."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class ScanWarning(DepsnoopError):
    """A single directory entry could not be read during the walk."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"error accessing {path}: {reason}")


class ManifestParseError(DepsnoopError):
    """Raised when a manifest cannot be read or is structurally malformed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"failed to parse {path}: {reason}")


class BackendError(DepsnoopError):
    """Base exception for vulnerability source failures."""


class AuditTimeoutError(BackendError):
    """Raised when the external audit command exceeds its timeout."""

    def __init__(self, command: str, timeout: float):
        self.command = command
        self.timeout = timeout
        super().__init__(f"{command} timed out after {timeout:g}s")


class InvocationError(BackendError):
    """Raised when the external audit command fails to run or returns unusable output."""


class ToolUnavailableError(InvocationError):
    """Raised when the external audit command is not installed."""


class PackageQueryError(BackendError):
    """Raised when a single vulnerability database query fails."""

    def __init__(self, package: str, reason: str):
        self.package = package
        self.reason = reason
        super().__init__(f"failed to query {package}: {reason}")


class RegistryError(BackendError):
    """Raised when package registry metadata cannot be fetched."""
