"""Combine the supply-chain checks into one report per npm package."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path

import structlog

from depsnoop.engines.dependency_scanner.models import DetectedFile, ManifestKind
from depsnoop.engines.dependency_scanner.registry import parse_manifest
from depsnoop.engines.supply_chain.maintainer import analyze_maintainer_risk
from depsnoop.engines.supply_chain.models import RiskLevel, SecurityReport, SuspiciousScript
from depsnoop.engines.supply_chain.registry_client import RegistryClient
from depsnoop.engines.supply_chain.typosquat import DEFAULT_THRESHOLD, check_typosquatting
from depsnoop.exceptions import ManifestParseError, RegistryError

log = structlog.get_logger("depsnoop.engine")

INSTALL_HOOKS = ("preinstall", "install", "postinstall")
_FETCH_MARKERS = ("curl", "wget", "http")


def detect_suspicious_scripts(package_json_path: Path) -> list[SuspiciousScript]:
    """Flag install-time lifecycle scripts in a package.json.

    Any install hook is medium risk; one that fetches remote content is high.
    """
    try:
        data = json.loads(package_json_path.read_text(encoding="utf-8", errors="replace"))
    except OSError as exc:
        raise ManifestParseError(str(package_json_path), str(exc)) from exc
    except json.JSONDecodeError as exc:
        raise ManifestParseError(str(package_json_path), f"invalid JSON ({exc.msg})") from exc
    if not isinstance(data, dict):
        raise ManifestParseError(str(package_json_path), "top-level value is not an object")

    scripts = data.get("scripts")
    if not isinstance(scripts, dict):
        return []
    return classify_install_scripts(str(data.get("name") or ""), scripts)


def classify_install_scripts(name: str, scripts: Mapping[str, object]) -> list[SuspiciousScript]:
    """Flag the install hooks present in a ``scripts`` mapping."""
    found: list[SuspiciousScript] = []
    for hook in INSTALL_HOOKS:
        content = scripts.get(hook)
        if not isinstance(content, str):
            continue
        level = RiskLevel.MEDIUM
        if any(marker in content for marker in _FETCH_MARKERS):
            level = RiskLevel.HIGH
        found.append(
            SuspiciousScript(
                package_name=name,
                script_type=hook,
                script_content=content,
                risk_level=level,
            )
        )
    return found


def overall_risk(report: SecurityReport) -> RiskLevel:
    if report.typosquatting and report.typosquatting.confidence is RiskLevel.HIGH:
        return RiskLevel.HIGH
    if report.maintainer and report.maintainer.risk_level is RiskLevel.HIGH:
        return RiskLevel.HIGH
    if any(s.risk_level is RiskLevel.HIGH for s in report.suspicious_scripts):
        return RiskLevel.HIGH
    if report.has_findings():
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class SupplyChainAnalyzer:
    """Run typosquatting, maintainer and install-script checks for npm packages."""

    def __init__(self, registry: RegistryClient, threshold: int = DEFAULT_THRESHOLD) -> None:
        self._registry = registry
        self._threshold = threshold

    def analyze(self, name: str, package_json_path: Path | None = None) -> SecurityReport:
        """Check one package.

        Install scripts come from the installed package.json when
        *package_json_path* exists, otherwise from the latest published
        version in the registry metadata.
        """
        report = SecurityReport(package_name=name)
        report.typosquatting = check_typosquatting(name, self._threshold)

        metadata = None
        try:
            metadata = self._registry.fetch_metadata(name)
        except RegistryError as exc:
            log.warning("supply_chain.registry_failed", package=name, error=str(exc))
        else:
            report.maintainer = analyze_maintainer_risk(metadata)

        if package_json_path is not None and package_json_path.is_file():
            try:
                report.suspicious_scripts = detect_suspicious_scripts(package_json_path)
            except ManifestParseError as exc:
                log.warning("supply_chain.scripts_unreadable", package=name, error=str(exc))
        elif metadata is not None:
            report.suspicious_scripts = classify_install_scripts(name, metadata.scripts)

        report.overall_risk = overall_risk(report)
        return report

    def analyze_manifest(self, manifest: DetectedFile) -> list[SecurityReport]:
        """Analyze every dependency declared in a package.json.

        Install scripts are read from the dependency's own package.json under
        the adjacent ``node_modules`` when it has been installed.
        """
        if manifest.kind is not ManifestKind.PACKAGE_JSON:
            return []
        packages = parse_manifest(manifest)
        modules = manifest.path.parent / "node_modules"
        reports = [
            self.analyze(pkg.name, modules / pkg.name / "package.json") for pkg in packages
        ]
        log.info(
            "supply_chain.manifest_done",
            path=str(manifest.path),
            packages=len(reports),
            flagged=sum(1 for r in reports if r.has_findings()),
        )
        return reports
