"""CLI entry point: depsnoop.

    depsnoop                          # audit the current directory, table output
    depsnoop -p ./service -f json     # machine-readable report on stdout
    depsnoop -s high --supply-chain   # only high+ findings, plus npm heuristics
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
import structlog

from depsnoop import __version__
from depsnoop.core.config import AuditConfig
from depsnoop.core.logging import setup_logging
from depsnoop.engines.dependency_scanner import DirectoryScanner, ManifestKind, ScanResult
from depsnoop.engines.supply_chain import (
    MetadataCache,
    RegistryClient,
    SecurityReport,
    SupplyChainAnalyzer,
)
from depsnoop.engines.vuln_audit import AuditOrchestrator
from depsnoop.exceptions import ManifestParseError, PathError
from depsnoop.formatter import FORMATS, RenderContext, render

log = structlog.get_logger("depsnoop.cli")

_SEVERITY_CHOICES = ("critical", "high", "moderate", "medium", "low", "info")


def _run_supply_chain(config: AuditConfig, scan: ScanResult) -> list[SecurityReport]:
    reports: list[SecurityReport] = []
    with RegistryClient(
        MetadataCache(), url=config.registry_url, timeout=config.registry_timeout
    ) as registry:
        analyzer = SupplyChainAnalyzer(registry, threshold=config.typosquat_threshold)
        for manifest in scan.by_kind(ManifestKind.PACKAGE_JSON):
            try:
                reports.extend(analyzer.analyze_manifest(manifest))
            except ManifestParseError as exc:
                log.warning("supply_chain.manifest_skipped", path=str(manifest.path), error=str(exc))
    return reports


@click.command()
@click.option(
    "-p", "--path", "path", default=".", type=click.Path(), help="Directory to scan"
)
@click.option(
    "-f", "--format", "output_format",
    type=click.Choice(FORMATS, case_sensitive=False),
    default="table",
    show_default=True,
    help="Output format",
)
@click.option(
    "-s", "--severity",
    type=click.Choice(_SEVERITY_CHOICES, case_sensitive=False),
    default="low",
    show_default=True,
    help="Minimum severity to report",
)
@click.option("--timeout", type=float, default=None, help="npm audit timeout in seconds")
@click.option("--supply-chain", is_flag=True, help="Run supply-chain checks on npm dependencies")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.version_option(__version__, prog_name="depsnoop")
def main(
    path: str,
    output_format: str,
    severity: str,
    timeout: float | None,
    supply_chain: bool,
    verbose: bool,
) -> None:
    """Scan a project tree for dependency manifests and audit them for known vulnerabilities."""
    setup_logging(verbose=verbose)

    config = AuditConfig.from_env(
        root=Path(path).expanduser(),
        npm_timeout=timeout,
        min_severity=severity,
        verbose=verbose,
    )

    try:
        scanner = DirectoryScanner(config.root)
    except PathError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    scan = scanner.scan()
    if not scan.has_manifests():
        click.echo(f"No manifest files found in {scanner.root}", err=True)

    with AuditOrchestrator.from_config(config) as orchestrator:
        report = orchestrator.run_all(scan)

    findings = _run_supply_chain(config, scan) if supply_chain else []

    ctx = RenderContext(directory=scanner.root, supply_chain=findings)
    try:
        text = render(report, output_format.lower(), ctx)
    except (TypeError, ValueError) as exc:
        click.echo(f"Error: failed to render report: {exc}", err=True)
        sys.exit(1)

    click.echo(text)


if __name__ == "__main__":
    main()
