"""Maintenance-risk rules over registry metadata."""

from __future__ import annotations

from datetime import datetime, timezone

from depsnoop.engines.supply_chain.models import MaintainerRisk, PackageMetadata, RiskLevel

STALE_AFTER_YEARS = 2


def _years_before(moment: datetime, years: int) -> datetime:
    try:
        return moment.replace(year=moment.year - years)
    except ValueError:  # Feb 29
        return moment.replace(year=moment.year - years, day=28)


def analyze_maintainer_risk(
    metadata: PackageMetadata,
    now: datetime | None = None,
) -> MaintainerRisk | None:
    """Flag stale or thinly maintained packages; ``None`` when nothing triggers."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    risk = MaintainerRisk(
        package_name=metadata.name,
        last_update=metadata.last_modified,
        maintainer_count=len(metadata.maintainers),
    )

    last = metadata.last_modified
    if last is not None:
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        if last < _years_before(now, STALE_AFTER_YEARS):
            risk.issues.append(
                f"Not updated in over {STALE_AFTER_YEARS} years (last: {last:%Y-%m-%d})"
            )
            risk.risk_level = risk.risk_level.at_least(RiskLevel.MEDIUM)

    if risk.maintainer_count == 1:
        risk.issues.append("Single maintainer")
        risk.risk_level = risk.risk_level.at_least(RiskLevel.MEDIUM)
    elif risk.maintainer_count == 0:
        risk.issues.append("No maintainers listed")
        risk.risk_level = RiskLevel.HIGH

    return risk if risk.issues else None
