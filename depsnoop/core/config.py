"""Run configuration: plain values handed to the engines at construction."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from depsnoop.engines.supply_chain.registry_client import NPM_REGISTRY_URL
from depsnoop.engines.vuln_audit.models import Severity
from depsnoop.engines.vuln_audit.osv_client import OSV_API_URL


def _env_float(key: str, default: float) -> float:
    return float(os.environ.get(key, default))


@dataclass
class AuditConfig:
    root: Path = field(default_factory=Path.cwd)
    npm_timeout: float = 60.0
    osv_timeout: float = 30.0
    registry_timeout: float = 10.0
    min_severity: Severity = Severity.LOW
    verbose: bool = False
    typosquat_threshold: int = 2
    osv_url: str = OSV_API_URL
    registry_url: str = NPM_REGISTRY_URL

    @classmethod
    def from_env(cls, **overrides: Any) -> AuditConfig:
        """Build a config from ``DEPSNOOP_*`` env vars; keyword overrides win.

        Overrides whose value is None are ignored so callers can pass
        unset CLI options straight through.
        """
        values: dict[str, Any] = {
            "npm_timeout": _env_float("DEPSNOOP_NPM_TIMEOUT", 60.0),
            "osv_timeout": _env_float("DEPSNOOP_OSV_TIMEOUT", 30.0),
            "registry_timeout": _env_float("DEPSNOOP_REGISTRY_TIMEOUT", 10.0),
            "osv_url": os.environ.get("DEPSNOOP_OSV_URL", OSV_API_URL),
            "registry_url": os.environ.get("DEPSNOOP_REGISTRY_URL", NPM_REGISTRY_URL),
        }
        known = {f.name for f in fields(cls)}
        for key, value in overrides.items():
            if key not in known:
                raise TypeError(f"unknown config option: {key}")
            if value is not None:
                values[key] = value
        if "root" in values:
            values["root"] = Path(values["root"])
        if isinstance(values.get("min_severity"), str):
            values["min_severity"] = Severity.parse(values["min_severity"], default=Severity.LOW)
        return cls(**values)
