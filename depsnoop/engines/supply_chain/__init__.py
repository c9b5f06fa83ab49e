"""Supply-chain heuristics: typosquatting, maintainer risk and install scripts."""

from depsnoop.engines.supply_chain.analyzer import (
    SupplyChainAnalyzer,
    classify_install_scripts,
    detect_suspicious_scripts,
)
from depsnoop.engines.supply_chain.maintainer import analyze_maintainer_risk
from depsnoop.engines.supply_chain.models import (
    Maintainer,
    MaintainerRisk,
    PackageMetadata,
    RiskLevel,
    SecurityReport,
    SuspiciousScript,
    TyposquattingRisk,
)
from depsnoop.engines.supply_chain.registry_client import (
    NPM_REGISTRY_URL,
    MetadataCache,
    RegistryClient,
)
from depsnoop.engines.supply_chain.typosquat import (
    POPULAR_PACKAGES,
    check_typosquatting,
    levenshtein,
)

__all__ = [
    "NPM_REGISTRY_URL",
    "POPULAR_PACKAGES",
    "Maintainer",
    "MaintainerRisk",
    "MetadataCache",
    "PackageMetadata",
    "RegistryClient",
    "RiskLevel",
    "SecurityReport",
    "SupplyChainAnalyzer",
    "SuspiciousScript",
    "TyposquattingRisk",
    "analyze_maintainer_risk",
    "check_typosquatting",
    "classify_install_scripts",
    "detect_suspicious_scripts",
    "levenshtein",
]
