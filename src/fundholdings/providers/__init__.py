"""
Provider detection and waterfall fetching of fund holdings.

This package provides the capability contract shared by every holdings
provider, the explicitly constructed provider registry, the detector that
ranks candidate providers and the orchestrator that runs the waterfall.
"""

# Core components
from .fetcher_base import (
    AttemptCancelledError,
    BaseFetcher,
    HTTPStatusError,
    ProviderError,
    ProviderTimeoutError,
    classify_quality,
    clean_fund_name,
    extract_isin,
    normalize_weight,
    parse_date,
)

# Detection
from .detector import detect_providers, get_provider_display_name

# Orchestration
from .orchestrator import HoldingsOrchestrator, summarize_results

# Registry
from .registry import ProviderRegistry, build_default_registry

__all__ = [
    # Core
    "BaseFetcher",
    "ProviderError",
    "HTTPStatusError",
    "ProviderTimeoutError",
    "AttemptCancelledError",
    "classify_quality",
    "parse_date",
    "normalize_weight",
    "extract_isin",
    "clean_fund_name",
    # Detection
    "detect_providers",
    "get_provider_display_name",
    # Registry
    "ProviderRegistry",
    "build_default_registry",
    # Orchestration
    "HoldingsOrchestrator",
    "summarize_results",
]
