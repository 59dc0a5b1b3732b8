"""
FundHoldings: provider detection and waterfall fetching of fund holdings.

Subpackages
-----------
- providers:   Capability contract, registry, detector and orchestrator
- plugins:     CLI commands discovered at startup
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__: str = version(__name__)
except PackageNotFoundError:  # local editable install
    __version__ = "0.0.0-dev"

__all__ = [
    "providers",
]

from . import providers
