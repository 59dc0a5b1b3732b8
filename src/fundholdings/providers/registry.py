"""
Provider registry: a fixed table of provider name -> fetcher instance.

The registry is built once during application start-up and passed to the
orchestrator. It is read-only after construction.
"""

import logging
from typing import Dict, Iterable, List, Optional

import requests

from ..settings import Settings
from .fetcher_base import BaseFetcher

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Explicitly constructed registry of holdings providers.

    Lookups are by the provider's stable ``name``; the detector's candidate
    names are resolved here, and an absent name is a configuration gap.
    """

    def __init__(self, fetchers: Iterable[BaseFetcher] = ()):
        self._fetchers: Dict[str, BaseFetcher] = {}
        for fetcher in fetchers:
            self.register(fetcher)

    def register(self, fetcher: BaseFetcher) -> None:
        """
        Add a fetcher to the table. Intended for construction time only.

        Args:
            fetcher: Provider instance; its ``name`` becomes the lookup key.
        """
        if not isinstance(fetcher, BaseFetcher):
            raise ValueError(f"Fetcher must inherit from BaseFetcher: {fetcher!r}")
        if fetcher.name in self._fetchers:
            logger.warning(f"Replacing registered provider: {fetcher.name}")
        self._fetchers[fetcher.name] = fetcher
        logger.debug(f"Registered provider: {fetcher.name} -> {fetcher.__class__.__name__}")

    def resolve(self, name: str) -> Optional[BaseFetcher]:
        """Return the fetcher registered under ``name``, or None."""
        return self._fetchers.get(name)

    def has(self, name: str) -> bool:
        return name in self._fetchers

    def names(self) -> List[str]:
        return list(self._fetchers.keys())

    def all(self) -> List[BaseFetcher]:
        return list(self._fetchers.values())

    def by_priority(self) -> List[BaseFetcher]:
        """Fetchers sorted by descending priority hint."""
        return sorted(self._fetchers.values(), key=lambda f: f.priority, reverse=True)

    def get_info(self) -> Dict[str, str]:
        """Get a one-line description of every registered provider."""
        info = {}
        for name, fetcher in self._fetchers.items():
            coverage = "full" if fetcher.supports_full_holdings else "top-N"
            info[name] = (
                f"{fetcher.__class__.__name__} (priority {fetcher.priority}, {coverage}) - "
                f"{(fetcher.__doc__ or 'No description').strip().splitlines()[0]}"
            )
        return info

    def __len__(self) -> int:
        return len(self._fetchers)

    def __contains__(self, name: object) -> bool:
        return name in self._fetchers


def build_default_registry(
    settings: Optional[Settings] = None,
    session: Optional[requests.Session] = None,
) -> ProviderRegistry:
    """
    Build the registry of every concrete provider shipped with the package.

    Args:
        settings: Settings shared by all fetchers.
        session: Optional HTTP session shared by all fetchers.
    """
    from .fetchers import (
        FTScraperFetcher,
        InvescoFetcher,
        ISharesFetcher,
        MorningstarFetcher,
        StateStreetFetcher,
        VanguardFetcher,
        YahooFetcher,
    )

    fetcher_classes = [
        ISharesFetcher,
        VanguardFetcher,
        InvescoFetcher,
        StateStreetFetcher,
        FTScraperFetcher,
        YahooFetcher,
        MorningstarFetcher,
    ]
    return ProviderRegistry(cls(settings=settings, session=session) for cls in fetcher_classes)
