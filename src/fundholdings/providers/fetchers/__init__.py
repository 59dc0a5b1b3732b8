"""
Concrete holdings providers.

Each module wraps one upstream source behind the BaseFetcher contract. The
provider table itself is built by ``build_default_registry``.
"""

from .ft_scraper import FTScraperFetcher
from .invesco_fetcher import InvescoFetcher
from .ishares_fetcher import ISharesFetcher
from .morningstar_fetcher import MorningstarFetcher
from .state_street_fetcher import StateStreetFetcher
from .vanguard_fetcher import VanguardFetcher
from .yahoo_fetcher import YahooFetcher

__all__ = [
    "ISharesFetcher",
    "VanguardFetcher",
    "InvescoFetcher",
    "StateStreetFetcher",
    "FTScraperFetcher",
    "YahooFetcher",
    "MorningstarFetcher",
]
