"""
Fixtures and test configuration for the FundHoldings test suite.
"""

import tempfile
import time
from pathlib import Path
from typing import List, Optional

import pytest

from fundholdings.models import FundMetadata, Holding, HoldingsResult
from fundholdings.providers.fetcher_base import BaseFetcher
from fundholdings.settings import Settings


class StubFetcher(BaseFetcher):
    """
    In-memory provider returning a canned result, raising, or sleeping.
    """

    def __init__(
        self,
        name: str,
        holdings_count: int = 0,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        settings: Optional[Settings] = None,
    ):
        self.name = name
        super().__init__(settings=settings)
        self.holdings_count = holdings_count
        self.error = error
        self.delay = delay
        self.calls: List[str] = []

    def can_handle(self, metadata):
        return True

    def fetch_holdings(self, metadata):
        self.calls.append(metadata.symbol)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        holdings = [
            Holding(name=f"Holding {i}", symbol=f"H{i}", weight_percent=1.0)
            for i in range(self.holdings_count)
        ]
        return self.build_result(holdings, as_of_date="2026-10-16")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def test_settings(temp_dir):
    """Create test settings with no delays and short timeouts."""
    settings = Settings(
        root_dir=temp_dir,
        attempt_timeout=1.0,
        inter_attempt_delay=0,
        inter_fund_delay=0,
        backoff_base=0,
        request_timeout=1.0,
        log_level="DEBUG",
    )
    settings.create_directories()
    return settings


@pytest.fixture
def make_fetcher(test_settings):
    """Factory for StubFetcher instances sharing the test settings."""

    def _make(name, holdings_count=0, error=None, delay=0.0):
        return StubFetcher(
            name,
            holdings_count=holdings_count,
            error=error,
            delay=delay,
            settings=test_settings,
        )

    return _make


@pytest.fixture
def ishares_fund():
    """An Irish-domiciled iShares ETF."""
    return FundMetadata(
        symbol="IWRD", name="iShares MSCI World UCITS ETF", isin="IE00B4L5Y983"
    )


@pytest.fixture
def blackrock_oeic():
    """A UK BlackRock OEIC that is not an iShares product."""
    return FundMetadata(
        symbol="B4VY989",
        name="BlackRock Continental European Income Fund",
        isin="GB00B4VY9894",
    )


@pytest.fixture
def sample_result():
    """A small partial-quality result."""
    return HoldingsResult(
        holdings=[
            Holding(name="Apple Inc", symbol="AAPL", weight_percent=4.5, shares=10.0),
            Holding(name="Microsoft Corp", symbol="MSFT", weight_percent=4.1),
            Holding(name="Nvidia Corp", isin="US67066G1040", weight_percent=3.9),
        ],
        as_of_date="2026-10-16",
        data_quality="partial",
        provider="ishares",
    )
