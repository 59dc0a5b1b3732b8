"""
Yahoo Finance holdings fetcher.

Uses yfinance's fund data to read the top holdings of most listed ETFs and
trusts. Yahoo only ever exposes the top ten constituents.
"""

from typing import List

import pandas as pd

from ...models import FundMetadata, Holding, HoldingsResult
from ..fetcher_base import BaseFetcher

LONDON_SUFFIX = ".L"


class YahooFetcher(BaseFetcher):
    """
    yfinance-backed top holdings for London-listed and global tickers.
    """

    name = "yahoo"
    priority = 60
    supports_full_holdings = False

    def _lazy_module(self):
        try:
            import yfinance as yf
        except ImportError as exc:  # pragma: no cover
            raise RuntimeError("yfinance must be installed to fetch Yahoo holdings.") from exc
        return yf

    def can_handle(self, metadata: FundMetadata) -> bool:
        return len(metadata.symbol) > 0

    def to_yahoo_symbol(self, symbol: str) -> str:
        """Append the London suffix unless the ticker already carries it."""
        return symbol if LONDON_SUFFIX in symbol else f"{symbol}{LONDON_SUFFIX}"

    def fetch_holdings(self, metadata: FundMetadata) -> HoldingsResult:
        yahoo_symbol = self.to_yahoo_symbol(metadata.symbol)
        try:
            yf = self._lazy_module()
            top = yf.Ticker(yahoo_symbol).funds_data.top_holdings
            holdings = self.parse_top_holdings(top)
        except Exception as e:
            self.logger.error(f"Yahoo Finance fetch failed for {yahoo_symbol}: {e}")
            return self.create_empty_result()

        if not holdings:
            self.logger.warning(f"No holdings data from Yahoo Finance for {yahoo_symbol}")
            return self.create_empty_result()

        self.logger.info(
            f"Fetched {len(holdings)} holdings from Yahoo Finance for {metadata.symbol}"
        )
        return self.build_result(holdings)

    def parse_top_holdings(self, top: pd.DataFrame) -> List[Holding]:
        """
        Convert yfinance's top-holdings frame (index ``Symbol``, columns
        ``Name`` and ``Holding Percent`` as a fraction) to holdings.
        """
        if top is None or top.empty:
            return []

        holdings: List[Holding] = []
        for symbol, row in top.iterrows():
            fraction = row.get("Holding Percent")
            if fraction is None or pd.isna(fraction):
                continue
            holdings.append(
                Holding(
                    name=str(row.get("Name") or symbol).strip(),
                    symbol=str(symbol) if symbol else None,
                    weight_percent=float(fraction) * 100,
                    asset_class="Equity",
                )
            )
        return holdings
