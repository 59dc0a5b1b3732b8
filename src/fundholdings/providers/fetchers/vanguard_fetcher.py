"""
Vanguard holdings fetcher.

Uses the ticker-based portfolio-holding endpoint of Vanguard's investor site,
which returns the full stock holdings of an ETF.
"""

from typing import Any, Dict, List

from ...models import FundMetadata, Holding, HoldingsResult
from ..fetcher_base import BaseFetcher

PORTFOLIO_URL = (
    "https://investor.vanguard.com/investment-products/etfs/profile/api/"
    "{ticker}/portfolio-holding/stock"
)


class VanguardFetcher(BaseFetcher):
    """
    Vanguard portfolio-holding feed, looked up by ticker.
    """

    name = "vanguard"
    priority = 90
    supports_full_holdings = True

    def can_handle(self, metadata: FundMetadata) -> bool:
        return "vanguard" in metadata.name.lower()

    def fetch_holdings(self, metadata: FundMetadata) -> HoldingsResult:
        ticker = metadata.symbol.split(".")[0].upper()
        url = PORTFOLIO_URL.format(ticker=ticker)

        try:
            self.logger.info(f"Fetching Vanguard holdings for {metadata.symbol}: {url}")
            response = self.fetch_with_retry(url, headers={"Accept": "application/json"})
            result = self._parse(response.json())
        except Exception as e:
            self.logger.error(f"Vanguard fetch failed for {metadata.symbol}: {e}")
            return self.create_empty_result()

        if not result.holdings:
            self.logger.warning(f"No Vanguard holdings for {metadata.symbol}")
        return result

    def _parse(self, data: Dict[str, Any]) -> HoldingsResult:
        entities = (data.get("fund") or {}).get("entity") or []
        holdings: List[Holding] = [
            Holding(
                name=(entity.get("longName") or entity.get("shortName") or "").strip(),
                symbol=entity.get("ticker") or None,
                cusip=entity.get("cusip") or None,
                isin=entity.get("isin") or None,
                sedol=entity.get("sedol") or None,
                weight_percent=self.normalize_weight(entity.get("percentWeight")),
                shares=self.normalize_weight(entity.get("sharesHeld")) or None,
                market_value=self.normalize_weight(entity.get("marketValue")) or None,
                sector=entity.get("sectorName") or None,
                asset_class="Equity",
            )
            for entity in entities
        ]

        total = data.get("size")
        return self.build_result(
            holdings,
            as_of_date=self.parse_date(data.get("asOfDate")),
            total_holdings=int(total) if total else None,
        )
