"""
Invesco holdings fetcher.
"""

from typing import Any, Dict, List

from ...models import FundMetadata, Holding, HoldingsResult
from ..fetcher_base import BaseFetcher

HOLDINGS_URL = (
    "https://dng-api.invesco.com/cache/v1/accounts/en_US/shareclasses/"
    "{ticker}/holdings/fund"
)


class InvescoFetcher(BaseFetcher):
    """
    Invesco fund holdings API, looked up by ticker.
    """

    name = "invesco"
    priority = 85
    supports_full_holdings = True

    def can_handle(self, metadata: FundMetadata) -> bool:
        return "invesco" in metadata.name.lower()

    def fetch_holdings(self, metadata: FundMetadata) -> HoldingsResult:
        ticker = metadata.symbol.split(".")[0].upper()
        try:
            response = self.fetch_with_retry(
                HOLDINGS_URL.format(ticker=ticker),
                params={"idType": "ticker"},
                headers={"Accept": "application/json"},
            )
            result = self._parse(response.json())
        except Exception as e:
            self.logger.error(f"Invesco fetch failed for {metadata.symbol}: {e}")
            return self.create_empty_result()

        self.logger.info(f"Invesco returned {len(result.holdings)} holdings for {metadata.symbol}")
        return result

    def _parse(self, data: Dict[str, Any]) -> HoldingsResult:
        holdings: List[Holding] = []
        for item in data.get("holdings") or []:
            holdings.append(
                Holding(
                    name=(item.get("issuerName") or item.get("name") or "").strip(),
                    symbol=item.get("ticker") or None,
                    cusip=item.get("cusip") or None,
                    isin=item.get("isin") or None,
                    weight_percent=self.normalize_weight(item.get("percentageOfTotalNetAssets")),
                    shares=self.normalize_weight(item.get("units")) or None,
                    market_value=self.normalize_weight(item.get("marketValue")) or None,
                    asset_class=item.get("securityTypeName") or "Equity",
                    sector=item.get("gicsSectorDescription") or None,
                )
            )
        return self.build_result(holdings, as_of_date=self.parse_date(data.get("effectiveDate")))
