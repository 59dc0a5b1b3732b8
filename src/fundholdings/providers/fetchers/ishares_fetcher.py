"""
iShares (BlackRock) holdings fetcher.

Looks funds up by ISIN on the regional iShares sites and parses the
``aaData`` rows of the holdings JSON. Returns the complete holdings list.
"""

import json
from typing import Any, List, Optional

from ...models import FundMetadata, Holding, HoldingsResult
from ..fetcher_base import BaseFetcher

HOLDINGS_URL = "https://www.ishares.com/{region}/individual/en/products/holdings.ajax"
REGIONS = ("uk", "us", "de")


class ISharesFetcher(BaseFetcher):
    """
    Official iShares holdings feed, looked up by ISIN.
    """

    name = "ishares"
    priority = 95
    supports_full_holdings = True

    def can_handle(self, metadata: FundMetadata) -> bool:
        return "ishares" in metadata.name.lower()

    def fetch_holdings(self, metadata: FundMetadata) -> HoldingsResult:
        if not metadata.isin:
            self.logger.info(f"No ISIN for {metadata.symbol}; iShares lookup skipped")
            return self.create_empty_result()

        for region in REGIONS:
            try:
                result = self._fetch_region(metadata.isin, region)
            except Exception as e:
                self.logger.warning(f"iShares {region} failed for {metadata.symbol}: {e}")
                continue
            if result.holdings:
                self.logger.info(
                    f"Fetched {len(result.holdings)} holdings from iShares {region} "
                    f"for {metadata.symbol}"
                )
                return result

        self.logger.warning(f"No iShares holdings for {metadata.symbol} in any region")
        return self.create_empty_result()

    def _fetch_region(self, isin: str, region: str) -> HoldingsResult:
        response = self.fetch_with_retry(
            HOLDINGS_URL.format(region=region),
            params={"isin": isin, "fileType": "json"},
            max_retries=1,
        )
        # The feed is served with a UTF-8 byte order mark.
        data = json.loads(response.content.decode("utf-8-sig"))
        rows = data.get("aaData") or []

        holdings: List[Holding] = []
        for row in rows:
            if not isinstance(row, list) or len(row) < 3:
                continue
            holdings.append(
                Holding(
                    name=str(_cell(row[0]) or "").strip(),
                    symbol=_text(_cell(row[1])),
                    weight_percent=self.normalize_weight(_cell(row[2])),
                    asset_class="Equity",
                )
            )

        as_of = data.get("asOfDate")
        return self.build_result(holdings, as_of_date=self.parse_date(as_of) if as_of else None)


def _cell(value: Any) -> Any:
    # Numeric cells arrive as {"display": "4.51", "raw": 4.51}.
    if isinstance(value, dict):
        return value.get("raw", value.get("display"))
    return value


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
