"""
Morningstar holdings fetcher.

The universal last-resort provider. A fund is first resolved to a Morningstar
security id through the UK security search (by ISIN, then by name), and its
portfolio is then read from the portfolio REST endpoint. Coverage varies from
fund to fund.
"""

import json
import re
from typing import List, Optional

from ...models import FundMetadata, Holding, HoldingsResult
from ..fetcher_base import BaseFetcher, HTTPStatusError

SEARCH_URL = "https://www.morningstar.co.uk/uk/util/SecuritySearch.ashx"
PORTFOLIO_URL = "https://tools.morningstar.co.uk/api/rest.svc/9vehuxllxs/security/portfolio"

# OEICs need the universe-qualified id; ETFs are found by the bare id.
EXTENDED_ID_SUFFIX = "]2]1]FOGBR$$ALL"

ARTICLE_TYPE = -1

_SHARE_CLASS_WORDS = re.compile(
    r"\s*\b(Acc|Inc|Class\s*\w|GBP|USD|EUR|Hedged|Unhedged)\b\s*", re.I
)


class MorningstarFetcher(BaseFetcher):
    """
    Morningstar security search plus portfolio API; accepts any fund.
    """

    name = "morningstar"
    priority = 40
    supports_full_holdings = True

    def can_handle(self, metadata: FundMetadata) -> bool:
        return True

    def fetch_holdings(self, metadata: FundMetadata) -> HoldingsResult:
        try:
            sec_id = self.find_security_id(metadata)
            if not sec_id:
                self.logger.warning(f"Could not find Morningstar id for {metadata.symbol}")
                return self.create_empty_result()
            return self.fetch_portfolio(sec_id)
        except Exception as e:
            self.logger.error(f"Morningstar fetch failed for {metadata.symbol}: {e}")
            return self.create_empty_result()

    def find_security_id(self, metadata: FundMetadata) -> Optional[str]:
        """
        Resolve a Morningstar security id, trying the ISIN before the name.
        """
        if metadata.isin:
            matches = self.search(metadata.isin)
            exact = [m for m in matches if m.get("isin") == metadata.isin]
            best = (exact or matches or [None])[0]
            if best:
                self.logger.info(f"Found Morningstar id by ISIN: {best['sec_id']}")
                return best["sec_id"]

        for query in _name_queries(metadata.name):
            matches = self.search(query)
            if matches:
                sec_id = matches[0]["sec_id"]
                self.logger.info(f"Found Morningstar id by name ({query!r}): {sec_id}")
                return sec_id
        return None

    def search(self, query: str) -> List[dict]:
        """
        Query the security search and parse its pipe-delimited response.

        Current responses carry a JSON object in the second field
        (``name|{"i": secId, "n": name, "s": ticker, "t": type}|...``); older
        ones are ``secId|name|ticker|isin|exchange``. Category headers and
        articles are skipped.
        """
        response = self.fetch_with_retry(
            SEARCH_URL,
            params={"q": query, "limit": 25, "preferedList": "", "source": "nav"},
            headers={"Accept": "application/json"},
            max_retries=1,
        )
        return parse_search_response(response.text)

    def fetch_portfolio(self, sec_id: str) -> HoldingsResult:
        try:
            response = self.fetch_with_retry(
                PORTFOLIO_URL, params={"id": sec_id + EXTENDED_ID_SUFFIX}, max_retries=1
            )
        except HTTPStatusError as e:
            if e.status_code != 404:
                raise
            self.logger.info(f"Trying plain id format for {sec_id}")
            response = self.fetch_with_retry(PORTFOLIO_URL, params={"id": sec_id}, max_retries=1)

        data = response.json()
        holdings = [
            Holding(
                name=item.get("SecurityName") or "Unknown",
                symbol=item.get("Ticker") or None,
                isin=item.get("ISIN") or None,
                cusip=item.get("CUSIP") or None,
                weight_percent=self.normalize_weight(item.get("WeightingPercent")),
                shares=item.get("NumberOfShare"),
                market_value=item.get("MarketValue"),
                asset_class="Equity",
            )
            for item in data.get("EquityHolding") or []
        ]
        if not holdings:
            self.logger.warning(f"No holdings data from Morningstar for {sec_id}")
            return self.create_empty_result()

        as_of = self.parse_date(data["Date"]) if data.get("Date") else None
        result = self.build_result(holdings, as_of_date=as_of)
        self.logger.info(f"Fetched {len(result.holdings)} holdings from Morningstar for {sec_id}")
        return result


def parse_search_response(text: str) -> List[dict]:
    """Parse a SecuritySearch.ashx body into ``sec_id/name/ticker/isin`` dicts."""
    funds: List[dict] = []
    for line in text.strip().splitlines():
        parts = line.split("|")
        if len(parts) < 2 or not parts[1] or "More " in parts[1]:
            continue

        if parts[1].startswith("{"):
            try:
                data = json.loads(parts[1])
            except ValueError:
                data = None
            if isinstance(data, dict) and data.get("i") and data.get("t") != ARTICLE_TYPE:
                funds.append(
                    {
                        "sec_id": data["i"],
                        "name": data.get("n") or parts[0],
                        "ticker": data.get("s") or None,
                        "isin": None,
                    }
                )
            continue

        if len(parts) >= 4 and parts[0] and " " not in parts[0]:
            funds.append(
                {
                    "sec_id": parts[0],
                    "name": parts[1],
                    "ticker": parts[2] or None,
                    "isin": parts[3] or None,
                }
            )
    return funds


def _name_queries(name: str) -> List[str]:
    """Full name, then without share-class words, then the first three words."""
    queries = [name]
    simplified = " ".join(_SHARE_CLASS_WORDS.sub(" ", name).split())
    if simplified != name:
        queries.append(simplified)
    first_words = " ".join(name.split()[:3])
    if first_words != simplified:
        queries.append(first_words)
    return queries
