"""
Financial Times (markets.ft.com) holdings scraper.

Scrapes the top-10 holdings table of the FT fund tearsheet. Works well for UK
OEICs and investment trusts, which are addressed by their GB ISIN.
"""

import re
from html import unescape
from typing import List, Optional

from ...models import FundMetadata, Holding, HoldingsResult
from ..fetcher_base import BaseFetcher

TEARSHEET_URL = "https://markets.ft.com/data/funds/tearsheet/holdings"

# The tearsheet markup varies between fund types; tried in order.
HOLDINGS_TABLE_MARKERS = (
    "mod-tearsheet-holdings",
    "mod-ui-table--freeze-pane",
    'data-mod-id="holdings"',
)
AS_OF_MARKERS = (
    "mod-tearsheet-overview__aso",
    "mod-disclaimer",
    'data-mod-id="as-of-date"',
)

_TABLE_PATTERN = re.compile(r"<table([^>]*)>(.*?)</table>", re.S | re.I)
_TBODY_PATTERN = re.compile(r"<tbody[^>]*>(.*?)</tbody>", re.S | re.I)
_ROW_PATTERN = re.compile(r"<tr[^>]*>(.*?)</tr>", re.S | re.I)
_CELL_PATTERN = re.compile(r"<td[^>]*>(.*?)</td>", re.S | re.I)
_TAG_PATTERN = re.compile(r"<[^>]+>")
_DATE_PATTERN = re.compile(r"\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}")


class FTScraperFetcher(BaseFetcher):
    """
    FT.com tearsheet scraper returning the top holdings of UK funds.
    """

    name = "ft-scraper"
    priority = 70
    supports_full_holdings = False

    def can_handle(self, metadata: FundMetadata) -> bool:
        return bool(metadata.isin) and metadata.isin.upper().startswith("GB")

    def fetch_holdings(self, metadata: FundMetadata) -> HoldingsResult:
        if not metadata.isin:
            return self.create_empty_result()

        try:
            self.logger.info(f"Fetching FT holdings for {metadata.symbol} ({metadata.isin})")
            response = self.fetch_with_retry(
                TEARSHEET_URL, params={"s": f"{metadata.isin}:GBP"}, max_retries=1
            )
            html = response.text
        except Exception as e:
            self.logger.error(f"FT scrape failed for {metadata.symbol}: {e}")
            return self.create_empty_result()

        holdings = self.parse_holdings(html)
        if not holdings:
            self.logger.warning(f"No holdings parsed from FT for {metadata.symbol}")
            return self.create_empty_result()

        as_of = self.extract_as_of_date(html)
        self.logger.info(f"Scraped {len(holdings)} holdings from FT for {metadata.symbol}")
        return self.build_result(holdings, as_of_date=as_of)

    def parse_holdings(self, html: str) -> List[Holding]:
        """
        Extract (name, weight) rows from the first recognised holdings table.
        """
        tables = _TABLE_PATTERN.findall(html)
        for marker in HOLDINGS_TABLE_MARKERS:
            for attributes, body in tables:
                if marker not in attributes:
                    continue
                holdings = self._parse_rows(body)
                if holdings:
                    return holdings
        return []

    def extract_as_of_date(self, html: str) -> Optional[str]:
        for marker in AS_OF_MARKERS:
            index = html.find(marker)
            if index < 0:
                continue
            # The date sits in the element text shortly after its marker.
            snippet = _clean_text(html[index : index + 400])
            match = _DATE_PATTERN.search(snippet)
            if match:
                return self.parse_date(match.group(0), dayfirst=True)
        return None

    def _parse_rows(self, table_body: str) -> List[Holding]:
        tbody = _TBODY_PATTERN.search(table_body)
        rows = _ROW_PATTERN.findall(tbody.group(1) if tbody else table_body)

        holdings: List[Holding] = []
        for row in rows:
            cells = _CELL_PATTERN.findall(row)
            if len(cells) < 2:
                continue
            name = _clean_text(cells[0])
            weight = _parse_weight(_clean_text(cells[1]))
            if name and weight > 0:
                holdings.append(Holding(name=name, weight_percent=weight, asset_class="Equity"))
        return holdings


def _clean_text(fragment: str) -> str:
    return " ".join(unescape(_TAG_PATTERN.sub(" ", fragment)).split())


def _parse_weight(text: str) -> float:
    cleaned = re.sub(r"[^0-9.]", "", text)
    try:
        return float(cleaned)
    except ValueError:
        return 0.0
