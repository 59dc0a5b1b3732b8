"""
State Street (SPDR) holdings fetcher.

SSGA publishes a daily holdings spreadsheet per ETF. The workbook starts with
a short preamble (fund name, ticker, ``Holdings: As of 17-Oct-2026``) followed
by a table whose header row begins with ``Name``.
"""

import io
import re
from typing import List, Optional

import pandas as pd

from ...models import FundMetadata, Holding, HoldingsResult
from ..fetcher_base import BaseFetcher

HOLDINGS_URL = (
    "https://www.ssga.com/us/en/intermediary/etfs/library-content/products/"
    "fund-data/etfs/us/holdings-daily-us-en-{ticker}.xlsx"
)

_AS_OF_PATTERN = re.compile(r"As of\s+(.+)", re.I)


class StateStreetFetcher(BaseFetcher):
    """
    SPDR daily holdings spreadsheet, looked up by ticker.
    """

    name = "state-street"
    priority = 85
    supports_full_holdings = True

    def can_handle(self, metadata: FundMetadata) -> bool:
        return "spdr" in metadata.name.lower()

    def fetch_holdings(self, metadata: FundMetadata) -> HoldingsResult:
        ticker = metadata.symbol.split(".")[0].lower()
        try:
            response = self.fetch_with_retry(HOLDINGS_URL.format(ticker=ticker))
            raw = pd.read_excel(io.BytesIO(response.content), header=None)
            result = self.parse_sheet(raw)
        except Exception as e:
            self.logger.error(f"State Street fetch failed for {metadata.symbol}: {e}")
            return self.create_empty_result()

        self.logger.info(
            f"State Street returned {len(result.holdings)} holdings for {metadata.symbol}"
        )
        return result

    def parse_sheet(self, raw: pd.DataFrame) -> HoldingsResult:
        """
        Parse a holdings workbook read with ``header=None``.
        """
        header_index = _find_header_row(raw)
        if header_index is None:
            return self.create_empty_result()

        table = raw.iloc[header_index + 1 :].copy()
        table.columns = [str(c).strip() for c in raw.iloc[header_index]]
        table = table.dropna(subset=["Name"])

        holdings: List[Holding] = []
        for _, row in table.iterrows():
            holdings.append(
                Holding(
                    name=str(row["Name"]).strip(),
                    symbol=_optional(row.get("Ticker")),
                    cusip=_optional(row.get("Identifier")),
                    sedol=_optional(row.get("SEDOL")),
                    weight_percent=self.normalize_weight(row.get("Weight")),
                    shares=self.normalize_weight(row.get("Shares Held")) or None,
                    sector=_optional(row.get("Sector")),
                    asset_class="Equity",
                )
            )

        return self.build_result(
            holdings, as_of_date=self.parse_date(_find_as_of(raw, header_index), dayfirst=True)
        )


def _find_header_row(raw: pd.DataFrame) -> Optional[int]:
    for position, value in enumerate(raw.iloc[:, 0].tolist()):
        if isinstance(value, str) and value.strip() == "Name":
            return position
    return None


def _find_as_of(raw: pd.DataFrame, header_index: int) -> Optional[str]:
    for value in raw.iloc[:header_index].to_numpy().ravel():
        if isinstance(value, str):
            match = _AS_OF_PATTERN.search(value)
            if match:
                return match.group(1).strip()
    return None


def _optional(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text if text and text != "-" else None
