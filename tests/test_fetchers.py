"""
Tests for the concrete holdings providers.
"""

import io
import json
from unittest.mock import MagicMock, Mock, patch

import pandas as pd
import pytest
import requests

from fundholdings.models import FundMetadata
from fundholdings.providers.fetcher_base import HTTPStatusError
from fundholdings.providers.fetchers import (
    FTScraperFetcher,
    InvescoFetcher,
    ISharesFetcher,
    MorningstarFetcher,
    StateStreetFetcher,
    VanguardFetcher,
    YahooFetcher,
)
from fundholdings.providers.fetchers.morningstar_fetcher import parse_search_response


def json_response(payload, status_code=200):
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = ""
    response.json.return_value = payload
    response.content = json.dumps(payload).encode("utf-8")
    response.text = json.dumps(payload)
    return response


def text_response(text, status_code=200):
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = ""
    response.text = text
    response.content = text.encode("utf-8")
    return response


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


class TestISharesFetcher:
    """Test cases for ISharesFetcher."""

    def test_can_handle(self, test_settings):
        """Test the iShares name rule."""
        fetcher = ISharesFetcher(settings=test_settings)

        assert fetcher.can_handle(FundMetadata(symbol="IWRD", name="iShares MSCI World"))
        assert not fetcher.can_handle(FundMetadata(symbol="VWRL", name="Vanguard All-World"))

    def test_parses_aa_data(self, test_settings, session, ishares_fund):
        """Test parsing rows with raw/display cells and a BOM."""
        payload = {
            "aaData": [
                ["Apple Inc", "AAPL", {"display": "4.51", "raw": 4.51}],
                ["Microsoft Corp", "MSFT", "4.10"],
                ["Cash", "-", 0],
            ]
        }
        response = json_response(payload)
        response.content = b"\xef\xbb\xbf" + json.dumps(payload).encode("utf-8")
        session.get.return_value = response
        fetcher = ISharesFetcher(settings=test_settings, session=session)

        result = fetcher.fetch_holdings(ishares_fund)

        assert result.provider == "ishares"
        assert [(h.name, h.weight_percent) for h in result.holdings] == [
            ("Apple Inc", 4.51),
            ("Microsoft Corp", 4.1),
        ]
        assert session.get.call_args.kwargs["params"]["isin"] == "IE00B4L5Y983"

    def test_tries_next_region(self, test_settings, session, ishares_fund):
        """Test that a failing region falls through to the next one."""
        session.get.side_effect = [
            json_response({}, status_code=404),
            json_response({"aaData": [["Apple Inc", "AAPL", 5.0]]}),
        ]
        fetcher = ISharesFetcher(settings=test_settings, session=session)

        result = fetcher.fetch_holdings(ishares_fund)

        assert len(result.holdings) == 1
        assert "/us/" in session.get.call_args.args[0]

    def test_without_isin(self, test_settings, session):
        """Test that no ISIN means no request."""
        fetcher = ISharesFetcher(settings=test_settings, session=session)

        result = fetcher.fetch_holdings(FundMetadata(symbol="X", name="iShares X"))

        assert result.data_quality == "unavailable"
        session.get.assert_not_called()


class TestVanguardFetcher:
    """Test cases for VanguardFetcher."""

    def test_parses_entities(self, test_settings, session):
        """Test parsing the portfolio-holding JSON."""
        session.get.return_value = json_response(
            {
                "size": 2,
                "asOfDate": "2026-09-30T00:00:00-04:00",
                "fund": {
                    "entity": [
                        {"longName": "Apple Inc", "ticker": "AAPL", "percentWeight": "6.50",
                         "sharesHeld": "1000", "marketValue": "250000"},
                        {"longName": "Microsoft Corp", "ticker": "MSFT", "percentWeight": "6.10"},
                    ]
                },
            }
        )
        fetcher = VanguardFetcher(settings=test_settings, session=session)

        result = fetcher.fetch_holdings(FundMetadata(symbol="VTI", name="Vanguard Total Stock"))

        assert result.provider == "vanguard"
        assert result.as_of_date == "2026-09-30"
        assert result.data_quality == "complete"
        assert result.holdings[0].shares == 1000.0
        assert "/VTI/" in session.get.call_args.args[0]

    def test_strips_exchange_suffix(self, test_settings, session):
        """Test that the ticker is sent without its exchange suffix."""
        session.get.return_value = json_response({"fund": {"entity": []}})
        fetcher = VanguardFetcher(settings=test_settings, session=session)

        result = fetcher.fetch_holdings(FundMetadata(symbol="vwrl.L", name="Vanguard"))

        assert result.data_quality == "unavailable"
        assert "/VWRL/" in session.get.call_args.args[0]

    def test_http_error_is_empty_result(self, test_settings, session):
        """Test that a 404 becomes the empty result."""
        session.get.return_value = json_response({}, status_code=404)
        fetcher = VanguardFetcher(settings=test_settings, session=session)

        result = fetcher.fetch_holdings(FundMetadata(symbol="VXX", name="Vanguard"))

        assert result.provider == "vanguard"
        assert result.holdings == []


class TestInvescoFetcher:
    """Test cases for InvescoFetcher."""

    def test_parses_holdings(self, test_settings, session):
        """Test parsing the Invesco holdings JSON."""
        session.get.return_value = json_response(
            {
                "effectiveDate": "2026-10-15",
                "holdings": [
                    {"issuerName": "NVIDIA Corp", "ticker": "NVDA",
                     "percentageOfTotalNetAssets": 8.9, "units": 1200},
                    {"issuerName": "Apple Inc", "ticker": "AAPL",
                     "percentageOfTotalNetAssets": 8.1},
                ],
            }
        )
        fetcher = InvescoFetcher(settings=test_settings, session=session)

        result = fetcher.fetch_holdings(FundMetadata(symbol="QQQ", name="Invesco QQQ Trust"))

        assert [h.symbol for h in result.holdings] == ["NVDA", "AAPL"]
        assert result.as_of_date == "2026-10-15"
        assert session.get.call_args.kwargs["params"] == {"idType": "ticker"}

    def test_network_failure(self, test_settings, session):
        """Test that network errors become the empty result."""
        session.get.side_effect = requests.ConnectionError("down")
        fetcher = InvescoFetcher(settings=test_settings, session=session)

        with patch("fundholdings.providers.fetcher_base.time.sleep"):
            result = fetcher.fetch_holdings(FundMetadata(symbol="QQQ", name="Invesco QQQ"))

        assert result.data_quality == "unavailable"
        assert result.provider == "invesco"


class TestStateStreetFetcher:
    """Test cases for StateStreetFetcher."""

    def test_parse_sheet(self, test_settings):
        """Test parsing the SPDR holdings workbook layout."""
        raw = pd.DataFrame(
            [
                ["Fund Name:", "SPDR S&P 500 ETF Trust", None, None],
                ["Ticker Symbol:", "SPY", None, None],
                ["Holdings:", "As of 17-Oct-2026", None, None],
                [None, None, None, None],
                ["Name", "Ticker", "Identifier", "Weight"],
                ["APPLE INC", "AAPL", "037833100", 7.1],
                ["MICROSOFT CORP", "MSFT", "594918104", 6.5],
                [None, None, None, None],
                ["Past performance is no guarantee of future results.", None, None, None],
            ]
        )
        fetcher = StateStreetFetcher(settings=test_settings)

        result = fetcher.parse_sheet(raw)

        assert [h.name for h in result.holdings] == ["APPLE INC", "MICROSOFT CORP"]
        assert result.holdings[0].cusip == "037833100"
        assert result.as_of_date == "2026-10-17"
        assert result.provider == "state-street"

    def test_parse_sheet_without_table(self, test_settings):
        """Test a workbook without a header row."""
        fetcher = StateStreetFetcher(settings=test_settings)

        result = fetcher.parse_sheet(pd.DataFrame([["nothing here"]]))

        assert result.data_quality == "unavailable"

    def test_fetch_reads_workbook(self, test_settings, session):
        """Test that the downloaded workbook is handed to pandas."""
        session.get.return_value = text_response("xlsx-bytes")
        fetcher = StateStreetFetcher(settings=test_settings, session=session)
        sheet = pd.DataFrame([["Name", "Weight"], ["APPLE INC", 7.0]])

        with patch(
            "fundholdings.providers.fetchers.state_street_fetcher.pd.read_excel",
            return_value=sheet,
        ) as mock_read:
            result = fetcher.fetch_holdings(FundMetadata(symbol="SPY", name="SPDR S&P 500"))

        assert len(result.holdings) == 1
        assert isinstance(mock_read.call_args.args[0], io.BytesIO)
        assert session.get.call_args.args[0].endswith("holdings-daily-us-en-spy.xlsx")


FT_HTML = """
<html><body>
<div class="mod-tearsheet-overview__aso">As of 15/10/2026</div>
<table class="mod-ui-table mod-tearsheet-holdings">
  <thead><tr><th>Company</th><th>Weight</th></tr></thead>
  <tbody>
    <tr><td><a href="#">Nestl&eacute; SA</a></td><td>4.21%</td></tr>
    <tr><td>Novo Nordisk A/S</td><td>3.90%</td></tr>
    <tr><td>Cash</td><td>--</td></tr>
  </tbody>
</table>
</body></html>
"""


class TestFTScraperFetcher:
    """Test cases for FTScraperFetcher."""

    def test_can_handle_requires_gb_isin(self, test_settings, blackrock_oeic, ishares_fund):
        """Test the GB ISIN rule."""
        fetcher = FTScraperFetcher(settings=test_settings)

        assert fetcher.can_handle(blackrock_oeic)
        assert not fetcher.can_handle(ishares_fund)
        assert not fetcher.can_handle(FundMetadata(symbol="SMT", name="Trust"))

    def test_parses_tearsheet(self, test_settings, session, blackrock_oeic):
        """Test scraping names, weights and the as-of date."""
        session.get.return_value = text_response(FT_HTML)
        fetcher = FTScraperFetcher(settings=test_settings, session=session)

        result = fetcher.fetch_holdings(blackrock_oeic)

        assert [(h.name, h.weight_percent) for h in result.holdings] == [
            ("Nestlé SA", 4.21),
            ("Novo Nordisk A/S", 3.9),
        ]
        assert result.as_of_date == "2026-10-15"
        assert result.data_quality == "partial"
        assert session.get.call_args.kwargs["params"] == {"s": "GB00B4VY9894:GBP"}

    def test_no_table_is_empty(self, test_settings, session, blackrock_oeic):
        """Test a page without a holdings table."""
        session.get.return_value = text_response("<html><table><tr><td>x</td></tr></table></html>")
        fetcher = FTScraperFetcher(settings=test_settings, session=session)

        assert fetcher.fetch_holdings(blackrock_oeic).holdings == []


class TestYahooFetcher:
    """Test cases for YahooFetcher."""

    def test_symbol_suffix(self, test_settings):
        """Test that .L is appended only when missing."""
        fetcher = YahooFetcher(settings=test_settings)

        assert fetcher.to_yahoo_symbol("VWRL") == "VWRL.L"
        assert fetcher.to_yahoo_symbol("VWRL.L") == "VWRL.L"

    def test_converts_fraction_to_percent(self, test_settings):
        """Test reading yfinance's top holdings frame."""
        top = pd.DataFrame(
            {"Name": ["Apple Inc", "Microsoft Corp"], "Holding Percent": [0.045, 0.041]},
            index=pd.Index(["AAPL", "MSFT"], name="Symbol"),
        )
        yf = MagicMock()
        yf.Ticker.return_value.funds_data.top_holdings = top
        fetcher = YahooFetcher(settings=test_settings)

        with patch.object(YahooFetcher, "_lazy_module", return_value=yf):
            result = fetcher.fetch_holdings(FundMetadata(symbol="VWRL", name="Vanguard"))

        yf.Ticker.assert_called_once_with("VWRL.L")
        assert [h.symbol for h in result.holdings] == ["AAPL", "MSFT"]
        assert result.holdings[0].weight_percent == pytest.approx(4.5)
        assert result.data_quality == "partial"
        assert result.total_holdings is None

    def test_yfinance_error_is_empty(self, test_settings):
        """Test that yfinance failures become the empty result."""
        yf = MagicMock()
        yf.Ticker.side_effect = ValueError("no fund data")
        fetcher = YahooFetcher(settings=test_settings)

        with patch.object(YahooFetcher, "_lazy_module", return_value=yf):
            result = fetcher.fetch_holdings(FundMetadata(symbol="X", name="X"))

        assert result.provider == "yahoo"
        assert result.holdings == []


SEARCH_BODY = "\n".join(
    [
        "Funds and Trusts|||",
        'BlackRock Cont Eurp Inc A Inc|{"i":"F00000MG7S","n":"BlackRock Continental European Income A Inc","t":2,"s":""}|2|||',
        'Article|{"i":"ART1","n":"Some article","t":-1}|-1|||',
        "More Funds...|More ...|",
    ]
)


class TestMorningstarFetcher:
    """Test cases for MorningstarFetcher."""

    def test_parse_search_response(self):
        """Test JSON and legacy search formats."""
        funds = parse_search_response(SEARCH_BODY)
        legacy = parse_search_response("F0GBR04ABC|Legacy Fund|LEG|GB00B0000000|LSE")

        assert [f["sec_id"] for f in funds] == ["F00000MG7S"]
        assert funds[0]["name"] == "BlackRock Continental European Income A Inc"
        assert legacy == [
            {"sec_id": "F0GBR04ABC", "name": "Legacy Fund", "ticker": "LEG",
             "isin": "GB00B0000000"}
        ]

    def test_fetch_by_isin(self, test_settings, session, blackrock_oeic):
        """Test search by ISIN followed by the portfolio request."""
        session.get.side_effect = [
            text_response(SEARCH_BODY),
            json_response(
                {
                    "Date": "2026-08-31",
                    "EquityHolding": [
                        {"SecurityName": "Novo Nordisk", "ISIN": "DK0062498333",
                         "WeightingPercent": 5.2, "NumberOfShare": 1000},
                        {"SecurityName": "ASML", "WeightingPercent": 4.8},
                    ],
                }
            ),
        ]
        fetcher = MorningstarFetcher(settings=test_settings, session=session)

        result = fetcher.fetch_holdings(blackrock_oeic)

        assert result.provider == "morningstar"
        assert result.as_of_date == "2026-08-31"
        assert [h.name for h in result.holdings] == ["Novo Nordisk", "ASML"]
        search_call, portfolio_call = session.get.call_args_list
        assert search_call.kwargs["params"]["q"] == "GB00B4VY9894"
        assert portfolio_call.kwargs["params"]["id"] == "F00000MG7S]2]1]FOGBR$$ALL"

    def test_portfolio_404_retries_plain_id(self, test_settings, session):
        """Test the extended-id then plain-id fallback."""
        session.get.side_effect = [
            json_response({}, status_code=404),
            json_response({"EquityHolding": [{"SecurityName": "Apple", "WeightingPercent": 3}]}),
        ]
        fetcher = MorningstarFetcher(settings=test_settings, session=session)

        result = fetcher.fetch_portfolio("0P0000ABCD")

        assert len(result.holdings) == 1
        assert session.get.call_args_list[1].kwargs["params"]["id"] == "0P0000ABCD"

    def test_portfolio_other_errors_propagate(self, test_settings, session):
        """Test that non-404 statuses are not retried with the plain id."""
        session.get.return_value = json_response({}, status_code=403)
        fetcher = MorningstarFetcher(settings=test_settings, session=session)

        with pytest.raises(HTTPStatusError):
            fetcher.fetch_portfolio("0P0000ABCD")

        assert session.get.call_count == 1

    def test_name_search_fallbacks(self, test_settings, session):
        """Test full, simplified and first-three-word name queries."""
        session.get.return_value = text_response("")
        fetcher = MorningstarFetcher(settings=test_settings, session=session)
        fund = FundMetadata(symbol="X", name="Jupiter European Growth Class I Acc")

        result = fetcher.fetch_holdings(fund)

        queries = [c.kwargs["params"]["q"] for c in session.get.call_args_list]
        assert queries == ["Jupiter European Growth Class I Acc", "Jupiter European Growth"]
        assert result.data_quality == "unavailable"
        assert fetcher.can_handle(fund)
