"""
Value objects shared by the detector, the fetchers, the orchestrator and the cache.

All models are immutable: they are created fresh for every fetch request and
discarded once the caller has consumed or persisted them.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

DataQuality = Literal["complete", "partial", "unavailable"]
FetchStatus = Literal["pending", "trying", "success", "failed"]
FundStatus = Literal["success", "failed"]

NO_PROVIDER = "none"


def today_iso() -> str:
    """Return today's date as YYYY-MM-DD."""
    return date.today().isoformat()


class FundMetadata(BaseModel):
    """
    Identifying facts about a fund, as imported from the portfolio.
    """

    symbol: str = Field(..., description="Exchange ticker or internal code")
    name: str = Field(..., description="Display name")
    isin: Optional[str] = Field(None, description="ISIN, when known")
    sedol: Optional[str] = Field(None, description="Legacy SEDOL-style code")
    value: Optional[float] = Field(None, description="Market value of the position")
    quantity: Optional[float] = Field(None, description="Units held")

    model_config = {"frozen": True}


class Holding(BaseModel):
    """
    A single constituent of a fund.
    """

    name: str
    weight_percent: float = Field(..., description="Weight as a percentage (0-100)")
    symbol: Optional[str] = None
    cusip: Optional[str] = None
    isin: Optional[str] = None
    sedol: Optional[str] = None
    asset_class: Optional[str] = None
    shares: Optional[float] = None
    market_value: Optional[float] = None
    sector: Optional[str] = None
    country: Optional[str] = None

    model_config = {"frozen": True}


class ProviderInfo(BaseModel):
    """
    A candidate provider produced by detection.
    """

    provider: str
    region: str
    fund_type: str
    confidence: int = Field(..., ge=0, le=100)

    model_config = {"frozen": True}


class DetectionSignals(BaseModel):
    """
    Which heuristics fired during detection. Diagnostic only.
    """

    name_pattern: Optional[str] = None
    isin_prefix: Optional[str] = None
    symbol_pattern: Optional[str] = None
    fund_type: Optional[str] = None

    model_config = {"frozen": True}


class DetectionResult(BaseModel):
    """
    Candidate providers ordered by descending confidence plus diagnostics.
    """

    providers: List[ProviderInfo]
    signals: DetectionSignals = Field(default_factory=DetectionSignals)

    model_config = {"frozen": True}

    @property
    def provider_names(self) -> List[str]:
        return [p.provider for p in self.providers]


class HoldingsResult(BaseModel):
    """
    Outcome of one provider attempt (or the exhausted waterfall).
    """

    holdings: List[Holding] = Field(default_factory=list)
    as_of_date: str = Field(default_factory=today_iso)
    data_quality: DataQuality = "unavailable"
    provider: str = NO_PROVIDER
    total_holdings: Optional[int] = Field(
        None, description="Total known holdings when a capped subset is returned"
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_quality_matches_holdings(self) -> "HoldingsResult":
        empty = len(self.holdings) == 0
        if empty != (self.data_quality == "unavailable"):
            raise ValueError(
                "data_quality must be 'unavailable' exactly when holdings are empty "
                f"(got {len(self.holdings)} holdings, quality={self.data_quality!r})"
            )
        return self

    @classmethod
    def unavailable(cls, provider: str = NO_PROVIDER) -> "HoldingsResult":
        """Canonical failure value: no holdings, today's date, unavailable."""
        return cls(
            holdings=[],
            as_of_date=today_iso(),
            data_quality="unavailable",
            provider=provider,
        )


class ProgressUpdate(BaseModel):
    """
    Fire-and-forget notification emitted by the orchestrator.
    """

    status: FetchStatus
    provider: str
    fund_symbol: str
    holdings_count: Optional[int] = None
    data_quality: Optional[DataQuality] = None
    error: Optional[str] = None

    model_config = {"frozen": True}


class FundFetchResult(BaseModel):
    """
    Batch-level record for one fund.
    """

    symbol: str
    name: str
    status: FundStatus
    provider: str
    holdings_count: int
    data_quality: DataQuality
    attempted_providers: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    model_config = {"frozen": True}


class HoldingRow(BaseModel):
    """
    Row shape persisted by the holdings cache.
    """

    holding_symbol: Optional[str] = None
    holding_name: str
    cusip: Optional[str] = None
    isin: Optional[str] = None
    asset_type: Optional[str] = None
    weight_percent: float
    shares_held: Optional[float] = None
    market_value: Optional[float] = None

    model_config = {"frozen": True}

    @classmethod
    def from_holding(cls, holding: Holding) -> "HoldingRow":
        return cls(
            holding_symbol=holding.symbol,
            holding_name=holding.name,
            cusip=holding.cusip,
            isin=holding.isin,
            asset_type=holding.asset_class,
            weight_percent=holding.weight_percent,
            shares_held=holding.shares,
            market_value=holding.market_value,
        )

    def to_holding(self) -> Holding:
        return Holding(
            name=self.holding_name,
            weight_percent=self.weight_percent,
            symbol=self.holding_symbol,
            cusip=self.cusip,
            isin=self.isin,
            asset_class=self.asset_type,
            shares=self.shares_held,
            market_value=self.market_value,
        )

    @property
    def identity(self) -> str:
        """Key used to deduplicate a holding within one snapshot."""
        return self.holding_symbol or self.isin or self.holding_name


class CachedHoldings(BaseModel):
    """
    Most recent cached snapshot for a fund.
    """

    fund_symbol: str
    holdings: List[HoldingRow]
    as_of_date: str
    provider: str
    data_quality: DataQuality

    model_config = {"frozen": True}


class FetchSummary(BaseModel):
    """
    Aggregate statistics over a batch of FundFetchResult records.
    """

    total: int
    successful: int
    failed: int
    success_rate: float
    complete: int
    partial: int
    provider_counts: Dict[str, int] = Field(default_factory=dict)

    model_config = {"frozen": True}
