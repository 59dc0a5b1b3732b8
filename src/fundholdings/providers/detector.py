"""
Provider detection.

Maps fund metadata to a confidence-ranked, deduplicated list of candidate
providers by combining independent signals: name keywords, ISIN country
prefix, ticker shape and the universal fallbacks.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from ..models import DetectionResult, DetectionSignals, FundMetadata, ProviderInfo

# Universal fallbacks, appended regardless of any other signal.
UNIVERSAL_FALLBACKS: Tuple[ProviderInfo, ...] = (
    ProviderInfo(provider="yahoo", region="global", fund_type="any", confidence=60),
    ProviderInfo(provider="morningstar", region="global", fund_type="any", confidence=40),
)

# ISIN country prefix -> (provider, region, fund type, confidence)
ISIN_PREFIX_PROVIDERS: Dict[str, Tuple[Tuple[str, str, str, int], ...]] = {
    # UK domiciled: OEICs and investment trusts
    "GB": (("ft-scraper", "uk", "oeic", 70),),
    # Ireland: UCITS ETF domicile
    "IE": (("ishares", "ie", "etf", 75), ("vanguard", "ie", "etf", 70)),
    "US": (("ishares", "us", "etf", 70), ("vanguard", "us", "etf", 70)),
    "LU": (("ishares", "lu", "etf", 70),),
}

# Ordered: first match wins.
REGION_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("global", ("msci world", "global")),
    ("uk", ("uk", "britain")),
    ("eu", ("europe",)),
    ("asia", ("asia", "japan", "pacific")),
    ("us", ("us", "america")),
    ("em", ("emerging",)),
)

PROVIDER_DISPLAY_NAMES: Dict[str, str] = {
    "ishares": "iShares",
    "vanguard": "Vanguard",
    "invesco": "Invesco",
    "state-street": "State Street",
    "fidelity": "Fidelity",
    "yahoo": "Yahoo Finance",
    "ft-scraper": "FT.com",
    "morningstar": "Morningstar",
}

_UK_TRUST_SYMBOL = re.compile(r"^[A-Z]{2,4}$")
_ETF_TICKER_SYMBOL = re.compile(r"^[A-Z]{4,}$")
_LONDON_SUFFIX = ".L"


def detect_providers(metadata: FundMetadata) -> DetectionResult:
    """
    Detect which providers to try for a fund, most promising first.

    Args:
        metadata: Identifying facts about the fund.

    Returns:
        DetectionResult whose providers are deduplicated by name (keeping the
        highest confidence seen for each) and sorted by descending confidence.
        The two universal fallbacks are always present.
    """
    candidates: List[ProviderInfo] = []

    name_candidates = detect_from_name(metadata.name)
    candidates.extend(name_candidates)

    isin_candidates: List[ProviderInfo] = []
    if metadata.isin:
        isin_candidates = detect_from_isin(metadata.isin)
        candidates.extend(isin_candidates)

    symbol_candidates, symbol_pattern = detect_from_symbol(metadata.symbol)
    candidates.extend(symbol_candidates)

    candidates.extend(UNIVERSAL_FALLBACKS)

    providers = deduplicate_providers(candidates)
    # sorted() is stable, so ties keep first-seen order.
    providers = sorted(providers, key=lambda p: p.confidence, reverse=True)

    signals = DetectionSignals(
        name_pattern=name_candidates[0].provider if name_candidates else None,
        isin_prefix=_isin_prefix(metadata.isin) if isin_candidates else None,
        symbol_pattern=symbol_pattern,
        fund_type=detect_fund_type(metadata),
    )
    return DetectionResult(providers=providers, signals=signals)


def detect_from_name(name: str) -> List[ProviderInfo]:
    """Issuer keyword matches in the fund name."""
    name_lower = name.lower()
    region = detect_region_from_name(name)
    providers: List[ProviderInfo] = []

    if "ishares" in name_lower:
        providers.append(_info("ishares", region, "etf", 95))

    if "vanguard" in name_lower:
        fund_type = "etf" if "etf" in name_lower else "mutual"
        providers.append(_info("vanguard", region, fund_type, 95))

    if "spdr" in name_lower:
        providers.append(_info("state-street", region, "etf", 95))

    if "invesco" in name_lower:
        providers.append(_info("invesco", region, "etf", 90))

    if "fidelity" in name_lower:
        providers.append(_info("fidelity", region, "mutual", 90))

    # BlackRock funds that are not iShares are usually UK OEICs
    if "blackrock" in name_lower and "ishares" not in name_lower:
        providers.append(_info("ft-scraper", "uk", "oeic", 85))

    if _is_investment_trust(name_lower):
        providers.append(_info("ft-scraper", "uk", "trust", 80))

    return providers


def detect_from_isin(isin: str) -> List[ProviderInfo]:
    """Providers favoured by the ISIN's country-code prefix."""
    entries = ISIN_PREFIX_PROVIDERS.get(_isin_prefix(isin) or "", ())
    return [_info(*entry) for entry in entries]


def detect_from_symbol(symbol: str) -> Tuple[List[ProviderInfo], Optional[str]]:
    """
    Providers suggested by the ticker's shape.

    Returns:
        The candidates and a label for the first shape that matched.
    """
    providers: List[ProviderInfo] = []
    labels: List[str] = []

    if _UK_TRUST_SYMBOL.match(symbol):
        providers.append(_info("ft-scraper", "uk", "trust", 65))
        labels.append("uk-trust")

    if symbol.endswith(_LONDON_SUFFIX):
        providers.append(_info("yahoo", "uk", "any", 70))
        labels.append("london-listed")

    if _ETF_TICKER_SYMBOL.match(symbol):
        providers.append(_info("yahoo", "us", "etf", 75))
        labels.append("etf-ticker")

    return providers, (labels[0] if labels else None)


def detect_fund_type(metadata: FundMetadata) -> str:
    """Diagnostic fund type: etf, trust, oeic or unknown."""
    name_lower = metadata.name.lower()
    if "etf" in name_lower:
        return "etf"
    if _is_investment_trust(name_lower):
        return "trust"
    if metadata.isin and metadata.isin.upper().startswith("GB") and metadata.sedol:
        return "oeic"
    return "unknown"


def detect_region_from_name(name: str) -> str:
    """Diagnostic region tag from continent or country keywords in the name."""
    name_lower = name.lower()
    for region, keywords in REGION_KEYWORDS:
        # Word-start match rather than plain substring, so "trust" is not "us".
        if any(re.search(rf"\b{re.escape(k)}", name_lower) for k in keywords):
            return region
    return "unknown"


def deduplicate_providers(providers: List[ProviderInfo]) -> List[ProviderInfo]:
    """Collapse entries by provider name, keeping the highest confidence."""
    best: Dict[str, ProviderInfo] = {}
    for info in providers:
        existing = best.get(info.provider)
        if existing is None or info.confidence > existing.confidence:
            best[info.provider] = info
    return list(best.values())


def get_provider_display_name(provider: str) -> str:
    """Human-readable label for a provider id."""
    return PROVIDER_DISPLAY_NAMES.get(provider, provider)


def _is_investment_trust(name_lower: str) -> bool:
    return "trust" in name_lower and "unit trust" not in name_lower


def _isin_prefix(isin: Optional[str]) -> Optional[str]:
    if not isin or len(isin) < 2:
        return None
    return isin[:2].upper()


def _info(provider: str, region: str, fund_type: str, confidence: int) -> ProviderInfo:
    return ProviderInfo(
        provider=provider, region=region, fund_type=fund_type, confidence=confidence
    )
