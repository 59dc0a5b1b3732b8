"""
Abstract base class for holdings providers.

Every provider implementation satisfies the same small contract: a stable
``name``, a ``priority`` hint, whether it can return a complete holdings list,
a cheap synchronous ``can_handle`` check and the ``fetch_holdings`` network
operation. The shared helpers here implement the quality, retry/backoff and
date policies that every provider must apply identically.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from abc import ABC, abstractmethod
from contextvars import ContextVar
from typing import Any, Dict, Iterable, Optional, Union

import pandas as pd
import requests

from ..models import DataQuality, FundMetadata, Holding, HoldingsResult, today_iso
from ..settings import Settings
from ..settings import settings as default_settings

logger = logging.getLogger(__name__)

COMPLETE_HOLDINGS_THRESHOLD = 100
COMPLETE_COVERAGE_RATIO = 0.9

_ISIN_PATTERN = re.compile(r"([A-Z]{2}[A-Z0-9]{10})")
_NAME_SUFFIX_PATTERN = re.compile(r"\s+(ETF|Fund|Trust|OEIC|UCITS|Inc|Ltd|PLC)$", re.I)
_NAME_PREFIX_PATTERN = re.compile(r"^(The|A|An)\s+", re.I)


class ProviderError(RuntimeError):
    """Raised when a provider attempt fails."""


class HTTPStatusError(ProviderError):
    """Raised when an HTTP request finishes with a non-2xx status."""

    def __init__(self, status_code: int, url: str, reason: str = ""):
        self.status_code = status_code
        self.url = url
        self.reason = reason
        super().__init__(f"HTTP {status_code}: {reason}".rstrip(": "))


class ProviderTimeoutError(ProviderError):
    """Raised when a provider attempt exceeds its time budget."""


class AttemptCancelledError(ProviderError):
    """Raised inside a worker thread once its attempt has been abandoned."""


# Set per attempt by the orchestrator; asyncio.to_thread copies it into the worker.
current_cancel_event: ContextVar[Optional[threading.Event]] = ContextVar(
    "current_cancel_event", default=None
)


def classify_quality(holdings_count: int, total_known: Optional[int] = None) -> DataQuality:
    """
    Classify how much of a fund's holdings set was returned.

    Args:
        holdings_count: Number of holdings returned by the provider.
        total_known: Total number of holdings the fund is known to have, if
            the provider reported it.

    Returns:
        ``unavailable`` for zero holdings, ``complete`` for 100 or more holdings
        or when at least 90% of ``total_known`` was returned, otherwise
        ``partial``.
    """
    if holdings_count == 0:
        return "unavailable"
    if holdings_count >= COMPLETE_HOLDINGS_THRESHOLD:
        return "complete"
    if total_known and holdings_count >= total_known * COMPLETE_COVERAGE_RATIO:
        return "complete"
    return "partial"


def parse_date(value: Any, dayfirst: bool = False) -> str:
    """
    Normalise a free-form date to YYYY-MM-DD, falling back to today.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return today_iso()
    try:
        parsed = pd.to_datetime(value, errors="coerce", dayfirst=dayfirst)
    except (TypeError, ValueError, OverflowError):
        parsed = pd.NaT
    if pd.isna(parsed):
        logger.debug(f"Unparseable date {value!r}; using today")
        return today_iso()
    return parsed.date().isoformat()


def normalize_weight(weight: Union[float, int, str, None]) -> float:
    """
    Convert weights such as ``"12.5%"`` or ``"1,234.5"`` to a float.
    """
    if weight is None:
        return 0.0
    if isinstance(weight, str):
        cleaned = weight.replace("%", "").replace(",", "").strip()
        try:
            return float(cleaned)
        except ValueError:
            return 0.0
    return float(weight)


def extract_isin(value: str) -> Optional[str]:
    """Return the first ISIN-shaped token in ``value``, if any."""
    match = _ISIN_PATTERN.search(value or "")
    return match.group(1) if match else None


def clean_fund_name(name: str) -> str:
    """Strip common legal suffixes and leading articles from a fund name."""
    cleaned = _NAME_SUFFIX_PATTERN.sub("", name)
    cleaned = _NAME_PREFIX_PATTERN.sub("", cleaned)
    return cleaned.strip()


class BaseFetcher(ABC):
    """
    Abstract base class for holdings providers implementing a pluggable architecture.

    Subclasses set the ``name``, ``priority`` and ``supports_full_holdings``
    class attributes and implement ``can_handle`` and ``fetch_holdings``.
    ``fetch_holdings`` must not raise for ordinary provider failures; it returns
    ``create_empty_result()`` instead.
    """

    name: str = ""
    priority: int = 0
    supports_full_holdings: bool = False

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
    ):
        if not self.name:
            raise TypeError(f"{self.__class__.__name__} must define a provider name")
        self.settings = settings or default_settings
        self.session = session or requests.Session()
        self.logger = logging.getLogger(
            f"{self.__class__.__module__}.{self.__class__.__name__}"
        )

    @abstractmethod
    def can_handle(self, metadata: FundMetadata) -> bool:
        """
        Cheap, synchronous check of whether this provider is eligible for a fund.
        """
        pass

    @abstractmethod
    def fetch_holdings(self, metadata: FundMetadata) -> HoldingsResult:
        """
        Fetch the fund's holdings from the provider.
        """
        pass

    def determine_data_quality(
        self, holdings_count: int, total_known: Optional[int] = None
    ) -> DataQuality:
        return classify_quality(holdings_count, total_known)

    def parse_date(self, value: Any, dayfirst: bool = False) -> str:
        return parse_date(value, dayfirst=dayfirst)

    def normalize_weight(self, weight: Union[float, int, str, None]) -> float:
        return normalize_weight(weight)

    def extract_isin(self, value: str) -> Optional[str]:
        return extract_isin(value)

    def clean_fund_name(self, name: str) -> str:
        return clean_fund_name(name)

    def create_empty_result(self) -> HoldingsResult:
        """Canonical failure value attributed to this provider."""
        return HoldingsResult.unavailable(self.name)

    def build_result(
        self,
        holdings: Iterable[Holding],
        as_of_date: Optional[str] = None,
        total_holdings: Optional[int] = None,
    ) -> HoldingsResult:
        """
        Wrap parsed holdings in a HoldingsResult with the shared quality policy.
        """
        holdings = [h for h in holdings if h.name and h.weight_percent > 0]
        if not holdings:
            return self.create_empty_result()
        return HoldingsResult(
            holdings=holdings,
            as_of_date=as_of_date or today_iso(),
            data_quality=self.determine_data_quality(len(holdings), total_holdings),
            provider=self.name,
            total_holdings=total_holdings,
        )

    def fetch_with_retry(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        max_retries: Optional[int] = None,
    ) -> requests.Response:
        """
        GET ``url`` with exponential backoff.

        Args:
            url: Target URL.
            params: Optional query parameters.
            headers: Extra headers merged over the default User-Agent.
            max_retries: Retries after the first attempt; defaults to
                ``settings.max_retries`` (3 attempts in total).

        Returns:
            The first 2xx response.

        Raises:
            HTTPStatusError: Immediately for a 4xx other than 429, or with the
                last status once retries are exhausted.
            AttemptCancelledError: The orchestrator gave up on this attempt;
                checked before every request and during backoff.
            requests.RequestException: The last network error once retries are
                exhausted.
        """
        retries = self.settings.max_retries if max_retries is None else max_retries
        request_headers = {"User-Agent": self.settings.user_agent, **(headers or {})}
        cancel = current_cancel_event.get()
        last_error: Optional[Exception] = None

        for attempt in range(retries + 1):
            if cancel is not None and cancel.is_set():
                raise AttemptCancelledError(f"Attempt abandoned before requesting {url}")
            try:
                response = self.session.get(
                    url,
                    params=params,
                    headers=request_headers,
                    timeout=self.settings.request_timeout,
                )
            except requests.RequestException as e:
                last_error = e
                self.logger.debug(f"Attempt {attempt + 1} for {url} failed: {e}")
            else:
                if response.ok:
                    return response

                error = HTTPStatusError(response.status_code, url, response.reason or "")
                if 400 <= response.status_code < 500 and response.status_code != 429:
                    raise error
                last_error = error
                self.logger.debug(
                    f"Attempt {attempt + 1} for {url} returned {response.status_code}"
                )

            if attempt < retries:
                delay = 2**attempt * self.settings.backoff_base
                if cancel is None:
                    time.sleep(delay)
                elif cancel.wait(delay):
                    raise AttemptCancelledError(f"Attempt abandoned while retrying {url}")

        raise last_error or ProviderError(f"Failed to fetch {url} after retries")

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(name={self.name!r}, priority={self.priority}, "
            f"supports_full_holdings={self.supports_full_holdings})"
        )
