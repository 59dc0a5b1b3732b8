"""
Waterfall fetch orchestrator.

Coordinates fetching a fund's holdings across the detected providers: the
candidates are tried one at a time in confidence order and the first non-empty
result wins. Batch mode runs the waterfall for every fund, persists successes
through the holdings cache and reports one FundFetchResult per fund.
"""

import asyncio
import logging
import threading
from collections import Counter
from typing import Callable, List, Optional, Sequence

from ..cache import HoldingsCache
from ..models import (
    DetectionResult,
    FetchSummary,
    FundFetchResult,
    FundMetadata,
    HoldingRow,
    HoldingsResult,
    ProgressUpdate,
)
from ..settings import Settings
from ..settings import settings as default_settings
from .detector import detect_providers
from .fetcher_base import (
    BaseFetcher,
    ProviderTimeoutError,
    classify_quality,
    current_cancel_event,
)
from .registry import ProviderRegistry


ProgressCallback = Callable[[ProgressUpdate], None]

EXHAUSTED_ERROR = "No data available from any provider"


class HoldingsOrchestrator:
    """
    Drives the provider waterfall for single funds and batches.

    Provides a clean interface for fetching one fund's holdings or running a
    batch across many funds, with progress notifications and best-effort
    persistence of successful results.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        cache: Optional[HoldingsCache] = None,
        settings: Optional[Settings] = None,
        detector: Callable[[FundMetadata], DetectionResult] = detect_providers,
    ):
        self.registry = registry
        self.cache = cache
        self.settings = settings or default_settings
        self.detector = detector
        self.logger = logging.getLogger(
            f"{self.__class__.__module__}.{self.__class__.__name__}"
        )

    async def fetch_holdings_with_providers(
        self, fund: FundMetadata, on_progress: Optional[ProgressCallback] = None
    ) -> HoldingsResult:
        """
        Fetch holdings for a single fund using the waterfall strategy.

        Args:
            fund: Metadata of the fund to fetch.
            on_progress: Optional observer notified of every attempt.

        Returns:
            The first non-empty provider result, or the unavailable sentinel
            (provider ``none``) once every candidate has been exhausted.
        """
        detection = self.detector(fund)
        self.logger.info(
            f"Fetching holdings for {fund.symbol} ({fund.name}); candidates: "
            + ", ".join(f"{p.provider}:{p.confidence}" for p in detection.providers)
        )

        for info in detection.providers:
            fetcher = self.registry.resolve(info.provider)
            if fetcher is None:
                self.logger.warning(f"Provider {info.provider} not found in registry")
                continue

            self._emit(
                on_progress,
                ProgressUpdate(status="trying", provider=info.provider, fund_symbol=fund.symbol),
            )
            self.logger.info(
                f"[{info.provider}] Attempting fetch for {fund.symbol} "
                f"(confidence: {info.confidence})"
            )

            try:
                result = await self._attempt(fetcher, fund)
            except Exception as e:
                message = str(e) or e.__class__.__name__
                self.logger.warning(f"[{info.provider}] Failed for {fund.symbol}: {message}")
                self._emit(
                    on_progress,
                    ProgressUpdate(
                        status="failed",
                        provider=info.provider,
                        fund_symbol=fund.symbol,
                        error=message,
                    ),
                )
            else:
                if result.holdings:
                    self.logger.info(
                        f"[{info.provider}] Success for {fund.symbol}: "
                        f"{len(result.holdings)} holdings ({result.data_quality})"
                    )
                    self._emit(
                        on_progress,
                        ProgressUpdate(
                            status="success",
                            provider=info.provider,
                            fund_symbol=fund.symbol,
                            holdings_count=len(result.holdings),
                            data_quality=result.data_quality,
                        ),
                    )
                    return result
                self.logger.info(f"[{info.provider}] No holdings returned for {fund.symbol}")

            await asyncio.sleep(self.settings.inter_attempt_delay)

        self.logger.warning(f"All providers exhausted for {fund.symbol}")
        return HoldingsResult.unavailable()

    async def fetch_all_holdings_with_progress(
        self, funds: Sequence[FundMetadata], on_progress: Optional[ProgressCallback] = None
    ) -> List[FundFetchResult]:
        """
        Run the waterfall for every fund and persist the successes.

        Funds are processed one at a time unless ``settings.max_concurrent_funds``
        is raised; the returned list always follows the input order.

        Args:
            funds: Funds to fetch.
            on_progress: Optional observer notified of every attempt.

        Returns:
            One FundFetchResult per input fund.
        """
        total = len(funds)
        self.logger.info(f"Starting batch fetch for {total} funds")

        results: List[Optional[FundFetchResult]] = [None] * total
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_funds)
        cache_lock = asyncio.Lock()

        async def run(index: int, fund: FundMetadata) -> None:
            async with semaphore:
                self.logger.info(f"[{index + 1}/{total}] Processing {fund.symbol}")
                results[index] = await self._fetch_fund(fund, on_progress, cache_lock)
                self.logger.info(
                    f"[{index + 1}/{total}] Completed: {results[index].status} "
                    f"({results[index].holdings_count} holdings from {results[index].provider})"
                )
                await asyncio.sleep(self.settings.inter_fund_delay)

        await asyncio.gather(*(run(i, fund) for i, fund in enumerate(funds)))

        successful = sum(1 for r in results if r.status == "success")
        self.logger.info(f"Batch fetch complete: {successful}/{total} successful")
        return list(results)

    async def get_or_fetch_holdings(
        self, fund: FundMetadata, on_progress: Optional[ProgressCallback] = None
    ) -> HoldingsResult:
        """
        Return recently cached holdings if available, otherwise fetch and cache them.
        """
        cached = self._read_recent(fund.symbol)
        if cached is not None:
            return cached

        result = await self.fetch_holdings_with_providers(fund, on_progress)
        if result.holdings:
            await self._persist(fund, result)
        return result

    async def _attempt(self, fetcher: BaseFetcher, fund: FundMetadata) -> HoldingsResult:
        # The worker thread cannot be interrupted mid-request; on timeout the
        # cancel event stops its further requests and backoff waits.
        cancel = threading.Event()
        token = current_cancel_event.set(cancel)
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fetcher.fetch_holdings, fund),
                timeout=self.settings.attempt_timeout,
            )
        except asyncio.TimeoutError:
            cancel.set()
            raise ProviderTimeoutError("Request timeout") from None
        finally:
            current_cancel_event.reset(token)

    async def _fetch_fund(
        self,
        fund: FundMetadata,
        on_progress: Optional[ProgressCallback],
        cache_lock: asyncio.Lock,
    ) -> FundFetchResult:
        attempted: List[str] = []

        def track(update: ProgressUpdate) -> None:
            if update.status == "trying":
                attempted.append(update.provider)
            self._emit(on_progress, update)

        result = await self.fetch_holdings_with_providers(fund, track)
        succeeded = bool(result.holdings)

        if succeeded:
            async with cache_lock:
                await self._persist(fund, result)

        return FundFetchResult(
            symbol=fund.symbol,
            name=fund.name,
            status="success" if succeeded else "failed",
            provider=result.provider,
            holdings_count=len(result.holdings),
            data_quality=result.data_quality,
            attempted_providers=attempted,
            error=None if succeeded else EXHAUSTED_ERROR,
        )

    async def _persist(self, fund: FundMetadata, result: HoldingsResult) -> None:
        if self.cache is None:
            return
        rows = [HoldingRow.from_holding(h) for h in result.holdings]
        try:
            await asyncio.to_thread(
                self.cache.write,
                fund.symbol,
                rows,
                result.as_of_date,
                result.provider,
                result.data_quality,
            )
            self.logger.info(f"Cached {len(rows)} holdings for {fund.symbol}")
        except Exception:
            self.logger.exception(f"Failed to cache holdings for {fund.symbol}")

    def _read_recent(self, symbol: str) -> Optional[HoldingsResult]:
        if self.cache is None:
            return None
        try:
            if not self.cache.has_recent(symbol, self.settings.cache_max_age_days):
                return None
            cached = self.cache.read_latest(symbol)
        except Exception:
            self.logger.exception(f"Failed to read cached holdings for {symbol}")
            return None
        if cached is None or not cached.holdings:
            return None

        quality = cached.data_quality
        if quality == "unavailable":
            quality = classify_quality(len(cached.holdings))
        self.logger.info(f"Using {len(cached.holdings)} cached holdings for {symbol}")
        return HoldingsResult(
            holdings=[row.to_holding() for row in cached.holdings],
            as_of_date=cached.as_of_date,
            data_quality=quality,
            provider=cached.provider,
        )

    def _emit(self, on_progress: Optional[ProgressCallback], update: ProgressUpdate) -> None:
        if on_progress is None:
            return
        try:
            on_progress(update)
        except Exception:
            self.logger.exception(
                f"Progress callback raised for {update.fund_symbol}/{update.provider}"
            )


def summarize_results(results: Sequence[FundFetchResult]) -> FetchSummary:
    """
    Get summary statistics from batch fetch results.
    """
    total = len(results)
    successful = sum(1 for r in results if r.status == "success")
    provider_counts = Counter(r.provider for r in results if r.status == "success")
    return FetchSummary(
        total=total,
        successful=successful,
        failed=sum(1 for r in results if r.status == "failed"),
        success_rate=(successful / total * 100) if total else 0.0,
        complete=sum(1 for r in results if r.data_quality == "complete"),
        partial=sum(1 for r in results if r.data_quality == "partial"),
        provider_counts=dict(provider_counts),
    )
