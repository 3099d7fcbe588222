"""
Instagram Scrape Pipeline - Followers/Following Contact Harvest

Drives one BrowserSession per request: login, open the target profile, then
collect the followers and/or following lists with the PaginationCollector.

Failure boundaries:
- login or target profile failure -> batch error, no profiles
- a list that cannot be opened -> ``phase_errors`` entry; the batch is an
  error only when every requested list failed
- a profile entry that cannot be parsed -> error record, batch continues
"""

from __future__ import annotations

import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .extractors import ContactExtractor
from .fetchers.browser import BrowserSession, ConnectionListUnavailable
from .pagination import PaginationCollector
from .statistics import summarize
from .timing import Delay, elapsed_ms
from .workers import worker_pool
from ..config import ScraperSettings
from ..ops_logger import OpsLogger
from ..schemas import (
    BatchStatus,
    InstagramScrapeRequest,
    InstagramScrapeResponse,
    PROFILE_FIELDS,
    ProfileRecord,
    resolve_fields,
)


SessionFactory = Callable[[bool], BrowserSession]


class InstagramScrapePipeline:
    """Session-per-request scraper for a target account's connection lists."""

    def __init__(
        self,
        *,
        settings: Optional[ScraperSettings] = None,
        session_factory: Optional[SessionFactory] = None,
        collector: Optional[PaginationCollector] = None,
        ops_logger: Optional[OpsLogger] = None,
        delay: Optional[Delay] = None,
    ):
        self.settings = settings or ScraperSettings()
        self._delay = delay or Delay()
        self.session_factory = session_factory or self._default_session
        self.collector = collector or PaginationCollector(
            contact_extractor=ContactExtractor(profile_base_url=self.settings.instagram_base_url),
            delay=self._delay,
            stable_limit=self.settings.stable_iterations,
        )
        self.ops_logger = ops_logger

    def _default_session(self, headless: bool) -> BrowserSession:
        return BrowserSession.from_settings(self.settings, headless=headless, delay=self._delay)

    def _emit(self, record: dict) -> None:
        if self.ops_logger is not None:
            self.ops_logger.emit(record)

    def scrape(self, request: InstagramScrapeRequest) -> InstagramScrapeResponse:
        t0 = time.perf_counter()
        print(f"📸 Instagram scrape: target=@{request.target_handle}")
        try:
            with self.session_factory(request.headless_mode) as session:
                step = session.login(request.username, request.password)
                if not step.ok:
                    response = self._error_response(request, step.reason or "Failed to login to Instagram", t0)
                else:
                    step = session.navigate_to_profile(request.target_handle)
                    if not step.ok:
                        response = self._error_response(request, step.reason or "Failed to navigate to target profile", t0)
                    else:
                        response = self._collect_lists(session, request, t0)
        except Exception as e:
            print(f"❌ Instagram scrape failed: {e}")
            response = self._error_response(request, f"Scraping failed: {e}", t0)
        self._emit({
            "kind": "instagram_batch",
            "target": request.target_handle,
            "status": response.status.value,
            "total": response.total_profiles,
            "followers": response.followers_scraped,
            "following": response.following_scraped,
            "phase_errors": response.phase_errors,
            "processing_time_ms": response.processing_time_ms,
        })
        return response

    def scrape_many(self, requests: Sequence[InstagramScrapeRequest]) -> List[InstagramScrapeResponse]:
        """Run independent requests on the shared ``instagram`` pool; one browser each."""
        if not requests:
            return []
        pool = worker_pool("instagram", self.settings.instagram_workers)
        futures = [pool.submit(self.scrape, r) for r in requests]
        return [f.result() for f in futures]

    # -------------------------
    # Phases
    # -------------------------
    def _collect_lists(self, session: BrowserSession, request: InstagramScrapeRequest, t0: float) -> InstagramScrapeResponse:
        phases: List[Tuple[str, int]] = []
        if request.scrape_followers:
            phases.append(("followers", request.max_followers))
        if request.scrape_following:
            phases.append(("following", request.max_following))

        collected: Dict[str, List[ProfileRecord]] = {}
        phase_errors: Dict[str, str] = {}
        for kind, max_items in phases:
            records, error = self._collect_phase(session, request, kind, max_items)
            collected[kind] = records
            if error is not None:
                phase_errors[kind] = error

        records = collected.get("followers", []) + collected.get("following", [])
        statistics = summarize(records)
        selection = resolve_fields(request.fields_to_extract, PROFILE_FIELDS)
        profiles = [r.select_fields(selection) for r in records]
        successful = sum(1 for p in profiles if p.is_success)

        if phases and len(phase_errors) == len(phases):
            status = BatchStatus.ERROR
            message = "Scraping failed: " + "; ".join(phase_errors.values())
        else:
            status = BatchStatus.COMPLETED
            message = "Scraping completed successfully"
            if phase_errors:
                message += " (" + "; ".join(phase_errors.values()) + ")"

        return InstagramScrapeResponse(
            target_handle=request.target_handle,
            total_profiles=len(profiles),
            followers_scraped=len(collected.get("followers", [])),
            following_scraped=len(collected.get("following", [])),
            successful_scrapes=successful,
            failed_scrapes=len(profiles) - successful,
            profiles=profiles,
            processing_time_ms=elapsed_ms(t0),
            status=status,
            message=message,
            statistics=statistics,
            phase_errors=phase_errors,
        )

    def _collect_phase(
        self,
        session: BrowserSession,
        request: InstagramScrapeRequest,
        kind: str,
        max_items: int,
    ) -> Tuple[List[ProfileRecord], Optional[str]]:
        print(f"   Collecting {kind} (max {max_items})")
        try:
            source = session.open_connection_list(kind)
        except ConnectionListUnavailable as e:
            print(f"  ⚠️  {e}")
            self._emit({"kind": "instagram_list", "target": request.target_handle, "list": kind, "error": str(e)})
            return [], str(e)
        try:
            state = self.collector.run(source, max_items=max_items, delay_ms=request.delay_ms)
        finally:
            session.close_connection_list()
        print(f"  ✅ {len(state.collected)} {kind} after {state.iterations} scrolls")
        self._emit({
            "kind": "instagram_list",
            "target": request.target_handle,
            "list": kind,
            "collected": len(state.collected),
            "iterations": state.iterations,
            "stable": state.is_stable,
            "interrupted_by": state.interrupted_by,
        })
        return state.collected, None

    @staticmethod
    def _error_response(request: InstagramScrapeRequest, message: str, t0: float) -> InstagramScrapeResponse:
        return InstagramScrapeResponse(
            target_handle=request.target_handle,
            processing_time_ms=elapsed_ms(t0),
            status=BatchStatus.ERROR,
            message=message,
        )
