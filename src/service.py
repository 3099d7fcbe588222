"""
Contact Harvester - Service Facade

The two public operations. Each always answers with a response object (or
its CSV rendering when ``export_as_csv`` is set); failures are reported
through ``status`` and ``message``, never raised.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Union

from .config import ScraperSettings
from .ops_logger import OpsLogger
from .pipeline.discovery import UrlSource
from .pipeline.export import profiles_to_csv, web_results_to_csv
from .pipeline.fetchers.static import StaticFetcher
from .pipeline.instagram import InstagramScrapePipeline
from .pipeline.web import WebScrapePipeline
from .schemas import (
    InstagramScrapeRequest,
    InstagramScrapeResponse,
    ScrapeRequest,
    WebScrapeResponse,
)


class ScraperService:
    """Builds the pipelines from settings and exposes the scrape operations."""

    def __init__(
        self,
        url_source: UrlSource,
        settings: Optional[ScraperSettings] = None,
        *,
        web_pipeline: Optional[WebScrapePipeline] = None,
        instagram_pipeline: Optional[InstagramScrapePipeline] = None,
        ops_logger: Optional[OpsLogger] = None,
    ):
        self.settings = settings or ScraperSettings()
        self.url_source = url_source
        if ops_logger is None and self.settings.ops_json:
            ops_logger = OpsLogger(Path(self.settings.ops_log_path) if self.settings.ops_log_path else None)
        self.ops_logger = ops_logger
        self.web_pipeline = web_pipeline or WebScrapePipeline(
            fetcher=StaticFetcher(
                timeout_ms=self.settings.timeout_ms,
                user_agent=self.settings.user_agent,
                rate_limit_delay_ms=self.settings.rate_limit_delay_ms,
            ),
            workers=self.settings.http_workers,
            ops_logger=ops_logger,
        )
        self.instagram_pipeline = instagram_pipeline or InstagramScrapePipeline(
            settings=self.settings,
            ops_logger=ops_logger,
        )

    def scrape_web(self, request: ScrapeRequest) -> Union[WebScrapeResponse, str]:
        response = self.web_pipeline.scrape(request, self.url_source)
        if request.export_as_csv:
            return web_results_to_csv(response.results, request.fields_to_extract)
        return response

    def scrape_instagram(self, request: InstagramScrapeRequest) -> Union[InstagramScrapeResponse, str]:
        response = self.instagram_pipeline.scrape(request)
        if request.export_as_csv:
            return profiles_to_csv(response.profiles, request.fields_to_extract)
        return response

    def scrape_instagram_many(self, requests: Sequence[InstagramScrapeRequest]) -> List[InstagramScrapeResponse]:
        return self.instagram_pipeline.scrape_many(requests)

    def close(self) -> None:
        self.web_pipeline.close()
