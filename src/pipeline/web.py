from __future__ import annotations

import time
from typing import Iterable, List, Optional

from .discovery import UrlSource
from .extractors import ContactExtractor
from .fetchers.static import FetchError, StaticFetcher
from .statistics import summarize
from .timing import elapsed_ms
from .workers import worker_pool
from ..ops_logger import OpsLogger
from ..schemas import (
    BatchStatus,
    PageRecord,
    ScrapeRequest,
    WEB_FIELDS,
    WebScrapeResponse,
    resolve_fields,
)


class WebScrapePipeline:
    """Fan a URL list out over a bounded worker pool and collect one record per URL.

    Each worker runs delay -> fetch -> extract and never raises: fetch and
    extraction failures become error records. Results are merged only after
    every worker finished; their order is not tied to the input order.
    """

    def __init__(
        self,
        *,
        fetcher: Optional[StaticFetcher] = None,
        contact_extractor: Optional[ContactExtractor] = None,
        workers: int = 10,
        ops_logger: Optional[OpsLogger] = None,
    ):
        self.fetcher = fetcher or StaticFetcher()
        self.contact_extractor = contact_extractor or ContactExtractor()
        self.workers = int(workers)
        self.ops_logger = ops_logger

    def _emit(self, record: dict) -> None:
        if self.ops_logger is not None:
            self.ops_logger.emit(record)

    def scrape_url(self, url: str) -> PageRecord:
        """Scrape a single URL into a success or error record."""
        t0 = time.perf_counter()
        try:
            result = self.fetcher.fetch(url)
            if isinstance(result, FetchError):
                print(f"  ⚠️  Failed: {url}: {result.cause}")
                record = PageRecord.failure(url, f"Connection error: {result.cause}", elapsed_ms(t0))
            else:
                record = self.contact_extractor.extract_from_static_html(
                    result.text, url, response_time_ms=elapsed_ms(t0)
                )
        except Exception as e:
            print(f"  ⚠️  Unexpected error on {url}: {e}")
            record = PageRecord.failure(url, f"Unexpected error: {e}", elapsed_ms(t0))
        self._emit({
            "kind": "page",
            "url": url,
            "status": record.status.value,
            "response_time_ms": record.response_time_ms,
            "counts": {
                "emails": len(record.emails or ()),
                "phones": len(record.phone_numbers or ()),
                "social_links": len(record.social_links or ()),
            },
            "error": record.error_message,
        })
        return record

    def scrape_urls(
        self,
        urls: Iterable[str],
        fields: Optional[Iterable[str]] = None,
        max_results: Optional[int] = None,
    ) -> List[PageRecord]:
        """Scrape ``urls`` (truncated to ``max_results``) and wait for all of them.

        With ``fields`` given, each record keeps only the selected optional fields.
        """
        targets = list(urls)
        if max_results is not None:
            targets = targets[:max(0, int(max_results))]
        if not targets:
            return []
        pool = worker_pool("http", self.workers)
        futures = [pool.submit(self.scrape_url, u) for u in targets]
        records = [f.result() for f in futures]
        if fields is not None:
            selection = resolve_fields(fields, WEB_FIELDS)
            records = [r.select_fields(selection) for r in records]
        return records

    def scrape(self, request: ScrapeRequest, url_source: UrlSource) -> WebScrapeResponse:
        """Discover candidate URLs for the topic, scrape them and build the batch result."""
        t0 = time.perf_counter()
        print(f"🔎 Web scrape: topic={request.search_topic!r} max_results={request.max_results}")
        try:
            urls = url_source.candidate_urls(
                request.search_topic,
                request.max_results,
                search_engine=request.search_engine,
                language=request.language,
                country=request.country,
            )
            print(f"   Found {len(urls)} candidate URLs")
            records = self.scrape_urls(urls, max_results=request.max_results)

            statistics = summarize(records)
            selection = resolve_fields(request.fields_to_extract, WEB_FIELDS)
            results = [r.select_fields(selection) for r in records]
            successful = sum(1 for r in results if r.is_success)
            response = WebScrapeResponse(
                search_topic=request.search_topic,
                total_results=len(urls),
                successful_scrapes=successful,
                failed_scrapes=len(results) - successful,
                results=results,
                metadata={
                    "search_engine": request.search_engine,
                    "language": request.language,
                    "country": request.country,
                },
                processing_time_ms=elapsed_ms(t0),
                status=BatchStatus.COMPLETED,
                message="Scraping completed successfully",
                statistics=statistics,
            )
        except Exception as e:
            print(f"❌ Web scrape failed: {e}")
            response = WebScrapeResponse(
                search_topic=request.search_topic,
                processing_time_ms=elapsed_ms(t0),
                status=BatchStatus.ERROR,
                message=f"Scraping failed: {e}",
            )
        self._emit({
            "kind": "web_batch",
            "topic": request.search_topic,
            "status": response.status.value,
            "total": response.total_results,
            "successful": response.successful_scrapes,
            "failed": response.failed_scrapes,
            "processing_time_ms": response.processing_time_ms,
        })
        return response

    def close(self) -> None:
        """Clean up resources."""
        self.fetcher.close()
