"""
Contact Harvester - CLI Runner

Usage:
  python -m harvest.run web \
    --topic "data science" \
    --input input_urls.txt \
    --out ./out

  python -m harvest.run web --topic "coffee roasters" --seed https://example.com/directory --out ./out --csv

  HARVEST_IG_USERNAME=me HARVEST_IG_PASSWORD=... \
    python -m harvest.run instagram --target some.brand --max-followers 200 --out ./out

Dry run (validate only):
  python -m harvest.run web --topic t --input input_urls.txt --out ./out --dry-run

Exit codes:
  0 - success
  1 - config error (file missing or invalid YAML)
  2 - input error (input file missing, no URLs, missing credentials, invalid request)
  3 - processing error (output not writable, batch finished with status error)
"""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from src.config import ConfigError, ScraperSettings, load_settings
from src.ops_logger import OpsLogger
from src.pipeline.discovery import SeedLinkUrlSource, StaticUrlSource
from src.pipeline.export import ResultExporter
from src.pipeline.fetchers.static import StaticFetcher
from src.pipeline.workers import shutdown_pools
from src.schemas import BatchStatus, InstagramScrapeRequest, ScrapeRequest
from src.service import ScraperService


def read_input_urls(input_path: Path) -> List[str]:
    urls: List[str] = []
    for line in input_path.read_text(encoding="utf-8").splitlines():
        s = line.strip()
        if not s or s.startswith("#"):
            continue
        # Bare domains get https://; anything else is kept and fails per-URL later
        if s.startswith("http://") or s.startswith("https://"):
            urls.append(s)
        elif "." in s:
            urls.append(f"https://{s}")
        else:
            urls.append(s)
    return urls


def ensure_out_dir(out_dir: Path) -> bool:
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        test_file = out_dir / ".write_test"
        test_file.write_text("ok", encoding="utf-8")
        test_file.unlink(missing_ok=True)
    except OSError as e:
        print(f"Output error: cannot write to {out_dir}: {e}", file=sys.stderr)
        return False
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="harvest.run", description="Contact harvester runner")
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--out", "-o", required=True, help="Output directory")
    common.add_argument("--config", "-c", default=None, help="Path to YAML config file (optional)")
    common.add_argument("--fields", nargs="+", default=None, help="Fields to extract (default: all)")
    common.add_argument("--csv", action="store_true", help="Also write a CSV export next to the JSON")
    common.add_argument("--dry-run", action="store_true", help="Validate inputs/config and exit")
    common.add_argument("--ops-log", default=None, help="Path to ops JSONL log file (default: <out>/ops.log)")
    common.add_argument("--ops-stdout", action="store_true", help="Also mirror ops JSON to stdout")

    web = sub.add_parser("web", parents=[common], help="Scrape contact data from web pages")
    web.add_argument("--topic", "-t", required=True, help="Search topic")
    source = web.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", "-i", help="Path to URLs file (one per line)")
    source.add_argument("--seed", nargs="+", help="Seed page(s) whose topic links are followed")
    web.add_argument("--max-results", type=int, default=10, help="Max URLs to scrape, 1..50 (default 10)")
    web.add_argument("--search-engine", default="google")
    web.add_argument("--language", default="en")
    web.add_argument("--country", default="us")

    ig = sub.add_parser("instagram", parents=[common], help="Scrape followers/following of Instagram accounts")
    ig.add_argument("--target", action="append", required=True, help="Target handle (repeatable)")
    ig.add_argument("--username", default=None, help="Login username (default: $HARVEST_IG_USERNAME)")
    ig.add_argument("--max-followers", type=int, default=1000)
    ig.add_argument("--max-following", type=int, default=500)
    ig.add_argument("--no-followers", action="store_true", help="Skip the followers list")
    ig.add_argument("--no-following", action="store_true", help="Skip the following list")
    ig.add_argument("--delay-ms", type=int, default=2000, help="Wait after each scroll, 1000..10000 (default 2000)")
    ig.add_argument("--headless", action="store_true", help="Run the browser headless")
    return parser


def _make_ops_logger(args, settings: ScraperSettings, out_dir: Path) -> Optional[OpsLogger]:
    if not (settings.ops_json or args.ops_log or args.ops_stdout):
        return None
    path = Path(args.ops_log or settings.ops_log_path or (out_dir / "ops.log"))
    return OpsLogger(path, also_stdout=bool(args.ops_stdout))


def run_web(args, settings: ScraperSettings, out_dir: Path) -> int:
    if args.input:
        input_path = Path(args.input)
        if not input_path.exists() or not input_path.is_file():
            print(f"Input error: file not found: {input_path}", file=sys.stderr)
            return 2
        urls = read_input_urls(input_path)
        if not urls:
            print(f"Input error: no URLs in {input_path}", file=sys.stderr)
            return 2
    else:
        urls = list(args.seed)

    try:
        request = ScrapeRequest(
            search_topic=args.topic,
            max_results=args.max_results,
            search_engine=args.search_engine,
            language=args.language,
            country=args.country,
            fields_to_extract=set(args.fields) if args.fields else None,
        )
    except ValidationError as e:
        print(f"Input error: {e}", file=sys.stderr)
        return 2

    if args.dry_run:
        print("✅ Dry-run validation passed")
        print(f" - Topic: {request.search_topic}")
        print(f" - Output dir: {out_dir}")
        print(f" - {'URLs' if args.input else 'Seeds'}: {len(urls)}")
        return 0

    if not ensure_out_dir(out_dir):
        return 3

    if args.input:
        url_source = StaticUrlSource(urls)
    else:
        url_source = SeedLinkUrlSource(
            urls, fetcher=StaticFetcher(timeout_ms=settings.timeout_ms, user_agent=settings.user_agent)
        )
    service = ScraperService(url_source, settings, ops_logger=_make_ops_logger(args, settings, out_dir))
    try:
        response = service.scrape_web(request)
    finally:
        service.close()

    print(f"📊 {response.successful_scrapes} succeeded, {response.failed_scrapes} failed "
          f"of {response.total_results} candidates in {response.processing_time_ms} ms")
    if response.statistics is not None:
        s = response.statistics
        print(f"📇 {s.total_emails} emails, {s.total_phone_numbers} phones, "
              f"contact rate {s.contact_rate_percent:.1f}%")

    try:
        exporter = ResultExporter(output_dir=out_dir)
        exporter.to_json(response)
        if args.csv:
            exporter.to_csv(response, request.fields_to_extract)
    except OSError as e:
        print(f"Export error: {e}", file=sys.stderr)
        return 3

    if response.status == BatchStatus.ERROR:
        print(f"❌ {response.message}", file=sys.stderr)
        return 3
    return 0


def run_instagram(args, settings: ScraperSettings, out_dir: Path) -> int:
    username = args.username or os.environ.get("HARVEST_IG_USERNAME")
    password = os.environ.get("HARVEST_IG_PASSWORD")
    if not username or not password:
        print("Input error: credentials required (--username/HARVEST_IG_USERNAME and HARVEST_IG_PASSWORD)",
              file=sys.stderr)
        return 2

    try:
        requests = [
            InstagramScrapeRequest(
                username=username,
                password=password,
                target_handle=target,
                max_followers=args.max_followers,
                max_following=args.max_following,
                scrape_followers=not args.no_followers,
                scrape_following=not args.no_following,
                fields_to_extract=set(args.fields) if args.fields else None,
                delay_ms=args.delay_ms,
                headless_mode=bool(args.headless),
            )
            for target in args.target
        ]
    except ValidationError as e:
        print(f"Input error: {e}", file=sys.stderr)
        return 2

    if args.dry_run:
        print("✅ Dry-run validation passed")
        print(f" - Targets: {', '.join(r.target_handle for r in requests)}")
        print(f" - Output dir: {out_dir}")
        return 0

    if not ensure_out_dir(out_dir):
        return 3

    service = ScraperService(StaticUrlSource([]), settings, ops_logger=_make_ops_logger(args, settings, out_dir))
    try:
        if len(requests) == 1:
            responses = [service.scrape_instagram(requests[0])]
        else:
            responses = service.scrape_instagram_many(requests)
    finally:
        service.close()

    exit_code = 0
    exporter = ResultExporter(output_dir=out_dir)
    for response in responses:
        print(f"📊 @{response.target_handle}: {response.total_profiles} profiles "
              f"({response.followers_scraped} followers, {response.following_scraped} following)")
        try:
            exporter.to_json(response)
            if args.csv:
                exporter.to_csv(response, args.fields)
        except OSError as e:
            print(f"Export error: {e}", file=sys.stderr)
            return 3
        if response.status == BatchStatus.ERROR:
            print(f"❌ @{response.target_handle}: {response.message}", file=sys.stderr)
            exit_code = 3
    return exit_code


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    out_dir = Path(args.out)

    try:
        settings = load_settings(Path(args.config) if args.config else None)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    try:
        if args.command == "web":
            return run_web(args, settings, out_dir)
        return run_instagram(args, settings, out_dir)
    finally:
        shutdown_pools(wait=False)


if __name__ == "__main__":
    sys.exit(main())
