"""
Export Pipeline - CSV/JSON Output for Scrape Results

CSV layout is fixed leading columns followed by one column per selected
field, in canonical field order. The JSON form carries the same selected
fields, so both outputs agree for a given selection.
"""

import csv
import io
import json
import re
from datetime import datetime as dt
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel

from ..schemas import (
    InstagramScrapeResponse,
    PageRecord,
    PROFILE_FIELDS,
    ProfileRecord,
    WEB_FIELDS,
    WebScrapeResponse,
    resolve_fields,
)


# Canonical field -> CSV header
FIELD_HEADERS: Dict[str, str] = {
    "title": "Title",
    "description": "Description",
    "emails": "Emails",
    "phone_numbers": "Phone Numbers",
    "social_links": "Social Links",
    "content": "Content",
    "domain": "Domain",
    "bio": "Bio",
    "contact": "Contact",
    "website": "Website",
    "location": "Location",
    "error_message": "Error Message",
}

WEB_LEADING_HEADERS = ("URL", "Status", "Response Time (ms)")
PROFILE_LEADING_HEADERS = ("Username", "Full Name", "Profile URL", "Status")

# Free-text fields get their whitespace collapsed so each record stays on one CSV line
_COLLAPSE_FIELDS = {"content", "bio"}
_WS_RE = re.compile(r"\s+")


def _cell(record: BaseModel, name: str) -> str:
    value = getattr(record, name, None)
    if value is None:
        return ""
    if isinstance(value, (set, frozenset, list, tuple)):
        return "; ".join(sorted(str(v) for v in value))
    text = str(value)
    if name in _COLLAPSE_FIELDS:
        text = _WS_RE.sub(" ", text).strip()
    return text


def _write_csv(
    leading_headers: Sequence[str],
    leading_values,
    records: Iterable[BaseModel],
    selection: Tuple[str, ...],
) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(list(leading_headers) + [FIELD_HEADERS[f] for f in selection])
    for record in records:
        writer.writerow(leading_values(record) + [_cell(record, f) for f in selection])
    return buf.getvalue()


def _csv_selection(fields: Optional[Iterable[str]], allowed: Tuple[str, ...]) -> Tuple[str, ...]:
    # Error Message is a column only when asked for explicitly
    if not fields:
        return tuple(f for f in allowed if f != "error_message")
    return resolve_fields(fields, allowed)


def web_results_to_csv(records: Sequence[PageRecord], fields: Optional[Iterable[str]] = None) -> str:
    """CSV text for page records: URL, Status, Response Time (ms), then selected fields."""
    selection = _csv_selection(fields, WEB_FIELDS)
    return _write_csv(
        WEB_LEADING_HEADERS,
        lambda r: [r.url or "", r.status.value, str(r.response_time_ms)],
        records,
        selection,
    )


def profiles_to_csv(records: Sequence[ProfileRecord], fields: Optional[Iterable[str]] = None) -> str:
    """CSV text for profile records: Username, Full Name, Profile URL, Status, then selected fields."""
    selection = _csv_selection(fields, PROFILE_FIELDS)
    return _write_csv(
        PROFILE_LEADING_HEADERS,
        lambda r: [r.username or "", r.full_name or "", r.profile_url or "", r.status.value],
        records,
        selection,
    )


def records_to_json(payload: Union[BaseModel, Sequence[BaseModel]], pretty: bool = True) -> str:
    """JSON text for a response or a list of records; unset fields are omitted."""
    if isinstance(payload, BaseModel):
        data = payload.model_dump(mode="json", exclude_none=True)
    else:
        data = [r.model_dump(mode="json", exclude_none=True) for r in payload]
    return json.dumps(data, indent=2 if pretty else None, ensure_ascii=False)


def _safe_name(s: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "_", s or "").strip("_") or "unknown"


class ResultExporter:
    """
    Writes scrape responses to timestamped CSV/JSON files.
    """

    def __init__(self, output_dir: Union[str, Path] = "output"):
        """
        Initialize Result Exporter.

        Args:
            output_dir: Directory for output files (created if doesn't exist)
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _stem(self, response: Union[WebScrapeResponse, InstagramScrapeResponse]) -> str:
        timestamp = dt.now().strftime("%Y%m%d_%H%M%S")
        if isinstance(response, InstagramScrapeResponse):
            return f"instagram_data_{_safe_name(response.target_handle)}_{timestamp}"
        return f"scraped_data_{timestamp}"

    def to_csv(
        self,
        response: Union[WebScrapeResponse, InstagramScrapeResponse],
        fields: Optional[Iterable[str]] = None,
        filename: Optional[str] = None,
    ) -> Path:
        """
        Export the records of a response as CSV.

        Args:
            response: Web or Instagram batch response
            fields: Field selection used for the scrape (None -> all fields except the error message)
            filename: Output filename (auto-generated if None)

        Returns:
            Path to created CSV file
        """
        if isinstance(response, InstagramScrapeResponse):
            text = profiles_to_csv(response.profiles, fields)
            count = len(response.profiles)
        else:
            text = web_results_to_csv(response.results, fields)
            count = len(response.results)
        csv_path = self.output_dir / (filename or f"{self._stem(response)}.csv")
        csv_path.write_text(text, encoding="utf-8")
        print(f"💾 CSV exported: {csv_path} ({count} records)")
        return csv_path

    def to_json(
        self,
        response: Union[WebScrapeResponse, InstagramScrapeResponse],
        filename: Optional[str] = None,
        pretty: bool = True,
    ) -> Path:
        json_path = self.output_dir / (filename or f"{self._stem(response)}.json")
        json_path.write_text(records_to_json(response, pretty=pretty), encoding="utf-8")
        print(f"💾 JSON exported: {json_path}")
        return json_path

    def to_both(
        self,
        response: Union[WebScrapeResponse, InstagramScrapeResponse],
        fields: Optional[Iterable[str]] = None,
    ) -> List[Path]:
        return [self.to_csv(response, fields), self.to_json(response)]
