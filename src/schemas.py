"""
Contact Harvester - Pydantic Data Schemas

Record models for scraped web pages and Instagram profiles, the batch
responses that carry them, and the request models accepted by the two
scrape operations.

Records obey one invariant: a record is either ``success`` (optionally with
extracted fields) or ``error`` with an ``error_message``; ``response_time_ms``
is always populated.
"""

from enum import Enum
from typing import ClassVar, Dict, Iterable, List, Optional, Set, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator


class RecordStatus(str, Enum):
    """Outcome of a single scraped unit (page or profile)."""
    SUCCESS = "success"
    ERROR = "error"


class BatchStatus(str, Enum):
    """Outcome of a whole scrape call."""
    COMPLETED = "completed"
    ERROR = "error"


# Canonical optional fields per record kind, in export column order
WEB_FIELDS: Tuple[str, ...] = (
    "title", "description", "emails", "phone_numbers",
    "social_links", "content", "domain", "error_message",
)
PROFILE_FIELDS: Tuple[str, ...] = (
    "bio", "contact", "emails", "phone_numbers",
    "website", "location", "error_message",
)

# Spellings accepted from callers -> canonical field names
FIELD_ALIASES: Dict[str, str] = {
    "email": "emails",
    "phone": "phone_numbers",
    "phones": "phone_numbers",
    "phoneNumbers": "phone_numbers",
    "socialLinks": "social_links",
    "errorMessage": "error_message",
}


def resolve_fields(requested: Optional[Iterable[str]], allowed: Tuple[str, ...]) -> Tuple[str, ...]:
    """Map a caller's field selection onto canonical names.

    Empty or missing selection means every field in ``allowed``. Unknown
    names are ignored, not rejected.
    """
    if not requested:
        return allowed
    wanted = set()
    for name in requested:
        if not isinstance(name, str):
            continue
        key = name.strip()
        wanted.add(FIELD_ALIASES.get(key, key))
    return tuple(f for f in allowed if f in wanted)


class ScrapedRecord(BaseModel):
    """Common shape of every extracted unit."""

    OPTIONAL_FIELDS: ClassVar[Tuple[str, ...]] = ()

    status: RecordStatus = Field(
        default=RecordStatus.SUCCESS,
        description="success, or error with error_message set"
    )

    error_message: Optional[str] = Field(
        default=None,
        description="Human-readable failure cause (error records only)"
    )

    response_time_ms: int = Field(
        default=0,
        ge=0,
        description="Wall time spent producing this record"
    )

    @model_validator(mode="after")
    def check_status_invariant(self):
        if self.status == RecordStatus.ERROR and not self.error_message:
            raise ValueError("error records require error_message")
        if self.status == RecordStatus.SUCCESS and self.error_message is not None:
            raise ValueError("success records cannot carry error_message")
        return self

    @property
    def is_success(self) -> bool:
        return self.status == RecordStatus.SUCCESS

    def select_fields(self, selection: Iterable[str]) -> "ScrapedRecord":
        """Copy with optional fields outside ``selection`` cleared.

        Identity fields, status and timing are always kept, and so is the
        error message of an error record.
        """
        keep = set(selection)
        update = {
            name: None
            for name in self.OPTIONAL_FIELDS
            if name not in keep and name != "error_message"
        }
        return self.model_copy(update=update)


class PageRecord(ScrapedRecord):
    """Data extracted from one web page."""

    OPTIONAL_FIELDS: ClassVar[Tuple[str, ...]] = WEB_FIELDS

    url: str = Field(..., description="Requested URL")
    title: Optional[str] = None
    description: Optional[str] = None
    emails: Optional[Set[str]] = None
    phone_numbers: Optional[Set[str]] = None
    social_links: Optional[Set[str]] = None
    content: Optional[str] = None
    domain: Optional[str] = None

    @classmethod
    def failure(cls, url: str, message: str, response_time_ms: int = 0) -> "PageRecord":
        return cls(
            url=url,
            status=RecordStatus.ERROR,
            error_message=message,
            response_time_ms=response_time_ms,
        )


class ProfileRecord(ScrapedRecord):
    """Data extracted from one follower/following list entry."""

    OPTIONAL_FIELDS: ClassVar[Tuple[str, ...]] = PROFILE_FIELDS

    username: str = Field(..., description="Identity key parsed from the profile link")
    full_name: Optional[str] = None
    profile_url: Optional[str] = None
    bio: Optional[str] = None
    emails: Optional[Set[str]] = None
    phone_numbers: Optional[Set[str]] = None
    website: Optional[str] = None
    contact: Optional[str] = None
    location: Optional[str] = None

    @classmethod
    def failure(cls, username: str, message: str, response_time_ms: int = 0) -> "ProfileRecord":
        return cls(
            username=username,
            status=RecordStatus.ERROR,
            error_message=message,
            response_time_ms=response_time_ms,
        )


class ContactStatistics(BaseModel):
    """Summary counts over a finished set of records."""
    total_emails: int = 0
    total_phone_numbers: int = 0
    profiles_with_contact: int = 0
    contact_rate_percent: float = 0.0


class ScrapeRequest(BaseModel):
    """Input of the web scrape operation."""

    search_topic: str = Field(
        ...,
        description="Topic or keyword the candidate URLs are discovered for"
    )
    max_results: int = Field(default=10, ge=1, le=50)
    search_engine: str = "google"
    language: str = "en"
    country: str = "us"
    fields_to_extract: Optional[Set[str]] = None
    export_as_csv: bool = False

    @field_validator("search_topic")
    @classmethod
    def validate_topic(cls, v):
        if not v or not v.strip():
            raise ValueError("search_topic is required")
        return v.strip()


class InstagramScrapeRequest(BaseModel):
    """Input of the Instagram follower/following scrape operation."""

    username: str
    password: str = Field(..., repr=False)
    target_handle: str
    max_followers: int = Field(default=1000, ge=1, le=10000)
    max_following: int = Field(default=500, ge=1, le=10000)
    scrape_followers: bool = True
    scrape_following: bool = True
    fields_to_extract: Optional[Set[str]] = None
    export_as_csv: bool = False
    delay_ms: int = Field(default=2000, ge=1000, le=10000)
    headless_mode: bool = False

    @field_validator("username", "target_handle")
    @classmethod
    def validate_non_empty_strings(cls, v):
        """Username and target cannot be blank."""
        if not v or not v.strip():
            raise ValueError("Field cannot be empty")
        return v.strip()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        # Whitespace may be part of the secret; only reject blank values
        if not v or not v.strip():
            raise ValueError("password cannot be empty")
        return v

    @field_validator("target_handle")
    @classmethod
    def strip_at_sign(cls, v):
        handle = v.lstrip("@")
        if not handle:
            raise ValueError("target_handle cannot be empty")
        return handle


class WebScrapeResponse(BaseModel):
    """Batch result of the web scrape operation."""
    search_topic: str = ""
    total_results: int = 0
    successful_scrapes: int = 0
    failed_scrapes: int = 0
    results: List[PageRecord] = Field(default_factory=list)
    metadata: Dict[str, str] = Field(default_factory=dict)
    processing_time_ms: int = 0
    status: BatchStatus = BatchStatus.COMPLETED
    message: str = ""
    statistics: Optional[ContactStatistics] = None


class InstagramScrapeResponse(BaseModel):
    """Batch result of the Instagram scrape operation."""
    target_handle: str = ""
    total_profiles: int = 0
    followers_scraped: int = 0
    following_scraped: int = 0
    successful_scrapes: int = 0
    failed_scrapes: int = 0
    profiles: List[ProfileRecord] = Field(default_factory=list)
    processing_time_ms: int = 0
    status: BatchStatus = BatchStatus.COMPLETED
    message: str = ""
    statistics: Optional[ContactStatistics] = None
    phase_errors: Dict[str, str] = Field(default_factory=dict)
