"""
Unit tests for the pydantic request/record models.
"""

import pytest
from pydantic import ValidationError

from src.schemas import (
    InstagramScrapeRequest,
    PageRecord,
    PROFILE_FIELDS,
    ProfileRecord,
    RecordStatus,
    ScrapeRequest,
    WEB_FIELDS,
    resolve_fields,
)


class TestRecords:

    def test_error_requires_message(self):
        with pytest.raises(ValidationError):
            PageRecord(url="https://x.example/", status=RecordStatus.ERROR)

    def test_success_rejects_message(self):
        with pytest.raises(ValidationError):
            PageRecord(url="https://x.example/", error_message="nope")

    def test_negative_time_rejected(self):
        with pytest.raises(ValidationError):
            ProfileRecord(username="a", response_time_ms=-1)

    def test_failure_factory(self):
        record = ProfileRecord.failure("jane", "Failed to extract profile data: x", 5)
        assert record.status == RecordStatus.ERROR
        assert not record.is_success
        assert record.response_time_ms == 5

    def test_select_fields_keeps_identity_and_error(self):
        record = PageRecord.failure("https://x.example/", "boom")
        selected = record.select_fields(("title",))
        assert selected.url == "https://x.example/"
        assert selected.error_message == "boom"

    def test_select_fields_clears_unselected(self):
        record = PageRecord(url="https://x.example/", title="T", emails={"a@b.com"}, domain="x.example")
        selected = record.select_fields(("emails",))
        assert selected.emails == {"a@b.com"}
        assert selected.title is None
        assert selected.domain is None
        # source record unchanged
        assert record.title == "T"


class TestFieldResolution:

    def test_empty_means_all(self):
        assert resolve_fields(None, WEB_FIELDS) == WEB_FIELDS
        assert resolve_fields(set(), PROFILE_FIELDS) == PROFILE_FIELDS

    def test_aliases_and_unknown_names(self):
        assert resolve_fields({"phoneNumbers", "socialLinks", "bogus"}, WEB_FIELDS) == (
            "phone_numbers", "social_links",
        )
        assert resolve_fields(["email", "phone"], PROFILE_FIELDS) == ("emails", "phone_numbers")


class TestRequests:

    def test_scrape_request_defaults(self):
        req = ScrapeRequest(search_topic="  coffee  ")
        assert req.search_topic == "coffee"
        assert req.max_results == 10
        assert req.export_as_csv is False

    @pytest.mark.parametrize("value", [0, 51])
    def test_max_results_bounds(self, value):
        with pytest.raises(ValidationError):
            ScrapeRequest(search_topic="x", max_results=value)

    def test_blank_topic(self):
        with pytest.raises(ValidationError):
            ScrapeRequest(search_topic="   ")

    def test_instagram_defaults_and_handle(self):
        req = InstagramScrapeRequest(username="me", password="pw", target_handle="@brand")
        assert req.target_handle == "brand"
        assert req.max_followers == 1000
        assert req.max_following == 500
        assert req.delay_ms == 2000
        assert req.headless_mode is False
        assert "pw" not in repr(req)

    def test_password_kept_verbatim(self):
        req = InstagramScrapeRequest(username=" me ", password="  secret pass  ", target_handle="x")
        assert req.password == "  secret pass  "
        assert req.username == "me"

    @pytest.mark.parametrize("kwargs", [
        {"password": "   "},
        {"target_handle": "@"},
        {"target_handle": " "},
        {"password": ""},
        {"delay_ms": 500},
        {"max_followers": 10001},
        {"max_following": 0},
    ])
    def test_instagram_validation(self, kwargs):
        base = dict(username="me", password="pw", target_handle="brand")
        base.update(kwargs)
        with pytest.raises(ValidationError):
            InstagramScrapeRequest(**base)
