"""
Unit tests for the Instagram scrape pipeline.

A fake session stands in for BrowserSession so the phase and failure
handling can be checked without a browser.
"""

from unittest.mock import Mock

import pytest

from src.config import ScraperSettings
from src.pipeline.fetchers.browser import ConnectionListUnavailable, SessionState, SessionStep
from src.pipeline.instagram import InstagramScrapePipeline
from src.pipeline.pagination import PaginationCollector, VisibleEntry
from src.pipeline.timing import NO_DELAY
from src.schemas import BatchStatus, InstagramScrapeRequest, RecordStatus


class ListSource:
    def __init__(self, entries):
        self.entries = entries

    def scroll_forward(self):
        pass

    def list_visible_entries(self):
        return self.entries


class FakeSession:
    def __init__(self, login_ok=True, profile_ok=True, lists=None, unavailable=()):
        self.login_ok = login_ok
        self.profile_ok = profile_ok
        self.lists = lists or {}
        self.unavailable = set(unavailable)
        self.closed = False
        self.opened = []
        self.closed_lists = 0

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True

    def login(self, username, password):
        if self.login_ok:
            return SessionStep(ok=True, state=SessionState.LOGGED_IN)
        return SessionStep(ok=False, state=SessionState.FAILED, reason="Failed to login to Instagram: still on the login page")

    def navigate_to_profile(self, handle):
        if self.profile_ok:
            return SessionStep(ok=True, state=SessionState.ON_TARGET_PROFILE)
        return SessionStep(ok=False, state=SessionState.FAILED, reason=f"Profile not found: {handle}")

    def open_connection_list(self, kind):
        self.opened.append(kind)
        if kind in self.unavailable:
            raise ConnectionListUnavailable(f"{kind} list unavailable: link not found")
        return ListSource(self.lists.get(kind, []))

    def close_connection_list(self):
        self.closed_lists += 1


def _entries(*names, bio=None):
    return [VisibleEntry(href=f"https://www.instagram.com/{n}/", display_name=n, bio=bio) for n in names]


def _request(**kw):
    base = dict(username="me", password="secret", target_handle="@brand")
    base.update(kw)
    return InstagramScrapeRequest(**base)


def _pipeline(session, **kw):
    return InstagramScrapePipeline(
        settings=ScraperSettings(),
        session_factory=lambda headless: session,
        collector=PaginationCollector(delay=NO_DELAY),
        **kw,
    )


def test_login_failure_is_batch_error():
    session = FakeSession(login_ok=False)

    response = _pipeline(session).scrape(_request())

    assert response.status == BatchStatus.ERROR
    assert "login" in response.message.lower()
    assert response.total_profiles == 0
    assert response.profiles == []
    assert response.target_handle == "brand"
    assert session.closed
    assert session.opened == []


def test_missing_profile_is_batch_error():
    response = _pipeline(FakeSession(profile_ok=False)).scrape(_request())

    assert response.status == BatchStatus.ERROR
    assert response.message == "Profile not found: brand"
    assert response.profiles == []


def test_both_lists_are_collected():
    session = FakeSession(lists={
        "followers": _entries("ann", "ben", bio="Contact: hi@ann.io"),
        "following": _entries("cat"),
    })

    response = _pipeline(session).scrape(_request())

    assert response.status == BatchStatus.COMPLETED
    assert response.followers_scraped == 2
    assert response.following_scraped == 1
    assert response.total_profiles == 3
    assert response.successful_scrapes == 3
    assert response.phase_errors == {}
    assert session.opened == ["followers", "following"]
    assert session.closed_lists == 2
    assert response.statistics.total_emails == 2
    assert response.statistics.profiles_with_contact == 2


def test_caps_apply_per_list():
    session = FakeSession(lists={
        "followers": _entries(*[f"f{i}" for i in range(10)]),
        "following": _entries(*[f"g{i}" for i in range(10)]),
    })

    response = _pipeline(session).scrape(_request(max_followers=3, max_following=2))

    assert response.followers_scraped == 3
    assert response.following_scraped == 2


def test_skipped_phase_is_not_opened():
    session = FakeSession(lists={"followers": _entries("ann")})

    response = _pipeline(session).scrape(_request(scrape_following=False))

    assert session.opened == ["followers"]
    assert response.following_scraped == 0


def test_one_unavailable_list_is_recorded_not_fatal():
    session = FakeSession(lists={"following": _entries("cat")}, unavailable={"followers"})

    response = _pipeline(session).scrape(_request())

    assert response.status == BatchStatus.COMPLETED
    assert "followers" in response.phase_errors
    assert "followers list unavailable" in response.message
    assert response.following_scraped == 1


def test_all_lists_unavailable_is_batch_error():
    session = FakeSession(unavailable={"followers", "following"})

    response = _pipeline(session).scrape(_request())

    assert response.status == BatchStatus.ERROR
    assert set(response.phase_errors) == {"followers", "following"}
    assert response.message.startswith("Scraping failed:")


def test_field_selection_applies_to_profiles():
    session = FakeSession(lists={"followers": _entries("ann", bio="📍 Paris hi@ann.io")})

    response = _pipeline(session).scrape(_request(scrape_following=False, fields_to_extract={"email"}))

    profile = response.profiles[0]
    assert profile.emails == {"hi@ann.io"}
    assert profile.bio is None
    assert profile.location is None
    assert profile.username == "ann"


def test_session_start_failure_is_batch_error():
    def factory(headless):
        raise RuntimeError("Executable doesn't exist")

    pipeline = InstagramScrapePipeline(session_factory=factory, collector=PaginationCollector(delay=NO_DELAY))
    response = pipeline.scrape(_request())

    assert response.status == BatchStatus.ERROR
    assert response.message == "Scraping failed: Executable doesn't exist"


def test_headless_flag_reaches_factory():
    seen = []

    def factory(headless):
        seen.append(headless)
        return FakeSession()

    InstagramScrapePipeline(session_factory=factory, collector=PaginationCollector(delay=NO_DELAY)).scrape(
        _request(headless_mode=True)
    )
    assert seen == [True]


def test_scrape_many_runs_each_request():
    pipeline = _pipeline(FakeSession(lists={"followers": _entries("ann")}))
    responses = pipeline.scrape_many([_request(target_handle="one"), _request(target_handle="two")])
    assert sorted(r.target_handle for r in responses) == ["one", "two"]
    assert all(r.status == BatchStatus.COMPLETED for r in responses)


def test_batch_ops_record():
    ops = Mock()
    _pipeline(FakeSession(login_ok=False), ops_logger=ops).scrape(_request())
    record = ops.emit.call_args_list[-1].args[0]
    assert record["kind"] == "instagram_batch"
    assert record["status"] == "error"
