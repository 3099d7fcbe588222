"""
Unit tests for the incremental pagination collector.

The browser is replaced by scripted entry sources: each scroll advances to
the next "screen" of visible rows, and the last screen repeats forever.
"""

from unittest.mock import Mock

import pytest

from src.pipeline.extractors import ContactExtractor
from src.pipeline.pagination import (
    PaginationCollector,
    PaginationState,
    VisibleEntry,
    extract_identity,
)
from src.pipeline.timing import Delay, NO_DELAY
from src.schemas import RecordStatus


def _entry(name, bio=None):
    return VisibleEntry(href=f"https://www.instagram.com/{name}/", display_name=name.title(), bio=bio)


class ScriptedSource:
    def __init__(self, screens, fail_on_scroll=None):
        self.screens = screens
        self.scrolls = 0
        self.fail_on_scroll = fail_on_scroll

    def scroll_forward(self):
        self.scrolls += 1
        if self.fail_on_scroll is not None and self.scrolls >= self.fail_on_scroll:
            raise RuntimeError("dialog detached")

    def list_visible_entries(self):
        idx = min(self.scrolls, len(self.screens)) - 1
        return self.screens[idx]


@pytest.mark.parametrize("href,expected", [
    ("https://www.instagram.com/jane.doe/", "jane.doe"),
    ("https://www.instagram.com/jane.doe/?hl=en", "jane.doe"),
    ("https://www.instagram.com/jane_doe", "jane_doe"),
    ("/relative.user/", "relative.user"),
    ("https://www.instagram.com/", None),
    ("", None),
    (None, None),
])
def test_extract_identity(href, expected):
    assert extract_identity(href) == expected


def test_duplicates_across_scrolls_are_collected_once():
    a, b, c = _entry("alice"), _entry("bob"), _entry("carol")
    source = ScriptedSource([[a, b], [a, b, c], [b, c]])
    collector = PaginationCollector(delay=NO_DELAY)

    state = collector.run(source, max_items=10)

    assert [r.username for r in state.collected] == ["alice", "bob", "carol"]
    assert state.seen == {"alice", "bob", "carol"}
    # two growing scrolls, then three stagnant ones
    assert state.iterations == 5
    assert state.is_stable
    assert state.interrupted_by is None


def test_cap_is_never_exceeded():
    screen = [_entry(f"user{i}") for i in range(10)]
    source = ScriptedSource([screen])

    records = PaginationCollector(delay=NO_DELAY).collect(source, max_items=4)

    assert len(records) == 4
    assert source.scrolls == 1


def test_endless_identical_screens_terminate():
    source = ScriptedSource([[_entry("only")]])

    state = PaginationCollector(delay=NO_DELAY, stable_limit=3).run(source, max_items=1000)

    assert len(state.collected) == 1
    assert state.iterations == 4


def test_empty_list_stops_after_stable_limit():
    source = ScriptedSource([[]])
    state = PaginationCollector(delay=NO_DELAY).run(source, max_items=50)
    assert state.collected == []
    assert state.iterations == 3


def test_entries_without_identity_are_skipped():
    source = ScriptedSource([[VisibleEntry(href="https://www.instagram.com/"), _entry("dave")]])
    records = PaginationCollector(delay=NO_DELAY).collect(source, max_items=10)
    assert [r.username for r in records] == ["dave"]


def test_bio_contacts_are_extracted():
    source = ScriptedSource([[_entry("erin", bio="Contact: erin@mail.com")]])
    records = PaginationCollector(delay=NO_DELAY).collect(source, max_items=10)
    assert records[0].emails == {"erin@mail.com"}
    assert records[0].full_name == "Erin"


def test_extraction_failure_becomes_error_record():
    extractor = Mock(spec=ContactExtractor)
    extractor.extract_from_profile_entry.side_effect = ValueError("bad bio")
    source = ScriptedSource([[_entry("frank")]])

    records = PaginationCollector(contact_extractor=extractor, delay=NO_DELAY).collect(source, max_items=10)

    assert len(records) == 1
    assert records[0].status == RecordStatus.ERROR
    assert records[0].username == "frank"
    assert records[0].error_message == "Failed to extract profile data: bad bio"


def test_source_exception_keeps_partial_results():
    source = ScriptedSource([[_entry("gina")], [_entry("gina"), _entry("hank")]], fail_on_scroll=2)

    state = PaginationCollector(delay=NO_DELAY).run(source, max_items=10)

    assert [r.username for r in state.collected] == ["gina"]
    assert state.interrupted_by == "dialog detached"


def test_delay_runs_after_each_scroll():
    sleeps = []
    source = ScriptedSource([[_entry("ivy")]])
    PaginationCollector(delay=Delay(sleep=sleeps.append)).collect(source, max_items=1, delay_ms=1500)

    assert sleeps == [1.5]


def test_state_stability_counter_resets_on_growth():
    state = PaginationState(max_items=10, stable_limit=2)
    state.record_iteration(grew=False)
    state.record_iteration(grew=True)
    state.record_iteration(grew=False)
    assert state.stable_iterations == 1
    assert not state.is_terminal
