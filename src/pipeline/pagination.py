"""
Incremental Pagination Collector

Scrolls a virtualized list (followers/following dialog), reads the entries
currently rendered, deduplicates them by identity key and turns each new one
into a ProfileRecord.

The loop stops when ``max_items`` records were collected or when several
consecutive scrolls produced no previously-unseen identity. The stability
rule bounds the loop even if the source keeps returning the same entries; it
can under-collect when new entries are separated by more stagnant scrolls
than the limit.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence, Set
from urllib.parse import urlparse

from .extractors import ContactExtractor
from .timing import Delay, elapsed_ms
from ..schemas import ProfileRecord


DEFAULT_STABLE_LIMIT = 3


@dataclass(frozen=True)
class VisibleEntry:
    """One rendered list row as read from the page."""
    href: Optional[str]
    display_name: Optional[str] = None
    bio: Optional[str] = None


class EntrySource(Protocol):
    """Narrow browser capability the collector depends on."""

    def scroll_forward(self) -> None:
        ...

    def list_visible_entries(self) -> Sequence[VisibleEntry]:
        ...


def extract_identity(href: Optional[str]) -> Optional[str]:
    """First path segment after the host, without query or fragment.

    ``https://www.instagram.com/jane.doe/?hl=en`` -> ``jane.doe``;
    relative ``/jane.doe/`` works too. Returns None when nothing is left.
    """
    if not href:
        return None
    try:
        parsed = urlparse(href.strip())
    except ValueError:
        return None
    if not parsed.netloc and not parsed.path.startswith("/"):
        return None
    segment = parsed.path.lstrip("/").split("/", 1)[0]
    segment = segment.split("?", 1)[0].strip()
    return segment or None


@dataclass
class PaginationState:
    """Transient per-list state; ``seen`` only grows."""
    max_items: int
    stable_limit: int = DEFAULT_STABLE_LIMIT
    seen: Set[str] = field(default_factory=set)
    collected: List[ProfileRecord] = field(default_factory=list)
    stable_iterations: int = 0
    iterations: int = 0
    interrupted_by: Optional[str] = None

    @property
    def is_full(self) -> bool:
        return len(self.collected) >= self.max_items

    @property
    def is_stable(self) -> bool:
        return self.stable_iterations >= self.stable_limit

    @property
    def is_terminal(self) -> bool:
        return self.is_full or self.is_stable or self.interrupted_by is not None

    def record_iteration(self, grew: bool) -> None:
        self.iterations += 1
        if grew:
            self.stable_iterations = 0
        else:
            self.stable_iterations += 1


class PaginationCollector:
    """Scroll-read-dedupe loop over an ``EntrySource``."""

    def __init__(
        self,
        *,
        contact_extractor: Optional[ContactExtractor] = None,
        delay: Optional[Delay] = None,
        stable_limit: int = DEFAULT_STABLE_LIMIT,
    ):
        self.contact_extractor = contact_extractor or ContactExtractor()
        self._delay = delay or Delay()
        self.stable_limit = stable_limit

    def collect(self, source: EntrySource, max_items: int, delay_ms: int = 0) -> List[ProfileRecord]:
        return self.run(source, max_items=max_items, delay_ms=delay_ms).collected

    def run(self, source: EntrySource, *, max_items: int, delay_ms: int = 0) -> PaginationState:
        """Collect up to ``max_items`` records and return the final state.

        An exception from the source ends the loop; what was collected so far
        is kept and ``interrupted_by`` names the cause.
        """
        state = PaginationState(max_items=max(0, int(max_items)), stable_limit=self.stable_limit)
        while not state.is_terminal:
            before = len(state.collected)
            try:
                source.scroll_forward()
                self._delay(delay_ms)
                entries = source.list_visible_entries()
            except Exception as e:
                print(f"  ⚠️  List scrolling stopped after {state.iterations} scrolls: {e}")
                state.interrupted_by = str(e) or e.__class__.__name__
                break
            for entry in entries:
                if state.is_full:
                    break
                self._consume(state, entry)
            state.record_iteration(grew=len(state.collected) > before)
        return state

    def _consume(self, state: PaginationState, entry: VisibleEntry) -> None:
        identity = extract_identity(entry.href)
        if identity is None or identity in state.seen:
            return
        state.seen.add(identity)
        t0 = time.perf_counter()
        try:
            record = self.contact_extractor.extract_from_profile_entry(
                identity, entry.display_name, entry.bio, response_time_ms=0
            )
            record = record.model_copy(update={"response_time_ms": elapsed_ms(t0)})
        except Exception as e:
            print(f"  ⚠️  Profile extraction failed for {identity}: {e}")
            record = ProfileRecord.failure(
                identity, f"Failed to extract profile data: {e}", elapsed_ms(t0)
            )
        state.collected.append(record)
