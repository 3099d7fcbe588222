from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from playwright.sync_api import sync_playwright, Browser, BrowserContext, Page, Playwright
from playwright.sync_api import Error as PlaywrightError

from ..pagination import VisibleEntry
from ..timing import Delay
from ...config import DEFAULT_UA, ScraperSettings


NOT_NOW_SELECTOR = "button:has-text('Not now'), div[role='button']:has-text('Not now')"
CLOSE_SELECTOR = "[aria-label='Close']"
PROFILE_UNAVAILABLE_MARKERS = (
    "Sorry, this page isn't available",
    "Sorry, this page isn’t available",
)
LIST_KINDS = ("followers", "following")

# Reads every rendered row in one round trip; post and reel links are not profiles
_ENTRIES_JS = """
(links, textSelector) => links
  .filter(a => !a.href.includes('/p/') && !a.href.includes('/reel/'))
  .map(a => {
    const spans = a.querySelectorAll(textSelector);
    return {
      href: a.href,
      name: spans.length > 0 ? spans[0].innerText : null,
      bio: spans.length > 1 ? spans[1].innerText : null,
    };
  })
"""

_SCROLL_JS = "el => { el.scrollTop = el.scrollTop + el.offsetHeight; }"


class SessionState(str, Enum):
    INIT = "init"
    LOGGING_IN = "logging_in"
    LOGGED_IN = "logged_in"
    NAVIGATING = "navigating"
    ON_TARGET_PROFILE = "on_target_profile"
    FAILED = "failed"


@dataclass(frozen=True)
class SessionStep:
    ok: bool
    state: SessionState
    reason: Optional[str] = None


class ConnectionListUnavailable(Exception):
    """Followers/following link or dialog could not be opened."""


class DialogEntrySource:
    """``EntrySource`` over the scrollable container of an open list dialog."""

    def __init__(self, page: Page, container_selector: str, text_selector: str) -> None:
        self.page = page
        self.container_selector = container_selector
        self.text_selector = text_selector

    def scroll_forward(self) -> None:
        self.page.eval_on_selector(self.container_selector, _SCROLL_JS)

    def list_visible_entries(self) -> List[VisibleEntry]:
        rows = self.page.eval_on_selector_all(
            f"{self.container_selector} a[href]", _ENTRIES_JS, self.text_selector
        )
        # A row can render as an avatar link plus a text link to the same profile;
        # keep one entry per href, preferring the anchor that carries the text spans
        by_href: Dict[Optional[str], VisibleEntry] = {}
        for r in rows or []:
            entry = VisibleEntry(href=r.get("href"), display_name=r.get("name"), bio=r.get("bio"))
            seen = by_href.get(entry.href)
            if seen is None or (seen.display_name is None and seen.bio is None):
                by_href[entry.href] = entry
        return list(by_href.values())


class BrowserSession:
    """Single Chromium session driven through login and profile navigation.

    States: INIT -> LOGGING_IN -> LOGGED_IN -> NAVIGATING -> ON_TARGET_PROFILE,
    with FAILED absorbing from any step. Use as a context manager so the
    browser is closed on every exit path.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        base_url: str = "https://www.instagram.com",
        timeout_ms: int = 10000,
        login_settle_ms: int = 3000,
        dialog_settle_ms: int = 1000,
        max_dialogs: int = 3,
        list_container_selector: str = "div[role='dialog'] div.x1dm5mii",
        entry_text_selector: str = "span.x1lliihq",
        user_agent: str = DEFAULT_UA,
        delay: Optional[Delay] = None,
    ) -> None:
        self.headless = headless
        self.base_url = base_url.rstrip("/")
        self.timeout_ms = timeout_ms
        self.login_settle_ms = login_settle_ms
        self.dialog_settle_ms = dialog_settle_ms
        self.max_dialogs = max_dialogs
        self.list_container_selector = list_container_selector
        self.entry_text_selector = entry_text_selector
        self.user_agent = user_agent
        self._delay = delay or Delay()

        self.state = SessionState.INIT
        self.failure_reason: Optional[str] = None
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    @classmethod
    def from_settings(cls, settings: ScraperSettings, *, headless: bool, delay: Optional[Delay] = None) -> "BrowserSession":
        return cls(
            headless=headless,
            base_url=settings.instagram_base_url,
            timeout_ms=settings.browser_timeout_ms,
            login_settle_ms=settings.login_settle_ms,
            dialog_settle_ms=settings.dialog_settle_ms,
            max_dialogs=settings.max_dialogs,
            list_container_selector=settings.list_container_selector,
            entry_text_selector=settings.entry_text_selector,
            user_agent=settings.user_agent,
            delay=delay,
        )

    # -------------------------
    # Resource lifecycle
    # -------------------------
    def open(self) -> "BrowserSession":
        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(
                headless=self.headless,
                args=[
                    '--disable-dev-shm-usage',
                    '--disable-gpu',
                    '--disable-extensions',
                    '--disable-plugins',
                    '--no-first-run',
                    '--disable-default-apps',
                    '--disable-background-timer-throttling',
                ],
            )
            self._context = self._browser.new_context(
                user_agent=self.user_agent,
                viewport={"width": 1280, "height": 720},
            )
            self.page = self._context.new_page()
        except BaseException:
            self.close()
            raise
        return self

    def close(self) -> None:
        try:
            if self._browser is not None:
                self._browser.close()
        except PlaywrightError as e:
            print(f"  ⚠️  Browser close failed: {e}")
        finally:
            self._browser = None
            self._context = None
            self.page = None
            if self._playwright is not None:
                self._playwright.stop()
                self._playwright = None

    def __enter__(self) -> "BrowserSession":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    # -------------------------
    # State machine steps
    # -------------------------
    def _fail(self, reason: str) -> SessionStep:
        print(f"  ❌ {reason}")
        self.state = SessionState.FAILED
        self.failure_reason = reason
        return SessionStep(ok=False, state=self.state, reason=reason)

    def _ok(self, state: SessionState) -> SessionStep:
        self.state = state
        return SessionStep(ok=True, state=state)

    def login(self, username: str, password: str) -> SessionStep:
        """Submit credentials; still being on the login screen afterwards means failure."""
        if self.state == SessionState.FAILED:
            return SessionStep(ok=False, state=self.state, reason=self.failure_reason)
        if self.page is None or self.state != SessionState.INIT:
            return self._fail("Failed to login to Instagram: session not ready")
        self.state = SessionState.LOGGING_IN
        print("🔐 Logging into Instagram...")
        page = self.page
        try:
            page.goto(f"{self.base_url}/accounts/login/", wait_until="domcontentloaded", timeout=self.timeout_ms)
            page.wait_for_selector("input[name='username']", timeout=self.timeout_ms)
            page.fill("input[name='username']", username)
            page.fill("input[name='password']", password)
            page.click("button[type='submit']", timeout=self.timeout_ms)
            self._delay(self.login_settle_ms)
        except PlaywrightError as e:
            return self._fail(f"Failed to login to Instagram: {e}")
        if "/accounts/login" in (page.url or ""):
            return self._fail("Failed to login to Instagram: still on the login page")
        self.dismiss_dialogs()
        print("  ✅ Logged in")
        return self._ok(SessionState.LOGGED_IN)

    def dismiss_dialogs(self) -> int:
        """Click away "Not now" prompts (save login info, notifications). Missing ones are fine."""
        dismissed = 0
        button = self.page.locator(NOT_NOW_SELECTOR).first
        while dismissed < self.max_dialogs:
            try:
                button.click(timeout=self.dialog_settle_ms)
            except PlaywrightError:
                break
            dismissed += 1
            self._delay(self.dialog_settle_ms)
        return dismissed

    def navigate_to_profile(self, handle: str) -> SessionStep:
        if self.state == SessionState.FAILED:
            return SessionStep(ok=False, state=self.state, reason=self.failure_reason)
        if self.state not in (SessionState.LOGGED_IN, SessionState.ON_TARGET_PROFILE):
            return self._fail("Failed to navigate to target profile: not logged in")
        self.state = SessionState.NAVIGATING
        print(f"➡️  Navigating to profile: {handle}")
        page = self.page
        try:
            page.goto(f"{self.base_url}/{handle}/", wait_until="domcontentloaded", timeout=self.timeout_ms)
            page.wait_for_selector("main", timeout=self.timeout_ms)
            html = page.content()
        except PlaywrightError as e:
            return self._fail(f"Failed to navigate to target profile: {e}")
        if any(marker in (html or "") for marker in PROFILE_UNAVAILABLE_MARKERS):
            return self._fail(f"Profile not found: {handle}")
        return self._ok(SessionState.ON_TARGET_PROFILE)

    # -------------------------
    # Connection lists
    # -------------------------
    def open_connection_list(self, kind: str) -> DialogEntrySource:
        if kind not in LIST_KINDS:
            raise ValueError(f"unknown list kind: {kind!r}")
        if self.state != SessionState.ON_TARGET_PROFILE:
            raise ConnectionListUnavailable(f"{kind} list unavailable: no target profile loaded")
        page = self.page
        try:
            page.click(f"a[href*='/{kind}/']", timeout=self.timeout_ms)
            page.wait_for_selector(self.list_container_selector, timeout=self.timeout_ms)
        except PlaywrightError as e:
            raise ConnectionListUnavailable(f"{kind} list unavailable: {e}") from e
        return DialogEntrySource(page, self.list_container_selector, self.entry_text_selector)

    def close_connection_list(self) -> None:
        try:
            self.page.locator(CLOSE_SELECTOR).first.click(timeout=self.dialog_settle_ms)
        except PlaywrightError:
            # No close button rendered; Escape closes the dialog as well
            try:
                self.page.keyboard.press("Escape")
            except PlaywrightError as e:
                print(f"  ⚠️  Could not close list dialog: {e}")
        self._delay(self.dialog_settle_ms)
