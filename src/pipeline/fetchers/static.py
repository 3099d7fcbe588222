from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

import httpx

from ..timing import Delay
from ...config import DEFAULT_UA


@dataclass(frozen=True)
class FetchResult:
    url: str
    status_code: int
    mime: str | None
    content_length: int
    text: str
    headers: dict[str, str]


@dataclass(frozen=True)
class FetchError:
    url: str
    cause: str


class StaticFetcher:
    """Plain HTTP document fetcher.

    - Uses httpx for network IO; one client shared by all worker threads
    - Follows redirects; non-2xx responses and non-HTML bodies are returned as-is
    - Sleeps ``rate_limit_delay_ms`` before every request (blocking, per worker)
    - Network, timeout and URL errors come back as ``FetchError``, never raised
    - Does NOT execute JavaScript
    """

    def __init__(
        self,
        *,
        timeout_ms: int = 30000,
        user_agent: str = DEFAULT_UA,
        rate_limit_delay_ms: int = 0,
        delay: Optional[Delay] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.timeout_ms = timeout_ms
        self.user_agent = user_agent
        self.rate_limit_delay_ms = rate_limit_delay_ms
        self._delay = delay or Delay()
        self._client = client or httpx.Client(
            timeout=self.timeout_ms / 1000.0,
            headers={"User-Agent": self.user_agent},
            follow_redirects=True,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "StaticFetcher":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def fetch(self, url: str) -> Union[FetchResult, FetchError]:
        self._delay(self.rate_limit_delay_ms)
        try:
            resp = self._client.get(url, follow_redirects=True)
            text = resp.text
        except httpx.TimeoutException as e:
            return FetchError(url=url, cause=f"timed out after {self.timeout_ms} ms ({e.__class__.__name__})")
        except httpx.HTTPError as e:
            return FetchError(url=url, cause=str(e) or e.__class__.__name__)
        except (httpx.InvalidURL, ValueError) as e:
            return FetchError(url=url, cause=f"invalid URL: {e}")
        mime = resp.headers.get("Content-Type")
        mime_main = None
        if mime:
            mime_main = mime.split(";")[0].strip().lower()
        return FetchResult(
            url=str(resp.request.url),
            status_code=resp.status_code,
            mime=mime_main,
            content_length=len(resp.content or b""),
            text=text,
            headers={k: v for k, v in resp.headers.items()},
        )
