"""
Fetch a user-supplied web page under strict limits and reduce it to plain text.
"""
import asyncio
import logging
import re
from typing import Optional

import httpx
from bs4 import BeautifulSoup
from pydantic import BaseModel

from src.utils.config import Settings, get_settings
from src.utils.validators import TripInputValidator

ALLOWED_CONTENT_TYPES = ("text/html", "text/plain")
WHITESPACE_RE = re.compile(r"\s+")


class FetchResult(BaseModel):
    content: str = ""
    title: Optional[str] = None
    url: str = ""
    error: Optional[str] = None
    status_code: int = 200

    @property
    def ok(self) -> bool:
        return self.error is None


class UrlFetchError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def extract_page_text(html: str, max_chars: int = 10000) -> tuple:
    """Return (text, title) with scripts/styles removed and whitespace collapsed"""
    soup = BeautifulSoup(html, "html.parser")

    title = None
    if soup.title and soup.title.string:
        title = soup.title.string.strip() or None

    for tag in soup(["script", "style"]):
        tag.decompose()

    text = WHITESPACE_RE.sub(" ", soup.get_text(" ")).strip()
    if len(text) > max_chars:
        text = text[:max_chars] + "..."
    return text, title


class UrlContentFetcher:
    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or get_settings()
        self.transport = transport
        self.logger = logging.getLogger(__name__)

    async def fetch(self, url: Optional[str]) -> FetchResult:
        """Fetch url and extract its text. Failures come back in FetchResult.error, never raised."""
        url = (url or "").strip()
        if not url:
            return FetchResult(url=url, error="URL is required", status_code=400)
        if not TripInputValidator.is_valid_url(url):
            return FetchResult(url=url, error="Invalid URL format", status_code=400)

        try:
            html = await asyncio.wait_for(self._download(url), timeout=self.settings.URL_FETCH_TIMEOUT_SECONDS)
        except UrlFetchError as e:
            self.logger.warning(f"[fetch-url] rejected {url}: {e.message}", extra={"status_code": e.status_code})
            return FetchResult(url=url, error=e.message, status_code=e.status_code)
        except httpx.InvalidURL as e:
            self.logger.warning(f"[fetch-url] httpx rejected {url}: {e}")
            return FetchResult(url=url, error="Invalid URL format", status_code=400)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            self.logger.warning(f"[fetch-url] timed out fetching {url}")
            return FetchResult(url=url, error="Request timed out. The page took too long to load.", status_code=408)
        except httpx.HTTPError as e:
            self.logger.error(f"[fetch-url] request failed for {url}: {e}")
            return FetchResult(url=url, error="Failed to fetch content from the URL", status_code=500)

        content, title = extract_page_text(html, self.settings.URL_CONTENT_MAX_CHARS)
        self.logger.info(
            "[fetch-url] page extracted",
            extra={"url": url, "chars": len(content), "has_title": title is not None},
        )
        return FetchResult(content=content, title=title, url=url)

    async def _download(self, url: str) -> str:
        headers = {
            "User-Agent": self.settings.URL_FETCH_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,text/plain;q=0.9,*/*;q=0.8",
        }
        max_bytes = self.settings.URL_FETCH_MAX_BYTES

        async with httpx.AsyncClient(
            transport=self.transport,
            timeout=self.settings.URL_FETCH_TIMEOUT_SECONDS,
            follow_redirects=True,
        ) as client:
            async with client.stream("GET", url, headers=headers) as response:
                if not response.is_success:
                    raise UrlFetchError(
                        f"Failed to fetch URL: {response.status_code} {response.reason_phrase}".rstrip(),
                        400,
                    )

                content_type = response.headers.get("content-type")
                if content_type and not any(t in content_type.lower() for t in ALLOWED_CONTENT_TYPES):
                    raise UrlFetchError("URL does not appear to be a webpage (invalid content type)", 400)

                content_length = response.headers.get("content-length")
                if content_length and content_length.isdigit() and int(content_length) > max_bytes:
                    raise UrlFetchError("Page is too large to process (over 5MB)", 400)

                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) > max_bytes:
                        raise UrlFetchError("Page is too large to process (over 5MB)", 400)

                encoding = response.encoding or "utf-8"
                return bytes(body).decode(encoding, errors="replace")
