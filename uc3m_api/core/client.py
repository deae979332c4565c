# uc3m_api/core/client.py
import asyncio
import logging
import time
from pathlib import Path
from typing import Optional

import aiofiles
import httpx

from .constants import DEFAULT_HEADERS

log = logging.getLogger(__name__)

# Directory for saving debug HTML
DEBUG_HTML_DIR = Path("debug_html")

# Status codes worth retrying; anything else fails straight away
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


class TimetableClientError(Exception):
    """Raised when the timetable page cannot be retrieved."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def create_http_client(timeout: float = 30.0) -> httpx.AsyncClient:
    """Creates the shared client used to retrieve timetable pages."""
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers=DEFAULT_HEADERS.copy(),
        limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
        http2=True,
    )


async def _save_debug_html(url: str, response: httpx.Response) -> None:
    DEBUG_HTML_DIR.mkdir(exist_ok=True)
    timestamp = time.strftime("%Y%m%d_%H%M%S")
    filename = DEBUG_HTML_DIR / f"timetable_{timestamp}_{response.status_code}.html"
    try:
        async with aiofiles.open(filename, "w", encoding="utf-8") as f:
            await f.write(f"<!-- URL: {url} -->\n<!-- Status: {response.status_code} -->\n{response.text}")
        log.info(f"Saved debug HTML for {url} to {filename}")
    except OSError as save_err:
        log.error(f"Failed to save debug HTML for {url}: {save_err}")


async def fetch_timetable_html(
    client: httpx.AsyncClient,
    url: str,
    *,
    max_retries: int = 3,
    backoff_factor: float = 0.5,
    save_debug_html: bool = False,
) -> str:
    """
    Fetches the HTML of a timetable page, retrying transient failures with
    exponential backoff.

    Args:
        client: The shared httpx.AsyncClient.
        url: Absolute address of the timetable page.
        max_retries: Maximum number of attempts.
        backoff_factor: Factor of the sleep time between attempts.
        save_debug_html: If True, saves the raw response under `debug_html/`.

    Returns:
        The HTML content as a string.

    Raises:
        TimetableClientError: On an HTTP error status, a timeout or a connection
                              error once the attempts are exhausted.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            log.debug(f"Attempt {attempt}/{max_retries} for GET {url}")
            response = await client.get(url)
            if save_debug_html:
                await _save_debug_html(url, response)
            response.raise_for_status()
            return response.text
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if status_code not in RETRY_STATUS_CODES or attempt >= max_retries:
                log.error(f"GET {url} failed with HTTP error {status_code}.")
                raise TimetableClientError(f"HTTP error {status_code} fetching {url}", status_code) from e
            log.warning(f"GET {url} attempt {attempt} failed (Status: {status_code})")
        except httpx.TimeoutException as e:
            if attempt >= max_retries:
                log.error(f"GET {url} timed out after {attempt} attempts.")
                raise TimetableClientError(f"Timeout occurred fetching {url}") from e
            log.warning(f"GET {url} attempt {attempt} timed out")
        except httpx.RequestError as e:
            if attempt >= max_retries:
                log.error(f"GET {url} failed after {attempt} attempts: {type(e).__name__}")
                raise TimetableClientError(f"Connection error fetching {url}: {e}") from e
            log.warning(f"GET {url} attempt {attempt} failed: {type(e).__name__}")

        sleep_time = backoff_factor * (2 ** (attempt - 1))
        log.info(f"Retrying in {sleep_time:.2f} seconds...")
        await asyncio.sleep(sleep_time)
