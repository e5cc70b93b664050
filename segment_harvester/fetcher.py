"""HTTP access to the source site: page HTML and streamed media downloads."""
from pathlib import Path

import requests
from loguru import logger as log
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from segment_harvester.constants import DOWNLOAD_TIMEOUT, PAGE_TIMEOUT, USER_AGENT

CHUNK_SIZE = 64 * 1024
TRANSIENT_STATUS = (429, 502, 503, 504)


class Transient(Exception):
    """Temporary failure worth another attempt."""
    pass


class NotMediaError(requests.RequestException):
    """The URL answered with a document (an embed or error page), not media bytes."""
    pass


class PageFetcher:
    """
    Fetch pages and media with a fixed browser-like identity.

    Network and HTTP failures are raised to the caller as
    requests.RequestException (or Transient once retries run out).
    """

    def __init__(self, user_agent: str = USER_AGENT, timeout: int = PAGE_TIMEOUT,
                 download_timeout: int = DOWNLOAD_TIMEOUT, session: requests.Session = None):
        self.timeout = timeout
        self.download_timeout = download_timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent,
            "Accept-Language": "en-US,en;q=0.9",
        })

    @retry(reraise=True, stop=stop_after_attempt(3),
           wait=wait_exponential(multiplier=1, min=1, max=10),
           retry=retry_if_exception_type(Transient))
    def get_text(self, url: str) -> str:
        try:
            r = self.session.get(url, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise Transient(str(e)) from e
        if r.status_code in TRANSIENT_STATUS:
            raise Transient(f"HTTP {r.status_code} for {url}")
        if not r.ok:
            log.error(f"Error fetching {url}: {r.status_code} {r.reason}")
        r.raise_for_status()
        return r.text

    def stream_to(self, url: str, path: Path) -> int:
        """
        Stream `url` into `path`. Single attempt, bounded by the download timeout.

        Returns:
            Number of bytes written

        Raises:
            NotMediaError: if the server answers with a text/* document
        """
        written = 0
        with self.session.get(url, stream=True, timeout=self.download_timeout) as r:
            r.raise_for_status()
            content_type = r.headers.get('Content-Type', '').split(';')[0].strip().lower()
            if content_type.startswith('text/'):
                raise NotMediaError(f"Expected media from {url}, got {content_type}")
            with open(path, 'wb') as fh:
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        fh.write(chunk)
                        written += len(chunk)
        return written

    def close(self):
        self.session.close()
