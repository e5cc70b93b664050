"""In-memory stand-ins for the browser, HTTP and ffmpeg, plus HTML fixtures."""
from pathlib import Path

import requests

from segment_harvester.fetcher import NotMediaError
from segment_harvester.renderer import ObservedResponse, RenderedPage
from segment_harvester.transcoder import TranscodeError

TEST_PAGES = Path(__file__).parent / "test_pages"
LISTING_URL = "https://www.wtap.com/search/?query=mental%20health%20mondays"


def load_page(name: str) -> str:
    return (TEST_PAGES / name).read_text(encoding="utf-8")


def observed(url: str, status: int = 200) -> ObservedResponse:
    return ObservedResponse(url=url, status=status)


class FakeRenderer:
    """Canned rendered pages keyed by URL. Unknown URLs render as empty pages."""

    def __init__(self, pages: dict = None, fail: bool = False):
        self.pages = pages or {}
        self.fail = fail
        self.calls = []

    def render(self, url: str, wait_selector: str = None) -> RenderedPage:
        self.calls.append((url, wait_selector))
        if self.fail:
            raise TimeoutError(f"Navigation timed out: {url}")
        page = self.pages.get(url)
        if isinstance(page, RenderedPage):
            return page
        return RenderedPage(url=url, html=page or "<html><body></body></html>", responses=[])


class FakeTranscoder:
    """Writes a stub 'audio' file instead of running ffmpeg."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def extract_audio(self, source, output: Path) -> None:
        self.calls.append((str(source), Path(output)))
        if self.fail:
            raise TranscodeError(f"ffmpeg exited with 1 for {source}")
        Path(output).write_bytes(b"\xff\xfb\x90\x00" + b"\x00" * 256)


class FakeFetcher:
    """
    In-memory stand-in for PageFetcher.

    pages: url -> html, media: url -> bytes. A media URL listed in `broken`
    writes half its bytes and then fails, like a dropped connection. One
    listed in `documents` answers with an HTML page instead of media.
    """

    def __init__(self, pages: dict = None, media: dict = None, broken: set = None, documents: set = None):
        self.pages = pages or {}
        self.media = media or {}
        self.broken = broken or set()
        self.documents = documents or set()
        self.page_requests = []
        self.media_requests = []
        self.closed = False

    def get_text(self, url: str) -> str:
        self.page_requests.append(url)
        if url not in self.pages:
            raise requests.HTTPError(f"404 Client Error: Not Found for url: {url}")
        return self.pages[url]

    def stream_to(self, url: str, path: Path) -> int:
        self.media_requests.append(url)
        if url in self.documents:
            raise NotMediaError(f"Expected media from {url}, got text/html")
        data = self.media.get(url)
        if data is None:
            raise requests.HTTPError(f"404 Client Error: Not Found for url: {url}")
        if url in self.broken:
            Path(path).write_bytes(data[: len(data) // 2])
            raise requests.ConnectionError("Connection reset by peer")
        Path(path).write_bytes(data)
        return len(data)

    def close(self):
        self.closed = True
