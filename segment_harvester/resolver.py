"""
Turn an episode page into a direct media URL.

Strategies run cheapest first and the first hit wins:

1. Fusion.globalContent JSON inlined by the site (mp4 stream, else HLS)
2. <video>/<source> markup
3. media URLs in inline <script> text
4. well-known data-* attributes
5. render the page in a browser and inspect the live DOM plus network traffic

Every strategy is a plain function of a PageView returning a URL or None, so
each can be tested and reordered on its own. Nothing in here raises: a broken
strategy counts as a miss.
"""
import json
import re
from functools import cached_property
from typing import Callable, Optional
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from segment_harvester.constants import MEDIA_EXTENSIONS
from segment_harvester.renderer import PageRenderer, RenderedPage
from segment_harvester.utils.logging import get_logger

FUSION_RE = re.compile(r'Fusion\.globalContent\s*=\s*')
_EXT = '|'.join(ext.lstrip('.') for ext in MEDIA_EXTENSIONS)
ABSOLUTE_MEDIA_RE = re.compile(rf'''https?://[^\s"'<>\\]+?\.(?:{_EXT})(?:\?[^\s"'<>\\]*)?(?=["'\s<>\\]|$)''', re.I)
ASSIGNED_MEDIA_RE = re.compile(
    rf'''["']?(?:url|src|file|videoUrl|contentUrl)["']?\s*[:=]\s*["']([^"']+?\.(?:{_EXT})(?:\?[^"']*)?)["']''',
    re.I
)
DATA_ATTRIBUTES = (
    'data-video-src',
    'data-video-url',
    'data-mp4',
    'data-hls',
    'data-src',
    'data-stream-url',
)
TRUSTED_IFRAME_HOSTS = ('youtube.com', 'youtube-nocookie.com', 'player.vimeo.com', 'vimeo.com')

PROGRESSIVE_TYPE = 'mp4'
SEGMENTED_TYPE = 'ts'


def has_media_extension(url: str) -> bool:
    if not url:
        return False
    path = urlsplit(url.strip()).path.lower()
    return path.endswith(MEDIA_EXTENSIONS)


class PageView:
    """Raw HTML of a page plus a lazily parsed soup."""

    def __init__(self, html: str, url: str):
        self.html = html or ''
        self.url = url

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html, 'lxml')

    @cached_property
    def inline_script_text(self) -> str:
        return '\n'.join(s.get_text() for s in self.soup.find_all('script') if not s.get('src'))

    def absolute(self, href: str) -> str:
        return urljoin(self.url, href.strip())


Strategy = Callable[[PageView], Optional[str]]


def _find_streams(node) -> list | None:
    """First `streams` list of dicts, searching breadth-first from the top."""
    queue = [node]
    while queue:
        current = queue.pop(0)
        if isinstance(current, dict):
            streams = current.get('streams')
            if isinstance(streams, list) and any(isinstance(s, dict) for s in streams):
                return streams
            queue.extend(v for v in current.values() if isinstance(v, (dict, list)))
        elif isinstance(current, list):
            queue.extend(v for v in current if isinstance(v, (dict, list)))
    return None


def embedded_metadata(html: str) -> dict | None:
    """Decode the Fusion.globalContent object, or None if missing or malformed."""
    match = FUSION_RE.search(html or '')
    if not match:
        return None
    try:
        data, _ = json.JSONDecoder().raw_decode(html, match.end())
    except ValueError as e:
        get_logger().warning(f"Failed to parse embedded video metadata: {e}")
        return None
    return data if isinstance(data, dict) else None


def from_embedded_json(view: PageView) -> str | None:
    metadata = embedded_metadata(view.html)
    if metadata is None:
        return None
    streams = _find_streams(metadata) or []
    for wanted in (PROGRESSIVE_TYPE, SEGMENTED_TYPE):
        for stream in streams:
            if isinstance(stream, dict) and stream.get('stream_type') == wanted and stream.get('url'):
                return stream['url']
    return None


def _video_source(soup: BeautifulSoup) -> str | None:
    for video in soup.find_all('video'):
        if video.get('src'):
            return video['src']
        source = video.find('source', src=True)
        if source:
            return source['src']
    return None


def from_video_markup(view: PageView) -> str | None:
    src = _video_source(view.soup)
    return view.absolute(src) if src else None


def from_inline_scripts(view: PageView) -> str | None:
    text = view.inline_script_text.replace('\\/', '/')
    match = ABSOLUTE_MEDIA_RE.search(text)
    if match:
        return match.group(0)
    match = ASSIGNED_MEDIA_RE.search(text)
    if match:
        return view.absolute(match.group(1))
    return None


def from_data_attributes(view: PageView) -> str | None:
    for attribute in DATA_ATTRIBUTES:
        for element in view.soup.find_all(attrs={attribute: True}):
            value = element.get(attribute)
            if has_media_extension(value):
                return view.absolute(value)
    return None


STATIC_STRATEGIES: list[Strategy] = [
    from_embedded_json,
    from_video_markup,
    from_inline_scripts,
    from_data_attributes,
]


def _trusted_iframe(soup: BeautifulSoup, page_url: str) -> str | None:
    page_host = urlsplit(page_url).netloc.lower()
    for iframe in soup.find_all('iframe', src=True):
        src = urljoin(page_url, iframe['src'])
        host = urlsplit(src).netloc.lower()
        if host == page_host or any(host == h or host.endswith('.' + h) for h in TRUSTED_IFRAME_HOSTS):
            return src
    return None


def from_rendered_page(rendered: RenderedPage) -> str | None:
    """
    Pick a media URL from a rendered page.

    The live DOM (<video>/<source>, then a trusted iframe) wins over network
    capture; among captured responses the first successful media one wins.
    """
    soup = BeautifulSoup(rendered.html or '', 'lxml')
    src = _video_source(soup)
    if src:
        return urljoin(rendered.url, src)
    iframe = _trusted_iframe(soup, rendered.url)
    if iframe:
        return iframe
    for response in rendered.responses:
        if response.ok and has_media_extension(response.url):
            return response.url
    return None


def run_strategies(view: PageView, strategies: list[Strategy] = None) -> str | None:
    log = get_logger()
    for strategy in strategies or STATIC_STRATEGIES:
        try:
            url = strategy(view)
        except Exception as e:
            log.warning(f"Strategy {strategy.__name__} failed on {view.url}: {e}")
            continue
        if url:
            log.info(f"Resolved {view.url} via {strategy.__name__}: {url}")
            return url
        log.debug(f"Strategy {strategy.__name__} found nothing on {view.url}")
    return None


def resolve(page_html: str, page_url: str, renderer: PageRenderer = None) -> str | None:
    """
    Best-effort direct media URL for an episode page.

    Args:
        page_html: HTML as fetched over plain HTTP
        page_url: URL the HTML came from, used to absolutize relative links
        renderer: optional browser renderer for the last-resort strategy

    Returns:
        Media URL, or None when every strategy misses
    """
    log = get_logger()
    url = run_strategies(PageView(page_html, page_url))
    if url:
        return url

    if renderer is None:
        log.warning(f"Could not find video URL in {page_url} and no renderer available")
        return None

    log.info(f"Static strategies missed, rendering {page_url}")
    try:
        rendered = renderer.render(page_url)
        url = from_rendered_page(rendered)
    except Exception as e:
        log.warning(f"Rendered fallback failed for {page_url}: {e}")
        return None

    if url:
        log.info(f"Resolved {page_url} via rendered page: {url}")
    else:
        log.warning(f"Could not find video URL in {page_url}")
    return url
