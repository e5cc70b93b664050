"""Find episode pages on the (browser-rendered) search listing."""
import re
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Tag

from segment_harvester.constants import DEFAULT_TITLE, LISTING_WAIT_SELECTOR
from segment_harvester.models.episode import EpisodeRef, normalize_url
from segment_harvester.renderer import PageRenderer
from segment_harvester.utils.logging import get_logger

# Arc XP article paths: /2024/03/04/mental-health-mondays-ep-5/
ARTICLE_PATH_RE = re.compile(r'^/\d{4}/\d{2}/\d{2}/[^/]+/?$')
SEGMENT_RE = re.compile(r'mental[\s\-_]+health[\s\-_]+mondays', re.I)
EXCLUDED_PREFIXES = ('/search', '/video', '/weather', '/tags', '/author', '/topics', '/newsletters')

CARD_SELECTOR = "article, .card, [class*='card'], [class*='result']"
HEADINGS = ['h1', 'h2', 'h3', 'h4']


def _text(node: Tag) -> str:
    return ' '.join(node.get_text(' ', strip=True).split()) if node else ''


def episode_url(href: str, listing_url: str) -> str | None:
    """
    Absolute article URL for `href`, or None if it isn't an article link.

    The link must stay on the listing's host, have a date-stamped article
    path, and must not point back at the listing or a site section.
    """
    if not href or href.startswith(('#', 'javascript:', 'mailto:')):
        return None
    url = urljoin(listing_url, href.strip())
    parts = urlsplit(url)
    if parts.scheme not in ('http', 'https'):
        return None
    if parts.netloc.lower() != urlsplit(listing_url).netloc.lower():
        return None
    if normalize_url(url) == normalize_url(listing_url):
        return None
    path = parts.path
    if path.lower().startswith(EXCLUDED_PREFIXES):
        return None
    if not ARTICLE_PATH_RE.match(path):
        return None
    return url


def _is_segment(url: str, *texts: str) -> bool:
    slug = urlsplit(url).path
    return bool(SEGMENT_RE.search(slug)) or any(SEGMENT_RE.search(t or '') for t in texts)


def _from_cards(soup: BeautifulSoup, listing_url: str) -> list[EpisodeRef]:
    found = []
    for card in soup.select(CARD_SELECTOR):
        anchor = card.find('a', href=True)
        if anchor is None:
            continue
        url = episode_url(anchor['href'], listing_url)
        if url is None:
            continue
        heading = _text(card.find(HEADINGS))
        anchor_text = _text(anchor)
        if not _is_segment(url, heading, anchor_text):
            continue
        found.append(EpisodeRef(title=heading or anchor_text or DEFAULT_TITLE, page_url=url))
    return found


def _from_anchors(soup: BeautifulSoup, listing_url: str) -> list[EpisodeRef]:
    found = []
    for anchor in soup.find_all('a', href=True):
        url = episode_url(anchor['href'], listing_url)
        if url is None:
            continue
        anchor_text = _text(anchor)
        if not _is_segment(url, anchor_text):
            continue
        found.append(EpisodeRef(title=anchor_text or DEFAULT_TITLE, page_url=url))
    return found


def _dedupe(episodes: list[EpisodeRef]) -> list[EpisodeRef]:
    seen, unique = set(), []
    for ep in episodes:
        if ep.key in seen:
            continue
        seen.add(ep.key)
        unique.append(ep)
    return unique


def discover(rendered_html: str, listing_url: str) -> list[EpisodeRef]:
    """
    Episodes linked from a listing page, de-duplicated by URL in document order.

    Card-scoped links are preferred; the page-wide anchor scan only runs when
    no card yields anything (markup drift on the listing).
    """
    log = get_logger()
    soup = BeautifulSoup(rendered_html or '', 'lxml')

    episodes = _dedupe(_from_cards(soup, listing_url))
    if not episodes:
        log.info("No episodes found in result cards, scanning all links")
        episodes = _dedupe(_from_anchors(soup, listing_url))

    log.info(f"Found {len(episodes)} {DEFAULT_TITLE} episodes")
    return episodes


def render_listing(renderer: PageRenderer, listing_url: str) -> str:
    """Rendered HTML of the listing. Renderer errors propagate."""
    page = renderer.render(listing_url, wait_selector=LISTING_WAIT_SELECTOR)
    return page.html
