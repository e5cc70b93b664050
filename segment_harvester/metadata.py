"""Descriptive metadata (title, description, publish date) for an episode page."""
import json

from bs4 import BeautifulSoup

from segment_harvester.fetcher import PageFetcher
from segment_harvester.models.episode import ArticleMeta
from segment_harvester.resolver import embedded_metadata
from segment_harvester.utils.logging import get_logger


def _meta_content(soup: BeautifulSoup, *keys: str) -> str | None:
    for key in keys:
        tag = soup.find('meta', attrs={'property': key}) or soup.find('meta', attrs={'name': key})
        if tag and tag.get('content', '').strip():
            return tag['content'].strip()
    return None


def _json_ld(soup: BeautifulSoup) -> dict:
    """First JSON-LD object that looks like an article or video."""
    for script in soup.find_all('script', type='application/ld+json'):
        try:
            data = json.loads(script.string or '')
        except ValueError:
            continue
        if isinstance(data, dict):
            data = data.get('@graph', [data])
        if not isinstance(data, list):
            continue
        for item in data:
            if isinstance(item, dict) and ('headline' in item or 'datePublished' in item or 'uploadDate' in item):
                return item
    return {}


def _fusion_field(content: dict, *path: str):
    node = content
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node if isinstance(node, str) and node.strip() else None


def extract_meta(html: str) -> ArticleMeta:
    """Pull metadata out of page HTML. Missing fields stay None."""
    soup = BeautifulSoup(html or '', 'lxml')
    ld = _json_ld(soup)
    fusion = embedded_metadata(html) or {}

    title = (_meta_content(soup, 'og:title', 'twitter:title')
             or ld.get('headline')
             or _fusion_field(fusion, 'headlines', 'basic'))
    if not title and soup.title and soup.title.string:
        title = soup.title.string.strip()

    description = (_meta_content(soup, 'og:description', 'description', 'twitter:description')
                   or ld.get('description')
                   or _fusion_field(fusion, 'description', 'basic')
                   or _fusion_field(fusion, 'subheadlines', 'basic'))

    publish_date = (_meta_content(soup, 'article:published_time', 'og:published_time')
                    or ld.get('datePublished')
                    or ld.get('uploadDate')
                    or _fusion_field(fusion, 'display_date')
                    or _fusion_field(fusion, 'first_publish_date'))

    return ArticleMeta(title=title or None, description=description or None, publish_date=publish_date or None)


def fetch_meta(page_url: str, fetcher: PageFetcher) -> ArticleMeta:
    """Fetch and extract metadata. Never raises; failures give an empty ArticleMeta."""
    log = get_logger()
    try:
        return extract_meta(fetcher.get_text(page_url))
    except Exception as e:
        log.warning(f"Failed to fetch metadata from {page_url}: {e}")
        return ArticleMeta()
