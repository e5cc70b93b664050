"""Prefect tasks for fetching episode pages and resolving their media."""
from prefect import task
from prefect.cache_policies import NO_CACHE

from segment_harvester.fetcher import PageFetcher
from segment_harvester.metadata import extract_meta, fetch_meta
from segment_harvester.models.episode import ArticleMeta, EpisodeRef, ResolvedMedia
from segment_harvester.renderer import PageRenderer
from segment_harvester.resolver import resolve
from segment_harvester.utils.logging import get_logger


@task(
    name="fetch-episode-page",
    cache_policy=NO_CACHE,
    log_prints=True
)
def fetch_episode_page(fetcher: PageFetcher, episode: EpisodeRef) -> str | None:
    """
    Fetch an episode page's HTML.

    Returns:
        Page HTML, or None if the page could not be fetched
    """
    log = get_logger()
    log.info(f"Extracting video URL from: {episode.page_url}")
    try:
        return fetcher.get_text(episode.page_url)
    except Exception as e:
        log.error(f"Failed to fetch {episode.page_url}: {e}")
        return None


@task(
    name="resolve-media",
    cache_policy=NO_CACHE,
    log_prints=True
)
def resolve_media(episode: EpisodeRef, page_html: str, renderer: PageRenderer = None) -> ResolvedMedia | None:
    """
    Resolve the episode's direct media URL.

    Returns:
        ResolvedMedia, or None when no strategy found anything
    """
    media_url = resolve(page_html, episode.page_url, renderer)
    if not media_url:
        return None
    return ResolvedMedia(page_url=episode.page_url, media_url=media_url)


@task(
    name="episode-metadata",
    cache_policy=NO_CACHE,
    log_prints=True
)
def episode_metadata(episode: EpisodeRef, fetcher: PageFetcher, page_html: str = None) -> ArticleMeta:
    """
    Article metadata for an episode, reusing already-fetched HTML when given.

    Never fails; missing fields are left empty and default downstream.
    """
    log = get_logger()
    if page_html is None:
        meta = fetch_meta(episode.page_url, fetcher)
    else:
        try:
            meta = extract_meta(page_html)
        except Exception as e:
            log.warning(f"Failed to extract metadata from {episode.page_url}: {e}")
            meta = ArticleMeta()
    if not meta.title:
        meta.title = episode.title
    log.debug(f"Metadata for {episode.page_url}: {meta}")
    return meta
