"""Prefect tasks for finding episodes on the listing page."""
from prefect import task
from prefect.cache_policies import NO_CACHE

from segment_harvester.discovery import discover, render_listing
from segment_harvester.models.episode import EpisodeRef
from segment_harvester.renderer import PageRenderer
from segment_harvester.utils.logging import get_logger


@task(
    name="discover-episodes",
    retries=1,
    retry_delay_seconds=30,
    cache_policy=NO_CACHE,
    log_prints=True
)
def discover_episodes(renderer: PageRenderer, listing_url: str) -> list[EpisodeRef]:
    """
    Render the search listing and pull episode links out of it.

    Args:
        renderer: Browser renderer for the JavaScript-built listing
        listing_url: Search page URL

    Returns:
        Episodes in listing order, one per distinct page URL

    Raises:
        Exception: Whatever the renderer raised if the listing never loads
    """
    log = get_logger()
    log.info(f"Fetching search results from: {listing_url}")
    html = render_listing(renderer, listing_url)
    return discover(html, listing_url)
