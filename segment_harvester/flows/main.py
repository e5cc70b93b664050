"""Main Prefect flow: one harvesting run over the whole listing."""
import traceback

from prefect import flow

from segment_harvester.config import HarvestConfig
from segment_harvester.fetcher import PageFetcher
from segment_harvester.flows.episode import process_episode
from segment_harvester.renderer import PageRenderer, PlaywrightRenderer
from segment_harvester.tasks.catalog import load_catalog_document, publish_catalog
from segment_harvester.tasks.discover import discover_episodes
from segment_harvester.transcoder import FfmpegTranscoder, Transcoder
from segment_harvester.utils.logging import get_logger


def ensure_data_dir(config: HarvestConfig) -> None:
    """Create the data and audio directories. Failure is logged, not fatal."""
    log = get_logger()
    try:
        config.audio_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        log.error(f"Failed to create data directory {config.audio_dir}: {e}")


@flow(name="harvest-episodes", validate_parameters=False, log_prints=True)
def harvest(config: HarvestConfig = None, renderer: PageRenderer = None,
            transcoder: Transcoder = None, fetcher: PageFetcher = None) -> list[str]:
    """
    Discover episodes and bring each one to a tagged, catalogued MP3.

    Episodes are handled one at a time in listing order. A failing episode
    is logged and skipped; only discovery or catalog failures end the run.

    Args:
        config: Run configuration, from the environment when omitted
        renderer: Browser renderer, Playwright when omitted
        transcoder: Audio extractor, ffmpeg when omitted
        fetcher: HTTP client, a fresh PageFetcher (closed on exit) when omitted

    Returns:
        Catalog files added this run
    """
    log = get_logger()
    config = config or HarvestConfig.from_env()
    renderer = renderer or PlaywrightRenderer()
    transcoder = transcoder or FfmpegTranscoder()
    owns_fetcher = fetcher is None
    fetcher = fetcher or PageFetcher()

    try:
        ensure_data_dir(config)
        doc = load_catalog_document(config)

        episodes = discover_episodes(renderer, config.listing_url)
        if not episodes:
            log.info("No episodes found")

        # Grows as episodes finish so a repost sharing a file name is skipped
        catalogued = set(doc.files)
        new_entries = []
        try:
            for episode in episodes:
                try:
                    entry = process_episode(episode, config, catalogued, fetcher, renderer, transcoder)
                except Exception as e:
                    log.error(f"Episode {episode.title} failed: {type(e).__name__}: {e}")
                    continue
                if entry is not None:
                    new_entries.append(entry)
                    catalogued.add(entry.file)
        finally:
            # Persist whatever was acquired, even if the loop was cut short
            if new_entries or not config.catalog_source.exists():
                publish_catalog(doc, new_entries, config)

        log.info(f"Scraping complete: {len(new_entries)} new episodes of {len(episodes)} found")
        return [e.file for e in new_entries]

    except Exception as e:
        log.error(f"Harvest failed with error: {e}")
        log.debug(traceback.format_exc())
        raise

    finally:
        if owns_fetcher:
            fetcher.close()
