"""Episode processing flow for individual episodes."""
from prefect import flow
from loguru import logger as log

from segment_harvester.acquisition import ArtifactState, artifact_paths, artifact_stem, probe
from segment_harvester.catalog import catalog_file, entry_for
from segment_harvester.config import HarvestConfig
from segment_harvester.fetcher import PageFetcher
from segment_harvester.models.episode import CatalogEntry, EpisodeRef
from segment_harvester.renderer import PageRenderer
from segment_harvester.tasks.acquire import acquire_audio, tag_audio
from segment_harvester.tasks.resolve import episode_metadata, fetch_episode_page, resolve_media
from segment_harvester.transcoder import Transcoder


@flow(
    name="process-episode",
    flow_run_name="episode-{episode.title}",
    validate_parameters=False,
    log_prints=True
)
def process_episode(episode: EpisodeRef, config: HarvestConfig, catalogued: set[str],
                    fetcher: PageFetcher, renderer: PageRenderer, transcoder: Transcoder) -> CatalogEntry | None:
    """
    Process a single episode.

    Workflow, driven by what is already on disk:
    1. Audio present and catalogued: nothing to do
    2. Audio present, not catalogued: re-read metadata, tag, catalog
    3. Video present: transcode without downloading
    4. Nothing present: fetch page, resolve media, download, transcode
    Then tag the audio and build its catalog entry.

    Args:
        episode: Episode found on the listing
        config: Run configuration
        catalogued: Files already in the catalog
        fetcher: HTTP client
        renderer: Browser renderer for the resolver's last resort
        transcoder: Audio extractor

    Returns:
        Catalog entry for a newly available episode, or None if skipped or failed
    """
    artifact = artifact_paths(config, artifact_stem(episode))
    file = catalog_file(artifact, config)
    state = probe(artifact)
    log.info(f"Processing: {episode.title} ({state.value})")

    if state == ArtifactState.AUDIO_PRESENT and file in catalogued:
        log.info(f"Audio already exists: {artifact.audio_path.name}")
        return None

    page_html = None
    if state != ArtifactState.AUDIO_PRESENT:
        page_html = fetch_episode_page(fetcher, episode)

    if state == ArtifactState.NEITHER_PRESENT:
        if page_html is None:
            log.warning(f"Skipping {episode.title} - page could not be fetched")
            return None
        media = resolve_media(episode, page_html, renderer)
        if media is None:
            log.warning(f"Skipping {episode.title} - could not extract video URL")
            return None
        result = acquire_audio(artifact, fetcher, transcoder, media)
        if not result.succeeded:
            log.warning(f"Skipping {episode.title} - {result.outcome.value}")
            return None
    elif state == ArtifactState.VIDEO_PRESENT:
        result = acquire_audio(artifact, fetcher, transcoder)
        if not result.succeeded:
            log.warning(f"Skipping {episode.title} - {result.outcome.value}, video kept for next run")
            return None
    else:
        log.info(f"Audio exists but is not catalogued: {artifact.audio_path.name}")

    meta = episode_metadata(episode, fetcher, page_html)
    if not tag_audio(artifact.audio_path, meta):
        log.warning(f"Skipping catalog entry for {episode.title} - tagging failed")
        return None

    entry = entry_for(meta, artifact, config)
    log.success(f"Episode ready: {entry.file}")
    return entry
