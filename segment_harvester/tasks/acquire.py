"""Prefect tasks for downloading, transcoding and tagging episode audio."""
from pathlib import Path

from prefect import task
from prefect.cache_policies import NO_CACHE

from segment_harvester.acquisition import AcquisitionResult, acquire
from segment_harvester.fetcher import PageFetcher
from segment_harvester.models.episode import AcquiredArtifact, ArticleMeta, ResolvedMedia
from segment_harvester.tagging import tag
from segment_harvester.transcoder import Transcoder


@task(
    name="acquire-audio",
    cache_policy=NO_CACHE,
    log_prints=True
)
def acquire_audio(artifact: AcquiredArtifact, fetcher: PageFetcher, transcoder: Transcoder,
                  media: ResolvedMedia = None) -> AcquisitionResult:
    """
    Download and/or transcode so the episode's audio file exists.

    No retries here: one media fetch per episode per run. A failed episode
    is picked up again on the next run from whatever is left on disk.

    Args:
        artifact: Target video and audio paths
        fetcher: HTTP client for the media download
        transcoder: Audio extractor
        media: Resolved media, required only when nothing is on disk yet

    Returns:
        AcquisitionResult describing what happened
    """
    return acquire(artifact, fetcher, transcoder, media)


@task(
    name="tag-audio",
    cache_policy=NO_CACHE,
    log_prints=True
)
def tag_audio(audio_path: Path, meta: ArticleMeta) -> bool:
    """Write ID3 tags and set the file time. Returns False if tagging failed."""
    return tag(audio_path, meta)
