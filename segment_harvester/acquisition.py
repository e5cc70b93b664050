"""
Download-and-transcode state machine for one episode.

State lives on disk only. Two checkpoints per episode:

- audio file present: episode is done, never fetched or transcoded again
- video file present, no audio: download finished earlier, transcode again

Both filenames derive deterministically from the episode, so the checks
mean the same thing on every run.
"""
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from urllib.parse import urlsplit

import requests

from segment_harvester.config import HarvestConfig
from segment_harvester.constants import FILE_PREFIX
from segment_harvester.fetcher import PageFetcher
from segment_harvester.models.episode import AcquiredArtifact, EpisodeRef, ResolvedMedia
from segment_harvester.transcoder import TranscodeError, Transcoder
from segment_harvester.utils.logging import get_logger

# "Mental Health Mondays, Ep. 2", "Ep 2", "Episode 12"
EPISODE_NUMBER_RE = re.compile(r'\bEp(?:isode)?\.?\s*#?\s*(\d+)', re.I)
URL_DATE_RE = re.compile(r'/(\d{4})/(\d{2})/(\d{2})/')
VIDEO_SUFFIX = '.mp4'
AUDIO_SUFFIX = '.mp3'
PARTIAL_MARK = '.partial'


class DownloadError(Exception):
    pass


class ArtifactState(Enum):
    AUDIO_PRESENT = 'audio-present'
    VIDEO_PRESENT = 'video-present'
    NEITHER_PRESENT = 'neither-present'


class Outcome(Enum):
    SKIPPED = 'skipped'
    TRANSCODED = 'transcoded'
    DOWNLOAD_FAILED = 'download-failed'
    TRANSCODE_FAILED = 'transcode-failed'


@dataclass
class AcquisitionResult:
    artifact: AcquiredArtifact
    outcome: Outcome
    downloaded: bool = False

    @property
    def succeeded(self) -> bool:
        """True when an audio file exists for the episode after this run."""
        return self.outcome in (Outcome.SKIPPED, Outcome.TRANSCODED)

    @property
    def is_new(self) -> bool:
        return self.outcome == Outcome.TRANSCODED


def episode_number(title: str) -> int | None:
    match = EPISODE_NUMBER_RE.search(title or '')
    return int(match.group(1)) if match else None


def _slug(text: str) -> str:
    return re.sub(r'[^A-Za-z0-9]+', '-', text).strip('-')[:80] or 'episode'


def artifact_stem(episode: EpisodeRef) -> str:
    """
    Filename stem for an episode's artifacts, without extension.

    Episode number from the title when there is one, else the publish date
    stamped in the article path, else the URL slug. Needs no network access
    and never depends on the current time.
    """
    number = episode_number(episode.title)
    if number is not None:
        return f"{FILE_PREFIX}-Ep{number}"

    match = URL_DATE_RE.search(urlsplit(episode.page_url).path)
    if match:
        return f"{FILE_PREFIX}-{match.group(1)}-{match.group(2)}-{match.group(3)}"

    last_segment = urlsplit(episode.page_url).path.rstrip('/').rsplit('/', 1)[-1]
    return f"{FILE_PREFIX}-{_slug(last_segment)}"


def artifact_paths(config: HarvestConfig, stem: str) -> AcquiredArtifact:
    return AcquiredArtifact(
        audio_path=config.audio_dir / f"{stem}{AUDIO_SUFFIX}",
        video_path=config.data_path / f"{stem}{VIDEO_SUFFIX}",
    )


def probe(artifact: AcquiredArtifact) -> ArtifactState:
    """The only place artifact existence is checked."""
    if artifact.audio_path.exists():
        return ArtifactState.AUDIO_PRESENT
    if artifact.video_path is not None and artifact.video_path.exists():
        return ArtifactState.VIDEO_PRESENT
    return ArtifactState.NEITHER_PRESENT


def _scratch_path(path: Path) -> Path:
    return path.with_name(f"{path.stem}{PARTIAL_MARK}{path.suffix}")


def download(media_url: str, path: Path, fetcher: PageFetcher) -> Path:
    """
    Stream `media_url` into a scratch file and move it onto `path` once complete.

    `path` only ever appears complete, so an interrupted run can't leave a
    truncated video behind as the retry checkpoint.

    Raises:
        DownloadError: on any network, HTTP or filesystem error
    """
    log = get_logger()
    path.parent.mkdir(parents=True, exist_ok=True)
    scratch = _scratch_path(path)
    log.info(f"Downloading video to: {path}")
    try:
        size = fetcher.stream_to(media_url, scratch)
        scratch.replace(path)
    except (requests.RequestException, OSError) as e:
        log.error(f"Failed to download {media_url}: {e}")
        raise DownloadError(str(e)) from e
    finally:
        scratch.unlink(missing_ok=True)
    log.info(f"Successfully downloaded: {path.name} ({size} bytes)")
    return path


def transcode(source: str | Path, audio_path: Path, transcoder: Transcoder) -> Path:
    """
    Extract audio into a scratch file and move it into place.

    The final audio path only ever appears complete, so its existence is a
    trustworthy "done" marker.
    """
    audio_path.parent.mkdir(parents=True, exist_ok=True)
    scratch = _scratch_path(audio_path)
    scratch.unlink(missing_ok=True)
    try:
        transcoder.extract_audio(source, scratch)
        if not scratch.exists():
            raise TranscodeError(f"Transcoder produced no output for {source}")
        scratch.replace(audio_path)
    except Exception:
        scratch.unlink(missing_ok=True)
        raise
    return audio_path


def acquire(artifact: AcquiredArtifact, fetcher: PageFetcher, transcoder: Transcoder,
            media: ResolvedMedia = None) -> AcquisitionResult:
    """
    Bring one episode to the "audio present" state, doing as little as possible.

    At most one media fetch and one transcode. Download and transcode failures
    are reported in the result, never raised. `media` is only needed when
    neither artifact exists yet.
    """
    log = get_logger()
    state = probe(artifact)

    if state == ArtifactState.NEITHER_PRESENT and media is None:
        raise ValueError(f"No media resolved for {artifact.audio_path.name} and nothing on disk")

    if state == ArtifactState.AUDIO_PRESENT:
        log.info(f"Audio already exists: {artifact.audio_path.name}")
        return AcquisitionResult(artifact, Outcome.SKIPPED)

    downloaded = False
    if state == ArtifactState.VIDEO_PRESENT:
        source = artifact.video_path
        log.info(f"Video already exists: {artifact.video_path.name}")
    elif media.is_stream:
        # Segmented streams go straight from the manifest into the transcoder
        source = media.media_url
        log.info(f"Stream manifest, transcoding directly: {media.media_url}")
    else:
        try:
            source = download(media.media_url, artifact.video_path, fetcher)
        except DownloadError:
            return AcquisitionResult(artifact, Outcome.DOWNLOAD_FAILED)
        downloaded = True

    try:
        log.info(f"Extracting audio from: {source}")
        transcode(source, artifact.audio_path, transcoder)
    except (TranscodeError, OSError) as e:
        log.error(f"Failed to extract audio for {artifact.audio_path.name}: {e}")
        return AcquisitionResult(artifact, Outcome.TRANSCODE_FAILED, downloaded)

    if source == artifact.video_path:
        artifact.video_path.unlink(missing_ok=True)
    log.info(f"Successfully extracted audio to: {artifact.audio_path.name}")
    return AcquisitionResult(artifact, Outcome.TRANSCODED, downloaded)
