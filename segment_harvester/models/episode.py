"""Episode data structures passed between pipeline stages."""
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

from segment_harvester.constants import STREAM_EXTENSIONS


def normalize_url(url: str) -> str:
    """
    Comparison key for a page URL.

    Scheme and host are lower-cased, the fragment is dropped and a trailing
    slash on the path is ignored. The URL must already be absolute.
    """
    parts = urlsplit(url.strip())
    path = parts.path.rstrip('/') or '/'
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ''))


def parse_iso_date(value: str) -> datetime | None:
    """Parse an ISO 8601 timestamp, returning None when absent or unparsable."""
    if not value:
        return None
    text = str(value).strip()
    # fromisoformat() before 3.11 rejects a trailing Z
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


@dataclass(frozen=True)
class EpisodeRef:
    """One episode page found on the listing page."""
    title: str
    page_url: str

    @property
    def key(self) -> str:
        return normalize_url(self.page_url)


@dataclass(frozen=True)
class ResolvedMedia:
    page_url: str
    media_url: str

    @property
    def is_stream(self) -> bool:
        """True for segmented stream manifests (HLS)."""
        path = urlsplit(self.media_url).path.lower()
        return path.endswith(STREAM_EXTENSIONS)


@dataclass
class ArticleMeta:
    """Descriptive metadata scraped from an episode page. Every field is optional."""
    title: str = None
    description: str = None
    publish_date: str = None

    def published(self) -> datetime | None:
        return parse_iso_date(self.publish_date)


@dataclass(frozen=True)
class AcquiredArtifact:
    audio_path: Path
    video_path: Path = None


@dataclass
class CatalogEntry:
    """One published episode. Identity is the artifact filename in `file`."""
    file: str
    title: str
    description: str = ''
    publish_date: str = None
    ordinal: int = 0
    season: int = 1
    episode_type: str = 'full'
    extra: dict = field(default_factory=dict)

    def published(self) -> datetime | None:
        return parse_iso_date(self.publish_date)
