from segment_harvester.models.episode import (
    AcquiredArtifact,
    ArticleMeta,
    CatalogEntry,
    EpisodeRef,
    ResolvedMedia,
    normalize_url,
    parse_iso_date,
)

__all__ = [
    'AcquiredArtifact',
    'ArticleMeta',
    'CatalogEntry',
    'EpisodeRef',
    'ResolvedMedia',
    'normalize_url',
    'parse_iso_date',
]
