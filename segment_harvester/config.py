"""Run configuration for the harvester."""
from dataclasses import dataclass, fields
from pathlib import Path

from segment_harvester import constants

CATALOG_FORMATS = ('yaml', 'rss', 'both')

# Config field -> channel key in the catalog document
FEED_OVERRIDES = {
    'feed_title': 'title',
    'feed_author': 'author',
    'feed_description': 'description',
    'feed_language': 'language',
    'feed_copyright': 'copyright',
    'feed_image': 'image',
}


@dataclass
class HarvestConfig:
    """Everything the pipeline reads from its environment, passed in explicitly."""
    data_dir: str = constants.DATA_DIR
    audio_subdir: str = constants.AUDIO_SUBDIR
    catalog_filename: str = constants.CATALOG_FILENAME
    feed_filename: str = constants.FEED_FILENAME
    catalog_format: str = constants.CATALOG_FORMAT
    template_path: str = constants.TEMPLATE_PATH
    base_url: str = constants.BASE_URL
    listing_url: str = constants.LISTING_URL
    season: int = constants.SEASON
    feed_title: str = constants.FEED_TITLE
    feed_author: str = constants.FEED_AUTHOR
    feed_description: str = constants.FEED_DESCRIPTION
    feed_language: str = constants.FEED_LANGUAGE
    feed_copyright: str = constants.FEED_COPYRIGHT
    feed_image: str = constants.FEED_IMAGE

    def __post_init__(self):
        if self.catalog_format not in CATALOG_FORMATS:
            raise ValueError(f"catalog_format must be one of {CATALOG_FORMATS}, got {self.catalog_format!r}")

    @classmethod
    def from_env(cls, **overrides) -> 'HarvestConfig':
        """
        Build a config from environment defaults, letting non-None overrides win.

        Defaults come from constants.py, which reads the environment at import
        time, so load any .env file before importing this package.
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for name, value in overrides.items():
            if name not in known:
                raise TypeError(f"Unknown config field: {name}")
            if value is not None:
                values[name] = value
        return cls(**values)

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    @property
    def audio_dir(self) -> Path:
        if self.audio_subdir:
            return self.data_path / self.audio_subdir
        return self.data_path

    @property
    def catalog_path(self) -> Path:
        return self.data_path / self.catalog_filename

    @property
    def feed_path(self) -> Path:
        return self.data_path / self.feed_filename

    @property
    def catalog_source(self) -> Path:
        """The persisted document merges start from."""
        return self.catalog_path if self.writes_yaml else self.feed_path

    @property
    def writes_yaml(self) -> bool:
        return self.catalog_format in ('yaml', 'both')

    @property
    def writes_rss(self) -> bool:
        return self.catalog_format in ('rss', 'both')

    def feed_overrides(self) -> dict:
        """Channel metadata set explicitly in the config."""
        return {key: getattr(self, name) for name, key in FEED_OVERRIDES.items() if getattr(self, name)}
