"""Shared fixtures for the harvester tests."""
import pytest

from segment_harvester.config import HarvestConfig
from segment_harvester.testing import LISTING_URL, FakeTranscoder


@pytest.fixture
def config(tmp_path) -> HarvestConfig:
    return HarvestConfig(
        data_dir=str(tmp_path / "data"),
        audio_subdir="audio",
        catalog_filename="episodes.yaml",
        feed_filename="feed.xml",
        catalog_format="yaml",
        template_path="",
        base_url="",
        listing_url=LISTING_URL,
        season=1,
        feed_title="",
        feed_author="",
        feed_description="",
        feed_language="",
        feed_copyright="",
        feed_image="",
    )


@pytest.fixture
def transcoder() -> FakeTranscoder:
    return FakeTranscoder()
