"""
End-to-end runs of the harvest flow against fake collaborators.

Runs inside a temporary Prefect backend; no browser, network or ffmpeg.
"""
import pytest
from mutagen.id3 import ID3
from prefect.testing.utilities import prefect_test_harness

import segment_harvester.flows.main as main_flow
from segment_harvester.acquisition import artifact_paths
from segment_harvester.catalog import parse_yaml
from segment_harvester.flows.episode import process_episode
from segment_harvester.flows.main import harvest
from segment_harvester.models.episode import EpisodeRef
from segment_harvester.renderer import PageRenderer
from segment_harvester.tasks.discover import discover_episodes
from segment_harvester.tasks.resolve import episode_metadata, resolve_media
from segment_harvester.testing import LISTING_URL, FakeFetcher, FakeRenderer, FakeTranscoder, load_page
from segment_harvester.transcoder import Transcoder

EP7_URL = "https://www.wtap.com/2024/01/15/mental-health-mondays-ep-7/"
EP7_REPOST_URL = "https://www.wtap.com/2024/02/01/mental-health-mondays-ep-7-repost/"
EP6_URL = "https://www.wtap.com/2024/01/08/mental-health-mondays-ep-6/"
HOLIDAY_URL = "https://www.wtap.com/2023/12/18/mhm-holiday-special/"
EP7_MEDIA = "https://d3.example.com/mp4/ep7_720.mp4"
EP6_STREAM = "https://d3.example.com/hls/ep6/index.m3u8"


@pytest.fixture(autouse=True, scope="module")
def prefect_backend():
    with prefect_test_harness():
        yield


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer({LISTING_URL: load_page("listing.html")})


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher(
        pages={
            EP7_URL: load_page("episode_fusion.html"),
            EP6_URL: load_page("episode_data_attr.html"),
            # No media anywhere, even after rendering
            HOLIDAY_URL: load_page("episode_empty.html"),
        },
        media={EP7_MEDIA: b"\x00\x00\x00\x18ftypmp42" + b"\x01" * 512},
    )


def read_catalog(config):
    return parse_yaml(config.catalog_path.read_text(encoding="utf-8"))


class TestHarvest:

    def test_first_run(self, config, renderer, fetcher, transcoder):
        added = harvest(config, renderer, transcoder, fetcher)

        assert sorted(added) == ["audio/Mental-Health-Mondays-Ep6.mp3", "audio/Mental-Health-Mondays-Ep7.mp3"]
        assert fetcher.media_requests == [EP7_MEDIA]
        assert [call[0] for call in transcoder.calls] == [
            str(config.data_path / "Mental-Health-Mondays-Ep7.mp4"),
            EP6_STREAM,
        ]
        assert not (config.data_path / "Mental-Health-Mondays-Ep7.mp4").exists()

        doc = read_catalog(config)
        by_file = {e.file: e for e in doc.entries}
        assert by_file["audio/Mental-Health-Mondays-Ep7.mp3"].title == "Mental Health Mondays, Ep. 7: Winter blues"
        assert by_file["audio/Mental-Health-Mondays-Ep6.mp3"].title == "Mental Health Mondays, Ep. 6"
        assert sorted(e.ordinal for e in doc.entries) == [1, 2]

    def test_second_run_is_a_noop(self, config, renderer, fetcher, transcoder):
        harvest(config, renderer, transcoder, fetcher)
        first_catalog = config.catalog_path.read_text(encoding="utf-8")
        media_requests = list(fetcher.media_requests)
        transcodes = len(transcoder.calls)

        added = harvest(config, renderer, transcoder, fetcher)

        assert added == []
        assert fetcher.media_requests == media_requests
        assert len(transcoder.calls) == transcodes
        assert config.catalog_path.read_text(encoding="utf-8") == first_catalog
        # Finished episodes are not even fetched again
        assert fetcher.page_requests.count(EP7_URL) == 1
        assert fetcher.page_requests.count(EP6_URL) == 1

    def test_failed_download_retried_next_run(self, config, renderer, transcoder):
        broken = FakeFetcher(
            pages={EP7_URL: load_page("episode_fusion.html")},
            media={EP7_MEDIA: b"\x01" * 512},
            broken={EP7_MEDIA},
        )
        assert harvest(config, renderer, transcoder, broken) == []
        assert not (config.data_path / "Mental-Health-Mondays-Ep7.mp4").exists()
        # An empty catalog is still written on the first run
        assert read_catalog(config).entries == []

        broken.broken.clear()
        assert harvest(config, renderer, transcoder, broken) == ["audio/Mental-Health-Mondays-Ep7.mp3"]
        assert read_catalog(config).files == {"audio/Mental-Health-Mondays-Ep7.mp3"}

    def test_transcode_failure_resumes_from_video(self, config, renderer, fetcher):
        failing = FakeTranscoder(fail=True)
        assert harvest(config, renderer, failing, fetcher) == []
        assert (config.data_path / "Mental-Health-Mondays-Ep7.mp4").exists()

        working = FakeTranscoder()
        added = harvest(config, renderer, working, fetcher)

        assert "audio/Mental-Health-Mondays-Ep7.mp3" in added
        assert fetcher.media_requests == [EP7_MEDIA]

    def test_repost_with_same_file_name_skipped(self, config, fetcher, transcoder):
        """A second card that maps onto an episode finished earlier in the run is left alone."""
        listing = f"""<html><body><div id="resultdata">
          <div class="result-card"><a href="{EP7_URL}">Mental Health Mondays, Ep. 7</a></div>
          <div class="result-card"><a href="{EP7_REPOST_URL}">Mental Health Mondays, Ep. 7</a></div>
        </div></body></html>"""
        renderer = FakeRenderer({LISTING_URL: listing})

        added = harvest(config, renderer, transcoder, fetcher)

        assert added == ["audio/Mental-Health-Mondays-Ep7.mp3"]
        assert EP7_REPOST_URL not in fetcher.page_requests
        assert len(read_catalog(config).entries) == 1
        tags = ID3(config.audio_dir / "Mental-Health-Mondays-Ep7.mp3", translate=False)
        assert str(tags['TIT2']) == "Mental Health Mondays, Ep. 7: Winter blues"

    def test_own_fetcher_closed(self, config, renderer, fetcher, transcoder, monkeypatch):
        monkeypatch.setattr(main_flow, "PageFetcher", lambda: fetcher)
        harvest(config, renderer, transcoder)
        assert fetcher.closed

    def test_own_fetcher_closed_when_run_fails(self, config, fetcher, transcoder, monkeypatch):
        monkeypatch.setattr(main_flow, "PageFetcher", lambda: fetcher)
        with pytest.raises(TimeoutError):
            harvest(config, FakeRenderer(fail=True), transcoder)
        assert fetcher.closed

    def test_caller_fetcher_left_open(self, config, renderer, fetcher, transcoder):
        harvest(config, renderer, transcoder, fetcher)
        assert not fetcher.closed


class TestInterfaces:

    def test_fakes_satisfy_protocols(self):
        assert isinstance(FakeRenderer(), PageRenderer)
        assert isinstance(FakeTranscoder(), Transcoder)

    def test_flow_parameter_schema(self):
        assert set(harvest.parameters.properties) == {"config", "renderer", "transcoder", "fetcher"}


class TestTasks:

    def test_discover_episodes(self, renderer):
        episodes = discover_episodes.fn(renderer, LISTING_URL)
        assert [e.page_url for e in episodes] == [EP7_URL, EP6_URL, HOLIDAY_URL]

    def test_listing_failure_propagates(self):
        with pytest.raises(TimeoutError):
            discover_episodes.fn(FakeRenderer(fail=True), LISTING_URL)

    def test_resolve_media_task(self):
        media = resolve_media.fn(EpisodeRef("Ep. 6", EP6_URL), load_page("episode_data_attr.html"))
        assert media.media_url == EP6_STREAM
        assert media.is_stream

    def test_episode_metadata_falls_back_to_listing_title(self, fetcher):
        episode = EpisodeRef("Mental Health Mondays, Ep. 6", EP6_URL)
        meta = episode_metadata.fn(episode, fetcher, load_page("episode_data_attr.html"))
        assert meta.title == "Mental Health Mondays, Ep. 6"
        assert fetcher.page_requests == []


class TestProcessEpisode:

    def test_uncatalogued_audio_is_recovered(self, config, renderer, fetcher, transcoder):
        episode = EpisodeRef(title="Mental Health Mondays, Ep. 7", page_url=EP7_URL)
        artifact = artifact_paths(config, "Mental-Health-Mondays-Ep7")
        artifact.audio_path.parent.mkdir(parents=True)
        artifact.audio_path.write_bytes(b"\xff\xfb\x90\x00" + b"\x00" * 256)

        entry = process_episode(episode, config, set(), fetcher, renderer, transcoder)

        assert entry.file == "audio/Mental-Health-Mondays-Ep7.mp3"
        assert entry.publish_date == "2024-01-15T17:30:00+00:00"
        assert transcoder.calls == []
        assert fetcher.media_requests == []

    def test_catalogued_audio_skipped(self, config, renderer, fetcher, transcoder):
        episode = EpisodeRef(title="Mental Health Mondays, Ep. 7", page_url=EP7_URL)
        artifact = artifact_paths(config, "Mental-Health-Mondays-Ep7")
        artifact.audio_path.parent.mkdir(parents=True)
        artifact.audio_path.write_bytes(b"ID3")

        entry = process_episode(episode, config, {"audio/Mental-Health-Mondays-Ep7.mp3"},
                                fetcher, renderer, transcoder)

        assert entry is None
        assert fetcher.page_requests == []

    def test_unfetchable_page_skipped(self, config, renderer, transcoder):
        episode = EpisodeRef(title="Mental Health Mondays, Ep. 7", page_url=EP7_URL)
        assert process_episode(episode, config, set(), FakeFetcher(), renderer, transcoder) is None
