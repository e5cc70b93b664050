"""pytest tests for episode page metadata extraction."""
from datetime import datetime, timezone

from segment_harvester.metadata import extract_meta, fetch_meta
from segment_harvester.models.episode import ArticleMeta, parse_iso_date
from segment_harvester.testing import FakeFetcher, load_page

PAGE_URL = "https://www.wtap.com/2024/01/15/mental-health-mondays-ep-7/"


class TestExtractMeta:

    def test_open_graph(self):
        meta = extract_meta(load_page("episode_fusion.html"))

        assert meta.title == "Mental Health Mondays, Ep. 7: Winter blues"
        assert meta.description == "A counselor talks about seasonal depression."
        assert meta.publish_date == "2024-01-15T17:30:00Z"
        assert meta.published() == datetime(2024, 1, 15, 17, 30, tzinfo=timezone.utc)

    def test_json_ld(self):
        html = """<html><head><script type="application/ld+json">
        {"@context": "https://schema.org", "@graph": [
            {"@type": "Organization", "name": "WTAP"},
            {"@type": "NewsArticle", "headline": "Mental Health Mondays, Ep. 3",
             "description": "Talking to kids about anxiety.", "datePublished": "2023-11-06T12:00:00-05:00"}
        ]}</script></head><body></body></html>"""
        meta = extract_meta(html)

        assert meta.title == "Mental Health Mondays, Ep. 3"
        assert meta.description == "Talking to kids about anxiety."
        assert meta.publish_date == "2023-11-06T12:00:00-05:00"

    def test_fusion_fields(self):
        html = ('<script>Fusion.globalContent={"headlines":{"basic":"Mental Health Mondays, Ep. 2"},'
                '"subheadlines":{"basic":"Sleep and mood"},"display_date":"2023-10-30T16:00:00Z"};</script>')
        meta = extract_meta(html)

        assert meta.title == "Mental Health Mondays, Ep. 2"
        assert meta.description == "Sleep and mood"
        assert meta.publish_date == "2023-10-30T16:00:00Z"

    def test_title_tag_last(self):
        meta = extract_meta(load_page("episode_empty.html"))

        assert meta.title == "Mental Health Mondays"
        assert meta.description is None
        assert meta.publish_date is None

    def test_empty_and_broken_markup(self):
        assert extract_meta("") == ArticleMeta()
        meta = extract_meta('<script type="application/ld+json">{not json</script>')
        assert meta.title is None


class TestFetchMeta:

    def test_fetches_page(self):
        fetcher = FakeFetcher(pages={PAGE_URL: load_page("episode_fusion.html")})
        meta = fetch_meta(PAGE_URL, fetcher)

        assert meta.title == "Mental Health Mondays, Ep. 7: Winter blues"
        assert fetcher.page_requests == [PAGE_URL]

    def test_fetch_failure_gives_empty_meta(self):
        assert fetch_meta(PAGE_URL, FakeFetcher()) == ArticleMeta()


class TestParseIsoDate:

    def test_variants(self):
        assert parse_iso_date("2024-01-15T17:30:00Z").tzinfo is not None
        assert parse_iso_date("2024-01-15").year == 2024
        assert parse_iso_date("last Monday") is None
        assert parse_iso_date(None) is None
