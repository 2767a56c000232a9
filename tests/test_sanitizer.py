"""Unit tests for search body sanitizing."""

import copy

from creatorgate.core.sanitizer import DEFAULT_SORT, sanitize, should_relax
from creatorgate.platforms import Platform


def youtube_body() -> dict:
    return {
        "filter": {
            "influencer": {
                "followers": {"min": 10000},
                "lastposted": 10,
                "age": {"min": 18, "max": 35},
                "views": {"min": 1000},
                "filterOperations": [{"operator": "and", "filter": "views"}],
            },
            "audience": {
                "age": [{"id": "18-24", "weight": 0.3}],
                "ageRange": {"min": "18", "max": "24"},
                "or": [{"location": 1}],
            },
        },
    }


class TestYoutubeSanitizer:
    """Test corrections applied to youtube search bodies."""

    def test_defaults_added(self):
        body = sanitize(Platform.YOUTUBE, {})
        assert body["page"] == 0
        assert body["sort"] == DEFAULT_SORT

    def test_existing_page_and_sort_kept(self):
        sort = {"field": "engagements", "direction": "asc"}
        body = sanitize(Platform.YOUTUBE, {"page": 3, "sort": sort})
        assert body["page"] == 3
        assert body["sort"] == sort

    def test_lastposted_floor(self):
        body = sanitize(Platform.YOUTUBE, youtube_body())
        assert body["filter"]["influencer"]["lastposted"] == 30

    def test_lastposted_above_floor_kept(self):
        body = sanitize(Platform.YOUTUBE, {"filter": {"influencer": {"lastposted": 90}}})
        assert body["filter"]["influencer"]["lastposted"] == 90

    def test_lastposted_garbage_removed(self):
        body = sanitize(Platform.YOUTUBE, {"filter": {"influencer": {"lastposted": "recent"}}})
        assert "lastposted" not in body["filter"]["influencer"]

    def test_valid_age_bracket_kept(self):
        body = sanitize(Platform.YOUTUBE, youtube_body())
        assert body["filter"]["influencer"]["age"] == {"min": 18, "max": 35}

    def test_invalid_age_bracket_dropped(self):
        body = sanitize(Platform.YOUTUBE, {"filter": {"influencer": {"age": {"min": 21, "max": 35}}}})
        assert "age" not in body["filter"]["influencer"]

    def test_audience_age_range_wins(self):
        body = sanitize(Platform.YOUTUBE, youtube_body())
        audience = body["filter"]["audience"]
        assert "age" not in audience
        assert audience["ageRange"] == {"min": "18", "max": "24"}

    def test_composite_operators_stripped(self):
        body = sanitize(Platform.YOUTUBE, youtube_body())
        assert "filterOperations" not in body["filter"]["influencer"]
        assert "or" not in body["filter"]["audience"]

    def test_input_untouched(self):
        original = youtube_body()
        snapshot = copy.deepcopy(original)
        sanitize(Platform.YOUTUBE, original)
        sanitize(Platform.YOUTUBE, original, relaxed=True)
        assert original == snapshot

    def test_relaxed_drops_narrowing_filters(self):
        body = sanitize(
            Platform.YOUTUBE,
            {**youtube_body(), "sort": {"field": "engagements", "direction": "asc"}},
            relaxed=True,
        )
        influencer = body["filter"]["influencer"]
        assert "audience" not in body["filter"]
        assert "views" not in influencer
        assert "lastposted" not in influencer
        assert influencer["followers"] == {"min": 10000}
        assert body["sort"] == DEFAULT_SORT

    def test_idempotent(self):
        once = sanitize(Platform.YOUTUBE, youtube_body())
        assert sanitize(Platform.YOUTUBE, once) == once


class TestPassthroughSanitizer:
    def test_only_page_default(self):
        body = sanitize(Platform.INSTAGRAM, {"filter": {"influencer": {"lastposted": 10}}})
        assert body["page"] == 0
        assert "sort" not in body
        assert body["filter"]["influencer"]["lastposted"] == 10

    def test_none_body(self):
        assert sanitize(Platform.TIKTOK, None) == {"page": 0}


class TestShouldRelax:
    def test_only_youtube(self):
        assert should_relax(Platform.YOUTUBE) is True
        assert should_relax(Platform.INSTAGRAM) is False
        assert should_relax(Platform.TIKTOK) is False
