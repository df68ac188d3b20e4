import pytest

from list_queries import (
    CATEGORIES,
    CATEGORY_TABLE,
    ORDER_COLUMNS,
    SORT_MODES,
    QueryDescriptor,
    progress_descriptor,
    resolve_query_descriptor,
    sort_options,
)


def test_popular_default_orders_by_play_count_desc():
    d = resolve_query_descriptor("popular", "default")
    assert d.order_column == "play_count"
    assert d.ascending is False
    assert d.limit == 100


def test_popular_title_sort_is_alphabetical_ascending():
    d = resolve_query_descriptor("popular", "title")
    assert d.order_column == "title_fa"
    assert d.ascending is True


def test_every_offered_pair_resolves_and_only_title_is_ascending():
    for category in CATEGORIES:
        for mode in sort_options(category):
            d = resolve_query_descriptor(category, mode)
            assert d.order_column in ORDER_COLUMNS
            assert d.ascending is (mode == "title")


def test_every_pair_resolves_unless_category_has_fixed_order():
    for category in CATEGORIES:
        for mode in SORT_MODES:
            if mode != "default" and sort_options(category) == ("default",):
                with pytest.raises(ValueError):
                    resolve_query_descriptor(category, mode)
            else:
                assert isinstance(resolve_query_descriptor(category, mode), QueryDescriptor)


def test_recency_categories_reject_non_default_sort():
    for category in ("recently_played", "continue_listening"):
        assert resolve_query_descriptor(category).order == ("updated_at", False)
        with pytest.raises(ValueError):
            resolve_query_descriptor(category, "title")


def test_non_default_sort_overrides_default_order():
    assert resolve_query_descriptor("new_releases", "rating").order_column == "avg_rating"
    assert resolve_query_descriptor("featured", "newest").order_column == "created_at"
    assert resolve_query_descriptor("music_new_releases", "popular").order_column == "play_count"


def test_defaults_per_category():
    assert resolve_query_descriptor("new_releases").order_column == "created_at"
    assert resolve_query_descriptor("music_popular").order_column == "play_count"
    assert resolve_query_descriptor("podcasts").order == ("created_at", False)


def test_filters_carry_approval_and_content_flags():
    d = resolve_query_descriptor("featured", "default")
    assert ("status", "approved") in d.filters
    assert ("is_music", False) in d.filters
    assert ("is_featured", True) in d.filters
    assert d.filter_triples()[0] == ("status", "eq", "approved")

    music = resolve_query_descriptor("music_new_releases")
    assert ("is_music", True) in music.filters

    podcasts = resolve_query_descriptor("podcasts")
    assert ("is_podcast", True) in podcasts.filters


def test_recency_categories_keep_recency_order_and_progress_cap():
    for category in ("recently_played", "continue_listening"):
        d = resolve_query_descriptor(category, "default")
        assert d.order == ("updated_at", False)
        assert d.limit == 50
        assert sort_options(category) == ("default",)


def test_unknown_category_or_sort_mode_is_rejected():
    with pytest.raises(ValueError):
        resolve_query_descriptor("charts", "default")
    with pytest.raises(ValueError):
        resolve_query_descriptor("popular", "shuffle")


def test_sort_menu_offerings_match_category():
    assert "newest" not in sort_options("new_releases")
    assert "popular" not in sort_options("popular")
    assert "newest" in sort_options("featured")
    assert sort_options("music_popular") == ("default", "newest", "rating", "title")


def test_progress_descriptor_shape():
    d = progress_descriptor("user-1")
    assert d.table == "listening_progress"
    assert d.order == ("updated_at", False)
    assert d.limit == 50
    assert d.filter_triples() == [("user_id", "eq", "user-1")]
    assert progress_descriptor("user-1", limit=500).limit == 50


def test_descriptor_equality_and_invalid_column():
    assert resolve_query_descriptor("popular") == resolve_query_descriptor("popular", "default")
    assert resolve_query_descriptor("popular") != resolve_query_descriptor("popular", "rating")
    with pytest.raises(ValueError):
        QueryDescriptor("audiobooks", "price_toman", False)


def test_category_table_is_complete():
    required = {"order", "filters", "select", "optional_column", "reconciled", "music", "sorts"}
    for category, entry in CATEGORY_TABLE.items():
        assert required <= set(entry), category
        assert entry["sorts"][0] == "default"


def test_list_limit_can_be_lowered_but_not_raised():
    assert resolve_query_descriptor("popular", limit=20).limit == 20
    assert resolve_query_descriptor("popular", limit=500).limit == 100
    assert resolve_query_descriptor("recently_played", limit=20).limit == 50
