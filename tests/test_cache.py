from discovery.cache import PageCache
from models.discovery_model import ResultPage
from models.entity_model import Entity
from tests.conftest import make_page


def ids(cache):
    return [e.id for e in cache.items]


def test_replace_keeps_server_order_and_cursor():
    cache = PageCache()
    count = cache.replace(make_page("c", "a", "b", cursor="next"))

    assert count == 3
    assert ids(cache) == ["c", "a", "b"]
    assert cache.cursor == "next"
    assert cache.has_more()


def test_append_skips_duplicates_first_occurrence_wins():
    cache = PageCache()
    cache.replace(
        ResultPage(items=[Entity(id="1", display_name="first")], next_cursor="p2")
    )
    added = cache.append(
        ResultPage(
            items=[
                Entity(id="2"),
                Entity(id="1", display_name="second"),
                Entity(id="3"),
            ]
        )
    )

    assert added == 2
    assert ids(cache) == ["1", "2", "3"]
    assert cache.items[0].display_name == "first"
    assert not cache.has_more()


def test_duplicates_within_one_page_are_dropped():
    cache = PageCache()
    assert cache.replace(make_page("x", "y", "x")) == 2
    assert ids(cache) == ["x", "y"]


def test_replace_discards_previous_items():
    cache = PageCache()
    cache.replace(make_page("1", "2", cursor="c"))
    cache.replace(make_page("2", "9"))

    assert ids(cache) == ["2", "9"]
    assert "1" not in cache
    assert cache.cursor is None


def test_invalidate_cursor_keeps_items():
    cache = PageCache()
    cache.replace(make_page("1", "2", cursor="c"))
    cache.invalidate_cursor()

    assert len(cache) == 2
    assert not cache.has_more()


def test_items_is_a_copy():
    cache = PageCache()
    cache.replace(make_page("1"))
    cache.items.clear()
    assert len(cache) == 1
