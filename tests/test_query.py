import pytest

from discovery.errors import InvalidLocalPrecondition
from discovery.query import QueryBuilder
from discovery.session import DiscoverySession
from models.discovery_model import (
    DiscoveryRequest,
    Intent,
    IntentKind,
    SearchMode,
)
from models.entity_model import Coordinate
from tests.conftest import HOME, make_page

CLICK = Coordinate(latitude=43.2965, longitude=5.3698)


@pytest.fixture
def session():
    return DiscoverySession(feed="travelers", page_size=50, radius_meters=20000)


@pytest.fixture
def builder():
    return QueryBuilder()


def test_initial_is_nearby_with_coordinate_and_radius(builder, session):
    request = builder.build(session, Intent(kind=IntentKind.INITIAL, coordinate=HOME))

    assert request.mode == SearchMode.NEARBY
    assert request.coordinate == HOME
    assert request.radius_meters == 20000
    assert request.query_text == ""
    assert request.cursor is None
    assert request.page_size == 50


def test_initial_without_coordinate_is_rejected(builder, session):
    with pytest.raises(InvalidLocalPrecondition):
        builder.build(session, Intent(kind=IntentKind.INITIAL))


def test_nearby_search_uses_session_coordinate_and_strips_text(builder, session):
    session.coordinate = HOME
    session.radius_meters = 35000

    request = builder.build(session, Intent(kind=IntentKind.SEARCH, text="  museums "))

    assert request.coordinate == HOME
    assert request.radius_meters == 35000
    assert request.query_text == "museums"


def test_map_click_coordinate_wins(builder, session):
    session.coordinate = HOME
    request = builder.build(
        session, Intent(kind=IntentKind.SEARCH, text="", coordinate=CLICK)
    )
    assert request.coordinate == CLICK


def test_global_search_drops_location(builder, session):
    session.coordinate = HOME
    request = builder.build(
        session, Intent(kind=IntentKind.SEARCH, text="beach", mode=SearchMode.GLOBAL)
    )

    assert request.mode == SearchMode.GLOBAL
    assert request.coordinate is None
    assert request.radius_meters is None
    assert request.to_params() == {"pageSize": 50, "text": "beach"}


@pytest.mark.parametrize("text", ["", "   "])
def test_global_search_needs_text(builder, session, text):
    with pytest.raises(InvalidLocalPrecondition):
        builder.build(
            session, Intent(kind=IntentKind.SEARCH, text=text, mode=SearchMode.GLOBAL)
        )


def test_toggle_to_global_allows_empty_text(builder, session):
    session.coordinate = HOME
    request = builder.build(session, Intent(kind=IntentKind.MODE_TOGGLE))
    assert request.mode == SearchMode.GLOBAL
    assert request.query_text == ""


def test_toggle_back_to_nearby_reuses_last_coordinate(builder, session):
    session.coordinate = HOME
    session.mode = SearchMode.GLOBAL
    session.query_text = "cafe"

    request = builder.build(session, Intent(kind=IntentKind.MODE_TOGGLE))

    assert request.mode == SearchMode.NEARBY
    assert request.coordinate == HOME
    assert request.query_text == "cafe"


def test_load_more_continues_active_request(builder, session):
    active = DiscoveryRequest(
        coordinate=HOME, radius_meters=20000, query_text="food", page_size=50
    )
    session.active_request = active
    session.cache.replace(make_page("1", cursor="abc"))
    # a radius change after the fetch must not leak into the continuation
    session.radius_meters = 90000

    request = builder.build(session, Intent(kind=IntentKind.LOAD_MORE))

    assert request.cursor == "abc"
    assert request.radius_meters == 20000
    assert request.query_text == "food"
    assert active.cursor is None


def test_load_more_without_cursor_is_rejected(builder, session):
    session.active_request = DiscoveryRequest(coordinate=HOME, page_size=50)
    session.cache.replace(make_page("1"))

    with pytest.raises(InvalidLocalPrecondition):
        builder.build(session, Intent(kind=IntentKind.LOAD_MORE))


def test_to_params_omits_absent_values():
    request = DiscoveryRequest(
        coordinate=HOME, radius_meters=5000, cursor="c2", page_size=10
    )
    assert request.to_params() == {
        "pageSize": 10,
        "coordinate": {"lat": 48.8566, "lng": 2.3522},
        "radiusMeters": 5000,
        "cursor": "c2",
    }
