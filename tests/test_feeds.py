import httpx
import pytest

from discovery.errors import BackendError
from feeds import catalog
from feeds.activities import ActivityFeed
from feeds.places import AttractionFeed, EmergencyFeed, HotelFeed
from feeds.travelers import TravelerFeed
from models.discovery_model import DiscoveryRequest
from models.entity_model import Activity, Hotel, Traveler
from utils.http_client import APIClient
from tests.conftest import HOME, RAW_ACTIVITIES, RAW_HOTELS, RAW_TRAVELERS

BASE_URL = "http://backend.test/api/v1"


def client_returning(payload, seen, status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status_code, json=payload)

    return APIClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))


def nearby(**kwargs):
    return DiscoveryRequest(coordinate=HOME, radius_meters=20000, page_size=50, **kwargs)


@pytest.mark.asyncio
async def test_traveler_feed_params_and_normalization():
    seen = []
    feed = TravelerFeed(client_returning(RAW_TRAVELERS, seen), access_token="Bearer abc")

    page = await feed.search(nearby(query_text="hiking"))

    request = seen[0]
    assert request.url.path == "/api/v1/users/nearby"
    assert request.headers["Authorization"] == "Bearer abc"
    assert dict(request.url.params) == {
        "lat": "48.8566",
        "lng": "2.3522",
        "radius": "20000",
        "search": "hiking",
        "page": "1",
        "limit": "50",
    }

    # the item without an id is skipped
    assert [t.id for t in page.items] == ["u1", "u2"]
    asha, lee = page.items
    assert isinstance(asha, Traveler)
    assert asha.display_name == "Asha Rao"
    assert asha.distance_km == 1.2
    assert asha.tags == ["hiking", "food", "backpacker"]
    assert asha.coordinate.latitude == 48.86
    assert asha.is_online is True
    assert lee.display_name == "Lee"
    assert lee.coordinate is None
    assert lee.distance_km is None

    assert page.next_cursor == "2"


@pytest.mark.asyncio
async def test_paged_cursor_is_sent_back_as_page():
    seen = []
    feed = TravelerFeed(client_returning(RAW_TRAVELERS, seen))

    await feed.search(nearby(cursor="2"))
    assert request_param(seen[0], "page") == "2"


def request_param(request, name):
    return request.url.params.get(name)


@pytest.mark.asyncio
async def test_foreign_cursor_is_rejected():
    feed = TravelerFeed(client_returning(RAW_TRAVELERS, []))
    with pytest.raises(ValueError):
        await feed.search(nearby(cursor="tok-from-elsewhere"))


@pytest.mark.asyncio
async def test_global_request_sends_no_location():
    seen = []
    feed = TravelerFeed(client_returning(RAW_TRAVELERS, seen))

    page = await feed.search(DiscoveryRequest(query_text="asha", page_size=20))

    params = dict(seen[0].url.params)
    assert "lat" not in params
    assert "radius" not in params
    assert params["search"] == "asha"
    # distance is meaningless worldwide
    assert all(t.distance_km is None for t in page.items)


@pytest.mark.asyncio
async def test_hotel_feed_uses_page_tokens():
    seen = []
    feed = HotelFeed(client_returning(RAW_HOTELS, seen))

    page = await feed.search(nearby(cursor="tok-1"))

    assert seen[0].url.path == "/api/v1/places/hotels"
    assert request_param(seen[0], "pageToken") == "tok-1"
    assert request_param(seen[0], "page") is None
    assert page.next_cursor == "tok-2"

    hotel = page.items[0]
    assert isinstance(hotel, Hotel)
    assert hotel.category == "Hotel"
    assert hotel.amenities == ["Spa", "Restaurant"]
    assert hotel.rating == 4.6
    # computed locally when the backend sends no distance
    assert hotel.distance_km == pytest.approx(1.9, abs=0.2)


@pytest.mark.asyncio
async def test_place_categories():
    payload = {
        "success": True,
        "data": {
            "places": [
                {"_id": "p1", "name": "Louvre", "types": ["museum", "point_of_interest"]},
                {"_id": "p2", "name": "Old gate", "types": ["establishment"], "isOpen": False},
            ]
        },
    }
    page = await AttractionFeed(client_returning(payload, [])).search(nearby())

    louvre, gate = page.items
    assert louvre.category == "Culture"
    assert louvre.open_time == "Hours Vary"
    assert gate.category == "Historical"
    assert gate.open_time == "Currently Closed"
    assert page.next_cursor is None

    payload["data"]["places"] = [{"_id": "e1", "name": "St Mary", "types": ["hospital"]}]
    page = await EmergencyFeed(client_returning(payload, [])).search(nearby())
    assert page.items[0].category == "Hospital"


@pytest.mark.asyncio
async def test_activity_feed_normalization():
    page = await ActivityFeed(client_returning(RAW_ACTIVITIES, [])).search(nearby())

    activity = page.items[0]
    assert isinstance(activity, Activity)
    assert activity.display_name == "Sunset kayak"
    assert activity.host_name == "Marie"
    assert activity.image == "https://img.example/kayak.jpg"
    assert activity.participants_count == 2
    assert activity.spots_left == 4
    assert page.next_cursor is None


@pytest.mark.asyncio
async def test_failure_envelope_raises_backend_error():
    payload = {"statusCode": 401, "success": False, "message": "Token expired", "data": None}
    feed = TravelerFeed(client_returning(payload, []))

    with pytest.raises(BackendError) as exc_info:
        await feed.search(nearby())
    assert str(exc_info.value) == "Token expired"
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_http_error_raises_backend_error():
    feed = HotelFeed(client_returning({"message": "Places quota exceeded"}, [], status_code=503))

    with pytest.raises(BackendError) as exc_info:
        await feed.search(nearby())
    assert exc_info.value.status_code == 503
    assert "quota" in str(exc_info.value)


def test_catalog():
    names = [info.name for info in catalog.list_feeds()]
    assert names == ["travelers", "hotels", "attractions", "shopping", "emergency", "activities"]

    assert catalog.get_feed(" Hotels ") is HotelFeed
    with pytest.raises(ValueError, match="Unknown feed"):
        catalog.get_feed("restaurants")


def test_create_controller_uses_feed_bounds():
    controller = catalog.create_controller("activities", page_size=10)

    assert controller.session.feed == "activities"
    assert controller.session.radius_meters == 50000
    assert controller.session.page_size == 10
    assert controller.max_radius_meters == 200000
    assert controller.supports_global is True
    assert catalog.create_controller("shopping").supports_global is False
