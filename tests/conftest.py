import asyncio

import pytest

from discovery.controller import DiscoveryController
from discovery.errors import LocationUnavailable
from discovery.geo import GeoLocator
from models.discovery_model import ResultPage
from models.entity_model import Coordinate, Entity

HOME = Coordinate(latitude=48.8566, longitude=2.3522)


def make_page(*ids, cursor=None):
    return ResultPage(
        items=[Entity(id=str(i), display_name=f"Item {i}") for i in ids],
        next_cursor=cursor,
    )


class FakeSearch:
    """Stand-in for a feed's ``search``.

    Answers from a queue of ResultPage/Exception responses, or, with ``hold``
    set, parks every call on a future the test resolves itself.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []
        self.pending = []
        self.hold = False

    async def __call__(self, request):
        self.requests.append(request)
        if self.hold:
            future = asyncio.get_running_loop().create_future()
            self.pending.append(future)
            return await future
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class DeniedSource:
    async def get_current_position(self):
        raise LocationUnavailable("User denied Geolocation")


@pytest.fixture
def fake_search():
    return FakeSearch()


@pytest.fixture
def controller(fake_search):
    return DiscoveryController(
        fake_search,
        GeoLocator(default=HOME),
        feed="travelers",
        radius_meters=20000,
        min_radius_meters=5000,
        max_radius_meters=100000,
        page_size=50,
    )


# Raw backend payloads, shaped like the travel API responses
RAW_TRAVELERS = {
    "statusCode": 200,
    "success": True,
    "message": "Nearby users fetched",
    "data": {
        "users": [
            {
                "_id": "u1",
                "fullName": "Asha Rao",
                "profilePicture": "https://img.example/asha.jpg",
                "interests": ["hiking", "food"],
                "travelStyle": "backpacker",
                "currentLocation": {"type": "Point", "coordinates": [2.36, 48.86]},
                "distanceKm": "1.24",
                "isOnline": True,
            },
            {
                "_id": "u2",
                "name": "Lee",
                "currentLocation": {"type": "Point", "coordinates": [0, 0]},
            },
            {"fullName": "No id at all"},
        ],
        "pagination": {"page": 1, "limit": 50, "hasMore": True},
    },
}

RAW_HOTELS = {
    "statusCode": 200,
    "success": True,
    "data": {
        "places": [
            {
                "_id": "h1",
                "name": "Hotel Lutetia",
                "types": ["lodging", "spa", "point_of_interest", "restaurant"],
                "currentLocation": {"lat": 48.851, "lng": 2.327},
                "rating": 4.6,
                "totalRatings": 1200,
                "vicinity": "45 Bd Raspail",
                "isOpen": True,
            }
        ],
        "nextPageToken": "tok-2",
    },
}

RAW_ACTIVITIES = {
    "statusCode": 200,
    "success": True,
    "data": {
        "activities": [
            {
                "_id": "a1",
                "title": "Sunset kayak",
                "category": "Adventure",
                "location": {"type": "Point", "coordinates": [2.35, 48.85]},
                "photos": ["https://img.example/kayak.jpg"],
                "createdBy": {"name": "Marie"},
                "participants": ["u1", "u2"],
                "maxCapacity": 6,
                "price": 25,
            }
        ],
        "pagination": {"page": 2, "hasMore": False},
    },
}
