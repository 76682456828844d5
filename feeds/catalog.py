from typing import Dict, List, Optional, Type

from config.strings import UNKNOWN_FEED_MESSAGE
from discovery.controller import DiscoveryController
from discovery.geo import GeoLocator
from feeds.activities import ActivityFeed
from feeds.base import FeedAdapter
from feeds.places import AttractionFeed, EmergencyFeed, HotelFeed, ShoppingFeed
from feeds.travelers import TravelerFeed
from models.discovery_model import FeedInfo
from utils.http_client import APIClient

FEEDS: Dict[str, Type[FeedAdapter]] = {
    feed.name: feed
    for feed in (
        TravelerFeed,
        HotelFeed,
        AttractionFeed,
        ShoppingFeed,
        EmergencyFeed,
        ActivityFeed,
    )
}


def list_feeds() -> List[FeedInfo]:
    return [feed.info() for feed in FEEDS.values()]


def get_feed(name: str) -> Type[FeedAdapter]:
    key = (name or "").strip().lower()
    if key not in FEEDS:
        raise ValueError(
            UNKNOWN_FEED_MESSAGE.format(feed=name, available=", ".join(FEEDS))
        )
    return FEEDS[key]


def create_controller(
    name: str,
    geolocator: Optional[GeoLocator] = None,
    access_token: Optional[str] = None,
    client: Optional[APIClient] = None,
    page_size: Optional[int] = None,
) -> DiscoveryController:
    """Wire a fresh controller to the adapter for ``name``."""
    feed_cls = get_feed(name)
    adapter = feed_cls(client=client, access_token=access_token)
    return DiscoveryController(
        adapter.search,
        geolocator,
        feed=feed_cls.name,
        radius_meters=feed_cls.default_radius_meters,
        min_radius_meters=feed_cls.min_radius_meters,
        max_radius_meters=feed_cls.max_radius_meters,
        page_size=page_size,
        supports_global=feed_cls.supports_global,
    )
