# agents/discovery.py
from fastmcp import FastMCP
from typing import Annotated, Any, Awaitable, Callable, Dict, Optional
import structlog
from pydantic import Field

from config.strings import GLOBAL_NOT_SUPPORTED_MESSAGE
from discovery.controller import DiscoveryController
from discovery.errors import SessionNotFound
from discovery.geo import GeoLocator, ReportedPositionSource
from discovery.registry import SessionRegistry
from feeds import catalog
from models.discovery_model import (
    DiscoveryErrorResponse,
    FeedListResponse,
    SearchMode,
)
from models.entity_model import Coordinate
from utils.http_client import APIClient

logger = structlog.get_logger()

SessionId = Annotated[str, Field(description="Session id returned by open_feed")]


class DiscoveryAgent:
    """MCP tools driving location-scoped discovery feeds.

    Each ``open_feed`` call creates an independent session; the other tools
    act on one session by id and answer with its current snapshot.
    """

    def __init__(
        self,
        mcp: FastMCP,
        registry: Optional[SessionRegistry] = None,
        client: Optional[APIClient] = None,
    ):
        self.mcp = mcp
        self.registry = registry or SessionRegistry()
        self.client = client
        self.register_tools()

    def register_tools(self):
        @self.mcp.tool()
        async def list_feeds() -> Dict[str, Any]:
            """
            List the discovery feeds that can be opened with open_feed.

            Returns:
                Feed names with their radius bounds, whether they need a signed-in
                user and whether they support global (worldwide) search.
            """
            return FeedListResponse(feeds=catalog.list_feeds()).model_dump(mode="json")

        @self.mcp.tool()
        async def open_feed(
            feed: Annotated[
                str,
                Field(
                    description="Feed to open: travelers, hotels, attractions, shopping, emergency or activities"
                ),
            ],
            latitude: Annotated[
                Optional[float],
                Field(description="Device latitude, omit if the user did not share a location"),
            ] = None,
            longitude: Annotated[
                Optional[float],
                Field(description="Device longitude, omit if the user did not share a location"),
            ] = None,
            access_token: Annotated[
                str,
                Field(description="Bearer token, required for travelers and activities"),
            ] = "",
        ) -> Dict[str, Any]:
            """
            Open a discovery feed around the user's location and fetch the first page.

            If no location is shared (or it is invalid) the default location is used.

            Returns:
                A snapshot with the session_id to pass to the other feed tools, the
                current items, whether more pages exist and the session phase.
            """
            try:
                geolocator = GeoLocator(ReportedPositionSource(latitude, longitude))
                controller = catalog.create_controller(
                    feed,
                    geolocator,
                    access_token=access_token or None,
                    client=self.client,
                )
                session_id = self.registry.add(controller)
                await controller.mount()

                logger.info(
                    "Feed opened",
                    feed=controller.session.feed,
                    session_id=session_id,
                    phase=controller.phase.value,
                    results_count=len(controller.session.items),
                )
                return controller.snapshot(session_id).model_dump(mode="json")

            except Exception as e:
                logger.error("Open feed failed", feed=feed, error=str(e))
                return DiscoveryErrorResponse(error=str(e)).model_dump(mode="json")

        @self.mcp.tool()
        async def search_feed(
            session_id: SessionId,
            query: Annotated[
                str, Field(description="Search box text, e.g. 'beach' or a traveler's name")
            ] = "",
            global_search: Annotated[
                Optional[bool],
                Field(description="True for worldwide search, False for nearby, omit to keep the current mode"),
            ] = None,
            latitude: Annotated[
                Optional[float], Field(description="Search around this point instead (map click)")
            ] = None,
            longitude: Annotated[
                Optional[float], Field(description="Search around this point instead (map click)")
            ] = None,
        ) -> Dict[str, Any]:
            """
            Submit a search on an open feed. Replaces the current results.

            Nearby searches use the current radius; a global search with empty
            text is ignored.
            """

            async def action(controller: DiscoveryController):
                if global_search is None:
                    mode = None
                else:
                    mode = SearchMode.GLOBAL if global_search else SearchMode.NEARBY
                if mode == SearchMode.GLOBAL and not controller.supports_global:
                    raise ValueError(
                        GLOBAL_NOT_SUPPORTED_MESSAGE.format(feed=controller.session.feed)
                    )
                if (latitude is None) != (longitude is None):
                    raise ValueError("latitude and longitude must be given together")
                coordinate = None
                if latitude is not None:
                    coordinate = Coordinate(latitude=latitude, longitude=longitude)
                await controller.search(text=query, coordinate=coordinate, mode=mode)

            return await self._run("search_feed", session_id, action)

        @self.mcp.tool()
        async def clear_feed_search(session_id: SessionId) -> Dict[str, Any]:
            """Clear the search text and go back to unfiltered nearby results."""

            async def action(controller: DiscoveryController):
                await controller.clear_search()

            return await self._run("clear_feed_search", session_id, action)

        @self.mcp.tool()
        async def toggle_feed_mode(session_id: SessionId) -> Dict[str, Any]:
            """Switch an open feed between nearby and global search and refetch."""

            async def action(controller: DiscoveryController):
                if not controller.supports_global:
                    raise ValueError(
                        GLOBAL_NOT_SUPPORTED_MESSAGE.format(feed=controller.session.feed)
                    )
                await controller.toggle_mode()

            return await self._run("toggle_feed_mode", session_id, action)

        @self.mcp.tool()
        async def set_feed_radius(
            session_id: SessionId,
            radius_km: Annotated[float, Field(description="Search radius in kilometers", gt=0)],
        ) -> Dict[str, Any]:
            """
            Change the nearby search radius.

            Nothing is fetched: the new radius applies on the next search_feed call.
            """

            async def action(controller: DiscoveryController):
                controller.set_radius(int(round(radius_km * 1000)))

            return await self._run("set_feed_radius", session_id, action)

        @self.mcp.tool()
        async def load_more(session_id: SessionId) -> Dict[str, Any]:
            """Fetch the next page of an open feed and append it to the results."""

            async def action(controller: DiscoveryController):
                await controller.load_more()

            return await self._run("load_more", session_id, action)

        @self.mcp.tool()
        async def retry_feed(session_id: SessionId) -> Dict[str, Any]:
            """Repeat the last request of a feed that is in the error phase."""

            async def action(controller: DiscoveryController):
                await controller.retry()

            return await self._run("retry_feed", session_id, action)

        @self.mcp.tool()
        async def select_item(
            session_id: SessionId,
            entity_id: Annotated[
                Optional[str], Field(description="Item to highlight on list and map, omit to clear")
            ] = None,
        ) -> Dict[str, Any]:
            """Select (or clear) the highlighted item shared by the list and the map."""

            async def action(controller: DiscoveryController):
                if entity_id is not None and entity_id not in controller.session.cache:
                    raise ValueError(f"Item '{entity_id}' is not in the current results.")
                controller.selection.select(entity_id)

            return await self._run("select_item", session_id, action)

        @self.mcp.tool()
        async def get_feed(session_id: SessionId) -> Dict[str, Any]:
            """Return the current snapshot of an open feed without fetching."""

            async def action(controller: DiscoveryController):
                return None

            return await self._run("get_feed", session_id, action)

        @self.mcp.tool()
        async def close_feed(session_id: SessionId) -> Dict[str, Any]:
            """Close an open feed and discard its results."""
            closed = self.registry.close(session_id)
            logger.info("Feed closed", session_id=session_id, closed=closed)
            return {"success": closed, "session_id": session_id}

    async def _run(
        self,
        tool: str,
        session_id: str,
        action: Callable[[DiscoveryController], Awaitable[Any]],
    ) -> Dict[str, Any]:
        try:
            controller = self.registry.get(session_id)
            await action(controller)
            return controller.snapshot(session_id).model_dump(mode="json")

        except SessionNotFound as e:
            logger.warning("Unknown discovery session", tool=tool, session_id=session_id)
            return DiscoveryErrorResponse(error=str(e), session_id=session_id).model_dump(
                mode="json"
            )
        except Exception as e:
            logger.error("Feed tool failed", tool=tool, session_id=session_id, error=str(e))
            return DiscoveryErrorResponse(error=str(e), session_id=session_id).model_dump(
                mode="json"
            )
