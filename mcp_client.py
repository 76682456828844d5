#!/usr/bin/env python3
"""
Interactive MCP client for the Travel Discovery server.

Starts the server over stdio and lets you browse a discovery feed: search,
switch between nearby and global mode, change the radius, page through
results and select items.
"""

import asyncio
import json
import logging
import os
import shlex
import shutil
import sys
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import inquirer
import structlog
from dotenv import load_dotenv
from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from rich.console import Console
from rich.table import Table
from rich_pyfiglet import RichFiglet

console = Console()

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="%H:%M:%S"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

load_dotenv(dotenv_path=".env.dev")


class MCPClientConfig:
    """How to start the discovery server and how long to wait on it"""

    def __init__(self):
        command = os.getenv("MCP_SERVER_COMMAND")
        parts = shlex.split(command) if command else [sys.executable, "app.py", "--stdio"]
        self.mcp_server_command = parts[0]
        self.server_args = parts[1:]

        # forwarded to open_feed for the travelers and activities feeds
        self.access_token = os.getenv("TRAVEL_ACCESS_TOKEN", "")
        self.connection_timeout = float(os.getenv("MCP_CONNECTION_TIMEOUT", "10"))
        self.tool_timeout = float(os.getenv("MCP_TOOL_TIMEOUT", "30"))

    @property
    def server_script(self) -> Optional[Path]:
        scripts = [a for a in self.server_args if a.endswith(".py")]
        return Path(scripts[0]) if scripts else None


class MCPClient:
    """Stdio connection to a discovery server subprocess"""

    def __init__(self, config: MCPClientConfig):
        self.config = config
        self.session: Optional[ClientSession] = None
        self.available_tools: List[Any] = []
        self._stack = AsyncExitStack()

    async def __aenter__(self):
        if not await self.connect():
            raise ConnectionError("Could not start the discovery server")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def connect(self) -> bool:
        script = self.config.server_script
        if script is not None and not script.exists():
            logger.error("Server script not found", script=str(script))
            return False

        params = StdioServerParameters(
            command=self.config.mcp_server_command,
            args=self.config.server_args,
            env=dict(os.environ),
        )
        logger.info(
            "Starting discovery server",
            command=self.config.mcp_server_command,
            args=self.config.server_args,
        )

        timeout = self.config.connection_timeout
        try:
            read, write = await self._stack.enter_async_context(stdio_client(params))
            self.session = await self._stack.enter_async_context(ClientSession(read, write))
            await asyncio.wait_for(self.session.initialize(), timeout=timeout)
            listed = await asyncio.wait_for(self.session.list_tools(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error("Discovery server did not answer in time", timeout=timeout)
            await self.disconnect()
            return False
        except Exception as e:
            logger.error("Could not start discovery server", error=str(e))
            await self.disconnect()
            return False

        self.available_tools = listed.tools
        logger.info("Connected to discovery server", tools_count=len(self.available_tools))
        return True

    async def disconnect(self):
        try:
            await self._stack.aclose()
        except Exception as e:
            logger.error("Error while stopping discovery server", error=str(e))
        finally:
            self.session = None
            self._stack = AsyncExitStack()

    async def call_tool(self, tool_name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Call a feed tool and return its JSON payload"""
        if not self.session:
            raise RuntimeError("Not connected to the discovery server")
        try:
            result = await asyncio.wait_for(
                self.session.call_tool(tool_name, arguments),
                timeout=self.config.tool_timeout,
            )
        except asyncio.TimeoutError:
            logger.error("Feed tool timed out", tool=tool_name)
            return {"success": False, "error": f"{tool_name} timed out"}
        except Exception as e:
            logger.error("Feed tool failed", tool=tool_name, error=str(e))
            return {"success": False, "error": str(e)}

        structured = getattr(result, "structuredContent", None)
        if isinstance(structured, dict):
            return structured
        # older servers only send text content
        for content in result.content or []:
            text = getattr(content, "text", None)
            if not text:
                continue
            try:
                return json.loads(text)
            except json.JSONDecodeError:
                return {"success": not result.isError, "error": text}
        return {"success": False, "error": "Empty tool response"}


class DiscoveryCLI:
    """Interactive explorer for one discovery feed at a time"""

    ACTIONS = [
        ("🔍 Search", "search"),
        ("🌍 Toggle nearby / global", "toggle"),
        ("📏 Change radius", "radius"),
        ("➕ Load more", "more"),
        ("🧹 Clear search", "clear"),
        ("🔁 Retry", "retry"),
        ("📍 Select item", "select"),
        ("🗂  Open another feed", "open"),
        ("❌ Exit", "exit"),
    ]

    def __init__(self, config: Optional[MCPClientConfig] = None):
        self.config = config or MCPClientConfig()
        self.client: Optional[MCPClient] = None
        self.snapshot: Dict[str, Any] = {}

    @property
    def session_id(self) -> Optional[str]:
        return self.snapshot.get("session_id")

    def display_banner(self):
        rich_fig = RichFiglet(
            "Travel Discovery",
            font="ansi_shadow",
            colors=["#f97316", "magenta1", "blue3"],
        )
        console.print(rich_fig)
        click.echo("Version 1.0.0".center(80))
        click.echo("=" * 80)
        click.echo("Browse travelers, places and activities around you".center(80))
        click.echo("=" * 80)

    async def interactive_mode(self):
        self.display_banner()

        try:
            click.echo("🔄 Connecting to MCP server...")
            async with MCPClient(self.config) as client:
                self.client = client
                click.echo("✅ Connected successfully!")

                if not await self.open_feed_flow():
                    return

                while True:
                    try:
                        choice = inquirer.prompt(
                            [
                                inquirer.List(
                                    "action",
                                    message="What would you like to do?",
                                    choices=self.ACTIONS,
                                )
                            ]
                        )
                        if not choice or choice["action"] == "exit":
                            break
                        await self.handle_action(choice["action"])

                    except KeyboardInterrupt:
                        break
                    except Exception as e:
                        click.echo(f"❌ Error: {str(e)}", err=True)

                if self.session_id:
                    await self.client.call_tool("close_feed", {"session_id": self.session_id})

        except ConnectionError as e:
            click.echo(f"❌ Failed to connect to MCP server: {str(e)}")
            self.show_connection_troubleshooting()

        click.echo("\n👋 Happy travels!")

    async def open_feed_flow(self) -> bool:
        feeds = await self.client.call_tool("list_feeds", {})
        choices = [
            (f"{f['name']} - {f['description']}", f["name"])
            for f in feeds.get("feeds", [])
        ]
        if not choices:
            click.echo("❌ No feeds available", err=True)
            return False

        answer = inquirer.prompt(
            [inquirer.List("feed", message="Which feed?", choices=choices)]
        )
        if not answer:
            return False

        arguments: Dict[str, Any] = {"feed": answer["feed"]}
        if click.confirm("Share your location?", default=True):
            arguments["latitude"] = click.prompt("Latitude", type=float)
            arguments["longitude"] = click.prompt("Longitude", type=float)
        if self.config.access_token:
            arguments["access_token"] = self.config.access_token

        await self._apply("open_feed", arguments)
        return bool(self.session_id)

    async def handle_action(self, action: str):
        if action == "open":
            if self.session_id:
                await self.client.call_tool("close_feed", {"session_id": self.session_id})
            await self.open_feed_flow()
            return

        arguments: Dict[str, Any] = {"session_id": self.session_id}
        if action == "search":
            arguments["query"] = click.prompt("Search", default="", show_default=False)
            await self._apply("search_feed", arguments)
        elif action == "toggle":
            await self._apply("toggle_feed_mode", arguments)
        elif action == "radius":
            arguments["radius_km"] = click.prompt("Radius (km)", type=float)
            await self._apply("set_feed_radius", arguments)
            click.echo("ℹ️  The new radius applies on your next search.")
        elif action == "more":
            await self._apply("load_more", arguments)
        elif action == "clear":
            await self._apply("clear_feed_search", arguments)
        elif action == "retry":
            await self._apply("retry_feed", arguments)
        elif action == "select":
            arguments["entity_id"] = click.prompt("Item id") or None
            await self._apply("select_item", arguments)

    async def _apply(self, tool: str, arguments: Dict[str, Any]):
        result = await self.client.call_tool(tool, arguments)
        if not result.get("success", False):
            click.echo(f"❌ {result.get('error', 'Unknown error')}", err=True)
            return
        self.snapshot = result
        self.display_snapshot(result)

    def display_snapshot(self, snapshot: Dict[str, Any]):
        mode = snapshot.get("mode")
        radius = snapshot.get("radius_meters")
        scope = "worldwide" if mode == "global" else f"within {(radius or 0) / 1000:g} km"
        title = f"{snapshot.get('feed')} · {scope}"
        if snapshot.get("query_text"):
            title += f" · “{snapshot['query_text']}”"

        table = Table(title=title)
        table.add_column("#", justify="right")
        table.add_column("Name")
        table.add_column("Distance", justify="right")
        table.add_column("Tags")
        table.add_column("Id", style="dim")

        selected = snapshot.get("selected_id")
        for i, item in enumerate(snapshot.get("items", []), 1):
            distance = item.get("distance_km")
            marker = "➤ " if item.get("id") == selected else ""
            table.add_row(
                str(i),
                marker + (item.get("display_name") or ""),
                f"{distance} km" if distance is not None else "-",
                ", ".join(item.get("tags", [])[:3]),
                item.get("id", ""),
            )
        console.print(table)

        footer = f"{snapshot.get('total_count', 0)} results · phase: {snapshot.get('phase')}"
        if snapshot.get("has_more"):
            footer += " · more available"
        console.print(footer)
        if snapshot.get("error"):
            console.print(f"[red]⚠️  {snapshot['error']} (choose Retry to try again)[/red]")

    def show_connection_troubleshooting(self):
        click.echo("\n🔧 Connection Troubleshooting:")
        click.echo("=" * 50)
        click.echo("1. Run the client from the project directory (app.py must be there)")
        click.echo("2. Check your .env.dev file:")
        click.echo("   MCP_SERVER_COMMAND=python app.py --stdio")
        click.echo("   API_BASE_URL=<backend url>")
        click.echo("3. Test if the server starts: python app.py --stdio")

        python = shutil.which(self.config.mcp_server_command)
        if python:
            click.echo(f"✅ Command '{self.config.mcp_server_command}' found at: {python}")
        else:
            click.echo(f"❌ Command '{self.config.mcp_server_command}' not found")
            click.echo(f"💡 Try: MCP_SERVER_COMMAND={sys.executable} app.py --stdio")


# CLI Commands
@click.group()
@click.option("--log-level", default="INFO", help="Set log level")
def cli(log_level):
    """Travel Discovery MCP client"""
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level.upper())


@cli.command()
def interactive():
    """Browse a feed interactively"""
    asyncio.run(DiscoveryCLI().interactive_mode())


@cli.command()
@click.option("--feed", required=True, help="travelers, hotels, attractions, shopping, emergency or activities")
@click.option("--lat", type=float, default=None, help="Your latitude")
@click.option("--lng", type=float, default=None, help="Your longitude")
@click.option("--query", default="", help="Search text")
@click.option("--global", "global_search", is_flag=True, help="Search worldwide instead of nearby")
@click.option("--pages", default=1, show_default=True, help="How many pages to fetch")
def explore(feed, lat, lng, query, global_search, pages):
    """Open a feed once and print the results"""

    async def run_explore():
        cli_app = DiscoveryCLI()
        try:
            async with MCPClient(cli_app.config) as client:
                cli_app.client = client
                arguments: Dict[str, Any] = {"feed": feed}
                if lat is not None and lng is not None:
                    arguments.update(latitude=lat, longitude=lng)
                if cli_app.config.access_token:
                    arguments["access_token"] = cli_app.config.access_token

                result = await client.call_tool("open_feed", arguments)
                if not result.get("success"):
                    click.echo(f"Error: {result.get('error')}", err=True)
                    return
                cli_app.snapshot = result

                if query or global_search:
                    search_args = {"session_id": cli_app.session_id, "query": query}
                    if global_search:
                        search_args["global_search"] = True
                    await cli_app._apply("search_feed", search_args)

                for _ in range(pages - 1):
                    if not cli_app.snapshot.get("has_more"):
                        break
                    await cli_app._apply("load_more", {"session_id": cli_app.session_id})

                cli_app.display_snapshot(cli_app.snapshot)
                await client.call_tool("close_feed", {"session_id": cli_app.session_id})
        except Exception as e:
            click.echo(f"Connection error: {str(e)}", err=True)

    asyncio.run(run_explore())


@cli.command()
def test_connection():
    """Test connection to MCP server"""

    async def run_test():
        config = MCPClientConfig()
        click.echo("🔄 Testing connection to MCP server...")
        try:
            async with MCPClient(config) as client:
                click.echo("✅ Connection successful!")
                click.echo(f"📋 Available tools: {len(client.available_tools)}")
                for tool in client.available_tools:
                    click.echo(f"   • {tool.name}: {tool.description or 'No description'}")
        except Exception as e:
            click.echo(f"❌ Connection failed: {str(e)}", err=True)
            DiscoveryCLI(config).show_connection_troubleshooting()

    asyncio.run(run_test())


if __name__ == "__main__":
    cli()
