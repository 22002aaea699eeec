"""Discovery and caching of the tools exposed by the catalog provider."""

from typing import Any

import httpx
from pydantic import ValidationError

from catalog_assistant.clients.tool_provider import ToolProviderClient, get_tool_provider_client
from catalog_assistant.exceptions import DiscoveryFailure, ToolProviderError
from catalog_assistant.tools.base import ToolDefinition
from catalog_assistant.utils.logging import get_logger

logger = get_logger(__name__)

FALLBACK_TOOLS: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        name="search_assets",
        description=(
            "Search for assets in the data catalog. Use this to find tables, columns, dashboards, "
            "glossary terms, and other data assets based on user queries. "
            "Returns metadata about matching assets."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": (
                        "The search query to find assets in the catalog. Can be keywords, asset names, "
                        "descriptions, or natural language queries."
                    ),
                },
                "limit": {
                    "type": "number",
                    "description": "Maximum number of results to return (default: 10)",
                    "default": 10,
                },
            },
            "required": ["query"],
        },
    ),
)


class CatalogCell:
    """Init-once holder for the discovered tool set.

    Concurrent first use may populate it twice with equal values; the last write wins.
    """

    def __init__(self) -> None:
        self._tools: tuple[ToolDefinition, ...] | None = None

    @property
    def is_set(self) -> bool:
        return self._tools is not None

    def get(self) -> tuple[ToolDefinition, ...] | None:
        return self._tools

    def set(self, tools: tuple[ToolDefinition, ...]) -> None:
        self._tools = tools

    def clear(self) -> None:
        self._tools = None


class ToolCatalog:
    """Discovers the provider's tools once per process and falls back to a static catalog."""

    def __init__(self, client: ToolProviderClient | None = None, cell: CatalogCell | None = None):
        """Initialize tool catalog.

        Args:
            client: Tool provider client (defaults to global instance)
            cell: Cache cell (defaults to a fresh one)
        """
        self._client = client
        self.cell = cell or CatalogCell()

    @property
    def client(self) -> ToolProviderClient:
        if self._client is None:
            self._client = get_tool_provider_client()
        return self._client

    async def discover(self) -> list[ToolDefinition] | None:
        """List the provider's tools.

        Returns:
            Normalized tool definitions, or None when discovery failed
        """
        logger.info("Discovering tools from catalog provider")
        try:
            return await self._fetch_tools()
        except DiscoveryFailure as e:
            logger.warning(f"Tool discovery failed: {e.message}")
        except (ToolProviderError, httpx.HTTPError) as e:
            logger.warning(f"Tool discovery failed: {e}")
        return None

    async def _fetch_tools(self) -> list[ToolDefinition]:
        data = await self.client.request("tools/list")

        if "error" in data:
            error = data["error"]
            message = error.get("message", "unknown") if isinstance(error, dict) else error
            raise DiscoveryFailure(f"Provider error: {message}")

        result = data.get("result") or {}
        if not isinstance(result, dict):
            raise DiscoveryFailure(f"Malformed tools/list result: {str(result)[:200]}")

        raw_tools: list[dict[str, Any]] = result.get("tools") or []
        if not isinstance(raw_tools, list):
            raise DiscoveryFailure(f"Malformed tool list: {str(raw_tools)[:200]}")
        if not raw_tools:
            raise DiscoveryFailure("Provider returned no tools")

        tools: dict[str, ToolDefinition] = {}
        for raw in raw_tools:
            if not isinstance(raw, dict) or not isinstance(raw.get("name"), str) or not raw["name"]:
                logger.warning(f"Skipping malformed tool entry: {raw}")
                continue
            if raw["name"] in tools:
                logger.warning(f"Skipping duplicate tool: {raw['name']}")
                continue
            try:
                tools[raw["name"]] = ToolDefinition.from_provider(raw)
            except ValidationError as e:
                logger.warning(f"Skipping invalid tool entry {raw['name']!r}: {e.error_count()} validation errors")

        if not tools:
            raise DiscoveryFailure("Provider returned no usable tools")

        logger.info(f"Discovered {len(tools)} tools: {', '.join(tools)}")
        return list(tools.values())

    async def get(self) -> list[ToolDefinition]:
        """Return the cached tool set, discovering it on first use."""
        cached = self.cell.get()
        if cached is not None:
            return list(cached)

        tools = await self.discover()
        if tools:
            self.cell.set(tuple(tools))
        else:
            logger.warning("Tool discovery failed, using fallback definitions")
            self.cell.set(FALLBACK_TOOLS)

        return list(self.cell.get() or ())

    def reset(self) -> None:
        """Forget the cached tool set so the next get() rediscovers."""
        self.cell.clear()


_tool_catalog: ToolCatalog | None = None


def get_tool_catalog() -> ToolCatalog:
    """Get or create the process-wide tool catalog."""
    global _tool_catalog
    if _tool_catalog is None:
        _tool_catalog = ToolCatalog()
    return _tool_catalog
