"""Catalog tools discovered from and executed against the tool provider."""

from catalog_assistant.tools.base import ToolDefinition, ToolFailure, ToolInvocationResult, ToolSuccess
from catalog_assistant.tools.catalog import ToolCatalog, get_tool_catalog
from catalog_assistant.tools.invoker import ToolInvoker

__all__ = [
    "ToolCatalog",
    "ToolDefinition",
    "ToolFailure",
    "ToolInvocationResult",
    "ToolInvoker",
    "ToolSuccess",
    "get_tool_catalog",
]
