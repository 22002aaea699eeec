"""Error taxonomy for the catalog assistant."""


class CatalogAssistantError(Exception):
    """Base class for all service errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DiscoveryFailure(CatalogAssistantError):
    """Tool listing was unavailable; recovered through the fallback catalog."""


class ToolProviderError(CatalogAssistantError):
    """The tool provider could not be reached or answered unusably."""


class ToolProviderHTTPError(ToolProviderError):
    """The tool provider answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Tool provider error: {status_code}")


class ModelEndpointError(CatalogAssistantError):
    """The model endpoint failed; fatal to the current conversation turn."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class MalformedResponseError(ToolProviderError, ModelEndpointError):
    """An endpoint returned a payload of unexpected shape."""

    def __init__(self, message: str) -> None:
        self.status_code = None
        self.body = ""
        CatalogAssistantError.__init__(self, message)
