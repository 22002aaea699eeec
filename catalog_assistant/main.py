"""Main FastAPI application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from catalog_assistant import __version__
from catalog_assistant.api.endpoints import router
from catalog_assistant.utils.logging import setup_logging

setup_logging()

# Create FastAPI application
app = FastAPI(
    title="Catalog Assistant",
    description=(
        "Ask natural-language questions about a data catalog. Claude decides which catalog "
        "search tools to call; progress is streamed over a WebSocket session."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Conversation",
            "description": "Ask questions; optionally bind the request to a progress session.",
        },
        {
            "name": "Catalog",
            "description": "Tools discovered from the catalog provider.",
        },
        {
            "name": "Health",
            "description": "Service health monitoring and status checks.",
        },
    ],
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("catalog_assistant.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
