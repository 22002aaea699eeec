"""API endpoints for the catalog assistant."""

import asyncio
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect

from catalog_assistant import __version__
from catalog_assistant.models.conversation import (
    AskRequest,
    AskResponse,
    HealthResponse,
    ToolInfo,
    ToolsResponse,
)
from catalog_assistant.models.progress import StreamReadyEvent
from catalog_assistant.services.conversation import conversation_service
from catalog_assistant.services.progress import QueueSink, progress_channel
from catalog_assistant.tools.catalog import get_tool_catalog
from catalog_assistant.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/ask", response_model=AskResponse, response_model_exclude_none=True, tags=["Conversation"])
async def ask_question(request: AskRequest) -> AskResponse:
    """Answer a question about the data catalog.

    Pass the ``session_id`` received on ``/progress`` as ``stream_id`` to get
    live progress for this request.
    """
    logger.info(f"Received question (stream: {request.stream_id}): {request.question[:50]}...")

    try:
        result = await conversation_service.ask(request)
    except ValueError as e:
        logger.warning(f"Question validation error: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e

    if result.success:
        return AskResponse(answer=result.answer)
    return AskResponse(error=result.error)


@router.websocket("/progress")
async def progress_stream(websocket: WebSocket) -> None:
    """Long-lived progress session; forwards events until the client disconnects."""
    await websocket.accept()

    sink = QueueSink()
    session_id = progress_channel.open(sink)

    async def wait_for_disconnect() -> None:
        # Clients never send on this socket; inbound frames of any type are ignored
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return

    disconnect = asyncio.create_task(wait_for_disconnect())
    try:
        await websocket.send_json(StreamReadyEvent(session_id=session_id).model_dump())
        while not disconnect.done():
            next_event = asyncio.create_task(sink.next_event())
            done, _ = await asyncio.wait({next_event, disconnect}, return_when=asyncio.FIRST_COMPLETED)
            if next_event not in done:
                next_event.cancel()
                break
            await websocket.send_json(next_event.result().model_dump())
    except WebSocketDisconnect:
        pass
    finally:
        disconnect.cancel()
        progress_channel.close(session_id)
        logger.info(f"Progress session {session_id} disconnected")


@router.get("/tools", response_model=ToolsResponse, tags=["Catalog"])
async def list_tools() -> ToolsResponse:
    """List the catalog tools available to the assistant."""
    tools = await get_tool_catalog().get()
    return ToolsResponse(tools=[ToolInfo(name=tool.name, description=tool.description) for tool in tools])


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
