"""Progress events pushed to a listening client during a conversation run."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field


class StreamReadyEvent(BaseModel):
    """Sent once when a progress session is opened."""

    kind: Literal["stream_ready"] = "stream_ready"
    session_id: str


class StatusEvent(BaseModel):
    """Which phase the driver is in."""

    kind: Literal["progress"] = "progress"
    status: str


class ContentEvent(BaseModel):
    """Answer text accumulated so far."""

    kind: Literal["content"] = "content"
    text: str
    is_complete: bool = False


ProgressEvent = Annotated[StreamReadyEvent | StatusEvent | ContentEvent, Field(discriminator="kind")]
