"""
Server-Sent Event Schemas.

Payloads written to the admin activity stream besides the activity events
themselves.
"""

import json
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from indaba.core.logging_config import get_logger

logger = get_logger(__name__)


class SubscriptionStartedEvent(BaseModel):
    """First event on every activity stream."""

    message: str = Field(
        default="Subscribed to the activity stream",
        description="Confirmation that the subscription is live.",
    )
    subscriber_count: int = Field(..., description="Connected subscribers including this one.", examples=[1])


class KeepAliveEvent(BaseModel):
    """Keep-alive comment for idle streams.

    Sent periodically when no events are available to prevent client timeout.
    """

    comment: str = Field(
        default="keep-alive",
        description="A fixed comment indicating this is a keep-alive message.",
        examples=["keep-alive"],
    )


class ErrorEvent(BaseModel):
    """Error event for stream failures."""

    error: str = Field(..., description="The error message or error type.", examples=["Failed to serialize event"])
    details: Optional[str] = Field(default=None, description="Additional details about the error.")


def serialize_event(event: Union[BaseModel, Any]) -> str:
    """
    Serialize an event to a JSON string for the ``data`` field of an SSE message.

    Args:
        event: Pydantic model or any JSON-serializable object

    Returns:
        JSON string representation of the event
    """
    try:
        if isinstance(event, BaseModel):
            return event.model_dump_json()
        return json.dumps(event, default=str)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to serialize event: {e}", exc_info=True)
        return ErrorEvent(error="Failed to serialize event", details=str(e)).model_dump_json()
