"""
protocol/messages.py - Change notification wire format

Raw change notifications arrive as JSON objects, one per line:

    {"type": "rebuild", "filename": "posts/hello.md"}

``key`` is accepted as well as ``filename``. Messages of any other type
are ignored so that the channel can carry traffic meant for other
consumers.
"""

from __future__ import annotations
from typing import Any, Dict, Literal, Optional, Union
import json
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from sitebuild.core.constants import REBUILD_MESSAGE_TYPE
from sitebuild.errors.taxonomy import ProtocolError

logger = logging.getLogger(__name__)


class ChangeNotification(BaseModel):
    """One raw change notification: the dependency key that changed."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    type: Literal["rebuild"] = REBUILD_MESSAGE_TYPE
    key: str = Field(alias="filename")

    @field_validator("key")
    @classmethod
    def validate_key(cls, v):
        if not v or not v.strip():
            raise ValueError("key cannot be empty")
        return v

    def to_wire(self) -> str:
        """Serialize using the wire field names."""
        return self.model_dump_json(by_alias=True)


def parse_message(raw: Union[str, bytes, Dict[str, Any]]) -> Optional[ChangeNotification]:
    """
    Parse one message from the change channel.

    Returns:
        ChangeNotification, or None for messages of another type

    Raises:
        ProtocolError: If the message is malformed
    """
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Change notification is not valid UTF-8: {e}", e) from e
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Change notification is not valid JSON: {e}", e) from e
    else:
        data = raw

    if not isinstance(data, dict):
        raise ProtocolError(f"Change notification must be a JSON object, got {type(data).__name__}")

    message_type = data.get("type")
    if message_type != REBUILD_MESSAGE_TYPE:
        logger.debug(f"Ignoring message of type {message_type!r}")
        return None

    try:
        return ChangeNotification.model_validate(data)
    except ValidationError as e:
        raise ProtocolError(f"Invalid change notification: {e}", e) from e
