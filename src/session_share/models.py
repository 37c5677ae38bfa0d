"""Transcript record and normalized message models."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class TextBlock:
    text: str
    type: str = "text"


@dataclass
class ToolUseBlock:
    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)
    type: str = "tool_use"


@dataclass
class ToolResultBlock:
    tool_use_id: str
    content: Any = None  # str or list of {"type": "text", "text": ...} items
    is_error: bool = False
    type: str = "tool_result"

    @property
    def text(self) -> str:
        """Flattened text of the result content."""
        if self.content is None:
            return ""
        if isinstance(self.content, str):
            return self.content
        if isinstance(self.content, list):
            texts = [
                item.get("text", "")
                for item in self.content
                if isinstance(item, dict) and item.get("type") == "text"
            ]
            return "".join(t for t in texts if isinstance(t, str))
        return str(self.content)


@dataclass
class ImageBlock:
    source_type: str
    type: str = "image"


@dataclass
class UnknownBlock:
    """A content block kind the converter does not interpret (e.g. thinking)."""

    type: str
    raw: dict[str, Any] = field(default_factory=dict)


ContentBlock = TextBlock | ToolUseBlock | ToolResultBlock | ImageBlock | UnknownBlock


@dataclass
class MessagePayload:
    """The nested ``message`` object of a transcript record."""

    role: str | None
    content: str | list[ContentBlock] | None
    fields: dict[str, Any] = field(default_factory=dict)  # raw payload, for subtype/result/tools

    @property
    def blocks(self) -> list[ContentBlock]:
        if isinstance(self.content, list):
            return self.content
        return []


@dataclass
class TranscriptRecord:
    """One decoded line of a transcript log."""

    type: str  # user, assistant, system, error, result
    uuid: str | None = None
    parent_uuid: str | None = None
    is_sidechain: bool = False
    message: MessagePayload | None = None
    timestamp: str | None = None
    cwd: str | None = None  # Working directory, stripped from displayed paths
    tool_use_result: Any = None  # Structured tool result side channel (toolUseResult)
    session_id: str | None = None


@dataclass(frozen=True)
class TextPart:
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass
class Todo:
    id: str
    content: str
    status: str
    priority: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "status": self.status,
            "priority": self.priority,
        }


@dataclass
class SubTask:
    """A nested sub-agent conversation attached to a task delegation call."""

    uid: str  # Root record uuid of the chain
    client_task_id: str  # Tool call id of the task delegation
    messages: list["NormalizedMessage"] = field(default_factory=list)
    todos: list[Todo] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "uid": self.uid,
            "clientTaskId": self.client_task_id,
            "messages": [m.to_dict() for m in self.messages],
            "todos": [t.to_dict() for t in self.todos],
        }


@dataclass(frozen=True)
class ToolInvocationPart:
    """A tool call, optionally completed with its output.

    The part is in the call state ("input-available") while ``output`` is None
    and in the result state ("output-available") otherwise. Attributes cannot be
    reassigned, but the input and output dicts and the subtask are shared, not
    copied, and stay mutable.
    """

    tool_name: str
    tool_call_id: str
    input: dict[str, Any]
    output: dict[str, Any] | None = None
    subtask: SubTask | None = None

    @property
    def state(self) -> str:
        return "input-available" if self.output is None else "output-available"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": f"tool-{self.tool_name}",
            "toolCallId": self.tool_call_id,
            "state": self.state,
            "input": self.input,
        }
        if self.output is not None:
            data["output"] = self.output
        if self.subtask is not None:
            data["subtask"] = self.subtask.to_dict()
        return data


MessagePart = TextPart | ToolInvocationPart


@dataclass(frozen=True)
class NormalizedMessage:
    """A normalized chat message built from one transcript record.

    Fields cannot be reassigned and ``parts`` is a tuple; the parts themselves
    are only as immutable as ToolInvocationPart.
    """

    id: str
    role: str  # user, assistant, system
    content: str
    parts: tuple[MessagePart, ...] = ()
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "parts": [part.to_dict() for part in self.parts],
        }
        if self.created_at:
            data["createdAt"] = self.created_at
        return data


@dataclass
class Conversation:
    """A conversation file discovered by a provider's scanner."""

    path: str
    mtime: datetime
    title: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "lastModified": self.mtime.isoformat(),
            "title": self.title,
        }


def messages_to_json(messages: list[NormalizedMessage], indent: int | None = 2) -> str:
    """Serialize messages to the JSON array handed to display and upload."""
    return json.dumps([message.to_dict() for message in messages], indent=indent, ensure_ascii=False)
