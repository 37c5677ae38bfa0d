"""Decoding of newline-delimited JSON transcript logs.

Claude Code stores conversations as JSONL files, one JSON object per line:
- type: "user", "assistant", "system", "result", "summary", ...
- uuid / parentUuid: record identity and link to the preceding record
- isSidechain: True for records of a nested sub-agent conversation
- message.role / message.content: string or array of content blocks
- toolUseResult: structured result attached to tool result records
- timestamp: ISO 8601 timestamp
- cwd: Working directory
"""

import json
from typing import Any

from session_share.logging import get_logger
from session_share.models import (
    ContentBlock,
    ImageBlock,
    MessagePayload,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    TranscriptRecord,
    UnknownBlock,
)

logger = get_logger("records")


class TranscriptDecodeError(ValueError):
    """A transcript line could not be decoded into a record."""

    def __init__(self, line_number: int, reason: str):
        super().__init__(f"Invalid transcript line {line_number}: {reason}")
        self.line_number = line_number
        self.reason = reason


def parse_content_block(data: Any) -> ContentBlock:
    """Build a content block dataclass from a decoded JSON value."""
    if isinstance(data, str):
        return TextBlock(text=data)
    if not isinstance(data, dict):
        return UnknownBlock(type=type(data).__name__, raw={"value": data})

    block_type = data.get("type")
    if block_type == "text":
        text = data.get("text")
        return TextBlock(text=text if isinstance(text, str) else "")
    if block_type == "tool_use":
        tool_input = data.get("input")
        return ToolUseBlock(
            id=data.get("id") or "",
            name=data.get("name") or "",
            input=tool_input if isinstance(tool_input, dict) else {},
        )
    if block_type == "tool_result":
        return ToolResultBlock(
            tool_use_id=data.get("tool_use_id") or "",
            content=data.get("content"),
            is_error=bool(data.get("is_error", False)),
        )
    if block_type == "image":
        source = data.get("source")
        source_type = source.get("type", "") if isinstance(source, dict) else ""
        return ImageBlock(source_type=source_type)
    return UnknownBlock(type=str(block_type), raw=data)


def parse_payload(data: Any) -> MessagePayload | None:
    """Build the nested message payload, or None when the record has none."""
    if not isinstance(data, dict):
        return None

    raw_content = data.get("content")
    content: str | list[ContentBlock] | None
    if isinstance(raw_content, list):
        content = [parse_content_block(item) for item in raw_content]
    elif isinstance(raw_content, str):
        content = raw_content
    else:
        content = None

    return MessagePayload(role=data.get("role"), content=content, fields=data)


def parse_record(data: dict[str, Any]) -> TranscriptRecord:
    """Build a TranscriptRecord from one decoded JSON object."""
    return TranscriptRecord(
        type=str(data.get("type", "")),
        uuid=data.get("uuid"),
        parent_uuid=data.get("parentUuid"),
        is_sidechain=bool(data.get("isSidechain", False)),
        message=parse_payload(data.get("message")),
        timestamp=data.get("timestamp"),
        cwd=data.get("cwd"),
        tool_use_result=data.get("toolUseResult"),
        session_id=data.get("sessionId"),
    )


def decode_records(text: str) -> list[TranscriptRecord]:
    """Decode a JSONL transcript into records, in stream order.

    Blank lines are ignored. Any other line that is not a JSON object aborts
    the whole decode: a truncated conversation is worse than none.

    Args:
        text: Full transcript text

    Returns:
        List of records in the order they appear in the log

    Raises:
        TranscriptDecodeError: If a line is not valid JSON or not an object
    """
    records: list[TranscriptRecord] = []

    for line_number, line in enumerate(text.split("\n"), start=1):
        line = line.strip()
        if not line:
            continue

        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            logger.debug("Malformed JSON on line %d: %s", line_number, e)
            raise TranscriptDecodeError(line_number, e.msg) from e

        if not isinstance(data, dict):
            raise TranscriptDecodeError(line_number, f"expected an object, got {type(data).__name__}")

        records.append(parse_record(data))

    return records
