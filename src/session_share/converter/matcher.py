"""Pairing of tool calls with the records that carry their results."""

from dataclasses import dataclass
from typing import Any

from session_share.models import ToolResultBlock, TranscriptRecord


def find_result_block(record: TranscriptRecord, tool_call_id: str) -> ToolResultBlock | None:
    """Return the tool result block in ``record`` that answers ``tool_call_id``."""
    if record.message is None:
        return None
    for block in record.message.blocks:
        if isinstance(block, ToolResultBlock) and block.tool_use_id == tool_call_id:
            return block
    return None


def find_tool_result(
    tool_call_id: str,
    records: list[TranscriptRecord],
    index: int,
) -> TranscriptRecord | None:
    """Find the record holding the result of a tool call.

    Scans forward from the record after ``index`` (the assistant record that
    issued the call) and returns the first user record whose content contains
    a tool result block for the call. Results usually follow their call
    closely, so a linear scan is fine at transcript scale.

    Args:
        tool_call_id: Id of the tool_use block
        records: Records in stream order
        index: Position of the issuing assistant record in ``records``

    Returns:
        The matching record, or None if the call never completed
    """
    for record in records[index + 1 :]:
        if record.type != "user" or record.message is None:
            continue
        if record.message.role != "user" or not isinstance(record.message.content, list):
            continue
        if find_result_block(record, tool_call_id) is not None:
            return record
    return None


@dataclass
class ToolResultView:
    """A matched tool result as seen by the tool translators."""

    record: TranscriptRecord
    block: ToolResultBlock

    @classmethod
    def from_record(cls, record: TranscriptRecord | None, tool_call_id: str) -> "ToolResultView | None":
        if record is None:
            return None
        block = find_result_block(record, tool_call_id)
        if block is None:
            return None
        return cls(record=record, block=block)

    @property
    def value(self) -> Any:
        """The structured ``toolUseResult`` of the record."""
        return self.record.tool_use_result

    @property
    def is_error(self) -> bool:
        return self.block.is_error

    @property
    def text(self) -> str:
        return self.block.text

    @property
    def cwd(self) -> str:
        return self.record.cwd or ""
