"""Conversion of transcript records into normalized chat messages."""

from session_share.converter.matcher import ToolResultView, find_tool_result
from session_share.converter.records import decode_records
from session_share.converter.subtasks import ChainTracker, extract_subtask
from session_share.converter.tools import ToolCallTranslator
from session_share.logging import get_logger
from session_share.models import (
    ImageBlock,
    MessagePart,
    MessagePayload,
    NormalizedMessage,
    TextBlock,
    TextPart,
    ToolInvocationPart,
    ToolResultBlock,
    ToolUseBlock,
    TranscriptRecord,
)

logger = get_logger("converter")

ERROR_MESSAGE = "[Error occurred during conversation]"


class TranscriptConverter:
    """Walks a transcript once and builds one message per qualifying record.

    Tool calls are paired with their results at construction time, and task
    delegation calls carry the sub-agent conversation they spawned.
    """

    task_tool_names = frozenset({"Task"})

    def __init__(
        self,
        translator: ToolCallTranslator | None = None,
        expand_subtasks: bool = True,
    ):
        self.translator = translator or ToolCallTranslator()
        self.expand_subtasks = expand_subtasks

    def convert(self, text: str) -> list[NormalizedMessage]:
        """Convert raw JSONL transcript text.

        Raises:
            TranscriptDecodeError: If any line is not a JSON object
        """
        return self.convert_records(decode_records(text))

    def convert_records(self, records: list[TranscriptRecord]) -> list[NormalizedMessage]:
        """Convert decoded records, preserving stream order."""
        tracker = ChainTracker()
        messages = self._convert_all(records, tracker, top_level=True)

        logger.debug(
            "Converted %d records into %d messages (%d subtask chains attached)",
            len(records),
            len(messages),
            len(tracker),
        )
        return messages

    def _convert_all(
        self,
        records: list[TranscriptRecord],
        tracker: ChainTracker,
        top_level: bool,
    ) -> list[NormalizedMessage]:
        messages: list[NormalizedMessage] = []
        for index, record in enumerate(records):
            # Chains claimed by an earlier task call render inside that call's part
            if top_level and record.is_sidechain and tracker.claims(record):
                continue
            message = self.convert_record(record, records, index, tracker)
            if message is not None:
                messages.append(message)
        return messages

    def _convert_chain(self, chain: list[TranscriptRecord], tracker: ChainTracker) -> list[NormalizedMessage]:
        return self._convert_all(chain, tracker, top_level=False)

    def convert_record(
        self,
        record: TranscriptRecord,
        records: list[TranscriptRecord],
        index: int,
        tracker: ChainTracker,
    ) -> NormalizedMessage | None:
        """Convert the record at ``index`` of ``records``, or return None to skip it."""
        payload = record.message
        if payload is None or not record.uuid:
            return None

        if record.type == "assistant" and payload.role == "assistant":
            return self._assistant_message(record, payload, records, index, tracker)

        if record.type == "user" and payload.role == "user":
            return self._user_message(record, payload)

        return self._other_message(record, payload)

    def _assistant_message(
        self,
        record: TranscriptRecord,
        payload: MessagePayload,
        records: list[TranscriptRecord],
        index: int,
        tracker: ChainTracker,
    ) -> NormalizedMessage:
        text = payload.content if isinstance(payload.content, str) else ""
        tool_parts: list[MessagePart] = []

        for block in payload.blocks:
            if isinstance(block, TextBlock) and block.text:
                text += block.text
            elif isinstance(block, ToolUseBlock) and block.id and block.name:
                tool_parts.append(self._tool_part(block, record, records, index, tracker))

        parts: list[MessagePart] = [TextPart(text)] if text else []
        parts.extend(tool_parts)

        return NormalizedMessage(
            id=record.uuid or "",
            role="assistant",
            content=text,
            parts=tuple(parts),
            created_at=record.timestamp,
        )

    def _tool_part(
        self,
        call: ToolUseBlock,
        record: TranscriptRecord,
        records: list[TranscriptRecord],
        index: int,
        tracker: ChainTracker,
    ) -> ToolInvocationPart:
        result = ToolResultView.from_record(find_tool_result(call.id, records, index), call.id)
        if result is None:
            logger.debug("Tool call %s (%s) has no result", call.id, call.name)

        subtask = None
        if self.expand_subtasks and call.name in self.task_tool_names:
            subtask = extract_subtask(call.id, records, index, tracker, self._convert_chain)

        return self.translator.translate(call, result, cwd=record.cwd or "", subtask=subtask)

    def _user_message(self, record: TranscriptRecord, payload: MessagePayload) -> NormalizedMessage | None:
        content = payload.content

        if isinstance(content, str):
            return NormalizedMessage(
                id=record.uuid or "",
                role="user",
                content=content,
                parts=(TextPart(content),),
                created_at=record.timestamp,
            )

        if not isinstance(content, list):
            return None

        # Tool results alone are plumbing, not something the user said
        if content and all(isinstance(block, ToolResultBlock) for block in content):
            return None

        text = ""
        for block in content:
            if isinstance(block, TextBlock) and block.text:
                text += block.text
            elif isinstance(block, ImageBlock) and block.source_type:
                text += f"[Image: {block.source_type}]"
            elif isinstance(block, ToolResultBlock):
                text += block.text

        return NormalizedMessage(
            id=record.uuid or "",
            role="user",
            content=text,
            parts=(TextPart(text),) if text else (),
            created_at=record.timestamp,
        )

    def _other_message(self, record: TranscriptRecord, payload: MessagePayload) -> NormalizedMessage | None:
        fields = payload.fields

        if record.type == "result" and "result" in fields:
            text = f"[Result] {fields['result']} (Cost: ${fields.get('total_cost_usd')})"
        elif record.type == "error":
            text = ERROR_MESSAGE
        elif record.type == "system" and fields.get("subtype") == "init":
            tools = fields.get("tools")
            if not isinstance(tools, list):
                tools = []
            text = f"[Session initialized with tools: {', '.join(str(tool) for tool in tools)}]"
        else:
            return None

        return NormalizedMessage(
            id=record.uuid or "",
            role="system",
            content=text,
            parts=(TextPart(text),),
            created_at=record.timestamp,
        )

