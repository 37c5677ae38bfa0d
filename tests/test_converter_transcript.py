"""Tests for the transcript converter."""

import json
from typing import Any

import pytest

from session_share.converter.records import TranscriptDecodeError
from session_share.converter.transcript import ERROR_MESSAGE, TranscriptConverter
from session_share.models import TextPart, ToolInvocationPart, messages_to_json


def to_jsonl(entries: list[dict[str, Any]]) -> str:
    return "\n".join(json.dumps(entry) for entry in entries) + "\n"


def user(uuid: str, content: Any, **extra: Any) -> dict[str, Any]:
    return {"type": "user", "uuid": uuid, "message": {"role": "user", "content": content}, **extra}


def assistant(uuid: str, content: Any, **extra: Any) -> dict[str, Any]:
    return {"type": "assistant", "uuid": uuid, "message": {"role": "assistant", "content": content}, **extra}


def tool_use(call_id: str, name: str, tool_input: dict[str, Any]) -> dict[str, Any]:
    return {"type": "tool_use", "id": call_id, "name": name, "input": tool_input}


def tool_result(call_id: str, content: Any, is_error: bool = False) -> dict[str, Any]:
    return {"type": "tool_result", "tool_use_id": call_id, "content": content, "is_error": is_error}


@pytest.fixture
def converter() -> TranscriptConverter:
    return TranscriptConverter()


class TestBasicConversion:
    """Plain text conversations."""

    def test_single_user_message(self, converter: TranscriptConverter) -> None:
        """A lone user record becomes a text-only message."""
        text = '{"type":"user","message":{"role":"user","content":"hello"},"uuid":"u1"}'
        messages = converter.convert(text)
        assert [m.to_dict() for m in messages] == [
            {"id": "u1", "role": "user", "content": "hello", "parts": [{"type": "text", "text": "hello"}]}
        ]

    def test_created_at_from_timestamp(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(to_jsonl([user("u1", "hi", timestamp="2026-01-26T00:38:34.754Z")]))
        assert messages[0].to_dict()["createdAt"] == "2026-01-26T00:38:34.754Z"

    def test_assistant_text_blocks_are_joined(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(
            to_jsonl(
                [assistant("a1", [{"type": "text", "text": "one "}, {"type": "thinking"}, {"type": "text", "text": "two"}])]
            )
        )
        assert messages[0].content == "one two"
        assert messages[0].parts == (TextPart("one two"),)

    def test_order_follows_stream(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(
            to_jsonl(
                [
                    user("u1", "first"),
                    assistant("a1", [{"type": "text", "text": "second"}]),
                    user("u2", "third"),
                ]
            )
        )
        assert [m.id for m in messages] == ["u1", "a1", "u2"]

    def test_records_without_uuid_or_message_are_skipped(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(
            to_jsonl(
                [
                    {"type": "summary", "summary": "Title", "leafUuid": "u1"},
                    {"type": "user", "message": {"role": "user", "content": "no id"}},
                    user("u1", "kept"),
                ]
            )
        )
        assert [m.id for m in messages] == ["u1"]

    def test_image_placeholder(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(
            to_jsonl(
                [
                    user(
                        "u1",
                        [
                            {"type": "text", "text": "look: "},
                            {"type": "image", "source": {"type": "base64", "data": "AAAA"}},
                        ],
                    )
                ]
            )
        )
        assert messages[0].content == "look: [Image: base64]"

    def test_malformed_line_raises(self, converter: TranscriptConverter) -> None:
        """Decoding errors abort the conversion."""
        text = to_jsonl([user("u1", "hello")]) + "{broken\n"
        with pytest.raises(TranscriptDecodeError):
            converter.convert(text)

    def test_empty_transcript(self, converter: TranscriptConverter) -> None:
        assert converter.convert("") == []


class TestToolPairing:
    """Tool calls paired with results that appear later in the stream."""

    def test_call_with_result(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(
            to_jsonl(
                [
                    assistant("a1", [tool_use("c1", "Bash", {"command": "ls"})]),
                    user("u1", [tool_result("c1", "file.txt")]),
                ]
            )
        )
        assert len(messages) == 1
        part = messages[0].parts[0]
        assert isinstance(part, ToolInvocationPart)
        assert part.tool_call_id == "c1"
        assert part.state == "output-available"
        assert "file.txt" in part.output["output"]

    def test_call_without_result(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(to_jsonl([assistant("a1", [tool_use("c1", "Bash", {"command": "ls"})])]))
        part = messages[0].parts[0]
        assert isinstance(part, ToolInvocationPart)
        assert part.state == "input-available"
        assert "output" not in part.to_dict()

    def test_distant_result(self, converter: TranscriptConverter) -> None:
        """Results separated from their call by other turns are still paired."""
        messages = converter.convert(
            to_jsonl(
                [
                    assistant("a1", [tool_use("c1", "Read", {"file_path": "/p/a.py"})]),
                    user("u1", "meanwhile"),
                    assistant("a2", [{"type": "text", "text": "still waiting"}]),
                    user(
                        "u2",
                        [tool_result("c1", "print(1)")],
                        cwd="/p",
                        toolUseResult={"type": "text", "file": {"filePath": "/p/a.py", "content": "print(1)"}},
                    ),
                ]
            )
        )
        assert [m.id for m in messages] == ["a1", "u1", "a2"]
        part = messages[0].parts[0]
        assert isinstance(part, ToolInvocationPart)
        assert part.input == {"path": "a.py"}
        assert part.output == {"content": "print(1)", "isTruncated": False}

    def test_every_call_has_exactly_one_part(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(
            to_jsonl(
                [
                    assistant(
                        "a1",
                        [
                            {"type": "text", "text": "Running"},
                            tool_use("c1", "Bash", {"command": "ls"}),
                            tool_use("c2", "Glob", {"pattern": "*.py"}),
                        ],
                    ),
                    user("u1", [tool_result("c2", ""), tool_result("c1", "x")]),
                ]
            )
        )
        parts = messages[0].parts
        assert isinstance(parts[0], TextPart)
        assert [p.tool_call_id for p in parts[1:] if isinstance(p, ToolInvocationPart)] == ["c1", "c2"]
        assert all(p.state == "output-available" for p in parts[1:] if isinstance(p, ToolInvocationPart))

    def test_pure_tool_result_record_is_suppressed(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(
            to_jsonl(
                [
                    assistant("a1", [tool_use("c1", "Bash", {"command": "ls"})]),
                    user("u1", [tool_result("c1", "x")]),
                    user("u2", "thanks"),
                ]
            )
        )
        assert [m.id for m in messages] == ["a1", "u2"]

    def test_mixed_user_record_keeps_result_text(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(
            to_jsonl([user("u1", [tool_result("c1", "output "), {"type": "text", "text": "and a note"}])])
        )
        assert messages[0].content == "output and a note"

    def test_odd_tool_input_does_not_abort(self, converter: TranscriptConverter) -> None:
        """A malformed tool input only affects its own part."""
        messages = converter.convert(
            to_jsonl(
                [
                    assistant("a1", [tool_use("c1", "TodoWrite", {"todos": 5})]),
                    user("u1", "next"),
                ]
            )
        )
        assert [m.id for m in messages] == ["a1", "u1"]
        part = messages[0].parts[0]
        assert isinstance(part, ToolInvocationPart)
        assert part.input == {"todos": []}

    def test_conversion_is_idempotent(self, converter: TranscriptConverter) -> None:
        text = to_jsonl(
            [
                user("u1", "go"),
                assistant("a1", [tool_use("c1", "Bash", {"command": "ls"})]),
                user("u2", [tool_result("c1", "x")]),
            ]
        )
        assert messages_to_json(converter.convert(text)) == messages_to_json(converter.convert(text))


class TestSystemRecords:
    """System, result and error records."""

    def test_session_init(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(
            to_jsonl(
                [
                    {
                        "type": "system",
                        "uuid": "s1",
                        "message": {"role": "system", "subtype": "init", "tools": ["Bash", "Read"]},
                    }
                ]
            )
        )
        assert messages[0].role == "system"
        assert messages[0].content == "[Session initialized with tools: Bash, Read]"

    def test_result(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(
            to_jsonl(
                [
                    {
                        "type": "result",
                        "uuid": "r1",
                        "message": {"role": "system", "result": "Done", "total_cost_usd": 0.25},
                    }
                ]
            )
        )
        assert messages[0].content == "[Result] Done (Cost: $0.25)"

    def test_error(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(to_jsonl([{"type": "error", "uuid": "e1", "message": {"role": "system"}}]))
        assert messages[0].content == ERROR_MESSAGE

    def test_other_system_records_are_skipped(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(
            to_jsonl([{"type": "system", "uuid": "s1", "message": {"role": "system", "subtype": "compact"}}])
        )
        assert messages == []


class TestSubtasks:
    """Task delegation calls and their sidechain conversations."""

    def transcript(self) -> str:
        return to_jsonl(
            [
                user("u0", "Investigate"),
                assistant(
                    "a1",
                    [
                        tool_use("t1", "Task", {"description": "First", "prompt": "p1"}),
                        tool_use("t2", "Task", {"description": "Second", "prompt": "p2"}),
                    ],
                ),
                user("x1", "independent job", isSidechain=True, parentUuid=None),
                user("y1", "job for t1", isSidechain=True, parentUuid=None),
                assistant(
                    "x2",
                    [
                        {"type": "text", "text": "planning"},
                        tool_use(
                            "c9",
                            "TodoWrite",
                            {"todos": [{"id": "1", "content": "step", "status": "pending", "priority": "low"}]},
                        ),
                    ],
                    isSidechain=True,
                    parentUuid="x1",
                ),
                assistant("y2", [{"type": "text", "text": "done with t1"}], isSidechain=True, parentUuid="y1"),
                user(
                    "u1",
                    [tool_result("t1", "first result"), tool_result("t2", "second result")],
                ),
            ]
        )

    def test_sidechain_records_are_not_top_level(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(self.transcript())
        assert [m.id for m in messages] == ["u0", "a1"]

    def test_referencing_chain_goes_to_its_call(self, converter: TranscriptConverter) -> None:
        messages = converter.convert(self.transcript())
        first, second = messages[1].parts
        assert isinstance(first, ToolInvocationPart) and isinstance(second, ToolInvocationPart)

        assert first.subtask is not None
        assert first.subtask.uid == "y1"
        assert first.subtask.client_task_id == "t1"
        assert [m.id for m in first.subtask.messages] == ["y1", "y2"]
        assert first.output == {"result": "first result"}

        assert second.subtask is not None
        assert second.subtask.uid == "x1"
        assert [m.id for m in second.subtask.messages] == ["x1", "x2"]
        assert [t.id for t in second.subtask.todos] == ["1"]

    def test_subtask_serialized_on_part(self, converter: TranscriptConverter) -> None:
        data = json.loads(messages_to_json(converter.convert(self.transcript())))
        subtask = data[1]["parts"][0]["subtask"]
        assert subtask["clientTaskId"] == "t1"
        assert [m["content"] for m in subtask["messages"]] == ["job for t1", "done with t1"]

    def test_leftover_chain_stays_top_level(self, converter: TranscriptConverter) -> None:
        """A chain no task call claims is emitted where it appears in the stream."""
        text = to_jsonl(
            [
                assistant("a1", [tool_use("t1", "Task", {"description": "d", "prompt": "p"})]),
                user("x1", "something else", isSidechain=True),
                user("y1", "about t1", isSidechain=True),
            ]
        )
        messages = converter.convert(text)
        part = messages[0].parts[0]
        assert isinstance(part, ToolInvocationPart)
        assert part.subtask is not None
        assert part.subtask.uid == "y1"
        assert [m.id for m in messages] == ["a1", "x1"]

    def test_subtasks_can_be_disabled(self) -> None:
        """Without expansion every sidechain record stays in the top-level stream."""
        converter = TranscriptConverter(expand_subtasks=False)
        messages = converter.convert(self.transcript())
        part = messages[1].parts[0]
        assert isinstance(part, ToolInvocationPart)
        assert part.subtask is None
        assert [m.id for m in messages] == ["u0", "a1", "x1", "y1", "x2", "y2"]
        assert [p.tool_call_id for p in messages[4].parts if isinstance(p, ToolInvocationPart)] == ["c9"]

    def test_unclaimed_chain_keeps_its_tool_calls(self, converter: TranscriptConverter) -> None:
        """Sidechain tool calls outside any task call still get a part and their result."""
        text = to_jsonl(
            [
                user("u0", "hello"),
                user("s1", "sub prompt", isSidechain=True),
                assistant("s2", [tool_use("c5", "Bash", {"command": "ls"})], isSidechain=True, parentUuid="s1"),
                user("s3", [tool_result("c5", "file.txt")], isSidechain=True, parentUuid="s2"),
            ]
        )
        messages = converter.convert(text)
        assert [m.id for m in messages] == ["u0", "s1", "s2"]
        part = messages[2].parts[0]
        assert isinstance(part, ToolInvocationPart)
        assert part.tool_call_id == "c5"
        assert part.output == {"output": "file.txt", "isTruncated": False}

    def test_tool_calls_pair_inside_chain(self, converter: TranscriptConverter) -> None:
        """Calls made by the sub-agent pair with results logged later in its chain."""
        text = to_jsonl(
            [
                assistant("a1", [tool_use("t1", "Task", {"description": "d", "prompt": "p"})]),
                user("s1", "work on t1", isSidechain=True),
                assistant("s2", [tool_use("c5", "Bash", {"command": "ls"})], isSidechain=True, parentUuid="s1"),
                user("s3", [tool_result("c5", "file.txt")], isSidechain=True, parentUuid="s2"),
                assistant("s4", [{"type": "text", "text": "found file.txt"}], isSidechain=True, parentUuid="s3"),
                user("u1", [tool_result("t1", "found file.txt")]),
            ]
        )
        messages = converter.convert(text)
        assert [m.id for m in messages] == ["a1"]

        part = messages[0].parts[0]
        assert isinstance(part, ToolInvocationPart)
        assert part.subtask is not None
        nested = part.subtask.messages
        assert [m.id for m in nested] == ["s1", "s2", "s4"]
        nested_call = nested[1].parts[0]
        assert isinstance(nested_call, ToolInvocationPart)
        assert nested_call.state == "output-available"
        assert nested_call.output == {"output": "file.txt", "isTruncated": False}

    def test_task_call_inside_chain(self, converter: TranscriptConverter) -> None:
        """A task call made by a sub-agent pairs with its result within the chain."""
        text = to_jsonl(
            [
                assistant("a1", [tool_use("t1", "Task", {"description": "outer", "prompt": "p"})]),
                user("s1", "work on t1", isSidechain=True),
                assistant(
                    "s2",
                    [tool_use("t2", "Task", {"description": "inner", "prompt": "q"})],
                    isSidechain=True,
                    parentUuid="s1",
                ),
                user("s3", [tool_result("t2", "inner done")], isSidechain=True, parentUuid="s2"),
            ]
        )
        messages = converter.convert(text)
        outer = messages[0].parts[0]
        assert isinstance(outer, ToolInvocationPart)
        assert outer.subtask is not None
        inner = outer.subtask.messages[1].parts[0]
        assert isinstance(inner, ToolInvocationPart)
        assert inner.to_dict()["type"] == "tool-newTask"
        assert inner.output == {"result": "inner done"}

    def test_sidechain_only_log(self, converter: TranscriptConverter) -> None:
        """A log holding only sidechain records converts as its own thread."""
        text = to_jsonl(
            [
                user("x1", "sub prompt", isSidechain=True),
                assistant("x2", [{"type": "text", "text": "sub answer"}], isSidechain=True, parentUuid="x1"),
            ]
        )
        assert [m.id for m in converter.convert(text)] == ["x1", "x2"]
