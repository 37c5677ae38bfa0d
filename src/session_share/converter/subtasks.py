"""Reconstruction of nested sub-agent conversations from sidechain records.

A task delegation tool call spawns a sub-agent whose turns are logged inline,
flagged with ``isSidechain``. Each sub-agent conversation is a tree rooted at a
sidechain record without a parent; it is linearized depth-first, children in
stream order, and attached to the task call that spawned it.
"""

from collections import defaultdict
from collections.abc import Callable

from session_share.logging import get_logger
from session_share.models import (
    NormalizedMessage,
    SubTask,
    TextBlock,
    Todo,
    ToolResultBlock,
    ToolUseBlock,
    TranscriptRecord,
)

logger = get_logger("subtasks")

TODO_TOOL_NAME = "TodoWrite"

ChainConverter = Callable[[list[TranscriptRecord], "ChainTracker"], list[NormalizedMessage]]


class ChainTracker:
    """Chains already attached to a task call during one conversion pass."""

    def __init__(self) -> None:
        self._used: set[str] = set()
        self._claimed: set[str] = set()

    def is_used(self, chain_id: str) -> bool:
        return chain_id in self._used

    def consume(self, chain_id: str, chain: list[TranscriptRecord]) -> None:
        self._used.add(chain_id)
        self._claimed.update(record.uuid for record in chain if record.uuid)

    def claims(self, record: TranscriptRecord) -> bool:
        """Check whether ``record`` belongs to a chain attached to a task call."""
        return record.uuid is not None and record.uuid in self._claimed

    def __len__(self) -> int:
        return len(self._used)


def build_subtask_chains(
    records: list[TranscriptRecord],
    start: int,
) -> dict[str, list[TranscriptRecord]]:
    """Group sidechain records from ``start`` onward into chains.

    Args:
        records: Records in stream order
        start: Position to start collecting sidechain records from

    Returns:
        Mapping of root uuid to the chain's records, ordered by root position
    """
    sidechain = [(index, record) for index, record in enumerate(records) if index >= start and record.is_sidechain]

    children: dict[str, list[tuple[int, TranscriptRecord]]] = defaultdict(list)
    for index, record in sidechain:
        if record.parent_uuid is not None:
            children[record.parent_uuid].append((index, record))

    chains: dict[str, list[TranscriptRecord]] = {}
    for head_index, head in sidechain:
        if head.parent_uuid is not None or not head.uuid or head.uuid in chains:
            continue

        chain: list[TranscriptRecord] = []
        placed: set[int] = set()
        stack = [(head_index, head)]
        while stack:
            index, record = stack.pop()
            if index in placed:
                continue
            placed.add(index)
            chain.append(record)
            if not record.uuid:
                continue
            # A child only counts if it was logged after its parent
            later = [(i, child) for i, child in children.get(record.uuid, []) if i > index]
            stack.extend(reversed(later))

        chains[head.uuid] = chain

    return chains


def chain_references(chain: list[TranscriptRecord], tool_call_id: str) -> bool:
    """Check whether any record of the chain mentions the tool call id."""
    for record in chain:
        if record.message is None:
            continue
        content = record.message.content
        if isinstance(content, str):
            if tool_call_id in content:
                return True
            continue
        for block in record.message.blocks:
            if isinstance(block, TextBlock) and tool_call_id in block.text:
                return True
            if isinstance(block, ToolResultBlock) and block.tool_use_id == tool_call_id:
                return True
            if isinstance(block, ToolUseBlock) and block.id == tool_call_id:
                return True
    return False


def find_chain_for_task(
    tool_call_id: str,
    records: list[TranscriptRecord],
    start: int,
    tracker: ChainTracker,
) -> list[TranscriptRecord]:
    """Pick the sub-agent chain belonging to a task delegation call.

    A chain that references the call id wins. Otherwise the unused chain
    whose root comes first after the call is taken. The chosen chain is
    consumed so no other task call can claim it.

    Returns:
        The chain's records, or an empty list if no chain is available
    """
    chains = build_subtask_chains(records, start)

    for chain_id, chain in chains.items():
        if not tracker.is_used(chain_id) and chain_references(chain, tool_call_id):
            tracker.consume(chain_id, chain)
            return chain

    # Chains are ordered by root position, so the first unused one is the closest
    for chain_id, chain in chains.items():
        if not tracker.is_used(chain_id):
            logger.debug("Attaching chain %s to task %s by position", chain_id, tool_call_id)
            tracker.consume(chain_id, chain)
            return chain

    return []


def extract_todos(chain: list[TranscriptRecord]) -> list[Todo]:
    """Collect todo items from the TodoWrite calls of a chain."""
    todos: list[Todo] = []
    for record in chain:
        if record.message is None:
            continue
        for block in record.message.blocks:
            if not isinstance(block, ToolUseBlock) or block.name != TODO_TOOL_NAME:
                continue
            items = block.input.get("todos")
            if not isinstance(items, list):
                continue
            for item in items:
                if not isinstance(item, dict):
                    continue
                values = [item.get(key) for key in ("id", "content", "status", "priority")]
                if all(isinstance(value, str) for value in values):
                    todos.append(Todo(*values))
    return todos


def extract_subtask(
    tool_call_id: str,
    records: list[TranscriptRecord],
    start: int,
    tracker: ChainTracker,
    convert: ChainConverter,
) -> SubTask | None:
    """Resolve and convert the nested conversation of a task delegation call.

    Args:
        tool_call_id: Id of the task tool_use block
        records: Records the call was found in, in stream order
        start: Position of the record that issued the call
        tracker: Chains consumed so far in this conversion pass
        convert: Converts the chain's records into messages

    Returns:
        The subtask, or None if no chain could be resolved
    """
    chain = find_chain_for_task(tool_call_id, records, start, tracker)
    if not chain:
        logger.debug("No sidechain found for task %s", tool_call_id)
        return None

    return SubTask(
        uid=chain[0].uuid or tool_call_id,
        client_task_id=tool_call_id,
        messages=convert(chain, tracker),
        todos=extract_todos(chain),
    )
