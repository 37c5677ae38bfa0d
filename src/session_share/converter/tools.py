"""Translation of provider tool calls into normalized tool invocation parts.

Each native tool name maps to a ToolSpec holding two functions: one that
normalizes the call's input and one that normalizes the matched result into
the tool's output shape. The output function is only consulted when a result
was found; otherwise the part stays in the call state.
"""

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from session_share.converter.matcher import ToolResultView
from session_share.models import SubTask, ToolInvocationPart, ToolUseBlock

InputFn = Callable[[dict[str, Any], str], dict[str, Any]]
OutputFn = Callable[[dict[str, Any], ToolResultView, str], dict[str, Any]]

FILE_NOT_FOUND_ERROR = "Error: ENOENT: no such file or directory"
MISSING_PATCH_ERROR = "Error: tool result has no structured patch"
TODO_PRIORITIES = ("low", "medium", "high")


@dataclass(frozen=True)
class ToolSpec:
    ui_name: str
    to_input: InputFn
    to_output: OutputFn


def convert_line_endings(text: str) -> str:
    """Convert line endings to CRLF, the convention of the sharing target."""
    return re.sub(r"\r?\n", "\r\n", text)


def strip_cwd_prefix(path: Any, cwd: str) -> Any:
    """Make ``path`` relative to ``cwd`` when it starts with it verbatim."""
    if not cwd or not path or not isinstance(path, str):
        return path

    normalized_cwd = cwd.rstrip("/")
    normalized_path = path.rstrip("/")
    if not normalized_cwd:
        return path

    if normalized_path == normalized_cwd:
        return ""
    if normalized_path.startswith(normalized_cwd + "/"):
        return normalized_path[len(normalized_cwd) + 1 :]
    return path


def strip_cwd_from_text(text: str, cwd: str) -> str:
    """Remove ``<cwd>/`` occurrences from free text such as command output."""
    normalized_cwd = cwd.rstrip("/") if cwd else ""
    if not normalized_cwd or not text:
        return text
    return re.sub(re.escape(normalized_cwd) + r"//?", "", text)


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


def _stringify(value: Any, fallback: str) -> str:
    if value is None:
        return fallback
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _count_patch_lines(lines: Any) -> tuple[int, int]:
    added = removed = 0
    if not isinstance(lines, list):
        return added, removed
    for line in lines:
        if not isinstance(line, str):
            continue
        if line.startswith("+"):
            added += 1
        if line.startswith("-"):
            removed += 1
    return added, removed


def _edit_summary(success: bool, added: int, removed: int) -> dict[str, Any]:
    return {"success": success, "_meta": {"editSummary": {"added": added, "removed": removed}}}


# LS -> listFiles


def _list_files_input(raw: dict[str, Any], cwd: str) -> dict[str, Any]:
    return {"path": strip_cwd_prefix(raw.get("path", ""), cwd)}


def _list_files_output(raw: dict[str, Any], result: ToolResultView, cwd: str) -> dict[str, Any]:
    listing = result.value if isinstance(result.value, str) else result.text
    files = [strip_cwd_prefix(line, cwd) for line in listing.split("\n") if line]
    return {"files": files, "isTruncated": False}


# Write -> writeToFile


def _write_input(raw: dict[str, Any], cwd: str) -> dict[str, Any]:
    return {
        "content": raw.get("content", ""),
        "path": strip_cwd_prefix(raw.get("file_path", ""), cwd),
    }


def _write_output(raw: dict[str, Any], result: ToolResultView, cwd: str) -> dict[str, Any]:
    if not result.is_error:
        return {"success": True}
    error = result.value if isinstance(result.value, str) else result.text
    return {"success": False, "error": strip_cwd_from_text(error, cwd)}


# Glob -> globFiles


def _glob_input(raw: dict[str, Any], cwd: str) -> dict[str, Any]:
    return _compact(
        {
            "globPattern": raw.get("pattern", ""),
            "path": strip_cwd_prefix(raw.get("path"), cwd),
        }
    )


def _glob_output(raw: dict[str, Any], result: ToolResultView, cwd: str) -> dict[str, Any]:
    filenames = result.value.get("filenames") if isinstance(result.value, dict) else None
    if not isinstance(filenames, list):
        filenames = []
    files = [strip_cwd_prefix(name, cwd) for name in filenames if isinstance(name, str)]
    return {"files": files, "isTruncated": False}


# TodoWrite -> todoWrite


def _todo_input(raw: dict[str, Any], cwd: str) -> dict[str, Any]:
    todos = []
    items = raw.get("todos")
    for todo in items if isinstance(items, list) else []:
        if not isinstance(todo, dict):
            continue
        priority = todo.get("priority")
        todos.append({**todo, "priority": priority if priority in TODO_PRIORITIES else "medium"})
    return {"todos": todos}


def _todo_output(raw: dict[str, Any], result: ToolResultView, cwd: str) -> dict[str, Any]:
    success = True
    if isinstance(result.value, dict) and "success" in result.value:
        success = bool(result.value["success"])
    return {"success": success}


# MultiEdit -> multiApplyDiff


def _multi_edit_input(raw: dict[str, Any], cwd: str) -> dict[str, Any]:
    raw_edits = raw.get("edits")
    edits = [
        {"searchContent": edit.get("old_string", ""), "replaceContent": edit.get("new_string", "")}
        for edit in (raw_edits if isinstance(raw_edits, list) else [])
        if isinstance(edit, dict)
    ]
    return {"path": strip_cwd_prefix(raw.get("file_path", ""), cwd), "edits": edits}


def _multi_edit_output(raw: dict[str, Any], result: ToolResultView, cwd: str) -> dict[str, Any]:
    if result.is_error:
        return {"success": False}

    patch = result.value.get("structuredPatch") if isinstance(result.value, dict) else None
    if not isinstance(patch, list):
        return {"success": False, "error": MISSING_PATCH_ERROR}

    added = removed = 0
    for hunk in patch:
        if isinstance(hunk, dict):
            hunk_added, hunk_removed = _count_patch_lines(hunk.get("lines"))
            added += hunk_added
            removed += hunk_removed
    return _edit_summary(True, added, removed)


# Task -> newTask


def _task_input(raw: dict[str, Any], cwd: str) -> dict[str, Any]:
    return {"description": raw.get("description", ""), "prompt": raw.get("prompt", "")}


def _task_output(raw: dict[str, Any], result: ToolResultView, cwd: str) -> dict[str, Any]:
    content = result.value.get("content") if isinstance(result.value, dict) else None
    if isinstance(content, list) and content and isinstance(content[0], dict):
        text = content[0].get("text") or ""
    else:
        text = result.text
    return {"result": text}


# Read -> readFile


def _read_input(raw: dict[str, Any], cwd: str) -> dict[str, Any]:
    return _compact(
        {
            "path": strip_cwd_prefix(raw.get("file_path", ""), cwd),
            "startLine": raw.get("offset"),
            "endLine": raw.get("limit"),
        }
    )


def _read_output(raw: dict[str, Any], result: ToolResultView, cwd: str) -> dict[str, Any]:
    file = result.value.get("file") if isinstance(result.value, dict) else None
    if not isinstance(file, dict):
        return {"error": FILE_NOT_FOUND_ERROR, "content": "", "isTruncated": False}
    return {"content": file.get("content") or "", "isTruncated": False}


# WebFetch -> webFetch


def _web_fetch_input(raw: dict[str, Any], cwd: str) -> dict[str, Any]:
    return {"url": raw.get("url", "")}


def _web_fetch_output(raw: dict[str, Any], result: ToolResultView, cwd: str) -> dict[str, Any]:
    if isinstance(result.value, dict):
        text = result.value.get("result") or ""
    else:
        text = result.text
    return {"result": text, "isTruncated": False}


# Edit -> applyDiff


def _edit_input(raw: dict[str, Any], cwd: str) -> dict[str, Any]:
    return {
        "path": strip_cwd_prefix(raw.get("file_path", ""), cwd),
        "searchContent": raw.get("old_string", ""),
        "replaceContent": raw.get("new_string", ""),
    }


def _edit_output(raw: dict[str, Any], result: ToolResultView, cwd: str) -> dict[str, Any]:
    if result.is_error or not isinstance(result.value, dict):
        output = _edit_summary(False, 0, 0)
        if result.is_error:
            output["error"] = strip_cwd_from_text(_stringify(result.value, result.text), cwd)
        return output

    patch = result.value.get("structuredPatch")
    first_hunk = patch[0] if isinstance(patch, list) and patch else None
    lines = first_hunk.get("lines") if isinstance(first_hunk, dict) else None
    added, removed = _count_patch_lines(lines)
    return _edit_summary(True, added, removed)


# Bash -> executeCommand


def _bash_input(raw: dict[str, Any], cwd: str) -> dict[str, Any]:
    return {"command": raw.get("command") or ""}


def _bash_output(raw: dict[str, Any], result: ToolResultView, cwd: str) -> dict[str, Any]:
    value = result.value
    if result.is_error:
        text = value if isinstance(value, str) else result.text
    elif isinstance(value, dict) and "stdout" in value:
        text = value.get("stdout") or ""
    elif isinstance(value, str):
        text = value
    else:
        text = result.text

    return {
        "output": convert_line_endings(strip_cwd_from_text(text, cwd)),
        "isTruncated": False,
    }


# Anything else passes through unchanged


def _passthrough_input(raw: dict[str, Any], cwd: str) -> dict[str, Any]:
    return dict(raw)


def _passthrough_output(raw: dict[str, Any], result: ToolResultView, cwd: str) -> dict[str, Any]:
    return {"output": strip_cwd_from_text(_stringify(result.value, result.text), cwd)}


CLAUDE_CODE_TOOLS: dict[str, ToolSpec] = {
    "LS": ToolSpec("listFiles", _list_files_input, _list_files_output),
    "Write": ToolSpec("writeToFile", _write_input, _write_output),
    "Glob": ToolSpec("globFiles", _glob_input, _glob_output),
    "TodoWrite": ToolSpec("todoWrite", _todo_input, _todo_output),
    "MultiEdit": ToolSpec("multiApplyDiff", _multi_edit_input, _multi_edit_output),
    "Task": ToolSpec("newTask", _task_input, _task_output),
    "Read": ToolSpec("readFile", _read_input, _read_output),
    "WebFetch": ToolSpec("webFetch", _web_fetch_input, _web_fetch_output),
    "Edit": ToolSpec("applyDiff", _edit_input, _edit_output),
    "Bash": ToolSpec("executeCommand", _bash_input, _bash_output),
}


def passthrough_spec(tool_name: str) -> ToolSpec:
    """ToolSpec for a tool with no dedicated translation; keeps its native name."""
    return ToolSpec(tool_name, _passthrough_input, _passthrough_output)


class ToolCallTranslator:
    """Maps native tool calls to ToolInvocationParts using a table of ToolSpecs."""

    def __init__(self, specs: dict[str, ToolSpec] | None = None):
        self.specs = dict(CLAUDE_CODE_TOOLS if specs is None else specs)

    def translate(
        self,
        call: ToolUseBlock,
        result: ToolResultView | None,
        cwd: str = "",
        subtask: SubTask | None = None,
    ) -> ToolInvocationPart:
        """Build the invocation part for one call and its matched result.

        Args:
            call: The tool_use block
            result: The matched result, or None if the call never completed
            cwd: Working directory of the calling record
            subtask: Nested conversation for task delegation calls

        Returns:
            Part in the result state when ``result`` is given, else in the call state
        """
        spec = self.specs.get(call.name) or passthrough_spec(call.name)
        if result is not None and result.cwd:
            cwd = result.cwd

        tool_input = spec.to_input(call.input, cwd)
        if result is None:
            return ToolInvocationPart(
                tool_name=spec.ui_name,
                tool_call_id=call.id,
                input=tool_input,
                subtask=subtask,
            )

        return ToolInvocationPart(
            tool_name=spec.ui_name,
            tool_call_id=call.id,
            input=tool_input,
            output=spec.to_output(call.input, result, cwd),
            subtask=subtask,
        )
