"""Status line integration.

Claude Code pipes a JSON status object to the configured status line command
on stdin. This module turns the current transcript into a share link and
formats the one-line status.
"""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

from session_share.converter.records import TranscriptDecodeError
from session_share.logging import get_logger
from session_share.models import NormalizedMessage
from session_share.providers.base import Provider
from session_share.uploader import UploadError

logger = get_logger("statusline")

Uploader = Callable[[list[NormalizedMessage], str], str]


def has_conversation_content(path: Path) -> bool:
    """Check that a transcript exists and has at least one user or assistant line."""
    try:
        if not path.is_file() or path.stat().st_size == 0:
            return False
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if isinstance(entry, dict) and entry.get("type") in ("user", "assistant"):
                    return True
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Error checking conversation content in %s: %s", path, e)
    return False


def generate_share_link(path: Path, provider: Provider, upload: Uploader) -> str | None:
    """Convert and upload a transcript, returning None if any step fails."""
    try:
        messages = provider.convert_to_messages(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, TranscriptDecodeError) as e:
        logger.warning("Failed to convert %s: %s", path, e)
        return None

    if not messages:
        logger.info("No messages found in %s", path)
        return None

    try:
        return upload(messages, provider.name)
    except UploadError as e:
        logger.warning("Failed to generate share link for %s: %s", path, e)
        return None


def render_status_line(data: dict[str, Any], provider: Provider, upload: Uploader) -> str | None:
    """Build the status line for a status object.

    Args:
        data: Status object (model, workspace, transcript_path)
        provider: Provider used to convert the transcript
        upload: Callable that uploads messages and returns a share link

    Returns:
        The status line, or None when there is nothing to show
    """
    model = data.get("model")
    workspace = data.get("workspace")
    model_name = (model.get("display_name") if isinstance(model, dict) else None) or "Unknown"
    project_dir = (workspace.get("project_dir") if isinstance(workspace, dict) else None) or ""
    transcript_path = data.get("transcript_path")
    if not isinstance(transcript_path, str):
        transcript_path = ""
    if not isinstance(project_dir, str):
        project_dir = ""

    share_link = None
    if transcript_path:
        if has_conversation_content(Path(transcript_path)):
            share_link = generate_share_link(Path(transcript_path), provider, upload)
        else:
            logger.info("Conversation %s is empty or has no user/assistant messages", transcript_path)

    if share_link:
        return f"[{model_name}] 🔗 Share Link: {share_link}"
    if transcript_path and project_dir:
        return f"[{model_name}] 📜 {transcript_path} | 📁 {Path(project_dir).name}"
    return None
