"""Provider for Claude Code conversation transcripts.

Claude Code stores conversations as JSONL files at:
    ~/.claude/projects/<encoded-project-path>/<session-id>.jsonl
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from session_share.config import ProviderConfig
from session_share.converter.transcript import TranscriptConverter
from session_share.logging import get_logger
from session_share.models import Conversation, NormalizedMessage
from session_share.providers.base import Provider, title_preview

logger = get_logger("claude_code")

DEFAULT_PROJECTS_DIR = Path.home() / ".claude" / "projects"


def _first_user_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = [
            item["text"]
            for item in content
            if isinstance(item, dict) and item.get("type") == "text" and isinstance(item.get("text"), str)
        ]
        if texts:
            return " ".join(texts)
    return json.dumps(content, ensure_ascii=False)


def extract_first_message(path: Path) -> str | None:
    """Return a preview of the first user message in a transcript file.

    Malformed lines are skipped; an unreadable file yields None.
    """
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if not isinstance(entry, dict) or entry.get("type") != "user":
                    continue
                message = entry.get("message")
                if isinstance(message, dict) and message.get("content"):
                    return title_preview(_first_user_text(message["content"]))
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Could not read %s: %s", path, e)
    return None


class ClaudeCodeProvider(Provider):
    """Provider for Claude Code JSONL session logs."""

    name = "claude"
    display_name = "Claude Code"

    def __init__(self, projects_dir: Path | None = None):
        self.projects_dir = projects_dir or DEFAULT_PROJECTS_DIR
        self.converter = TranscriptConverter()

    def with_settings(self, settings: ProviderConfig | None) -> "ClaudeCodeProvider":
        if settings is None or settings.projects_dir is None:
            return self
        return ClaudeCodeProvider(projects_dir=settings.projects_dir)

    def list_conversations(self) -> list[Conversation]:
        """Discover Claude Code conversation files.

        Location: <projects_dir>/<project>/*.jsonl
        """
        if not self.projects_dir.exists():
            return []

        conversations: list[Conversation] = []
        for project_dir in sorted(p for p in self.projects_dir.iterdir() if p.is_dir()):
            try:
                files = sorted(project_dir.glob("*.jsonl"))
            except OSError as e:
                logger.warning("Error scanning %s: %s", project_dir, e)
                continue

            for file_path in files:
                try:
                    mtime = datetime.fromtimestamp(file_path.stat().st_mtime)
                except OSError as e:
                    logger.warning("Error reading %s: %s", file_path, e)
                    continue
                conversations.append(
                    Conversation(
                        path=str(file_path),
                        mtime=mtime,
                        title=extract_first_message(file_path) or "(empty)",
                    )
                )

        logger.debug("Discovered %d Claude Code conversations in %s", len(conversations), self.projects_dir)

        # Newest first
        return sorted(conversations, key=lambda c: c.mtime, reverse=True)

    def convert_to_messages(self, content: str) -> list[NormalizedMessage]:
        return self.converter.convert(content)
