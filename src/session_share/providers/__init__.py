"""Transcript providers, selected by name."""

from .base import Provider, ProviderRegistry, UnknownProviderError, title_preview
from .claude_code import ClaudeCodeProvider

__all__ = [
    "ClaudeCodeProvider",
    "Provider",
    "ProviderRegistry",
    "UnknownProviderError",
    "title_preview",
]

# Register providers
ProviderRegistry.register(ClaudeCodeProvider())
