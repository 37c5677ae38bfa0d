"""Base provider interface and registry."""

from abc import ABC, abstractmethod

from session_share.config import ProviderConfig
from session_share.models import Conversation, NormalizedMessage

__all__ = ["Provider", "ProviderRegistry", "UnknownProviderError", "title_preview"]

TITLE_PREVIEW_LENGTH = 100


def title_preview(text: str, limit: int = TITLE_PREVIEW_LENGTH) -> str:
    """Shorten a first message to a one-line conversation title."""
    return f"{text[:limit]}..." if len(text) > limit else text


class UnknownProviderError(KeyError):
    """No provider is registered under the requested name."""

    def __init__(self, name: str, available: list[str]):
        super().__init__(name)
        self.name = name
        self.available = available

    def __str__(self) -> str:
        return f"Unknown provider: {self.name}, available options: {', '.join(self.available)}"


class Provider(ABC):
    """Base class for transcript providers.

    Subclasses must set the `name` and `display_name` class attributes and
    implement conversation discovery and conversion of one conversation's raw
    text into normalized messages.
    """

    name: str
    display_name: str

    @abstractmethod
    def list_conversations(self) -> list[Conversation]:
        """List conversations found in the provider's well-known directory.

        Returns:
            Conversations, most recently modified first
        """

    @abstractmethod
    def convert_to_messages(self, content: str) -> list[NormalizedMessage]:
        """Convert the raw text of one conversation into normalized messages.

        Args:
            content: Full conversation file content

        Returns:
            Messages in conversation order

        Raises:
            TranscriptDecodeError: If the content cannot be decoded
        """

    def with_settings(self, settings: ProviderConfig | None) -> "Provider":
        """Return a provider honoring per-provider configuration (self by default)."""
        return self


class ProviderRegistry:
    """Registry of providers by name."""

    _providers: dict[str, Provider] = {}
    default_name = "claude"

    @classmethod
    def register(cls, provider: Provider) -> None:
        """Register a provider."""
        cls._providers[provider.name] = provider

    @classmethod
    def get(cls, name: str | None = None) -> Provider:
        """Get provider by name, or the default provider when no name is given.

        Raises:
            UnknownProviderError: If no provider has that name
        """
        key = name or cls.default_name
        provider = cls._providers.get(key)
        if provider is None:
            raise UnknownProviderError(key, cls.all_names())
        return provider

    @classmethod
    def all_names(cls) -> list[str]:
        """List all registered provider names."""
        return list(cls._providers.keys())
