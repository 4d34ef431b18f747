"""Memory configuration models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from handoffkit.memory.base import MemoryGateway
from handoffkit.models.enums import MemoryScope
from handoffkit.providers.ai.base import AIProvider

DEFAULT_TITLE_INSTRUCTIONS = (
    "Generate a short title based on the user's message. Max 80 characters. No quotes or colons."
)

DEFAULT_SUGGESTIONS_INSTRUCTIONS = (
    "Suggest short follow-up prompts the user might send next, based on the "
    "conversation. Write one prompt per line, no numbering, no quotes."
)


class WorkingMemoryConfig(BaseModel):
    enabled: bool = False
    scope: MemoryScope = MemoryScope.CHAT
    template: str | None = None


class HistoryConfig(BaseModel):
    enabled: bool = False
    limit: int = Field(default=10, ge=0)


class GenerateTitleConfig(BaseModel):
    """Chat title generation. ``provider`` defaults to the agent's provider."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    enabled: bool = True
    provider: AIProvider | None = None
    instructions: str = DEFAULT_TITLE_INSTRUCTIONS


class GenerateSuggestionsConfig(BaseModel):
    """Follow-up suggestion generation.

    Attributes:
        limit: Maximum number of suggestions emitted.
        min_response_length: Assistant text must be longer than this.
        context_window: Number of recent user/assistant exchanges used as
            prompt context.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    enabled: bool = True
    provider: AIProvider | None = None
    instructions: str = DEFAULT_SUGGESTIONS_INSTRUCTIONS
    limit: int = Field(default=5, ge=1)
    min_response_length: int = Field(default=100, ge=0)
    context_window: int = Field(default=1, ge=1)


class ChatsConfig(BaseModel):
    enabled: bool = False
    generate_title: bool | GenerateTitleConfig = False
    generate_suggestions: bool | GenerateSuggestionsConfig = False
    title_wait_seconds: float = Field(default=2.0, ge=0)

    @property
    def title(self) -> GenerateTitleConfig | None:
        """Normalized title config, or ``None`` when disabled."""
        cfg = self.generate_title
        if cfg is True:
            cfg = GenerateTitleConfig()
        if not isinstance(cfg, GenerateTitleConfig) or not cfg.enabled:
            return None
        return cfg

    @property
    def suggestions(self) -> GenerateSuggestionsConfig | None:
        """Normalized suggestions config, or ``None`` when disabled."""
        cfg = self.generate_suggestions
        if cfg is True:
            cfg = GenerateSuggestionsConfig()
        if not isinstance(cfg, GenerateSuggestionsConfig) or not cfg.enabled:
            return None
        return cfg


class MemoryConfig(BaseModel):
    """Per-agent memory configuration.

    The entry agent's config drives history loading and persistence for the
    whole turn; each agent's own config drives its working-memory tool.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    gateway: MemoryGateway | None = None
    working_memory: WorkingMemoryConfig = Field(default_factory=WorkingMemoryConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    chats: ChatsConfig = Field(default_factory=ChatsConfig)
