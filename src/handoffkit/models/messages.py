"""Inbound user message models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from handoffkit.providers.ai.base import AIImagePart, AIMessage, AITextPart


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class FilePart(BaseModel):
    """An attached file. Never retained in durable history."""

    type: Literal["file"] = "file"
    url: str
    media_type: str
    filename: str | None = None


class UserMessage(BaseModel):
    """The single user message that starts a turn."""

    id: str | None = None
    parts: list[TextPart | FilePart] = Field(default_factory=list)

    @classmethod
    def from_text(cls, text: str, *, id: str | None = None) -> UserMessage:
        return cls(id=id, parts=[TextPart(text=text)])

    @property
    def text(self) -> str:
        """Concatenated text parts, file parts stripped."""
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def has_files(self) -> bool:
        return any(isinstance(p, FilePart) for p in self.parts)

    def to_ai_message(self) -> AIMessage:
        """Convert for the model call. Image files become image parts."""
        if not self.has_files:
            return AIMessage(role="user", content=self.text)
        content: list[AITextPart | AIImagePart] = []
        for part in self.parts:
            if isinstance(part, TextPart):
                content.append(AITextPart(text=part.text))
            elif part.media_type.startswith("image/"):
                content.append(AIImagePart(url=part.url, mime_type=part.media_type))
        return AIMessage(role="user", content=content)  # type: ignore[arg-type]
