"""Conversation turn value type shared by the normalizer, adapters, and persistence."""

from dataclasses import dataclass

from .constants import Role


@dataclass(frozen=True)
class ChatTurn:
    role: Role
    content: str
    model_tag: str | None = None

    def trimmed(self) -> "ChatTurn":
        return ChatTurn(role=self.role, content=self.content.strip(), model_tag=self.model_tag)

    @property
    def is_blank(self) -> bool:
        return not self.content.strip()
