"""Conversation history models."""

from typing import Literal

from pydantic import BaseModel


class ChatMessage(BaseModel):
    """A message in the chat history."""

    role: Literal["user", "assistant"]
    content: str


class ConversationHistory:
    """Ordered, in-memory record of the chat.

    Insertion order defines prompt order. Only the REPL mutates it, and only
    after a turn has settled.
    """

    def __init__(self, messages: list[ChatMessage] | None = None):
        self._messages: list[ChatMessage] = list(messages or [])

    def record_turn(self, question: str, answer: str) -> None:
        """Append a completed question/answer pair."""
        self._messages.append(ChatMessage(role="user", content=question))
        self._messages.append(ChatMessage(role="assistant", content=answer))

    def clear(self) -> None:
        self._messages.clear()

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def __iter__(self):
        return iter(list(self._messages))

    def __len__(self) -> int:
        return len(self._messages)
