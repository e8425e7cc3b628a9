"""Conversation data models."""
from dataclasses import dataclass
from typing import Optional


@dataclass
class ConversationTurn:
    """A user utterance and the assistant reply that followed it."""
    user: str
    assistant: Optional[str] = None
