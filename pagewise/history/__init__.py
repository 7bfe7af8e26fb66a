"""Conversation history persistence."""

from .models import Base, ConversationTurnRecord
from .store import HistoryStore

__all__ = ["Base", "ConversationTurnRecord", "HistoryStore"]
