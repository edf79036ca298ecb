"""
Conversation context and reference resolution for chat-driven task tracking.

This module provides:
- similarity: normalized edit-distance score between names
- EntityResolver: maps user references ("Desgin doc", "it") to projects and tasks
- ResolvedReference: tagged found / not_found / ambiguous result
- ConversationContext: per-conversation active entities and confirmations
"""

from tomato.context.similarity import SIMILARITY_THRESHOLD, levenshtein, similarity
from tomato.context.resolver import (
    Candidate,
    EntityKind,
    EntityResolver,
    MatchKind,
    ResolutionContext,
    ResolutionOutcome,
    ResolvedReference,
)
from tomato.context.conversation import ConversationContext, PendingAction

__all__ = [
    "SIMILARITY_THRESHOLD",
    "levenshtein",
    "similarity",
    "Candidate",
    "EntityKind",
    "EntityResolver",
    "MatchKind",
    "ResolutionContext",
    "ResolutionOutcome",
    "ResolvedReference",
    "ConversationContext",
    "PendingAction",
]
