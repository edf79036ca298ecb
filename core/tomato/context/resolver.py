"""
Reference resolver for mapping user references to stored projects and tasks.

Handles, in order:
- Context pronouns: "it", "this task", "the current project"
- Canonical IDs: 8-4-4-4-12 hexadecimal tokens
- Exact names: case-sensitive, only when unique
- Partial names: "report" matches "Quarterly report"
- Typos: "Desgin doc" matches "Design doc" by edit distance
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Union

from tomato.context.similarity import SIMILARITY_THRESHOLD, similarity
from tomato.errors import ValidationFailure
from tomato.store.base import StoreQueryPort
from tomato.store.models import Project, Task

Record = Union[Project, Task]


class EntityKind(str, Enum):
    """Kind of record a reference points at."""
    PROJECT = "project"
    TASK = "task"


class ResolutionOutcome(str, Enum):
    """Tag of a resolution result."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"


class MatchKind(str, Enum):
    """Which strategy produced the match."""
    CONTEXT = "context"
    ID = "id"
    EXACT = "exact"
    SUBSTRING = "substring"
    FUZZY = "fuzzy"
    NONE = "none"


@dataclass
class Candidate:
    """A ranked suggestion for a "did you mean" prompt."""
    entity: Record
    score: float
    project_name: str

    @property
    def display_name(self) -> str:
        return self.entity.display_name


@dataclass
class ResolutionContext:
    """
    What the conversation is currently about.

    Supplied by the caller on every call; the resolver itself is stateless.
    """
    active_project_id: Optional[str] = None
    active_task_id: Optional[str] = None

    def active_id(self, kind: EntityKind) -> Optional[str]:
        if kind == EntityKind.PROJECT:
            return self.active_project_id
        return self.active_task_id


@dataclass
class ResolvedReference:
    """Result of resolving a user reference: found, not found or ambiguous."""
    outcome: ResolutionOutcome
    entity: Optional[Record]
    match: MatchKind
    score: float  # 0.0 - 1.0
    reason: str  # Human-readable explanation
    candidates: list[Candidate] = field(default_factory=list)

    @classmethod
    def found(
        cls,
        entity: Record,
        match: MatchKind,
        score: float,
        reason: str,
        candidates: Optional[list[Candidate]] = None,
    ) -> "ResolvedReference":
        return cls(ResolutionOutcome.FOUND, entity, match, score, reason, candidates or [])

    @classmethod
    def not_found(cls, reason: str) -> "ResolvedReference":
        return cls(ResolutionOutcome.NOT_FOUND, None, MatchKind.NONE, 0.0, reason, [])

    @classmethod
    def ambiguous(cls, candidates: list[Candidate], reason: str) -> "ResolvedReference":
        best = candidates[0].score if candidates else 0.0
        return cls(ResolutionOutcome.AMBIGUOUS, None, MatchKind.FUZZY, best, reason, candidates)

    @property
    def is_found(self) -> bool:
        return self.outcome == ResolutionOutcome.FOUND

    @property
    def is_ambiguous(self) -> bool:
        return self.outcome == ResolutionOutcome.AMBIGUOUS

    def format_disambiguation(self, kind: EntityKind = EntityKind.TASK) -> str:
        """Format a disambiguation question for the user."""
        return format_candidates(self.candidates, kind)


def format_candidates(candidates: list[Candidate], kind: EntityKind) -> str:
    """Render ranked candidates as a "did you mean" prompt."""
    noun = kind.value
    if not candidates:
        return f"I couldn't find a matching {noun}. Could you give me its exact name or ID?"

    def label(c: Candidate) -> str:
        if kind == EntityKind.TASK and c.project_name:
            return f"{c.display_name} ({c.project_name})"
        return c.display_name

    if len(candidates) == 1:
        return f"Did you mean {label(candidates[0])}?"

    lines = [f"Which {noun} did you mean?"]
    for i, c in enumerate(candidates, 1):
        lines.append(f"  {i}. {label(c)}")
    return "\n".join(lines)


class EntityResolver:
    """
    Resolves user references like "the report task" or "Desgin doc"
    to stored projects and tasks.

    Exact and substring tiers stop at the first hit; the fuzzy tier scans
    every stored name.
    """

    ID_PATTERN = re.compile(
        r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
        re.IGNORECASE,
    )

    # References that point at whatever the conversation is about
    CONTEXT_PRONOUNS = re.compile(
        r"^(it|this|that|current|the current|the same)"
        r"(\s+(one|task|project))?$",
        re.IGNORECASE,
    )

    MAX_AMBIGUOUS_CANDIDATES = 5

    def __init__(self, store: StoreQueryPort, threshold: float = SIMILARITY_THRESHOLD):
        self.store = store
        self.threshold = threshold

    def resolve_project(
        self,
        reference: Optional[str],
        context: Optional[ResolutionContext] = None,
        accept_fuzzy: bool = True,
    ) -> ResolvedReference:
        """
        Resolve a reference to a project.

        Args:
            reference: ID, name, name fragment or pronoun typed by the user
            context: The conversation's active project/task, if any
            accept_fuzzy: If False, a typo-level match is returned as
                AMBIGUOUS instead of being accepted

        Returns:
            ResolvedReference tagged found, not_found or ambiguous
        """
        return self._resolve(EntityKind.PROJECT, reference, context, accept_fuzzy)

    def resolve_task(
        self,
        reference: Optional[str],
        context: Optional[ResolutionContext] = None,
        accept_fuzzy: bool = True,
    ) -> ResolvedReference:
        """Resolve a reference to a task, matching against titles."""
        return self._resolve(EntityKind.TASK, reference, context, accept_fuzzy)

    def resolve(
        self,
        kind: EntityKind,
        reference: Optional[str],
        context: Optional[ResolutionContext] = None,
        accept_fuzzy: bool = True,
    ) -> ResolvedReference:
        return self._resolve(kind, reference, context, accept_fuzzy)

    def suggest(
        self,
        reference: str,
        limit: int,
        kind: EntityKind = EntityKind.TASK,
    ) -> list[Candidate]:
        """
        Rank every stored record by similarity to reference.

        Ties keep the store's newest-first order. Never raises for
        an unmatched reference; returns at most limit candidates.
        """
        if limit <= 0:
            return []
        ranked = self._score_all(kind, (reference or "").strip())
        return ranked[:limit]

    # --- Tiers ---

    def _resolve(
        self,
        kind: EntityKind,
        reference: Optional[str],
        context: Optional[ResolutionContext],
        accept_fuzzy: bool,
    ) -> ResolvedReference:
        ref = (reference or "").strip()

        # 0. Pronouns and empty references defer to conversation context
        if not ref or self.CONTEXT_PRONOUNS.match(ref):
            resolved = self._resolve_from_context(kind, ref, context)
            # Without usable context a pronoun may still be a real name ("Current")
            if resolved.is_found or not ref:
                return resolved

        find_by_id, find_contains, _ = self._queries(kind)

        # 1. Canonical ID
        if self.ID_PATTERN.match(ref):
            entity = find_by_id(ref.lower())
            if entity:
                return ResolvedReference.found(entity, MatchKind.ID, 1.0, "Exact ID match")

        matches = find_contains(ref)

        # 2. Exact name, only when unique
        exact = [e for e in matches if e.display_name == ref]
        if len(exact) == 1:
            return ResolvedReference.found(exact[0], MatchKind.EXACT, 1.0, "Exact name match")

        # 3. Substring, newest wins
        if matches:
            best = matches[0]
            others = [self._candidate(e, kind) for e in matches[1:]]
            return ResolvedReference.found(
                best,
                MatchKind.SUBSTRING,
                similarity(ref, best.display_name),
                f"Name contains '{ref}' ({len(matches)} match(es), newest chosen)",
                candidates=others,
            )

        # 4. Fuzzy
        accepted = [c for c in self._score_all(kind, ref) if c.score >= self.threshold]
        if not accepted:
            return ResolvedReference.not_found(f"No {kind.value} matches '{ref}'")

        best = accepted[0]
        if not accept_fuzzy:
            return ResolvedReference.ambiguous(
                accepted[:self.MAX_AMBIGUOUS_CANDIDATES],
                f"Closest {kind.value} scored {best.score:.2f}; confirmation required",
            )
        return ResolvedReference.found(
            best.entity,
            MatchKind.FUZZY,
            best.score,
            f"Similar name with score {best.score:.2f}",
            candidates=accepted[1:],
        )

    def _resolve_from_context(
        self,
        kind: EntityKind,
        ref: str,
        context: Optional[ResolutionContext],
    ) -> ResolvedReference:
        active_id = context.active_id(kind) if context else None
        if not active_id:
            if not ref:
                raise ValidationFailure("reference", f"a {kind.value} name or ID is required")
            return ResolvedReference.not_found(f"No active {kind.value} in this conversation")

        find_by_id, _, _ = self._queries(kind)
        entity = find_by_id(active_id)
        if not entity:
            return ResolvedReference.not_found(f"Active {kind.value} no longer exists")
        return ResolvedReference.found(
            entity, MatchKind.CONTEXT, 1.0, f"Resolved to the conversation's active {kind.value}"
        )

    # --- Helpers ---

    def _queries(self, kind: EntityKind) -> tuple[Callable, Callable, Callable]:
        if kind == EntityKind.PROJECT:
            return (
                self.store.find_project_by_id,
                self.store.find_projects_by_name_contains,
                self.store.list_all_projects,
            )
        return (
            self.store.find_task_by_id,
            self.store.find_tasks_by_title_contains,
            self.store.list_all_tasks,
        )

    def _score_all(self, kind: EntityKind, ref: str) -> list[Candidate]:
        _, _, list_all = self._queries(kind)
        project_names = self._project_names() if kind == EntityKind.TASK else {}
        scored = [
            self._candidate(e, kind, similarity(ref, e.display_name), project_names)
            for e in list_all()
        ]
        # sorted() is stable, so equal scores keep the newest-first order
        return sorted(scored, key=lambda c: c.score, reverse=True)

    def _candidate(
        self,
        entity: Record,
        kind: EntityKind,
        score: float = 0.0,
        project_names: Optional[dict[str, str]] = None,
    ) -> Candidate:
        if kind == EntityKind.PROJECT:
            return Candidate(entity=entity, score=score, project_name=entity.display_name)
        if project_names is None:
            project = self.store.find_project_by_id(entity.project_id)
            name = project.name if project else ""
        else:
            name = project_names.get(entity.project_id, "")
        return Candidate(entity=entity, score=score, project_name=name)

    def _project_names(self) -> dict[str, str]:
        return {p.id: p.name for p in self.store.list_all_projects()}
