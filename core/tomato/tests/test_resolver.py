"""
Unit tests for reference resolution.

Tests cover:
- ID, exact, substring and fuzzy tiers in order
- Safe mode for typo-level matches
- Context pronouns
- Suggestions and tie-breaking
"""

import pytest

from tomato.context.resolver import (
    EntityKind,
    EntityResolver,
    MatchKind,
    ResolutionContext,
    ResolutionOutcome,
)
from tomato.errors import ValidationFailure
from tomato.services.tasks import TaskService


@pytest.fixture
def service(store, clock):
    return TaskService(store, clock=clock)


@pytest.fixture
def resolver(store):
    return EntityResolver(store)


@pytest.fixture
def workspace(service, clock):
    """Two projects with a handful of tasks, created a minute apart."""
    website = service.create_project("Website relaunch")
    clock.advance(minutes=1)
    thesis = service.create_project("Thesis")
    clock.advance(minutes=1)
    tasks = {}
    for project, title in [
        (website, "Design doc"),
        (website, "Quarterly report"),
        (thesis, "Literature review"),
        (thesis, "Draft report"),
    ]:
        tasks[title] = service.create_task(project.id, title)
        clock.advance(minutes=1)
    return {"website": website, "thesis": thesis, "tasks": tasks}


class TestIdTier:
    """Canonical IDs are looked up directly."""

    def test_existing_id(self, resolver, workspace):
        task = workspace["tasks"]["Design doc"]
        resolved = resolver.resolve_task(task.id)

        assert resolved.outcome == ResolutionOutcome.FOUND
        assert resolved.entity.id == task.id
        assert resolved.match == MatchKind.ID
        assert resolved.score == 1.0

    def test_uppercase_id(self, resolver, workspace):
        task = workspace["tasks"]["Design doc"]
        resolved = resolver.resolve_task(task.id.upper())

        assert resolved.is_found
        assert resolved.entity.id == task.id

    def test_unknown_id_is_not_found(self, resolver, workspace):
        resolved = resolver.resolve_task("00000000-0000-0000-0000-000000000000")

        assert resolved.outcome == ResolutionOutcome.NOT_FOUND
        assert resolved.entity is None

    def test_project_id(self, resolver, workspace):
        resolved = resolver.resolve_project(workspace["thesis"].id)

        assert resolved.is_found
        assert resolved.entity.name == "Thesis"


class TestNameTiers:
    """Exact, substring and fuzzy matching on names."""

    def test_exact_name(self, resolver, workspace):
        resolved = resolver.resolve_task("Design doc")

        assert resolved.match == MatchKind.EXACT
        assert resolved.entity.title == "Design doc"

    def test_duplicate_exact_names_fall_through_to_newest(self, service, resolver, workspace, clock):
        """Exact match must be unique; otherwise the newest substring hit wins."""
        older = service.create_task(workspace["website"].id, "Review")
        clock.advance(minutes=1)
        newer = service.create_task(workspace["thesis"].id, "Review")

        resolved = resolver.resolve_task("Review")

        assert resolved.is_found
        assert resolved.match == MatchKind.SUBSTRING
        assert resolved.entity.id == newer.id
        assert older.id in {c.entity.id for c in resolved.candidates}

    def test_substring_case_insensitive(self, resolver, workspace):
        resolved = resolver.resolve_task("QUARTERLY")

        assert resolved.match == MatchKind.SUBSTRING
        assert resolved.entity.title == "Quarterly report"

    def test_substring_newest_wins(self, resolver, workspace):
        """Both reports contain "report"; Draft report was created last."""
        resolved = resolver.resolve_task("report")

        assert resolved.entity.title == "Draft report"
        assert [c.display_name for c in resolved.candidates] == ["Quarterly report"]

    def test_fuzzy_typo(self, resolver, workspace):
        resolved = resolver.resolve_task("Desgin doc")

        assert resolved.is_found
        assert resolved.match == MatchKind.FUZZY
        assert resolved.entity.title == "Design doc"
        assert resolved.score == pytest.approx(0.8)

    def test_fuzzy_safe_mode_is_ambiguous(self, resolver, workspace):
        resolved = resolver.resolve_task("Desgin doc", accept_fuzzy=False)

        assert resolved.outcome == ResolutionOutcome.AMBIGUOUS
        assert resolved.entity is None
        assert resolved.candidates[0].display_name == "Design doc"
        assert resolved.candidates[0].project_name == "Website relaunch"

    def test_safe_mode_keeps_substring_matches(self, resolver, workspace):
        resolved = resolver.resolve_task("Literature", accept_fuzzy=False)

        assert resolved.is_found
        assert resolved.match == MatchKind.SUBSTRING

    def test_below_threshold(self, resolver, workspace):
        resolved = resolver.resolve_task("zzzzzz")

        assert resolved.outcome == ResolutionOutcome.NOT_FOUND

    def test_fuzzy_tie_goes_to_newest(self, service, resolver, workspace, clock):
        service.create_task(workspace["thesis"].id, "abcd")
        clock.advance(minutes=1)
        newer = service.create_task(workspace["thesis"].id, "abce")

        resolved = resolver.resolve_task("abcx")

        assert resolved.match == MatchKind.FUZZY
        assert resolved.entity.id == newer.id

    def test_project_by_partial_name(self, resolver, workspace):
        resolved = resolver.resolve(EntityKind.PROJECT, "website")

        assert resolved.entity.id == workspace["website"].id


class TestContextTier:
    """Pronouns defer to the conversation's active entities."""

    @pytest.mark.parametrize("reference", ["it", "this", "this task", "the current task", "that one"])
    def test_pronoun_uses_active_task(self, resolver, workspace, reference):
        task = workspace["tasks"]["Literature review"]
        context = ResolutionContext(active_task_id=task.id)

        resolved = resolver.resolve_task(reference, context)

        assert resolved.match == MatchKind.CONTEXT
        assert resolved.entity.id == task.id

    def test_empty_reference_uses_active_project(self, resolver, workspace):
        context = ResolutionContext(active_project_id=workspace["thesis"].id)

        resolved = resolver.resolve_project(None, context)

        assert resolved.entity.id == workspace["thesis"].id

    def test_pronoun_without_context(self, resolver, workspace):
        resolved = resolver.resolve_task("that one")

        assert resolved.outcome == ResolutionOutcome.NOT_FOUND

    def test_pronoun_like_name_without_context(self, service, resolver, workspace):
        current = service.create_project("Current")

        resolved = resolver.resolve_project("Current")

        assert resolved.is_found
        assert resolved.match == MatchKind.EXACT
        assert resolved.entity.id == current.id

    def test_pronoun_like_name_with_stale_context(self, service, resolver, store, workspace):
        this = service.create_project("This")
        context = ResolutionContext(active_project_id=workspace["website"].id)
        store.delete_project(workspace["website"].id)

        resolved = resolver.resolve_project("This", context)

        assert resolved.entity.id == this.id

    def test_active_context_beats_pronoun_like_name(self, service, resolver, workspace):
        service.create_project("Current")
        context = ResolutionContext(active_project_id=workspace["thesis"].id)

        resolved = resolver.resolve_project("current", context)

        assert resolved.match == MatchKind.CONTEXT
        assert resolved.entity.id == workspace["thesis"].id

    def test_empty_reference_without_context_raises(self, resolver, workspace):
        with pytest.raises(ValidationFailure):
            resolver.resolve_task("   ")

    def test_stale_context(self, resolver, store, workspace):
        context = ResolutionContext(active_project_id=workspace["website"].id)
        store.delete_project(workspace["website"].id)

        resolved = resolver.resolve_project("it", context)

        assert resolved.outcome == ResolutionOutcome.NOT_FOUND


class TestSuggest:
    """Ranked suggestions for "did you mean"."""

    def test_ranked_and_limited(self, resolver, workspace):
        suggestions = resolver.suggest("Draft reprot", limit=2)

        assert len(suggestions) == 2
        assert suggestions[0].display_name == "Draft report"
        assert suggestions[0].score >= suggestions[1].score

    def test_zero_limit(self, resolver, workspace):
        assert resolver.suggest("report", limit=0) == []

    def test_projects(self, resolver, workspace):
        suggestions = resolver.suggest("Thesys", limit=1, kind=EntityKind.PROJECT)

        assert suggestions[0].display_name == "Thesis"

    def test_empty_store(self, resolver):
        assert resolver.suggest("anything", limit=3) == []


def test_deleted_project_tasks_are_unresolvable(store, resolver, workspace):
    task = workspace["tasks"]["Design doc"]
    store.delete_project(workspace["website"].id)

    assert not resolver.resolve_task(task.id).is_found
    assert not resolver.resolve_task("Design doc").is_found


def test_disambiguation_text(resolver, workspace):
    resolved = resolver.resolve_task("Desgin doc", accept_fuzzy=False)

    assert resolved.format_disambiguation() == "Did you mean Design doc (Website relaunch)?"
