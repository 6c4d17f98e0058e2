"""Tests for creating epics, stories and labels in Clubhouse."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from github_to_clubhouse_migrator.entities import Entities, StoryLabel
from github_to_clubhouse_migrator.exceptions import ClubhouseError, MigrationError, ZenhubError
from github_to_clubhouse_migrator.models import (
    ClubhouseEpic,
    ClubhouseStory,
    EpicParams,
    LabelParams,
    StoryParams,
    issue_external_id,
)
from github_to_clubhouse_migrator.persister import Persister, story_ids_for_issues

if TYPE_CHECKING:
    from collections.abc import Callable
    from unittest.mock import Mock

    from github_to_clubhouse_migrator.models import ZenhubEpic


def _entities(epic_numbers: list[int], story_numbers: list[int]) -> Entities:
    return Entities(
        epics=[EpicParams(name=f"Epic {n}", external_id=issue_external_id(n)) for n in epic_numbers],
        stories=[
            StoryParams(name=f"Story {n}", external_id=issue_external_id(n), story_type="feature", project_id=7)
            for n in story_numbers
        ],
    )


@pytest.mark.unit
class TestStoryIdsForIssues:
    def test_translates_and_drops_unmatched(self) -> None:
        stories = [ClubhouseStory(id=901, name="a", external_id="1"), ClubhouseStory(id=902, name="b", external_id="2")]
        assert story_ids_for_issues(stories, [2, 3, 1]) == [902, 901]

    def test_ignores_stories_without_external_id(self) -> None:
        stories = [ClubhouseStory(id=901, name="a", external_id=None)]
        assert story_ids_for_issues(stories, [1]) == []


@pytest.mark.unit
class TestCreateEpics:
    def test_links_children_to_created_epic(
        self, destination: Mock, board: Mock, make_zenhub_epic: Callable[..., ZenhubEpic]
    ) -> None:
        board.get_epic.return_value = make_zenhub_epic((1, None), (2, "Done"), (3, None))
        entities = _entities([50], [1, 2, 3, 4])

        result = Persister(destination, board, repo_id=123).persist(entities)

        board.get_epic.assert_called_once_with(123, 50)
        assert result.epics_created == 1
        assert result.epic_ids == {"50": 500}
        assert {story.external_id: story.epic_id for story in entities.stories} == {
            "1": 500,
            "2": 500,
            "3": 500,
            "4": None,
        }

    def test_epic_children_are_not_linked(
        self, destination: Mock, board: Mock, make_zenhub_epic: Callable[..., ZenhubEpic]
    ) -> None:
        board.get_epic.return_value = make_zenhub_epic((7, None, True), (8, None))
        entities = _entities([50], [7, 8])

        _ = Persister(destination, board, repo_id=123).persist(entities)

        assert entities.stories[0].epic_id is None
        assert entities.stories[1].epic_id == 500

    def test_failed_epic_is_skipped(
        self, destination: Mock, board: Mock, make_zenhub_epic: Callable[..., ZenhubEpic]
    ) -> None:
        destination.create_epic.side_effect = [
            ClubhouseError("HTTP 400", status_code=400),
            ClubhouseEpic(id=500, name="Epic 2", external_id="2"),
        ]
        board.get_epic.return_value = make_zenhub_epic((10, None))
        entities = _entities([1, 2], [10])

        result = Persister(destination, board, repo_id=123).persist(entities)

        assert result.epics_created == 1
        assert result.epic_ids == {"2": 500}
        assert len(result.errors) == 1
        assert "Epic 1" in result.errors[0]
        # Only the successfully created epic is looked up on ZenHub
        board.get_epic.assert_called_once_with(123, 2)
        assert entities.stories[0].epic_id == 500

    def test_failed_zenhub_lookup_leaves_stories_unlinked(self, destination: Mock, board: Mock) -> None:
        board.get_epic.side_effect = ZenhubError("HTTP 404", status_code=404)
        entities = _entities([1], [10])

        result = Persister(destination, board, repo_id=123).persist(entities)

        assert result.epics_created == 1
        assert entities.stories[0].epic_id is None
        assert result.stories_created == 1
        assert len(result.errors) == 1

    def test_last_epic_wins(
        self,
        destination: Mock,
        board: Mock,
        make_zenhub_epic: Callable[..., ZenhubEpic],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        board.get_epic.side_effect = [make_zenhub_epic((10, None)), make_zenhub_epic((10, None))]
        entities = _entities([1, 2], [10])

        with caplog.at_level(logging.WARNING):
            _ = Persister(destination, board, repo_id=123).persist(entities)

        assert entities.stories[0].epic_id == 501
        assert any("more than one ZenHub epic" in record.getMessage() for record in caplog.records)


@pytest.mark.unit
class TestCreateStories:
    def test_single_bulk_call_after_epics(
        self, destination: Mock, board: Mock, make_zenhub_epic: Callable[..., ZenhubEpic]
    ) -> None:
        board.get_epic.return_value = make_zenhub_epic((10, None))
        entities = _entities([1], [10, 11])
        seen_epic_ids: list[int | None] = []

        original = destination.create_stories.side_effect

        def record(stories: list[StoryParams]) -> list[ClubhouseStory]:
            seen_epic_ids.extend(story.epic_id for story in stories)
            return original(stories)

        destination.create_stories.side_effect = record

        result = Persister(destination, board, repo_id=123).persist(entities)

        destination.create_stories.assert_called_once()
        assert seen_epic_ids == [500, None]
        assert result.stories_created == 2

    def test_bulk_failure_aborts_run(self, destination: Mock, board: Mock) -> None:
        destination.create_stories.side_effect = ClubhouseError("HTTP 422", status_code=422)
        entities = _entities([], [10])
        entities.story_labels["ui"] = StoryLabel(label=LabelParams(name="ui"), issue_numbers=[10])

        with pytest.raises(MigrationError, match="Failed to create 1 stories"):
            _ = Persister(destination, board, repo_id=123).persist(entities)

        destination.add_label_to_stories.assert_not_called()

    def test_no_stories_skips_bulk_call(self, destination: Mock, board: Mock) -> None:
        result = Persister(destination, board, repo_id=123).persist(_entities([], []))
        destination.create_stories.assert_not_called()
        assert result.stories_created == 0


@pytest.mark.unit
class TestApplyLabels:
    def test_scenario_pipeline_label_applied_to_created_story(self, destination: Mock, board: Mock) -> None:
        entities = _entities([], [10, 11])
        entities.story_labels["In Progress"] = StoryLabel(label=LabelParams(name="In Progress"), issue_numbers=[10])

        result = Persister(destination, board, repo_id=123).persist(entities)

        destination.add_label_to_stories.assert_called_once_with([9010], LabelParams(name="In Progress"))
        assert result.labels_applied == 1

    def test_one_call_per_label_and_unmatched_numbers_dropped(self, destination: Mock, board: Mock) -> None:
        entities = _entities([], [1, 2])
        entities.story_labels["ui"] = StoryLabel(label=LabelParams(name="ui"), issue_numbers=[1, 2, 3])
        entities.story_labels["api"] = StoryLabel(label=LabelParams(name="api"), issue_numbers=[2])

        _ = Persister(destination, board, repo_id=123).persist(entities)

        calls = destination.add_label_to_stories.call_args_list
        assert [c.args for c in calls] == [([9001, 9002], LabelParams(name="ui")), ([9002], LabelParams(name="api"))]

    def test_label_without_stories_is_not_applied(self, destination: Mock, board: Mock) -> None:
        entities = _entities([], [1])
        entities.story_labels["orphan"] = StoryLabel(label=LabelParams(name="orphan"), issue_numbers=[42])

        result = Persister(destination, board, repo_id=123).persist(entities)

        destination.add_label_to_stories.assert_not_called()
        assert result.labels_applied == 0

    def test_failed_label_does_not_block_others(self, destination: Mock, board: Mock) -> None:
        destination.add_label_to_stories.side_effect = [ClubhouseError("HTTP 500", status_code=500), None]
        entities = _entities([], [1])
        entities.story_labels["first"] = StoryLabel(label=LabelParams(name="first"), issue_numbers=[1])
        entities.story_labels["second"] = StoryLabel(label=LabelParams(name="second"), issue_numbers=[1])

        result = Persister(destination, board, repo_id=123).persist(entities)

        assert destination.add_label_to_stories.call_count == 2
        assert result.labels_applied == 1
        assert len(result.errors) == 1
        assert "first" in result.errors[0]
