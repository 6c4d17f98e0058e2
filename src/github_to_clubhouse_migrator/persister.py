"""Creation of pending entities in Clubhouse.

Persisting happens in three phases whose order is what makes the
cross-system linkage resolvable:

Phase 1: Epics
    Each pending epic is created on its own. After a successful creation the
    ZenHub epic is fetched again to learn its children, and every pending
    story whose external id matches a (non-epic) child number gets the new
    Clubhouse epic id. A failed epic is logged and skipped; nothing created
    before it is rolled back.

Phase 2: Stories
    All stories, with resolved epic links and embedded comments, go out in a
    single bulk call. This call is all or nothing; its failure aborts the run.

Phase 3: Labels
    Each aggregated label is translated from GitHub issue numbers to the
    Clubhouse story ids returned by phase 2, then applied in one call per
    label. A failed label is logged and the next one is tried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exceptions import APIError, ClubhouseError, MigrationError
from .models import issue_external_id

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .entities import Entities
    from .models import ClubhouseStory, EpicParams
    from .protocols import BoardOverlay, Destination

logger: logging.Logger = logging.getLogger(__name__)


@dataclass
class PersistResult:
    """What was created in Clubhouse, and which per-item steps failed."""

    epics_created: int = 0
    stories_created: int = 0
    labels_applied: int = 0
    epic_ids: dict[str, int] = field(default_factory=dict)  # external_id -> Clubhouse epic id
    errors: list[str] = field(default_factory=list)


def story_ids_for_issues(stories: Sequence[ClubhouseStory], issue_numbers: Iterable[int]) -> list[int]:
    """Translate GitHub issue numbers into ids of created Clubhouse stories.

    Numbers without a created story are dropped.
    """
    ids_by_external_id = {story.external_id: story.id for story in stories if story.external_id}
    story_ids: list[int] = []
    for number in issue_numbers:
        story_id = ids_by_external_id.get(issue_external_id(number))
        if story_id is not None:
            story_ids.append(story_id)
    return story_ids


class Persister:
    """Writes an Entities accumulator to Clubhouse."""

    def __init__(self, destination: Destination, board: BoardOverlay, repo_id: int) -> None:
        self.destination: Destination = destination
        self.board: BoardOverlay = board
        self.repo_id: int = repo_id

    def persist(self, entities: Entities) -> PersistResult:
        """Run all three phases.

        Raises:
            MigrationError: If the bulk story creation fails
        """
        result = PersistResult()
        self.create_epics(entities, result)
        stories = self.create_stories(entities, result)
        self.apply_labels(entities, stories, result)
        return result

    def create_epics(self, entities: Entities, result: PersistResult) -> None:
        for params in entities.epics:
            try:
                epic = self.destination.create_epic(params)
            except ClubhouseError as e:
                msg = f"Failed to create epic {params.name!r}: {e}"
                logger.error(msg)
                result.errors.append(msg)
                continue

            result.epics_created += 1
            result.epic_ids[params.external_id] = epic.id
            logger.debug(f"Created epic {epic.id} for issue #{params.external_id}")
            self.link_stories_to_epic(entities, params, epic.id, result)

        logger.info(f"Processed {result.epics_created} epics...")

    def link_stories_to_epic(self, entities: Entities, params: EpicParams, epic_id: int, result: PersistResult) -> None:
        """Point every pending story that is a ZenHub child of ``params`` at ``epic_id``."""
        try:
            zenhub_epic = self.board.get_epic(self.repo_id, int(params.external_id))
        except APIError as e:
            msg = f"Failed to get ZenHub epic #{params.external_id} {params.name!r}: {e}"
            logger.warning(msg)
            result.errors.append(msg)
            return

        for child in zenhub_epic.issues:
            if child.is_epic:
                continue
            child_external_id = issue_external_id(child.issue_number)
            for story in entities.stories:
                if story.external_id != child_external_id:
                    continue
                # Well-formed boards put a story under one epic; the last epic wins otherwise.
                if story.epic_id is not None and story.epic_id != epic_id:
                    logger.warning(
                        f"Story #{story.external_id} moves from epic {story.epic_id} to epic {epic_id}; "
                        "it is listed under more than one ZenHub epic"
                    )
                story.epic_id = epic_id

    def create_stories(self, entities: Entities, result: PersistResult) -> list[ClubhouseStory]:
        if not entities.stories:
            logger.info("No stories to create")
            return []

        try:
            stories = self.destination.create_stories(entities.stories)
        except ClubhouseError as e:
            msg = f"Failed to create {len(entities.stories)} stories: {e}"
            raise MigrationError(msg) from e

        result.stories_created = len(stories)
        logger.info(f"Processed {len(stories)} stories...")
        return stories

    def apply_labels(self, entities: Entities, stories: Sequence[ClubhouseStory], result: PersistResult) -> None:
        for name, story_label in entities.story_labels.items():
            story_ids = story_ids_for_issues(stories, story_label.issue_numbers)
            if not story_ids:
                logger.debug(f"Label {name!r} matches no created story, skipping")
                continue
            try:
                self.destination.add_label_to_stories(story_ids, story_label.label)
            except ClubhouseError as e:
                msg = f"Failed to add label {name} to {story_ids}: {e}"
                logger.error(msg)
                result.errors.append(msg)
                continue
            result.labels_applied += 1

        logger.info(f"Processed {len(entities.story_labels)} labels...")
