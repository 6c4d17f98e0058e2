"""Label stories with the ZenHub pipeline their issue sits in."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .exceptions import APIError, StoryNotFoundError

if TYPE_CHECKING:
    from .entities import Entities
    from .protocols import BoardOverlay

logger: logging.Logger = logging.getLogger(__name__)


class PipelineLabelEnricher:
    """Second pass over converted epics.

    ZenHub only reports pipeline state for the children of an epic, so each
    pending epic is looked up again and every child with a pipeline gets that
    pipeline name as a label on its pending story.
    """

    def __init__(self, board: BoardOverlay, repo_id: int) -> None:
        self.board: BoardOverlay = board
        self.repo_id: int = repo_id

    def enrich(self, entities: Entities) -> int:
        """Attach pipeline labels and return how many were attached."""
        attached = 0
        for epic in entities.epics:
            try:
                zenhub_epic = self.board.get_epic(self.repo_id, int(epic.external_id))
            except APIError as e:
                logger.warning(f"Failed to get ZenHub epic #{epic.external_id} {epic.name!r}: {e}")
                continue

            for child in zenhub_epic.issues:
                if not child.pipeline_name:
                    continue
                try:
                    entities.add_label_to_issue(child.pipeline_name, child.issue_number)
                except StoryNotFoundError:
                    logger.warning(f"Failed to add label {child.pipeline_name} to issue #{child.issue_number}")
                    continue
                attached += 1

        logger.info(f"Added {attached} pipeline labels from {len(entities.epics)} epics")
        return attached
