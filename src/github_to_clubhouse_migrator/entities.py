"""Pending Clubhouse entities accumulated during one migration run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .exceptions import StoryNotFoundError
from .models import LabelParams, issue_external_id

if TYPE_CHECKING:
    from .models import EpicParams, SourceIssue, StoryParams

logger: logging.Logger = logging.getLogger(__name__)


@dataclass
class StoryLabel:
    """A label together with the GitHub issue numbers it must be applied to."""

    label: LabelParams
    issue_numbers: list[int] = field(default_factory=list)

    def add_issue(self, issue_number: int) -> None:
        if issue_number not in self.issue_numbers:
            self.issue_numbers.append(issue_number)

    def to_payload(self) -> dict[str, Any]:
        return {"label": self.label.to_payload(), "issue_numbers": list(self.issue_numbers)}


@dataclass
class Entities:
    """Epics, stories and label memberships waiting to be created in Clubhouse.

    Owned by a single run; epics and stories keep conversion order.
    """

    epics: list[EpicParams] = field(default_factory=list)
    stories: list[StoryParams] = field(default_factory=list)
    story_labels: dict[str, StoryLabel] = field(default_factory=dict)

    def add_epic(self, params: EpicParams) -> None:
        self.epics.append(params)

    def add_story(self, params: StoryParams) -> None:
        self.stories.append(params)

    def find_story(self, external_id: str) -> StoryParams | None:
        for story in self.stories:
            if story.external_id == external_id:
                return story
        return None

    def add_labels_from_issue(self, issue: SourceIssue) -> None:
        """Record every label of ``issue`` against its issue number."""
        for source_label in issue.labels:
            existing = self.story_labels.get(source_label.name)
            if existing is not None:
                existing.add_issue(issue.number)
                continue
            self.story_labels[source_label.name] = StoryLabel(
                label=LabelParams.from_source(source_label),
                issue_numbers=[issue.number],
            )

    def add_label_to_issue(self, name: str, issue_number: int) -> None:
        """Attach a label by name to the pending story for ``issue_number``.

        Raises:
            StoryNotFoundError: If no pending story was built from that issue
        """
        if self.find_story(issue_external_id(issue_number)) is None:
            msg = f"No story with external id {issue_number}"
            raise StoryNotFoundError(msg)

        existing = self.story_labels.get(name)
        if existing is not None:
            existing.add_issue(issue_number)
            return

        self.story_labels[name] = StoryLabel(label=LabelParams(name=name), issue_numbers=[issue_number])
        logger.debug(f"Created label {name!r} for issue #{issue_number}")

    def to_payload(self) -> dict[str, Any]:
        return {
            "epics": [epic.to_payload() for epic in self.epics],
            "stories": [story.to_payload() for story in self.stories],
            "story_labels": {name: label.to_payload() for name, label in self.story_labels.items()},
        }
