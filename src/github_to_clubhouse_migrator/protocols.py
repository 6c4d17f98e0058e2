"""Protocols defining the contracts for the three systems a migration talks to.

The migration architecture separates concerns into four components:

1. IssueSource: Reads issues and comments (GitHub)
2. BoardOverlay: Reads epic membership and pipeline state (ZenHub)
3. Destination: Creates epics, stories and labels (Clubhouse)
4. Migrator: Converts, enriches and persists, correlating everything by
   external id (the GitHub issue number as a string)

This separation allows:
- Testing conversion and reconciliation with in-memory fakes
- Dry runs that never construct a Destination call
- Swapping the HTTP client layer without touching migration logic
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import (
        ClubhouseEpic,
        ClubhouseProject,
        ClubhouseStory,
        EpicParams,
        LabelParams,
        SourceComment,
        SourceIssue,
        StoryParams,
        ZenhubEpic,
    )


class IssueSource(Protocol):
    """Protocol for reading issues from the source tracker.

    Implementations must raise MigrationError on API or network failure;
    the converter treats both operations as fatal.
    """

    def fetch_issues(self, org: str, repo: str) -> list[SourceIssue]:
        """Return every issue and pull request of the repository, in fetch order."""
        ...

    def fetch_comments(self, org: str, repo: str, issue_number: int) -> list[SourceComment]:
        """Return the comments of one issue in chronological order."""
        ...


class BoardOverlay(Protocol):
    """Protocol for reading epics from the kanban board overlay."""

    def get_epic(self, repo_id: int, issue_number: int) -> ZenhubEpic:
        """Return the epic whose root is ``issue_number`` with its child issues.

        Raises:
            ZenhubError: If the epic cannot be fetched
        """
        ...


class Destination(Protocol):
    """Protocol for creating entities in the destination tool.

    The Persister calls methods in a strict order:
    1. create_epic() - once per pending epic
    2. create_stories() - once, for all stories, with epic links resolved
    3. add_label_to_stories() - once per label, with created story ids
    """

    def list_projects(self) -> list[ClubhouseProject]:
        ...

    def create_epic(self, params: EpicParams) -> ClubhouseEpic:
        ...

    def create_stories(self, params: Sequence[StoryParams]) -> list[ClubhouseStory]:
        """Create all stories in a single call.

        All or nothing: failure raises and no story is reported as created.
        """
        ...

    def add_label_to_stories(self, story_ids: Sequence[int], label: LabelParams) -> None:
        """Add ``label`` to every story, creating the label on first use."""
        ...
