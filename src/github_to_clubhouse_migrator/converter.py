"""
Conversion of GitHub issues into pending Clubhouse epics and stories.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import TYPE_CHECKING

from .entities import Entities
from .exceptions import IdentityMappingError
from .models import CommentParams, EpicParams, LabelParams, StoryParams, issue_external_id

if TYPE_CHECKING:
    from .identity import MappingFunc
    from .models import SourceComment, SourceIssue, StoryType
    from .protocols import IssueSource

logger: logging.Logger = logging.getLogger(__name__)

EPIC_LABEL = "Epic"
BUG_LABEL = "Bug"


def is_epic(issue: SourceIssue) -> bool:
    return issue.has_label(EPIC_LABEL)


def story_type_for(issue: SourceIssue) -> StoryType:
    return "bug" if issue.has_label(BUG_LABEL) else "feature"


def parse_timestamp(value: str) -> dt.datetime:
    """Parse an ISO 8601 timestamp such as GitHub's ``2024-01-15T10:30:45Z``.

    Raises:
        ValueError: If the value is not a valid timestamp
    """
    return dt.datetime.fromisoformat(value)


class IssueConverter:
    """Walks the issues of one repository and fills an Entities accumulator.

    Every issue ends up as exactly one of: skipped (pull request), epic
    (labelled "Epic") or story.
    """

    def __init__(
        self,
        source: IssueSource,
        mapping_func: MappingFunc,
        *,
        org: str,
        repo: str,
        project_id: int | None,
    ) -> None:
        self.source: IssueSource = source
        self.mapping_func: MappingFunc = mapping_func
        self.org: str = org
        self.repo: str = repo
        self.project_id: int | None = project_id

    def convert(self, entities: Entities | None = None) -> Entities:
        """Fetch all issues and convert them in fetch order.

        Raises:
            MigrationError: If issues or comments cannot be fetched
            IdentityMappingError: If a comment author has no Clubhouse user
        """
        entities = entities if entities is not None else Entities()

        logger.info(f"Fetching issues for {self.org}/{self.repo}...")
        issues = self.source.fetch_issues(self.org, self.repo)

        skipped = 0
        for i, issue in enumerate(issues, start=1):
            logger.debug(f"Processing issue {i} of {len(issues)} (#{issue.number})")

            if issue.is_pull_request:
                skipped += 1
                continue

            if is_epic(issue):
                entities.add_epic(self.epic_from_issue(issue))
                continue

            story = self.story_from_issue(issue)
            story.comments = self.comments_for_issue(issue)
            entities.add_story(story)
            entities.add_labels_from_issue(issue)

        logger.info(
            f"Processed {len(issues)} issues: {len(entities.epics)} epics, "
            f"{len(entities.stories)} stories, {skipped} pull requests skipped"
        )
        return entities

    def epic_from_issue(self, issue: SourceIssue) -> EpicParams:
        params = EpicParams(
            name=issue.title,
            external_id=issue_external_id(issue.number),
            description=issue.body,
            created_at=issue.created_at,
            updated_at=issue.updated_at,
        )

        if issue.author:
            match = self.mapping_func(issue.author)
            if match.found:
                params.requested_by_id = match.user_id
            else:
                logger.warning(f"Failed to set requester {issue.author} on epic {params.name!r}")

        if issue.closed_at:
            try:
                params.completed_at_override = parse_timestamp(issue.closed_at)
            except ValueError:
                logger.warning(f"Failed to set closed at {issue.closed_at!r} on epic {params.name!r}")

        for assignee in issue.assignees:
            match = self.mapping_func(assignee)
            if not match.found:
                logger.warning(f"Failed to add assignee {assignee} to epic {params.name!r}")
                continue
            params.owner_ids.append(match.user_id)

        params.labels = [LabelParams.from_source(label) for label in issue.labels]
        return params

    def story_from_issue(self, issue: SourceIssue) -> StoryParams:
        params = StoryParams(
            name=issue.title,
            external_id=issue_external_id(issue.number),
            story_type=story_type_for(issue),
            project_id=self.project_id,
            description=issue.body.strip(),
            created_at=issue.created_at,
            updated_at=issue.updated_at,
        )

        if issue.author:
            match = self.mapping_func(issue.author)
            if match.user_id:
                params.requested_by_id = match.user_id

        # Only exact matches become owners; a fallback user must not own work.
        for assignee in issue.assignees:
            match = self.mapping_func(assignee)
            if match.user_id and match.exact:
                params.owner_ids.append(match.user_id)

        return params

    def comments_for_issue(self, issue: SourceIssue) -> list[CommentParams]:
        comments = self.source.fetch_comments(self.org, self.repo, issue.number)
        return [self.comment_params(issue, comment) for comment in comments]

    def comment_params(self, issue: SourceIssue, comment: SourceComment) -> CommentParams:
        match = self.mapping_func(comment.author or "")
        if not match.found:
            msg = (
                f"Failed to find Clubhouse user for GitHub login {comment.author!r} "
                f"(comment {comment.id} on #{issue.number})"
            )
            raise IdentityMappingError(msg)

        return CommentParams(
            text=comment.body.strip(),
            author_id=match.user_id,
            external_id=str(comment.id),
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )
