from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Final

import requests
from github import Auth, Github, GithubException

from . import utils
from .dump import write_json
from .exceptions import MigrationError
from .models import SourceComment, SourceIssue, SourceLabel

if TYPE_CHECKING:
    from github.Issue import Issue as GithubIssue
    from github.IssueComment import IssueComment as GithubIssueComment
    from github.Label import Label as GithubLabel
    from github.Repository import Repository

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_TOKEN_ENV_VAR: Final[str] = "GITHUB_TOKEN"  # noqa: S105
_DEFAULT_TOKEN_PASS_PATH: Final[str] = "github/cli/token"  # noqa: S105


def get_token(pass_path: str | None = None) -> str | None:
    """Get GitHub token from pass path, env var GITHUB_TOKEN, or default pass location."""
    return utils.resolve_token(env_var=_TOKEN_ENV_VAR, default_pass_path=_DEFAULT_TOKEN_PASS_PATH, pass_path=pass_path)


def get_client(token: str | None = None) -> Github:
    """Get a GitHub client using the token, or an anonymous one."""
    if token:
        return Github(auth=Auth.Token(token))
    return Github()


def parse_repo_path(repo_path: str) -> tuple[str, str]:
    """Split ``owner/repo`` into its two parts."""
    parts = repo_path.strip().split("/")
    if len(parts) != 2 or not all(parts):  # noqa: PLR2004
        msg = f"Invalid GitHub repository path '{repo_path}'. Expected format: 'owner/repository'"
        raise MigrationError(msg)
    return parts[0], parts[1]


def _source_label(label: GithubLabel) -> SourceLabel:
    return SourceLabel(
        id=getattr(label, "id", None),
        name=label.name,
        color=label.color or "",
        description=label.description or "",
    )


def source_issue(issue: GithubIssue) -> SourceIssue:
    """Convert a PyGithub issue into a SourceIssue."""
    return SourceIssue(
        id=issue.id,
        number=issue.number,
        title=issue.title,
        body=issue.body or "",
        created_at=issue.created_at,
        updated_at=issue.updated_at,
        closed_at=issue.closed_at.isoformat() if issue.closed_at else None,
        author=issue.user.login if issue.user else None,
        assignees=tuple(assignee.login for assignee in issue.assignees),
        labels=tuple(_source_label(label) for label in issue.labels),
        is_pull_request=issue.pull_request is not None,
    )


def source_comment(comment: GithubIssueComment) -> SourceComment:
    """Convert a PyGithub issue comment into a SourceComment."""
    return SourceComment(
        id=comment.id,
        body=comment.body or "",
        author=comment.user.login if comment.user else None,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )


class GithubIssueSource:
    """Reads issues and comments of a repository through PyGithub."""

    def __init__(self, client: Github) -> None:
        self.client: Github = client
        self._repos: dict[str, Repository] = {}

    def _get_repo(self, org: str, repo: str) -> Repository:
        repo_path = f"{org}/{repo}"
        if repo_path not in self._repos:
            self._repos[repo_path] = self.client.get_repo(repo_path)
        return self._repos[repo_path]

    def fetch_issues(self, org: str, repo: str) -> list[SourceIssue]:
        try:
            github_repo = self._get_repo(org, repo)
            issues = [
                source_issue(issue)
                for issue in github_repo.get_issues(state="all", sort="created", direction="asc")
            ]
        except (GithubException, requests.RequestException) as e:
            msg = f"Failed to fetch issues for {org}/{repo}: {e}"
            raise MigrationError(msg) from e

        logger.debug(f"Fetched {len(issues)} issues and pull requests from {org}/{repo}")
        return issues

    def fetch_comments(self, org: str, repo: str, issue_number: int) -> list[SourceComment]:
        try:
            github_issue = self._get_repo(org, repo).get_issue(issue_number)
            comments = [source_comment(comment) for comment in github_issue.get_comments()]
        except (GithubException, requests.RequestException) as e:
            msg = f"Failed to fetch comments for {org}/{repo}#{issue_number}: {e}"
            raise MigrationError(msg) from e

        logger.debug(f"Fetched {len(comments)} comments for #{issue_number}")
        return comments


def dump_repository(client: Github, repo_path: str, dump_dir: str | Path) -> None:
    """Save the raw GitHub issues, comments, labels and assignees of a repository as JSON files."""
    dump_dir = Path(dump_dir)
    try:
        github_repo = client.get_repo(repo_path)

        logger.info(f"Dumping issues of {repo_path}...")
        write_json([issue.raw_data for issue in github_repo.get_issues(state="all")], dump_dir / "issues.json")

        logger.info(f"Dumping comments of {repo_path}...")
        write_json([comment.raw_data for comment in github_repo.get_issues_comments()], dump_dir / "comments.json")

        logger.info(f"Dumping labels of {repo_path}...")
        write_json([label.raw_data for label in github_repo.get_labels()], dump_dir / "labels.json")

        logger.info(f"Dumping assignees of {repo_path}...")
        write_json([user.raw_data for user in github_repo.get_assignees()], dump_dir / "assignees.json")
    except (GithubException, requests.RequestException) as e:
        msg = f"Failed to dump {repo_path}: {e}"
        raise MigrationError(msg) from e
