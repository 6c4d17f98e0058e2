"""
Pytest configuration and fixtures.

- Integration tests: fail on any WARNING logged by the code under test
- Unit tests: warnings allowed; shared builders for GitHub/ZenHub records
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import TYPE_CHECKING, Any

from typing_extensions import override
from unittest.mock import Mock

import pytest

from github_to_clubhouse_migrator.identity import IdentityMatch, LoginMapper, MissingLoginsTracker
from github_to_clubhouse_migrator.models import (
    ClubhouseEpic,
    ClubhouseStory,
    SourceComment,
    SourceIssue,
    SourceLabel,
    ZenhubEpic,
    ZenhubEpicIssue,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

# Store warning records during test execution
_integration_test_warnings: dict[str, list[logging.LogRecord]] = {}

CREATED = dt.datetime(2024, 1, 15, 10, 30, 45, tzinfo=dt.UTC)
UPDATED = dt.datetime(2024, 1, 16, 9, 0, 0, tzinfo=dt.UTC)


class IntegrationTestWarningHandler(logging.Handler):
    """Logging handler that records warnings emitted during an integration test."""

    test_nodeid: str

    def __init__(self, test_nodeid: str) -> None:
        super().__init__()
        self.test_nodeid = test_nodeid
        self.setLevel(logging.WARNING)

    @override
    def emit(self, record: logging.LogRecord) -> None:
        _integration_test_warnings.setdefault(self.test_nodeid, []).append(record)


@pytest.fixture(autouse=True)
def fail_on_log_warnings_for_integration_tests(request: pytest.FixtureRequest) -> Generator[None]:
    """Capture WARNING+ logs for tests marked ``integration``; see pytest_runtest_makereport."""
    if request.node.get_closest_marker("integration") is None:
        yield
        return

    test_nodeid = request.node.nodeid
    _integration_test_warnings[test_nodeid] = []
    handler = IntegrationTestWarningHandler(test_nodeid)
    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    try:
        yield
    finally:
        root_logger.removeHandler(handler)


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo[None]) -> Generator[None]:  # type: ignore[misc]
    """Mark a passed integration test as failed if it logged warnings."""
    outcome = yield
    report = outcome.get_result()

    if call.when == "call" and report.outcome == "passed":
        warning_records = _integration_test_warnings.pop(item.nodeid, [])
        if warning_records:
            report.outcome = "failed"
            report.longrepr = f"Integration test failed: {len(warning_records)} warning(s) detected:\n" + "\n".join(
                f"  - {record.levelname}: {record.getMessage()} (in {record.name}:{record.lineno})"
                for record in warning_records
            )


# --- Builders ------------------------------------------------------------------


def _label(name: str, label_id: int | None = None) -> SourceLabel:
    return SourceLabel(id=label_id if label_id is not None else sum(map(ord, name)), name=name, color="ff0000")


@pytest.fixture
def make_issue() -> Callable[..., SourceIssue]:
    """Factory for SourceIssue; labels are given by name."""

    def _make(number: int, *, labels: tuple[str, ...] = (), **kwargs: Any) -> SourceIssue:  # noqa: ANN401
        defaults: dict[str, Any] = {
            "id": 1000 + number,
            "title": f"Issue {number}",
            "body": f"  Body of issue {number}  ",
            "created_at": CREATED,
            "updated_at": UPDATED,
            "author": "alice",
        }
        defaults.update(kwargs)
        return SourceIssue(number=number, labels=tuple(_label(name) for name in labels), **defaults)

    return _make


@pytest.fixture
def make_comment() -> Callable[..., SourceComment]:
    def _make(comment_id: int, author: str | None = "bob", body: str = " Looks good ") -> SourceComment:
        return SourceComment(id=comment_id, body=body, author=author, created_at=CREATED, updated_at=UPDATED)

    return _make


@pytest.fixture
def tracker() -> MissingLoginsTracker:
    return MissingLoginsTracker()


@pytest.fixture
def mapper(tracker: MissingLoginsTracker) -> LoginMapper:
    """alice -> A1, bob -> B1, carol -> C1; unknown logins fall back to the bot (inexact)."""
    return LoginMapper(
        {"alice": "A1", "bob": "B1", "carol": "C1", "migration-bot": "BOT"},
        tracker=tracker,
        fallback_login="migration-bot",
    )


@pytest.fixture
def strict_mapper(tracker: MissingLoginsTracker) -> Callable[[str], IdentityMatch]:
    """Same users as ``mapper`` but without a fallback: unknown logins are not found."""
    return LoginMapper({"alice": "A1", "bob": "B1", "carol": "C1"}, tracker=tracker)


@pytest.fixture
def issue_source() -> Mock:
    """IssueSource mock with no issues and no comments."""
    source = Mock()
    source.fetch_issues.return_value = []
    source.fetch_comments.return_value = []
    return source


@pytest.fixture
def make_zenhub_epic() -> Callable[..., ZenhubEpic]:
    """Factory for ZenhubEpic from (issue_number, pipeline_name[, is_epic]) tuples."""

    def _make(*children: tuple[Any, ...]) -> ZenhubEpic:
        return ZenhubEpic(
            issues=tuple(
                ZenhubEpicIssue(
                    issue_number=child[0],
                    pipeline_name=child[1],
                    is_epic=len(child) > 2 and child[2],  # noqa: PLR2004
                )
                for child in children
            )
        )

    return _make


@pytest.fixture
def board() -> Mock:
    """BoardOverlay mock whose epics have no children."""
    overlay = Mock()
    overlay.get_epic.return_value = ZenhubEpic()
    return overlay


@pytest.fixture
def destination() -> Mock:
    """Destination mock: epics get ids 500, 501, ...; stories get ids 9000 + issue number."""
    client = Mock()
    epic_ids = iter(range(500, 600))
    client.create_epic.side_effect = lambda params: ClubhouseEpic(
        id=next(epic_ids), name=params.name, external_id=params.external_id
    )
    client.create_stories.side_effect = lambda stories: [
        ClubhouseStory(id=9000 + int(story.external_id), name=story.name, external_id=story.external_id)
        for story in stories
    ]
    client.add_label_to_stories.return_value = None
    return client
