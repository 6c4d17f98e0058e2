"""Data models exchanged between GitHub, ZenHub, Clubhouse and the migrator.

Source records (``Source*``) are read-only snapshots of what GitHub returned.
Creation requests (``*Params``) are the pending Clubhouse entities built during
conversion; their ``to_payload()`` output is both the API request body and the
dry-run dump format.

The three systems are correlated by a single key: the GitHub issue number
rendered as a decimal string (``ExternalId``). It is kept as its own type so it
is never mixed up with any system's native integer id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, NewType

ExternalId = NewType("ExternalId", str)

StoryType = Literal["bug", "feature"]


def issue_external_id(issue_number: int) -> ExternalId:
    """Return the external id Clubhouse entities use to point back at a GitHub issue."""
    return ExternalId(str(issue_number))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _without_none(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


# --- GitHub ------------------------------------------------------------------


@dataclass(frozen=True)
class SourceLabel:
    """A label attached to a GitHub issue."""

    id: int | None
    name: str
    color: str  # Hex color without '#' prefix (e.g., "ff0000")
    description: str = ""


@dataclass(frozen=True)
class SourceIssue:
    """A GitHub issue (or pull request) as fetched from the API.

    ``closed_at`` is kept as the raw timestamp string; it is parsed during
    conversion so that a malformed value only degrades that one field.
    """

    id: int
    number: int
    title: str
    body: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    closed_at: str | None = None
    author: str | None = None
    assignees: tuple[str, ...] = ()
    labels: tuple[SourceLabel, ...] = ()
    is_pull_request: bool = False

    def has_label(self, name: str) -> bool:
        return any(label.name == name for label in self.labels)


@dataclass(frozen=True)
class SourceComment:
    """A comment on a GitHub issue."""

    id: int
    body: str = ""
    author: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# --- ZenHub ------------------------------------------------------------------


@dataclass(frozen=True)
class ZenhubEpicIssue:
    """A child issue of a ZenHub epic with the board pipeline it sits in."""

    issue_number: int
    is_epic: bool = False
    pipeline_name: str | None = None


@dataclass(frozen=True)
class ZenhubEpic:
    """A ZenHub epic; only its children matter to the migration."""

    issues: tuple[ZenhubEpicIssue, ...] = ()


# --- Clubhouse -----------------------------------------------------------------


@dataclass(frozen=True)
class ClubhouseProject:
    id: int
    name: str


@dataclass(frozen=True)
class ClubhouseEpic:
    id: int
    name: str
    external_id: str | None = None


@dataclass(frozen=True)
class ClubhouseStory:
    id: int
    name: str
    external_id: str | None = None


@dataclass
class LabelParams:
    """A Clubhouse label to create (or reuse by name) when applying it."""

    name: str
    color: str | None = None  # With '#' prefix, as Clubhouse expects
    description: str | None = None
    external_id: str | None = None

    @classmethod
    def from_source(cls, label: SourceLabel) -> LabelParams:
        return cls(
            name=label.name,
            color=f"#{label.color}",
            description=label.description,
            external_id=str(label.id) if label.id is not None else None,
        )

    def to_payload(self) -> dict[str, Any]:
        return _without_none(
            {
                "name": self.name,
                "color": self.color,
                "description": self.description,
                "external_id": self.external_id,
            }
        )


@dataclass
class CommentParams:
    text: str
    author_id: str
    external_id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_payload(self) -> dict[str, Any]:
        return _without_none(
            {
                "text": self.text,
                "author_id": self.author_id,
                "external_id": self.external_id,
                "created_at": _iso(self.created_at),
                "updated_at": _iso(self.updated_at),
            }
        )


@dataclass
class EpicParams:
    """Pending Clubhouse epic built from a GitHub issue labelled "Epic"."""

    name: str
    external_id: ExternalId
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at_override: datetime | None = None
    requested_by_id: str | None = None
    owner_ids: list[str] = field(default_factory=list)
    labels: list[LabelParams] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return _without_none(
            {
                "name": self.name,
                "description": self.description,
                "external_id": self.external_id,
                "created_at": _iso(self.created_at),
                "updated_at": _iso(self.updated_at),
                "completed_at_override": _iso(self.completed_at_override),
                "requested_by_id": self.requested_by_id,
                "owner_ids": list(self.owner_ids),
                "labels": [label.to_payload() for label in self.labels],
            }
        )


@dataclass
class StoryParams:
    """Pending Clubhouse story built from a regular GitHub issue.

    ``epic_id`` stays unset until the persister has created the epics and
    matched this story against their ZenHub children.
    """

    name: str
    external_id: ExternalId
    story_type: StoryType
    project_id: int | None
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    requested_by_id: str | None = None
    owner_ids: list[str] = field(default_factory=list)
    comments: list[CommentParams] = field(default_factory=list)
    epic_id: int | None = None

    def to_payload(self) -> dict[str, Any]:
        return _without_none(
            {
                "name": self.name,
                "description": self.description,
                "external_id": self.external_id,
                "story_type": self.story_type,
                "project_id": self.project_id,
                "created_at": _iso(self.created_at),
                "updated_at": _iso(self.updated_at),
                "requested_by_id": self.requested_by_id,
                "owner_ids": list(self.owner_ids),
                "comments": [comment.to_payload() for comment in self.comments],
                "epic_id": self.epic_id,
            }
        )
