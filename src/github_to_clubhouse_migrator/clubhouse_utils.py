from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Final

import requests

from . import utils
from .exceptions import ClubhouseError
from .models import ClubhouseEpic, ClubhouseProject, ClubhouseStory

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import EpicParams, LabelParams, StoryParams

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_TOKEN_ENV_VAR: Final[str] = "CLUBHOUSE_TOKEN"  # noqa: S105
_DEFAULT_TOKEN_PASS_PATH: Final[str] = "clubhouse/api/token"  # noqa: S105

DEFAULT_BASE_URL: Final[str] = "https://api.clubhouse.io/api/v3"
REQUEST_TIMEOUT: Final[float] = 60.0

# Raised while reading fields out of a 2xx response body that lacks them
_PARSE_ERRORS: Final = (AttributeError, KeyError, TypeError, ValueError)


def get_token(pass_path: str | None = None) -> str | None:
    """Get Clubhouse token from pass path, env var CLUBHOUSE_TOKEN, or default pass location."""
    return utils.resolve_token(env_var=_TOKEN_ENV_VAR, default_pass_path=_DEFAULT_TOKEN_PASS_PATH, pass_path=pass_path)


def _story(data: dict[str, Any]) -> ClubhouseStory:
    return ClubhouseStory(id=int(data["id"]), name=data.get("name", ""), external_id=data.get("external_id"))


class ClubhouseClient:
    """Clubhouse REST client for the calls a migration makes."""

    def __init__(self, token: str | None, *, base_url: str = DEFAULT_BASE_URL) -> None:
        self.base_url: str = base_url.rstrip("/")
        self.session: requests.Session = requests.Session()
        self.session.headers["Content-Type"] = "application/json"
        if token:
            self.session.headers["Clubhouse-Token"] = token

    def _request(self, method: str, endpoint: str, payload: Any = None) -> Any:  # noqa: ANN401 - JSON in and out
        url = f"{self.base_url}/{endpoint}"
        try:
            response = self.session.request(method, url, json=payload, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            return response.json() if response.content else None
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            detail = e.response.text[:200] if e.response is not None else ""
            msg = f"Clubhouse request {method} {endpoint} failed with HTTP {status_code}: {detail}"
            raise ClubhouseError(msg, status_code=status_code) from e
        except (requests.RequestException, ValueError) as e:
            msg = f"Clubhouse request {method} {endpoint} failed: {e}"
            raise ClubhouseError(msg) from e

    def list_projects(self) -> list[ClubhouseProject]:
        data = self._request("GET", "projects")
        try:
            return [ClubhouseProject(id=int(project["id"]), name=project["name"]) for project in data]
        except _PARSE_ERRORS as e:
            msg = f"Unexpected Clubhouse projects payload: {e!r}"
            raise ClubhouseError(msg) from e

    def create_epic(self, params: EpicParams) -> ClubhouseEpic:
        data = self._request("POST", "epics", params.to_payload())
        try:
            return ClubhouseEpic(
                id=int(data["id"]), name=data.get("name", params.name), external_id=data.get("external_id")
            )
        except _PARSE_ERRORS as e:
            msg = f"Unexpected Clubhouse epic payload for {params.name!r}: {e!r}"
            raise ClubhouseError(msg) from e

    def create_stories(self, params: Sequence[StoryParams]) -> list[ClubhouseStory]:
        data = self._request("POST", "stories/bulk", {"stories": [story.to_payload() for story in params]})
        try:
            return [_story(story) for story in data]
        except _PARSE_ERRORS as e:
            msg = f"Unexpected Clubhouse stories payload: {e!r}"
            raise ClubhouseError(msg) from e

    def add_label_to_stories(self, story_ids: Sequence[int], label: LabelParams) -> None:
        _ = self._request(
            "PUT",
            "stories/bulk",
            {"story_ids": list(story_ids), "labels_add": [label.to_payload()]},
        )
        logger.debug(f"Added label {label.name!r} to {len(story_ids)} stories")
