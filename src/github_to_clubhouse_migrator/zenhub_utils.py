from __future__ import annotations

import logging
import os
from typing import Any, Final

import requests

from . import utils
from .exceptions import ConfigurationError, ZenhubError
from .models import ZenhubEpic, ZenhubEpicIssue

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_TOKEN_ENV_VAR: Final[str] = "ZENHUB_TOKEN"  # noqa: S105
_DEFAULT_TOKEN_PASS_PATH: Final[str] = "zenhub/api/token"  # noqa: S105
_REPO_ID_ENV_VAR: Final[str] = "ZENHUB_REPO_ID"

DEFAULT_BASE_URL: Final[str] = "https://api.zenhub.com"
REQUEST_TIMEOUT: Final[float] = 30.0


def get_token(pass_path: str | None = None) -> str | None:
    """Get ZenHub token from pass path, env var ZENHUB_TOKEN, or default pass location."""
    return utils.resolve_token(env_var=_TOKEN_ENV_VAR, default_pass_path=_DEFAULT_TOKEN_PASS_PATH, pass_path=pass_path)


def get_repo_id(repo_id: int | None = None) -> int:
    """Return the ZenHub repository id, falling back to env var ZENHUB_REPO_ID."""
    if repo_id is not None:
        return repo_id

    value = os.environ.get(_REPO_ID_ENV_VAR)
    if not value:
        msg = f"No ZenHub repository id given; pass --zenhub-repo-id or set {_REPO_ID_ENV_VAR}"
        raise ConfigurationError(msg)
    try:
        return int(value)
    except ValueError as e:
        msg = f"{_REPO_ID_ENV_VAR} must be an integer, got {value!r}"
        raise ConfigurationError(msg) from e


def _epic_issue(data: dict[str, Any]) -> ZenhubEpicIssue:
    pipeline = data.get("pipeline") or {}
    return ZenhubEpicIssue(
        issue_number=int(data["issue_number"]),
        is_epic=bool(data.get("is_epic", False)),
        pipeline_name=pipeline.get("name") or None,
    )


class ZenhubClient:
    """Minimal ZenHub REST client: only what reconciliation needs."""

    def __init__(self, token: str | None, *, base_url: str = DEFAULT_BASE_URL) -> None:
        self.base_url: str = base_url.rstrip("/")
        self.session: requests.Session = requests.Session()
        if token:
            self.session.headers["X-Authentication-Token"] = token

    def _get(self, endpoint: str) -> Any:  # noqa: ANN401 - JSON response
        url = f"{self.base_url}/{endpoint}"
        try:
            response = self.session.get(url, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            msg = f"ZenHub request GET {endpoint} failed with HTTP {status_code}"
            raise ZenhubError(msg, status_code=status_code) from e
        except (requests.RequestException, ValueError) as e:
            msg = f"ZenHub request GET {endpoint} failed: {e}"
            raise ZenhubError(msg) from e

    def get_epic(self, repo_id: int, issue_number: int) -> ZenhubEpic:
        data = self._get(f"p1/repositories/{repo_id}/epics/{issue_number}")
        try:
            issues = tuple(_epic_issue(issue) for issue in data.get("issues", []))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            msg = f"Unexpected ZenHub epic payload for #{issue_number}: {e}"
            raise ZenhubError(msg) from e

        logger.debug(f"ZenHub epic #{issue_number} has {len(issues)} issues")
        return ZenhubEpic(issues=issues)
