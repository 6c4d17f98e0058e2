"""Mapping of GitHub logins to Clubhouse user ids."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import NamedTuple

from .exceptions import ConfigurationError

logger: logging.Logger = logging.getLogger(__name__)


class IdentityMatch(NamedTuple):
    """Outcome of looking up a GitHub login.

    ``found`` is False when no Clubhouse user could be supplied at all.
    ``exact`` is False when the id is a fallback rather than the login's own user.
    """

    user_id: str | None
    exact: bool

    @property
    def found(self) -> bool:
        return self.user_id is not None


MappingFunc = Callable[[str], IdentityMatch]

NOT_FOUND = IdentityMatch(user_id=None, exact=False)


class MissingLoginsTracker:
    """Collects GitHub logins that had no Clubhouse mapping during one run."""

    def __init__(self) -> None:
        self._logins: set[str] = set()

    def record(self, login: str) -> None:
        self._logins.add(login)

    @property
    def logins(self) -> list[str]:
        return sorted(self._logins)

    def __len__(self) -> int:
        return len(self._logins)

    def __contains__(self, login: object) -> bool:
        return login in self._logins

    def log_summary(self) -> None:
        """Emit one aggregated warning listing every unmapped login."""
        if not self._logins:
            return
        logger.warning(f"{len(self._logins)} GitHub login(s) have no Clubhouse user: {', '.join(self.logins)}")


class LoginMapper:
    """Look up Clubhouse user ids for GitHub logins.

    Unmapped logins are recorded in the tracker. When a fallback login is
    configured, its user id is returned as an inexact match instead of a miss.
    """

    def __init__(
        self,
        logins_to_ids: Mapping[str, str],
        *,
        tracker: MissingLoginsTracker,
        fallback_login: str | None = None,
    ) -> None:
        self._logins_to_ids: dict[str, str] = dict(logins_to_ids)
        self._tracker = tracker
        self._fallback_id: str | None = None
        if fallback_login is not None:
            if fallback_login not in self._logins_to_ids:
                msg = f"Fallback login {fallback_login!r} is not in the user map"
                raise ConfigurationError(msg)
            self._fallback_id = self._logins_to_ids[fallback_login]

    def __call__(self, login: str) -> IdentityMatch:
        if not login:
            return NOT_FOUND

        user_id = self._logins_to_ids.get(login)
        if user_id is not None:
            return IdentityMatch(user_id=user_id, exact=True)

        self._tracker.record(login)
        if self._fallback_id is None:
            return NOT_FOUND
        return IdentityMatch(user_id=self._fallback_id, exact=False)


def load_user_map(path: str | Path, *, tracker: MissingLoginsTracker) -> LoginMapper:
    """Build a LoginMapper from a JSON file.

    Expected format::

        {"users": {"octocat": "5eaad9b2-..."}, "fallback": "octocat"}

    ``fallback`` is optional.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        msg = f"Failed to read user map {path}: {e}"
        raise ConfigurationError(msg) from e

    users = data.get("users") if isinstance(data, dict) else None
    if not isinstance(users, dict) or not all(isinstance(v, str) for v in users.values()):
        msg = f"User map {path} must contain a 'users' object mapping logins to Clubhouse ids"
        raise ConfigurationError(msg)

    fallback = data.get("fallback")
    if fallback is not None and not isinstance(fallback, str):
        msg = f"User map {path}: 'fallback' must be a login string"
        raise ConfigurationError(msg)

    logger.debug(f"Loaded {len(users)} user mappings from {path}")
    return LoginMapper(users, tracker=tracker, fallback_login=fallback)
