"""
Custom exception classes for the GitHub to Clubhouse migration tool.
"""

from __future__ import annotations


class MigrationError(Exception):
    """Base exception for migration errors."""


class ConfigurationError(MigrationError):
    """Raised when tokens, ids or the user map cannot be loaded."""


class ProjectNotFoundError(MigrationError):
    """Raised when the target Clubhouse project cannot be resolved."""


class IdentityMappingError(MigrationError):
    """Raised when a GitHub login has no Clubhouse user at all."""


class StoryNotFoundError(MigrationError):
    """Raised when no pending story carries the requested external id."""


class APIError(MigrationError):
    """Base class for errors returned by the ZenHub and Clubhouse HTTP APIs."""

    status_code: int | None

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ClubhouseError(APIError):
    """Raised when a Clubhouse API call fails."""


class ZenhubError(APIError):
    """Raised when a ZenHub API call fails."""
