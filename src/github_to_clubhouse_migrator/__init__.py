"""
GitHub to Clubhouse Migration Tool

Migrates GitHub issues, comments and labels, plus ZenHub epics and pipeline
state, into a Clubhouse project. Every created entity carries the GitHub issue
number as its external id.
"""

from __future__ import annotations

from .cli import main
from .entities import Entities, StoryLabel
from .exceptions import IdentityMappingError, MigrationError, ProjectNotFoundError
from .identity import IdentityMatch, LoginMapper, MissingLoginsTracker
from .orchestrator import MigrateParams, MigrationResult, Migrator
from .utils import setup_logging

# Package version
__version__ = "0.1.0"

__all__ = [
    "Entities",
    "IdentityMappingError",
    "IdentityMatch",
    "LoginMapper",
    "MigrateParams",
    "MigrationError",
    "MigrationResult",
    "Migrator",
    "MissingLoginsTracker",
    "ProjectNotFoundError",
    "StoryLabel",
    "main",
    "setup_logging",
]
