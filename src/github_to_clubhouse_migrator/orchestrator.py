"""Migration orchestrator that sequences conversion, enrichment and persistence.

Migration Flow
--------------
Phase 0: Project
    Resolve the Clubhouse project by name (skipped when an id is given, and
    in dry runs, which never call Clubhouse).

Phase 1: Conversion
    Walk the GitHub issues once. Pull requests are skipped, issues labelled
    "Epic" become pending epics, everything else becomes a pending story with
    its comments. Story labels are aggregated by name.

Phase 2: Pipeline enrichment
    Look up each pending epic on ZenHub and label the pending stories of its
    children with their pipeline name.

Phase 3: Persistence (or dump)
    Dry run: dump the pending state as JSON for review.
    Otherwise: create epics and link stories, bulk-create stories, apply
    labels (see persister.py).

Error Handling
--------------
Run-level failures (project lookup, fetching issues or comments, a comment
author without a Clubhouse user, bulk story creation) raise MigrationError
and stop the run. Per-item failures are logged, counted in PersistResult and
skipped. Nothing already created is rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .converter import IssueConverter
from .dump import write_json
from .entities import Entities
from .exceptions import ClubhouseError, ProjectNotFoundError
from .persister import Persister, PersistResult
from .pipelines import PipelineLabelEnricher

if TYPE_CHECKING:
    from pathlib import Path

    from .identity import MappingFunc, MissingLoginsTracker
    from .protocols import BoardOverlay, Destination, IssueSource

logger = logging.getLogger(__name__)


@dataclass
class MigrateParams:
    """What to migrate and where to."""

    org: str
    repo: str
    repo_id: int  # ZenHub repository id
    project: str  # Clubhouse project name
    dry_run: bool = False
    project_id: int | None = None  # Skips the project lookup when set


@dataclass
class MigrationResult:
    """Result of a migration run."""

    dry_run: bool
    entities: Entities
    persist_result: PersistResult | None = None

    @property
    def success(self) -> bool:
        return self.dry_run or (self.persist_result is not None and not self.persist_result.errors)


class Migrator:
    """Runs one GitHub + ZenHub to Clubhouse migration.

    Usage:
        tracker = MissingLoginsTracker()
        mapper = load_user_map("users.json", tracker=tracker)
        migrator = Migrator(
            GithubIssueSource(github), ZenhubClient(zh_token), ClubhouseClient(ch_token), mapper, tracker=tracker
        )
        result = migrator.migrate(MigrateParams(org="acme", repo="app", repo_id=123, project="App"))

    Each call to migrate() builds a fresh Entities accumulator; nothing is
    carried over between runs.
    """

    def __init__(
        self,
        source: IssueSource,
        board: BoardOverlay,
        destination: Destination,
        mapping_func: MappingFunc,
        *,
        tracker: MissingLoginsTracker | None = None,
    ) -> None:
        self._source = source
        self._board = board
        self._destination = destination
        self._mapping_func = mapping_func
        self._tracker = tracker

    def migrate(self, params: MigrateParams, *, dump_path: str | Path | None = None) -> MigrationResult:
        """Execute the migration.

        Args:
            params: Source, board and destination identifiers
            dump_path: Where a dry run writes its JSON dump (stdout if None)

        Raises:
            MigrationError: If a run-level failure occurs
        """
        logger.info(f"Starting migration of {params.org}/{params.repo} into project {params.project!r}")
        try:
            project_id = self.resolve_project_id(params)

            converter = IssueConverter(
                self._source,
                self._mapping_func,
                org=params.org,
                repo=params.repo,
                project_id=project_id,
            )
            entities = converter.convert(Entities())
            _ = PipelineLabelEnricher(self._board, params.repo_id).enrich(entities)

            if params.dry_run:
                write_json(self.dump_payload(params, project_id, entities), dump_path)
                logger.info("Dry run: no Clubhouse entities were created")
                return MigrationResult(dry_run=True, entities=entities)

            persist_result = Persister(self._destination, self._board, params.repo_id).persist(entities)
        finally:
            if self._tracker is not None:
                self._tracker.log_summary()

        if persist_result.errors:
            logger.warning(f"Migration completed with {len(persist_result.errors)} errors")
        else:
            logger.info("Migration completed successfully")
        return MigrationResult(dry_run=False, entities=entities, persist_result=persist_result)

    def resolve_project_id(self, params: MigrateParams) -> int | None:
        if params.project_id is not None:
            return params.project_id
        if params.dry_run:
            logger.info(f"Dry run: not looking up Clubhouse project {params.project!r}")
            return None

        logger.info(f"Getting project {params.project!r}...")
        try:
            projects = self._destination.list_projects()
        except ClubhouseError as e:
            msg = f"Failed to list Clubhouse projects: {e}"
            raise ProjectNotFoundError(msg) from e

        for project in projects:
            if project.name == params.project:
                return project.id

        msg = f"No project with name {params.project}"
        raise ProjectNotFoundError(msg)

    @staticmethod
    def dump_payload(params: MigrateParams, project_id: int | None, entities: Entities) -> dict[str, Any]:
        return {
            "org": params.org,
            "repo": params.repo,
            "repo_id": params.repo_id,
            "project": params.project,
            "project_id": project_id,
            "entities": entities.to_payload(),
        }
