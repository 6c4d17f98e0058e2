"""
Command-line interface for the GitHub to Clubhouse migration tool.
"""

from __future__ import annotations

import argparse
import logging
import sys

from . import clubhouse_utils as chu
from . import github_utils as ghu
from . import zenhub_utils as zhu
from .exceptions import MigrationError
from .identity import MissingLoginsTracker, load_user_map
from .orchestrator import MigrateParams, MigrationResult, Migrator
from .utils import setup_logging

logger: logging.Logger = logging.getLogger(__name__)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Migrate GitHub issues and ZenHub epics to Clubhouse")
    _ = parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    _ = parser.add_argument(
        "--github-pass-token", help="Path for GitHub token in pass utility (default: github/cli/token)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate = subparsers.add_parser("migrate", help="Convert issues and create them in Clubhouse")
    _ = migrate.add_argument("github_repo", help="GitHub repository path (owner/repo)")
    _ = migrate.add_argument("project", help="Name of the Clubhouse project to create stories in")
    _ = migrate.add_argument("--user-map", "-u", required=True, help="JSON file mapping GitHub logins to Clubhouse ids")
    _ = migrate.add_argument("--zenhub-repo-id", type=int, help="ZenHub repository id (default: $ZENHUB_REPO_ID)")
    _ = migrate.add_argument("--project-id", type=int, help="Clubhouse project id; skips the lookup by name")
    _ = migrate.add_argument("--dry-run", "-n", action="store_true", help="Don't create Clubhouse entities, dump them")
    _ = migrate.add_argument("--output", "-o", help="File for the dry-run dump (default: stdout)")
    _ = migrate.add_argument(
        "--zenhub-pass-token", help="Path for ZenHub token in pass utility (default: zenhub/api/token)"
    )
    _ = migrate.add_argument(
        "--clubhouse-pass-token", help="Path for Clubhouse token in pass utility (default: clubhouse/api/token)"
    )

    dump = subparsers.add_parser("dump", help="Save raw GitHub issues, comments, labels and assignees as JSON")
    _ = dump.add_argument("github_repo", help="GitHub repository path (owner/repo)")
    _ = dump.add_argument("--dump-dir", default="dump", help="Directory for the JSON files (default: ./dump)")

    return parser.parse_args(argv)


def _print_summary(result: MigrationResult) -> None:
    entities = result.entities
    print(f"Epics:   {len(entities.epics)}")
    print(f"Stories: {len(entities.stories)}")
    print(f"Labels:  {len(entities.story_labels)}")
    if result.persist_result is None:
        return
    persisted = result.persist_result
    print(
        f"Created: {persisted.epics_created} epics, {persisted.stories_created} stories, "
        f"{persisted.labels_applied} labels applied"
    )
    for error in persisted.errors:
        print(f"  ERROR: {error}")


def run_migrate(args: argparse.Namespace) -> MigrationResult:
    org, repo = ghu.parse_repo_path(args.github_repo)
    tracker = MissingLoginsTracker()
    mapper = load_user_map(args.user_map, tracker=tracker)

    github_client = ghu.get_client(ghu.get_token(args.github_pass_token))
    zenhub_client = zhu.ZenhubClient(zhu.get_token(args.zenhub_pass_token))
    clubhouse_client = chu.ClubhouseClient(None if args.dry_run else chu.get_token(args.clubhouse_pass_token))

    migrator = Migrator(
        ghu.GithubIssueSource(github_client),
        zenhub_client,
        clubhouse_client,
        mapper,
        tracker=tracker,
    )
    params = MigrateParams(
        org=org,
        repo=repo,
        repo_id=zhu.get_repo_id(args.zenhub_repo_id),
        project=args.project,
        dry_run=args.dry_run,
        project_id=args.project_id,
    )
    return migrator.migrate(params, dump_path=args.output)


def run_dump(args: argparse.Namespace) -> None:
    _ = ghu.parse_repo_path(args.github_repo)
    github_client = ghu.get_client(ghu.get_token(args.github_pass_token))
    ghu.dump_repository(github_client, args.github_repo, args.dump_dir)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)

    verbose: bool = getattr(args, "verbose", False)
    setup_logging(verbose=verbose)

    try:
        if args.command == "dump":
            run_dump(args)
            sys.exit(0)

        result = run_migrate(args)
    except MigrationError:
        logger.exception("Migration failed")
        sys.exit(1)

    if not result.dry_run or args.output:
        _print_summary(result)
    sys.exit(0 if result.success else 1)
