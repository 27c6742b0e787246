"""
Command-line interface for the GitLab exporter.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import asdict
from typing import TYPE_CHECKING

from . import git_utils
from . import gitlab_utils as glu
from .exceptions import ExportError
from .git_utils import GitRepository
from .project_exporter import ProjectExporter
from .session import ExportSession
from .utils import DEFAULT_LOG_FILE, setup_logging

if TYPE_CHECKING:
    from .project_exporter import ExportStats

logger: logging.Logger = logging.getLogger(__name__)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Export a GitLab project into an archive for import into GitHub"
    )

    # Positional arguments
    _ = parser.add_argument("gitlab_project", help="GitLab project path (namespace/project)")
    _ = parser.add_argument("archive_dir", help="Archive directory; an existing archive is resumed")

    # Optional arguments
    _ = parser.add_argument(
        "--gitlab-url", help="GitLab instance URL (default: $GITLAB_URL or https://gitlab.com)"
    )
    _ = parser.add_argument(
        "--gitlab-pass-token", help="Path for GitLab token in pass utility (default: gitlab/cli/ro_token)"
    )
    _ = parser.add_argument(
        "--repo-path", help="Path to an existing local clone of the project (default: clone a temporary mirror)"
    )
    _ = parser.add_argument("--log-file", default=DEFAULT_LOG_FILE, help=f"Log file (default: {DEFAULT_LOG_FILE})")
    _ = parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    return parser.parse_args(argv)


def _print_summary(project_path: str, archive_dir: str, stats: ExportStats) -> None:
    print(f"Exported {project_path} to {archive_dir}")  # noqa: T201
    for key, value in asdict(stats).items():
        print(f"  {key.replace('_', ' ')}: {value}")  # noqa: T201


def run(args: argparse.Namespace) -> ExportStats:
    """Export the project described by the parsed arguments.

    Raises:
        ExportError: On any fatal error; the archive is closed and can be resumed
    """
    gitlab_url = glu.get_url(args.gitlab_url)
    token = glu.get_token(args.gitlab_pass_token)
    source = glu.GitlabSource(glu.get_client(gitlab_url, token))

    with ExportSession.open(args.archive_dir, source, root_url=gitlab_url) as session:
        project = source.project(args.gitlab_project)
        clone_path: str | None = None
        try:
            if args.repo_path:
                repository = GitRepository(args.repo_path)
            else:
                clone_path = git_utils.clone_mirror(project["http_url_to_repo"], token)
                repository = GitRepository(clone_path)

            project_exporter = ProjectExporter(project, session=session, repository=repository)
            return project_exporter.export()
        finally:
            if clone_path:
                git_utils.cleanup_git_clone(clone_path)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)
    setup_logging(verbose=args.verbose, log_file=args.log_file)

    try:
        stats = run(args)
    except ExportError:
        logger.exception("Export failed; re-run the same command to resume")
        sys.exit(1)
    except Exception:
        logger.exception("Export failed")
        sys.exit(1)

    _print_summary(args.gitlab_project, args.archive_dir, stats)
    sys.exit(0)
