"""Main entry point for the nut CLI."""

from dotenv import load_dotenv
load_dotenv()

import os
import sys
import argparse
from typing import List, Optional

from .config import Config
from .core.errors import AlreadyInWorkspace, CloneFailures, NutError
from .core.github_client import GitHubClient
from .core.logger import setup_logging
from .core.validation import parse_repository_name, validate_import_args
from .core.workspace import Workspace, create_workspace, list_workspaces
from .git import (
    ClonePipeline,
    apply_command,
    apply_script,
    clone_parallel,
    get_all_repos_status,
)
from .git.protocol import get_token_with_fallback
from .utils.progress import ProgressTracker, print_clone_summary, print_status_summary


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog='nut',
        description='Manage workspaces of many git repositories checked out together',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create a workspace
  nut create -d "fix logging across services"

  # Import repositories into it (clones through the shared mirror cache)
  nut import -w <id> octocat/hello-world octocat/spoon-knife
  nut import -w <id> --query "owner:octocat language:python" --parallel 4

  # Show which repositories have changes
  nut status -w <id>

  # Run a command in every repository
  nut apply -w <id> -- git log -1 --oneline
        """
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Log every git invocation'
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    create_parser_ = subparsers.add_parser('create', help='Create a new workspace')
    create_parser_.add_argument('-d', '--description', required=True, help='Workspace description')

    subparsers.add_parser('list', help='List existing workspaces')

    status_parser = subparsers.add_parser('status', help='Show status of a workspace')
    _add_workspace_arg(status_parser)

    apply_parser = subparsers.add_parser('apply', help='Run a command in each repository')
    _add_workspace_arg(apply_parser)
    apply_parser.add_argument('-s', '--script', help='Path to an executable script to run')
    apply_parser.add_argument(
        'program',
        nargs=argparse.REMAINDER,
        help='Command and arguments to run (after --)'
    )

    import_parser = subparsers.add_parser('import', help='Import repositories into a workspace')
    _add_workspace_arg(import_parser)
    import_parser.add_argument(
        '-n', '--dry-run',
        action='store_true',
        help='Only print the repository names, do not clone'
    )
    import_parser.add_argument('-q', '--query', help='GitHub search query to find repositories')
    import_parser.add_argument(
        '-p', '--parallel',
        type=int,
        metavar='N',
        help='Maximum concurrent clones (overrides NUT_PARALLEL)'
    )
    import_parser.add_argument('--github-token', help='GitHub token (overrides GITHUB_TOKEN)')
    import_parser.add_argument(
        'full_repository_names',
        nargs='*',
        metavar='OWNER/REPO',
        help='Repositories to import'
    )

    subparsers.add_parser('cache-dir', help='Print git cache directory')
    subparsers.add_parser('data-dir', help='Print data directory containing workspaces')
    workspace_dir_parser = subparsers.add_parser('workspace-dir', help='Print workspace directory')
    _add_workspace_arg(workspace_dir_parser)

    return parser


def _add_workspace_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '-w', '--workspace',
        metavar='ID',
        help='Workspace ID (default: the entered workspace, NUT_WORKSPACE_ID)'
    )


def _resolve_workspace(args, config: Config) -> Workspace:
    return Workspace.resolve(
        config.data_dir,
        workspace_id=args.workspace,
        entered_id=config.entered_workspace,
        cwd=os.getcwd()
    )


def cmd_create(args, config: Config) -> int:
    if config.entered_workspace:
        raise AlreadyInWorkspace()
    workspace = create_workspace(config.data_dir, args.description)
    print(workspace.id)
    print(workspace.path)
    return 0


def cmd_list(args, config: Config) -> int:
    for workspace in list_workspaces(config.data_dir):
        print(workspace.id)
        print(f"  Created: {workspace.created.strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"  {workspace.read_description() or '(missing description)'}")
        print()
    return 0


def cmd_status(args, config: Config) -> int:
    workspace = _resolve_workspace(args, config)
    print_status_summary(get_all_repos_status(workspace.path))
    return 0


def cmd_apply(args, config: Config) -> int:
    workspace = _resolve_workspace(args, config)
    program = list(args.program)
    if program and program[0] == '--':
        program = program[1:]

    if args.script:
        results = apply_script(workspace.path, args.script, program)
    else:
        results = apply_command(workspace.path, program)

    failed = [r for r in results if r.failed]
    if failed:
        print(f"Command failed in {len(failed)} of {len(results)} repositories", file=sys.stderr)
    return 0


def cmd_import(args, config: Config, logger) -> int:
    validate_import_args(args.query, args.full_repository_names)
    for full_name in args.full_repository_names:
        parse_repository_name(full_name)

    workspace = _resolve_workspace(args, config)
    token = get_token_with_fallback(config.github_token)
    client = GitHubClient(token=token, api_url=config.github_api_url)

    if args.query:
        repos = client.search_repositories(args.query)
    else:
        repos = [client.get_repository(name) for name in args.full_repository_names]

    if args.dry_run:
        for repo in repos:
            print(repo['full_name'])
        return 0

    logger.info(f"Fetching commit metadata for {len(repos)} repositories...")
    infos = [client.get_clone_info(repo) for repo in repos]

    pipeline = ClonePipeline(config.cache_dir, host=config.git_host)
    progress = ProgressTracker(len(infos), "import")
    try:
        results = clone_parallel(workspace.path, infos, config.parallel, pipeline, progress=progress)
    except CloneFailures as e:
        print_clone_summary(e.results, operation_name="import")
        raise
    print_clone_summary(results, operation_name="import")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = Config.from_env_and_args(
            token=getattr(args, 'github_token', None),
            parallel=getattr(args, 'parallel', None)
        )
    except ValueError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1

    logger = setup_logging(operation=args.command, log_dir=config.log_dir, verbose=args.verbose)

    try:
        config.ensure_dirs()

        if args.command == 'create':
            return cmd_create(args, config)
        if args.command == 'list':
            return cmd_list(args, config)
        if args.command == 'status':
            return cmd_status(args, config)
        if args.command == 'apply':
            return cmd_apply(args, config)
        if args.command == 'import':
            return cmd_import(args, config, logger)
        if args.command == 'cache-dir':
            print(config.cache_dir)
        elif args.command == 'data-dir':
            print(config.data_dir)
        elif args.command == 'workspace-dir':
            print(_resolve_workspace(args, config).path)
        return 0

    except NutError as e:
        report_error(e)
        return 1


def report_error(error: NutError) -> None:
    """Print a structured error message to stderr."""
    print(f"Error [{error.code}]: {error}", file=sys.stderr)
    cause = error.__cause__
    if cause is not None:
        print(f"  Caused by: {cause}", file=sys.stderr)
    if isinstance(error, CloneFailures):
        for failure in error.failures:
            print(f"  - {failure.repo}: {failure.message}", file=sys.stderr)
    if error.help:
        print(f"  help: {error.help}", file=sys.stderr)


if __name__ == '__main__':
    sys.exit(main())
