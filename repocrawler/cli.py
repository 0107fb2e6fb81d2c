#!/usr/bin/env python3
"""
repocrawler - sync source repositories into their projects.

Usage:
    repocrawler sync path/to/target.yaml [--config crawler.yaml]
    repocrawler migrate [--postgres-url URL]
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from repocrawler.config import CrawlerConfig, load_target
from repocrawler.errors import CollaboratorFailure, ConfigurationError
from repocrawler.factory import create_crawler
from repocrawler.models import SourceRepo
from repocrawler.store import ProjectStore

logger = logging.getLogger(__name__)


def sync_target(target_path: Path, config: CrawlerConfig, store: ProjectStore,
                update_source_repo: bool = True) -> SourceRepo:
    """
    Sync the repository described by a target file.

    Repositories not yet in the store are registered first. Location fields
    from the target file replace the stored ones.

    Returns:
        The synced repository
    """
    target = load_target(target_path)
    repo = store.get_source_repo(target.repo_id)

    if repo is None:
        logger.info(f"Registering source repository {target.repo_id} ({target.url})")
        store.register(target)
        repo = target
    else:
        repo.url = target.url
        repo.local_path = target.local_path

    crawler = create_crawler(repo, store, config)
    if update_source_repo:
        crawler.update_source_repo()
    crawler.update_project()
    return repo


def print_summary(repo: SourceRepo, store: ProjectStore):
    """Print sync outcome for a repository."""
    print(f"Repository {repo.repo_id}: {repo.url}")
    print("=" * 60)
    if repo.project is None:
        print("No project associated, nothing synced.")
        return

    project = repo.project
    commits = store.list_commits(repo)
    print(f"Project:        {project.fqname}")
    print(f"Default branch: {repo.default_branch or 'unknown'}")
    print(f"Description:    {'set' if project.description_text else 'none'}"
          f"{'' if project.description_text_auto_update else ' (manual)'}")
    print(f"License:        {'set' if project.license_text else 'none'}"
          f"{'' if project.license_text_auto_update else ' (manual)'}")
    print(f"Commits:        {len(commits)}")
    if commits:
        print(f"Latest commit:  {commits[-1].commit_id}")

    if repo.language_stats:
        print()
        print("Languages:")
        for language, stats in sorted(repo.language_stats.items(), key=lambda item: -item[1]['lines']):
            print(f"  {language}: {stats['files']} file(s), {stats['lines']} line(s)")


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Sync source repositories into their projects',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--config', help='Crawler config YAML (default: built-in defaults)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # sync
    sync_parser = subparsers.add_parser('sync', help='Sync a repository described by a target YAML')
    sync_parser.add_argument('target', help='Path to target YAML file')
    sync_parser.add_argument('--skip-source-repo', action='store_true',
                             help='Do not refresh repository metadata (default branch)')

    # migrate
    migrate_parser = subparsers.add_parser('migrate', help='Create the postgres schema')
    migrate_parser.add_argument('--postgres-url', help='PostgreSQL connection URL (default: from config)')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        config = CrawlerConfig.from_yaml(Path(args.config)) if args.config else CrawlerConfig.from_env()

        if args.command == 'migrate':
            from repocrawler.migrate import run_migrations
            postgres_url = args.postgres_url or config.postgres_url
            if not postgres_url:
                print("Error: no postgres URL configured", file=sys.stderr)
                print("Set via --postgres-url, the config file or REPOCRAWLER_POSTGRES_URL", file=sys.stderr)
                sys.exit(1)
            run_migrations(postgres_url)
            print("Schema up to date.")
            return

        if config.backend == 'memory':
            logger.warning(
                "Using the in-memory store: nothing persists after this run and every sync "
                "is a full resync. Set backend: postgres to keep state between runs."
            )
        store = ProjectStore(backend=config.backend, postgres_url=config.postgres_url)
        try:
            repo = sync_target(Path(args.target), config, store,
                               update_source_repo=not args.skip_source_repo)
            print_summary(repo, store)
        finally:
            store.close()
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except CollaboratorFailure as e:
        print(f"Sync failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
