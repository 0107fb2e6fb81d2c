"""
Update orchestrator - syncs one source repository into its project.

A sync cycle refreshes the project's description and license (where the
project allows it), brings the persisted commit set in line with the
repository history, runs the source crawlers and flushes everything in one
go. Errors from any collaborator propagate; the cycle's staged work is
discarded first so a failed sync leaves persisted state untouched.
"""
import logging
from typing import Optional

from repocrawler.crawlers.base import (
    CommitHistoryProvider,
    ContentExtractor,
    RepoTypeValidator,
    SourceCrawlerRunner,
    SourceRepoRefresher,
)
from repocrawler.errors import ConfigurationError
from repocrawler.models import SourceRepo
from repocrawler.store import ProjectStore

logger = logging.getLogger(__name__)


class UpdateOrchestrator:
    """
    Composes the crawler capabilities for one SourceRepo.

    Callers must not run two syncs of the same repository concurrently;
    orchestrators for different repositories are independent.
    """

    def __init__(
        self,
        repo: SourceRepo,
        store: ProjectStore,
        validator: RepoTypeValidator,
        content: ContentExtractor,
        history: CommitHistoryProvider,
        crawler_runner: Optional[SourceCrawlerRunner] = None,
        refresher: Optional[SourceRepoRefresher] = None
    ):
        """
        Initialize orchestrator.

        Args:
            repo: Repository to sync
            store: Project store used for lookups and the final flush
            validator: Gate for the repository type
            content: Source of license and description texts
            history: Source of commit history
            crawler_runner: Runs source crawlers (default: none)
            refresher: Refreshes repository metadata (default: none)

        Raises:
            ConfigurationError: if the repository type is not supported
        """
        self.repo = repo
        self.store = store
        self.content = content
        self.history = history
        self.crawler_runner = crawler_runner
        self.refresher = refresher

        if not validator.is_valid_repo_type():
            raise ConfigurationError(
                f"Repository type '{repo.repo_type}' of repository {repo.repo_id} "
                f"is not supported by {type(validator).__name__}"
            )

    def update_project(self) -> bool:
        """
        Update the project of the repository with information extracted from it.

        Returns:
            False if the repository has no project, True once the sync is flushed
        """
        project = self.repo.project
        if project is None:
            logger.debug(f"No project associated with source repository {self.repo.repo_id}")
            return False

        try:
            if project.description_text_auto_update:
                project.description_text = self.content.get_description_safe_html()
            if project.license_text_auto_update:
                project.license_text = self.content.get_license_text_safe_html()

            logger.info(f"Fetching commits for the project {project.fqname}")
            commits = self._fetch_new_commits()

            for commit in commits:
                self.store.stage(commit)
            self.repo.commits = self.repo.commits + commits

            logger.info(f"Running source code crawlers for the project {project.fqname}")
            self.run_crawlers()

            self.store.stage(project)
            self.store.stage(self.repo)
            self.store.flush()
        except Exception:
            self.store.rollback()
            raise

        logger.info(f"Synced {len(commits)} commit(s) for the project {project.fqname}")
        return True

    def _fetch_new_commits(self):
        last_commit = self.store.find_latest_commit(self.repo)

        if last_commit is not None and self.history.commit_exists(last_commit.commit_id):
            logger.debug(
                f"Incremental commit sync for repository {self.repo.repo_id} "
                f"since {last_commit.commit_id}"
            )
            return list(self.history.fetch_commits(last_commit.commit_id))

        # No known commit, or history was rewritten: drop everything and refetch.
        # Partial rewrites (common ancestor) are not reconciled.
        if last_commit is not None:
            logger.info(
                f"Commit {last_commit.commit_id} no longer reachable in repository "
                f"{self.repo.repo_id}, resyncing full history"
            )
        self.repo.commits = self.store.remove_all_commits(self.repo)
        return list(self.history.fetch_commits())

    def run_crawlers(self):
        """Run the configured source crawlers; no-op without a runner."""
        if self.crawler_runner is not None:
            self.crawler_runner.run_crawlers()

    def update_source_repo(self):
        """
        Update the source repository with information obtained by the crawler.

        Not part of update_project(); callers decide when to run it.
        """
        if self.refresher is None:
            return
        try:
            self.refresher.update_source_repo()
            self.store.stage(self.repo)
            self.store.flush()
        except Exception:
            self.store.rollback()
            raise
