"""
Capability interfaces consumed by the update orchestrator.

A repository backend implements some or all of these for one SourceRepo;
the orchestrator is composed from them instead of subclassing a crawler.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from repocrawler.models import Commit


class RepoTypeValidator(ABC):
    """Gate deciding whether a backend can process its repository."""

    @abstractmethod
    def is_valid_repo_type(self) -> bool:
        """
        Is the repository processable by this backend?

        Evaluated once, when the orchestrator is constructed.
        """
        pass


class ContentExtractor(ABC):
    """
    Reads descriptive content from the repository.

    "Safe" HTML is stripped of anything possibly malicious, such as script
    tags. None means nothing was found and is distinct from an empty string.
    """

    @abstractmethod
    def get_license_text_safe_html(self) -> Optional[str]:
        """License text, usually from LICENSE or COPYING, or None."""
        pass

    @abstractmethod
    def get_description_safe_html(self) -> Optional[str]:
        """Description, usually the README, or None."""
        pass


class CommitHistoryProvider(ABC):
    """Access to the commit history of the repository's default branch."""

    @abstractmethod
    def commit_exists(self, commit_id: str) -> bool:
        """
        Check whether a commit is reachable from the tip of the default tree.

        Args:
            commit_id: ID of the commit to search

        Returns:
            True if the commit is part of the current history
        """
        pass

    @abstractmethod
    def fetch_commits(self, since_id: Optional[str] = None) -> List[Commit]:
        """
        Get all commits after since_id, or the whole history if not given.

        Backends that cannot extract commits return an empty list.

        Args:
            since_id: ID of the commit after which commits are returned

        Returns:
            Commits in history order
        """
        pass


class SourceCrawlerRunner(ABC):
    """Runs the configured sub-crawlers over the repository contents."""

    @abstractmethod
    def run_crawlers(self):
        """Invoke every registered sub-crawler in registration order."""
        pass


class SourceRepoRefresher(ABC):
    """Refreshes SourceRepo-level metadata such as the default branch."""

    @abstractmethod
    def update_source_repo(self):
        pass
