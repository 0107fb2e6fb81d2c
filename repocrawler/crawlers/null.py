"""
Fallback backend - implements every capability with its default behavior.

Extracts nothing: no license, no description, no commits. Because
commit_exists() is always False, every sync takes the full resync path
and ends with an empty commit set.
"""
import logging
from typing import List, Optional

from repocrawler.crawlers.base import (
    CommitHistoryProvider,
    ContentExtractor,
    RepoTypeValidator,
    SourceCrawlerRunner,
    SourceRepoRefresher,
)
from repocrawler.models import Commit, SourceRepo

logger = logging.getLogger(__name__)


class NullRepoCrawler(RepoTypeValidator, ContentExtractor, CommitHistoryProvider,
                      SourceCrawlerRunner, SourceRepoRefresher):
    """
    Backend for repositories nothing more specific is known about.

    Useful as a base for partial backends and as a stand-in in tests.
    """

    def __init__(self, repo: SourceRepo, supported_types: Optional[List[str]] = None):
        """
        Args:
            repo: Repository this backend reads
            supported_types: Repo types to accept (default: any)
        """
        self.repo = repo
        self.supported_types = supported_types

    def is_valid_repo_type(self) -> bool:
        if self.supported_types is None:
            return True
        return self.repo.repo_type in self.supported_types

    def get_license_text_safe_html(self) -> Optional[str]:
        return None

    def get_description_safe_html(self) -> Optional[str]:
        return None

    def commit_exists(self, commit_id: str) -> bool:
        # Unknown commits force a full resync
        return False

    def fetch_commits(self, since_id: Optional[str] = None) -> List[Commit]:
        logger.debug(f"Commit extraction not supported for repository {self.repo.repo_id}")
        return []

    def run_crawlers(self):
        pass

    def update_source_repo(self):
        pass
