"""
Sub-crawler interface and the runner invoking sub-crawlers.
"""
import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from repocrawler.crawlers.base import SourceCrawlerRunner
from repocrawler.models import SourceRepo

logger = logging.getLogger(__name__)


class SubCrawler(ABC):
    """
    Inspects repository contents for purposes beyond commits and texts.

    Results are recorded on the SourceRepo so they are flushed with the
    rest of the sync cycle. Return values are ignored.
    """

    name: str = "base"

    @classmethod
    def from_config(cls, excludes: Optional[Iterable[str]] = None) -> "SubCrawler":
        """Build the crawler from shared crawler settings; settings it has no use for are ignored."""
        return cls()

    @abstractmethod
    def crawl(self, repo: SourceRepo):
        pass


class SubCrawlerRunner(SourceCrawlerRunner):
    """Runs registered sub-crawlers in registration order."""

    def __init__(self, repo: SourceRepo, crawlers: Optional[List[SubCrawler]] = None):
        self.repo = repo
        self.crawlers: List[SubCrawler] = list(crawlers or [])

    def register(self, crawler: SubCrawler):
        self.crawlers.append(crawler)

    def run_crawlers(self):
        for crawler in self.crawlers:
            logger.debug(f"Running source crawler {crawler.name} on repository {self.repo.repo_id}")
            crawler.crawl(self.repo)
