"""
Crawler factory - composes an orchestrator for a repository by its type.
"""
from typing import Optional

from repocrawler.config import CrawlerConfig
from repocrawler.crawlers.git import GitRepoCrawler
from repocrawler.crawlers.null import NullRepoCrawler
from repocrawler.errors import ConfigurationError
from repocrawler.markup import MarkupConverter
from repocrawler.models import RepoType, SourceRepo
from repocrawler.source_crawlers import SubCrawlerRunner, build_sub_crawlers
from repocrawler.store import ProjectStore
from repocrawler.updater import UpdateOrchestrator


def _git_backend(repo: SourceRepo, config: CrawlerConfig, converter: MarkupConverter):
    return GitRepoCrawler(
        repo,
        markup_converter=converter,
        git_binary=config.git_binary,
        timeout=config.git_timeout_seconds,
        license_files=config.license_files,
        readme_files=config.readme_files
    )


def _svn_backend(repo: SourceRepo, config: CrawlerConfig, converter: MarkupConverter):
    # SVN content and history extraction are not implemented
    return NullRepoCrawler(repo, supported_types=[RepoType.SVN])


CRAWLERS = {
    RepoType.GIT.value: _git_backend,
    RepoType.SVN.value: _svn_backend,
}


def create_crawler(
    repo: SourceRepo,
    store: ProjectStore,
    config: Optional[CrawlerConfig] = None,
    markup_converter: Optional[MarkupConverter] = None
) -> UpdateOrchestrator:
    """
    Build the orchestrator for a repository according to its type.

    Raises:
        ConfigurationError: if no backend handles the repository type
    """
    config = config or CrawlerConfig()
    repo_type = getattr(repo.repo_type, 'value', repo.repo_type)
    if repo_type not in CRAWLERS:
        raise ConfigurationError(f"No crawler for repository type '{repo_type}' (repository {repo.repo_id})")

    backend = CRAWLERS[repo_type](repo, config, markup_converter or MarkupConverter())
    runner = SubCrawlerRunner(repo, build_sub_crawlers(config.source_crawlers, excludes=config.excludes))

    return UpdateOrchestrator(
        repo,
        store,
        validator=backend,
        content=backend,
        history=backend,
        crawler_runner=runner,
        refresher=backend
    )
