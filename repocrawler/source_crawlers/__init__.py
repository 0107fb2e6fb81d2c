"""
Source crawlers - pluggable inspections of repository contents.

- LanguageStatsCrawler: per-language file and line counts
"""
from typing import Dict, Iterable, List, Optional, Type

from repocrawler.errors import ConfigurationError
from repocrawler.source_crawlers.base import SubCrawler, SubCrawlerRunner
from repocrawler.source_crawlers.languages import LanguageStatsCrawler

SUB_CRAWLERS: Dict[str, Type[SubCrawler]] = {
    LanguageStatsCrawler.name: LanguageStatsCrawler,
}


def build_sub_crawlers(names: Iterable[str], excludes: Optional[Iterable[str]] = None) -> List[SubCrawler]:
    """
    Instantiate sub-crawlers by name, in the given order.

    Raises:
        ConfigurationError: if a name is not registered
    """
    crawlers = []
    for name in names:
        if name not in SUB_CRAWLERS:
            raise ConfigurationError(
                f"Unknown source crawler '{name}'. Available: {', '.join(sorted(SUB_CRAWLERS))}"
            )
        crawlers.append(SUB_CRAWLERS[name].from_config(excludes=excludes))
    return crawlers


__all__ = [
    "SubCrawler",
    "SubCrawlerRunner",
    "LanguageStatsCrawler",
    "SUB_CRAWLERS",
    "build_sub_crawlers",
]
