"""
Configuration loader for repocrawler.

Handles the crawler YAML config and the target YAML files describing a
repository and its project.
"""
import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from repocrawler.crawlers.git import DEFAULT_LICENSE_FILES, DEFAULT_README_FILES
from repocrawler.errors import ConfigurationError
from repocrawler.models import Project, SourceRepo
from repocrawler.source_crawlers.languages import DEFAULT_EXCLUDES


class CrawlerConfig(BaseModel):
    """Settings shared by all crawls."""
    backend: str = Field("memory", description="memory, postgres")
    postgres_url: Optional[str] = None
    git_binary: str = "git"
    git_timeout_seconds: Optional[float] = 300
    license_files: List[str] = Field(default_factory=lambda: list(DEFAULT_LICENSE_FILES))
    readme_files: List[str] = Field(default_factory=lambda: list(DEFAULT_README_FILES))
    source_crawlers: List[str] = Field(default_factory=lambda: ["languages"])
    excludes: List[str] = Field(default_factory=lambda: sorted(DEFAULT_EXCLUDES))

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> 'CrawlerConfig':
        """
        Load crawler configuration from YAML file.

        Environment variables REPOCRAWLER_BACKEND and REPOCRAWLER_POSTGRES_URL
        take precedence over the file.

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ConfigurationError: If the content is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Crawler config not found: {yaml_path}")

        data = _load_yaml(yaml_path)
        section = data.get('crawler', {})
        if not isinstance(section, dict):
            raise ConfigurationError(f"'crawler' must be a mapping in {yaml_path}")

        return cls.from_dict(section, source=str(yaml_path))

    @classmethod
    def from_env(cls) -> 'CrawlerConfig':
        """Defaults with environment overrides applied."""
        return cls.from_dict({}, source="environment")

    @classmethod
    def from_dict(cls, section: dict, source: str = "config") -> 'CrawlerConfig':
        section = dict(section)
        if os.environ.get('REPOCRAWLER_BACKEND'):
            section['backend'] = os.environ['REPOCRAWLER_BACKEND']
        if os.environ.get('REPOCRAWLER_POSTGRES_URL'):
            section['postgres_url'] = os.environ['REPOCRAWLER_POSTGRES_URL']

        try:
            config = cls(**section)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid crawler config in {source}: {e}") from e

        if config.backend not in ('memory', 'postgres'):
            raise ConfigurationError(f"Unknown store backend '{config.backend}' in {source}")
        if config.backend == 'postgres' and not config.postgres_url:
            raise ConfigurationError(f"postgres backend requires postgres_url ({source})")
        return config


def load_target(yaml_path: Path) -> SourceRepo:
    """
    Load a repository (and optional project) description from YAML.

    Expected layout::

        repo:
          repo_id: 1
          repo_type: git
          url: https://github.com/openrisc/mor1kx.git
          local_path: ~/src/mor1kx
        project:
          project_id: 1
          parent_name: openrisc
          name: mor1kx
          license_text_auto_update: false

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ConfigurationError: If required fields are missing or invalid
    """
    yaml_path = Path(yaml_path)
    if not yaml_path.exists():
        raise FileNotFoundError(f"Target file not found: {yaml_path}")

    data = _load_yaml(yaml_path)
    repo_data = data.get('repo')
    if not isinstance(repo_data, dict):
        raise ConfigurationError(f"Missing 'repo' section in {yaml_path}")

    repo_data = dict(repo_data)
    if repo_data.get('local_path'):
        repo_data['local_path'] = str(Path(repo_data['local_path']).expanduser())

    try:
        repo = SourceRepo(**repo_data)
        if data.get('project') is not None:
            repo.project = Project(**data['project'])
    except (ValidationError, TypeError) as e:
        raise ConfigurationError(f"Invalid target in {yaml_path}: {e}") from e

    return repo


def _load_yaml(yaml_path: Path) -> dict:
    try:
        with open(yaml_path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Cannot parse {yaml_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a mapping at the top of {yaml_path}")
    return data
