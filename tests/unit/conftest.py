"""
Pytest configuration for unit tests.

Provides record factories and a helper for building real git repositories.
"""
import os
import shutil
import subprocess

import pytest

from repocrawler.models import Commit, Project, SourceRepo


GIT_AVAILABLE = shutil.which('git') is not None

requires_git = pytest.mark.skipif(not GIT_AVAILABLE, reason="git binary not available")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep store settings from the environment out of tests."""
    monkeypatch.delenv("REPOCRAWLER_BACKEND", raising=False)
    monkeypatch.delenv("REPOCRAWLER_POSTGRES_URL", raising=False)


def make_project(**overrides) -> Project:
    fields = {
        'project_id': 1,
        'parent_name': 'openrisc',
        'name': 'mor1kx',
        'description_text': '<p>old description</p>',
        'license_text': '<p>old license</p>',
    }
    fields.update(overrides)
    return Project(**fields)


def make_repo(project=True, **overrides) -> SourceRepo:
    fields = {
        'repo_id': 1,
        'repo_type': 'git',
        'url': 'https://github.com/openrisc/mor1kx.git',
        'local_path': '/srv/repos/mor1kx',
    }
    fields.update(overrides)
    repo = SourceRepo(**fields)
    if project is True:
        repo.project = make_project()
    elif project:
        repo.project = project
    return repo


def make_commit(commit_id: str, repo_id: int = 1) -> Commit:
    return Commit(commit_id=commit_id, repo_id=repo_id, author_name='Ada', message=f'commit {commit_id}')


class GitWorkingCopy:
    """Creates commits in a throwaway git repository."""

    def __init__(self, path):
        self.path = path
        self.env = dict(os.environ)
        self.env.update({
            'GIT_AUTHOR_NAME': 'Ada Lovelace',
            'GIT_AUTHOR_EMAIL': 'ada@example.org',
            'GIT_COMMITTER_NAME': 'Ada Lovelace',
            'GIT_COMMITTER_EMAIL': 'ada@example.org',
            'GIT_CONFIG_NOSYSTEM': '1',
            'HOME': str(path),
        })
        self.git('init', '-q')
        self.git('symbolic-ref', 'HEAD', 'refs/heads/main')

    def git(self, *args) -> str:
        result = subprocess.run(
            ['git', '-c', 'commit.gpgsign=false', *args],
            cwd=self.path,
            env=self.env,
            capture_output=True,
            text=True,
            check=True
        )
        return result.stdout.strip()

    def commit(self, files: dict, message: str) -> str:
        """Write files, commit them and return the new commit id."""
        for name, content in files.items():
            file_path = self.path / name
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content)
            self.git('add', name)
        self.git('commit', '-q', '-m', message)
        return self.git('rev-parse', 'HEAD')


@pytest.fixture
def working_copy(tmp_path):
    """Empty git repository on branch main."""
    if not GIT_AVAILABLE:
        pytest.skip("git binary not available")
    path = tmp_path / 'repo'
    path.mkdir()
    return GitWorkingCopy(path)
