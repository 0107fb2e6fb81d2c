"""
Git backend - reads a local working copy through the git binary.

Content and history are read from HEAD, so uncommitted changes in the
working copy are never picked up.
"""
import logging
import subprocess
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from repocrawler.crawlers.base import (
    CommitHistoryProvider,
    ContentExtractor,
    RepoTypeValidator,
    SourceRepoRefresher,
)
from repocrawler.errors import ConfigurationError, GitCommandError
from repocrawler.markup import MarkupConverter, markup_for_filename
from repocrawler.models import Commit, RepoType, SourceRepo

logger = logging.getLogger(__name__)

DEFAULT_LICENSE_FILES = ['LICENSE', 'LICENSE.md', 'LICENSE.txt', 'COPYING', 'COPYING.md', 'COPYING.txt']
DEFAULT_README_FILES = ['README.md', 'README.markdown', 'README.rst', 'README.txt', 'README']

# Separators for machine-readable git log output
_RECORD_SEP = '\x1e'
_FIELD_SEP = '\x1f'
_LOG_FORMAT = f'{_RECORD_SEP}%H{_FIELD_SEP}%an{_FIELD_SEP}%ae{_FIELD_SEP}%aI{_FIELD_SEP}%B{_FIELD_SEP}'


class GitRepoCrawler(RepoTypeValidator, ContentExtractor, CommitHistoryProvider, SourceRepoRefresher):
    """Backend for git repositories with a local working copy."""

    def __init__(
        self,
        repo: SourceRepo,
        markup_converter: Optional[MarkupConverter] = None,
        git_binary: str = 'git',
        timeout: Optional[float] = 300,
        license_files: Optional[Sequence[str]] = None,
        readme_files: Optional[Sequence[str]] = None
    ):
        """
        Initialize git backend.

        Args:
            repo: Repository to read; local_path must point at a working copy
            markup_converter: Converter for license and README files
            git_binary: Name or path of the git executable
            timeout: Seconds before a git invocation is aborted (None: no limit)
            license_files: Candidate license file names, in preference order
            readme_files: Candidate README file names, in preference order
        """
        self.repo = repo
        self.markup_converter = markup_converter or MarkupConverter()
        self.git_binary = git_binary
        self.timeout = timeout
        self.license_files = list(license_files or DEFAULT_LICENSE_FILES)
        self.readme_files = list(readme_files or DEFAULT_README_FILES)

        if repo.repo_type == RepoType.GIT and not repo.local_path:
            raise ConfigurationError(f"Git repository {repo.repo_id} has no local working copy path")
        self.repo_path = Path(repo.local_path) if repo.local_path else None

    def is_valid_repo_type(self) -> bool:
        return self.repo.repo_type == RepoType.GIT

    # Content

    def get_license_text_safe_html(self) -> Optional[str]:
        return self._read_document(self.license_files)

    def get_description_safe_html(self) -> Optional[str]:
        return self._read_document(self.readme_files)

    def _read_document(self, candidates: List[str]) -> Optional[str]:
        """Convert the first candidate file found at the root of HEAD."""
        if not self._has_head():
            return None

        listing = self._git(['ls-tree', '--name-only', 'HEAD']).stdout.splitlines()
        by_lower_name = {name.lower(): name for name in listing}

        for candidate in candidates:
            name = by_lower_name.get(candidate.lower())
            if name is None:
                continue
            content = self._git(['show', f'HEAD:{name}']).stdout
            logger.debug(f"Using {name} from repository {self.repo.repo_id}")
            return self.markup_converter.to_safe_html(content, markup_for_filename(name))

        return None

    # History

    def commit_exists(self, commit_id: str) -> bool:
        if not commit_id or commit_id.startswith('-') or not self._has_head():
            return False

        if self._git(['cat-file', '-e', f'{commit_id}^{{commit}}'], check=False).returncode != 0:
            return False

        result = self._git(['merge-base', '--is-ancestor', commit_id, 'HEAD'], check=False)
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise GitCommandError(result.args, result.returncode, result.stderr)

    def fetch_commits(self, since_id: Optional[str] = None) -> List[Commit]:
        if not self._has_head():
            return []

        revision = f'{since_id}..HEAD' if since_id else 'HEAD'
        output = self._git([
            'log', '--reverse', '--no-color', '--numstat',
            f'--format={_LOG_FORMAT}', revision, '--'
        ]).stdout
        commits = self.parse_log(output, self.repo.repo_id)

        logger.debug(f"Fetched {len(commits)} commit(s) from repository {self.repo.repo_id}")
        return commits

    @staticmethod
    def parse_log(output: str, repo_id: int) -> List[Commit]:
        """
        Parse `git log --numstat` output written with the record format above.

        Returns:
            Commits in output order
        """
        commits = []
        for record in output.split(_RECORD_SEP):
            if not record.strip():
                continue

            fields = record.split(_FIELD_SEP)
            if len(fields) < 6:
                continue
            commit_sha, author_name, author_email, date_str, message, numstat = fields[:6]

            files_modified = 0
            lines_added = 0
            lines_removed = 0
            for line in numstat.splitlines():
                parts = line.split('\t')
                if len(parts) < 3:
                    continue
                files_modified += 1
                # Binary files report '-' for both counts
                if parts[0].isdigit():
                    lines_added += int(parts[0])
                if parts[1].isdigit():
                    lines_removed += int(parts[1])

            commits.append(Commit(
                commit_id=commit_sha.strip(),
                repo_id=repo_id,
                author_name=author_name or None,
                author_email=author_email or None,
                date_committed=datetime.fromisoformat(date_str) if date_str else None,
                message=message.strip(),
                files_modified=files_modified,
                lines_added=lines_added,
                lines_removed=lines_removed
            ))

        return commits

    # Repository metadata

    def update_source_repo(self):
        """Record the checked-out branch as the default branch."""
        result = self._git(['symbolic-ref', '--short', '-q', 'HEAD'], check=False)
        branch = result.stdout.strip()
        if result.returncode == 0 and branch:
            self.repo.default_branch = branch
        else:
            logger.debug(f"Repository {self.repo.repo_id} has a detached HEAD, keeping default branch")

    # Plumbing

    def _has_head(self) -> bool:
        return self._git(['rev-parse', '--verify', '-q', 'HEAD'], check=False).returncode == 0

    def _git(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        command = [self.git_binary, *args]
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                encoding='utf-8',
                errors='replace',
                cwd=self.repo_path,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired:
            raise GitCommandError(command)
        except OSError as e:
            raise GitCommandError(command, 127, str(e)) from e

        if check and result.returncode != 0:
            raise GitCommandError(command, result.returncode, result.stderr)
        return result
