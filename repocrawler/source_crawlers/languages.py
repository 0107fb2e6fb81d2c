"""
Language statistics sub-crawler.

Walks the working copy and counts files and lines per language, classified
by file extension. Deterministic and read-only.
"""
import logging
import os
import stat
from pathlib import Path
from typing import Dict, Iterable, Optional

from repocrawler.models import SourceRepo
from repocrawler.source_crawlers.base import SubCrawler

logger = logging.getLogger(__name__)


# Language classification by extension
LANGUAGE_MAP = {
    '.py': 'python',
    '.js': 'javascript',
    '.ts': 'typescript',
    '.jsx': 'javascript',
    '.tsx': 'typescript',
    '.go': 'go',
    '.rs': 'rust',
    '.java': 'java',
    '.c': 'c',
    '.cpp': 'cpp',
    '.cc': 'cpp',
    '.h': 'c_header',
    '.hpp': 'cpp_header',
    '.v': 'verilog',
    '.sv': 'systemverilog',
    '.svh': 'systemverilog',
    '.vhd': 'vhdl',
    '.vhdl': 'vhdl',
    '.tcl': 'tcl',
    '.sh': 'shell',
    '.bash': 'shell',
    '.yaml': 'yaml',
    '.yml': 'yaml',
    '.json': 'json',
    '.toml': 'toml',
    '.md': 'markdown',
    '.sql': 'sql',
    '.html': 'html',
    '.css': 'css',
}

# Special file names without a telling extension
FILENAME_MAP = {
    'Dockerfile': 'dockerfile',
    'Makefile': 'makefile',
}

DEFAULT_EXCLUDES = {
    '.git',
    '.svn',
    'node_modules',
    '.venv',
    'venv',
    '__pycache__',
    'dist',
    'build',
    '.tox',
    '*.pyc',
    '*.pyo',
    '*.egg-info',
}


class LanguageStatsCrawler(SubCrawler):
    """
    Records per-language file and line counts in repo.language_stats.

    Counts what is on disk in the working copy, including untracked and
    uncommitted files, while texts and history are read from HEAD. Only
    regular files are counted; symlinks are never followed.
    """

    name = "languages"

    def __init__(self, excludes: Optional[Iterable[str]] = None):
        """
        Args:
            excludes: Directory/file names or '*suffix' patterns to skip
        """
        self.exclude_patterns = set(excludes if excludes is not None else DEFAULT_EXCLUDES)

    @classmethod
    def from_config(cls, excludes: Optional[Iterable[str]] = None) -> 'LanguageStatsCrawler':
        return cls(excludes=excludes)

    def should_exclude(self, path: Path) -> bool:
        """Check if path should be excluded."""
        for part in path.parts:
            if part in self.exclude_patterns:
                return True
            for pattern in self.exclude_patterns:
                if pattern.startswith('*') and part.endswith(pattern[1:]):
                    return True
        return False

    def classify_language(self, file_path: Path) -> Optional[str]:
        """Language of a file, or None if unknown."""
        if file_path.name in FILENAME_MAP:
            return FILENAME_MAP[file_path.name]
        return LANGUAGE_MAP.get(file_path.suffix.lower())

    def is_regular_file(self, file_path: Path) -> bool:
        """True for regular files, without following symlinks."""
        return stat.S_ISREG(os.lstat(file_path).st_mode)

    def count_lines(self, file_path: Path) -> int:
        """Number of lines in a text file, 0 for binary content."""
        data = file_path.read_bytes()
        if b'\x00' in data:
            return 0
        lines = data.count(b'\n')
        if data and not data.endswith(b'\n'):
            lines += 1
        return lines

    def crawl(self, repo: SourceRepo):
        if not repo.local_path:
            logger.debug(f"Repository {repo.repo_id} has no working copy, skipping language stats")
            return

        root_path = Path(repo.local_path)
        stats: Dict[str, Dict[str, int]] = {}

        for root, dirs, files in os.walk(root_path):
            rel_root = Path(root).relative_to(root_path)
            dirs[:] = sorted(d for d in dirs if not self.should_exclude(rel_root / d))

            for filename in sorted(files):
                rel_path = rel_root / filename
                if self.should_exclude(rel_path):
                    continue

                language = self.classify_language(rel_path)
                if language is None:
                    continue

                file_path = root_path / rel_path
                if not self.is_regular_file(file_path):
                    logger.debug(f"Skipping non-regular file {rel_path} in repository {repo.repo_id}")
                    continue

                entry = stats.setdefault(language, {'files': 0, 'lines': 0})
                entry['files'] += 1
                entry['lines'] += self.count_lines(file_path)

        repo.language_stats = stats
        logger.info(f"Detected {len(stats)} language(s) in repository {repo.repo_id}")
