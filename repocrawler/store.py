"""
Project store with staged writes.

Entities are staged with stage() and written together by flush(). Nothing
staged is visible to reads until it has been flushed; rollback() discards
everything staged since the last flush.
"""
import copy
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from repocrawler.errors import StoreError
from repocrawler.models import Commit, Project, SourceRepo

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS projects (
    project_id INTEGER PRIMARY KEY,
    parent_name TEXT NOT NULL,
    name TEXT NOT NULL,
    description_text TEXT,
    license_text TEXT,
    description_text_auto_update BOOLEAN NOT NULL DEFAULT TRUE,
    license_text_auto_update BOOLEAN NOT NULL DEFAULT TRUE
);

CREATE TABLE IF NOT EXISTS source_repos (
    repo_id INTEGER PRIMARY KEY,
    repo_type TEXT NOT NULL,
    url TEXT NOT NULL,
    local_path TEXT,
    default_branch TEXT,
    project_id INTEGER UNIQUE REFERENCES projects (project_id) ON DELETE SET NULL,
    language_stats JSONB NOT NULL DEFAULT '{}'
);

CREATE TABLE IF NOT EXISTS commits (
    seq BIGSERIAL PRIMARY KEY,
    repo_id INTEGER NOT NULL REFERENCES source_repos (repo_id) ON DELETE CASCADE,
    commit_id TEXT NOT NULL,
    author_name TEXT,
    author_email TEXT,
    date_committed TIMESTAMPTZ,
    message TEXT NOT NULL DEFAULT '',
    files_modified INTEGER NOT NULL DEFAULT 0,
    lines_added INTEGER NOT NULL DEFAULT 0,
    lines_removed INTEGER NOT NULL DEFAULT 0,
    UNIQUE (repo_id, commit_id)
);

CREATE INDEX IF NOT EXISTS idx_commits_repo_seq ON commits (repo_id, seq);
"""

# Staged operations are applied in this order within one flush
_OP_ORDER = {'project': 0, 'source_repo': 1, 'remove_commits': 2, 'commit': 3}

_COMMIT_COLUMNS = (
    'commit_id', 'repo_id', 'author_name', 'author_email', 'date_committed',
    'message', 'files_modified', 'lines_added', 'lines_removed'
)


class ProjectStore:
    """
    Persistence for projects, source repositories and commits.

    Supports Postgres and in-memory backends.
    """

    def __init__(self, backend: str = "memory", postgres_url: Optional[str] = None):
        """
        Initialize project store.

        Args:
            backend: "postgres" or "memory"
            postgres_url: PostgreSQL connection URL (if backend is postgres)
        """
        self.backend = backend
        self.postgres_url = postgres_url
        self._pending: List[Tuple[str, Any]] = []

        if backend == "memory":
            self.projects: Dict[int, Dict[str, Any]] = {}
            self.source_repos: Dict[int, Dict[str, Any]] = {}
            self.commits: Dict[int, List[Commit]] = {}
        elif backend == "postgres":
            if not postgres_url:
                raise ValueError("postgres_url required for postgres backend")
            import psycopg2
            self._db_error = psycopg2.Error
            try:
                self.conn = psycopg2.connect(postgres_url)
            except psycopg2.Error as e:
                raise StoreError(f"Cannot connect to project database: {e}") from e
        else:
            raise ValueError(f"Unknown backend: {backend}")

    # Staging

    def stage(self, entity):
        """
        Stage an entity for the next flush.

        The entity's state is captured at flush time, not when staged.
        """
        if isinstance(entity, Commit):
            self._pending.append(('commit', entity))
        elif isinstance(entity, Project):
            self._pending.append(('project', entity))
        elif isinstance(entity, SourceRepo):
            self._pending.append(('source_repo', entity))
        else:
            raise TypeError(f"Cannot stage {type(entity).__name__}")

    def remove_all_commits(self, repo: SourceRepo) -> List[Commit]:
        """
        Stage removal of every persisted commit of a repository.

        Returns:
            A fresh, empty commit association for the repository
        """
        self._pending.append(('remove_commits', repo.repo_id))
        return []

    def register(self, repo: SourceRepo):
        """Stage a repository and its project, then flush."""
        if repo.project is not None:
            self.stage(repo.project)
        self.stage(repo)
        self.flush()

    def flush(self):
        """
        Write all staged entities atomically.

        Raises:
            StoreError: if the backend rejects the writes; nothing is written
        """
        ops = sorted(self._pending, key=lambda op: _OP_ORDER[op[0]])
        self._pending = []
        if not ops:
            return

        if self.backend == "memory":
            self._flush_memory(ops)
        elif self.backend == "postgres":
            self._flush_postgres(ops)

        logger.debug(f"Flushed {len(ops)} staged operation(s)")

    def rollback(self):
        """Discard everything staged since the last flush."""
        if self._pending:
            logger.debug(f"Discarding {len(self._pending)} staged operation(s)")
        self._pending = []
        if self.backend == "postgres":
            self.conn.rollback()

    def _flush_memory(self, ops: List[Tuple[str, Any]]):
        projects = dict(self.projects)
        source_repos = dict(self.source_repos)
        commits = {repo_id: list(items) for repo_id, items in self.commits.items()}
        known_ids: Dict[int, set] = {}

        for kind, value in ops:
            if kind == 'project':
                projects[value.project_id] = value.model_dump()
            elif kind == 'source_repo':
                source_repos[value.repo_id] = _source_repo_row(value)
            elif kind == 'remove_commits':
                commits[value] = []
                known_ids[value] = set()
            elif kind == 'commit':
                if value.repo_id not in source_repos:
                    raise StoreError(f"Commit {value.commit_id} references unknown repository {value.repo_id}")
                repo_commits = commits.setdefault(value.repo_id, [])
                if value.repo_id not in known_ids:
                    known_ids[value.repo_id] = {c.commit_id for c in repo_commits}
                if value.commit_id in known_ids[value.repo_id]:
                    raise StoreError(f"Duplicate commit {value.commit_id} for repository {value.repo_id}")
                known_ids[value.repo_id].add(value.commit_id)
                repo_commits.append(value)

        # Swap in the new state only once every operation applied
        self.projects = projects
        self.source_repos = source_repos
        self.commits = commits

    def _flush_postgres(self, ops: List[Tuple[str, Any]]):
        try:
            with self.conn.cursor() as cur:
                for kind, value in ops:
                    if kind == 'project':
                        cur.execute("""
                            INSERT INTO projects (project_id, parent_name, name, description_text, license_text,
                                                  description_text_auto_update, license_text_auto_update)
                            VALUES (%s, %s, %s, %s, %s, %s, %s)
                            ON CONFLICT (project_id) DO UPDATE
                            SET parent_name = EXCLUDED.parent_name,
                                name = EXCLUDED.name,
                                description_text = EXCLUDED.description_text,
                                license_text = EXCLUDED.license_text,
                                description_text_auto_update = EXCLUDED.description_text_auto_update,
                                license_text_auto_update = EXCLUDED.license_text_auto_update
                        """, (
                            value.project_id,
                            value.parent_name,
                            value.name,
                            value.description_text,
                            value.license_text,
                            value.description_text_auto_update,
                            value.license_text_auto_update
                        ))
                    elif kind == 'source_repo':
                        row = _source_repo_row(value)
                        cur.execute("""
                            INSERT INTO source_repos (repo_id, repo_type, url, local_path, default_branch,
                                                      project_id, language_stats)
                            VALUES (%s, %s, %s, %s, %s, %s, %s)
                            ON CONFLICT (repo_id) DO UPDATE
                            SET repo_type = EXCLUDED.repo_type,
                                url = EXCLUDED.url,
                                local_path = EXCLUDED.local_path,
                                default_branch = EXCLUDED.default_branch,
                                project_id = EXCLUDED.project_id,
                                language_stats = EXCLUDED.language_stats
                        """, (
                            row['repo_id'],
                            row['repo_type'],
                            row['url'],
                            row['local_path'],
                            row['default_branch'],
                            row['project_id'],
                            json.dumps(row['language_stats'])
                        ))
                    elif kind == 'remove_commits':
                        cur.execute("DELETE FROM commits WHERE repo_id = %s", (value,))
                    elif kind == 'commit':
                        cur.execute(f"""
                            INSERT INTO commits ({', '.join(_COMMIT_COLUMNS)})
                            VALUES ({', '.join(['%s'] * len(_COMMIT_COLUMNS))})
                        """, tuple(getattr(value, column) for column in _COMMIT_COLUMNS))
            self.conn.commit()
        except self._db_error as e:
            self.conn.rollback()
            raise StoreError(f"Flush failed: {e}") from e

    # Reads

    def find_latest_commit(self, repo: SourceRepo) -> Optional[Commit]:
        """Most recently persisted commit of a repository, if any."""
        if self.backend == "memory":
            repo_commits = self.commits.get(repo.repo_id) or []
            return repo_commits[-1] if repo_commits else None

        rows = self._query(f"""
            SELECT {', '.join(_COMMIT_COLUMNS)} FROM commits
            WHERE repo_id = %s ORDER BY seq DESC LIMIT 1
        """, (repo.repo_id,))
        return _commit_from_row(rows[0]) if rows else None

    def list_commits(self, repo: SourceRepo) -> List[Commit]:
        """All persisted commits of a repository in persisted order."""
        if self.backend == "memory":
            return list(self.commits.get(repo.repo_id) or [])

        rows = self._query(f"""
            SELECT {', '.join(_COMMIT_COLUMNS)} FROM commits
            WHERE repo_id = %s ORDER BY seq
        """, (repo.repo_id,))
        return [_commit_from_row(row) for row in rows]

    def get_project(self, project_id: int) -> Optional[Project]:
        """Get project by ID."""
        if self.backend == "memory":
            row = self.projects.get(project_id)
            return Project(**row) if row else None

        rows = self._query("""
            SELECT project_id, parent_name, name, description_text, license_text,
                   description_text_auto_update, license_text_auto_update
            FROM projects WHERE project_id = %s
        """, (project_id,))
        if not rows:
            return None
        row = rows[0]
        return Project(
            project_id=row[0],
            parent_name=row[1],
            name=row[2],
            description_text=row[3],
            license_text=row[4],
            description_text_auto_update=row[5],
            license_text_auto_update=row[6]
        )

    def get_source_repo(self, repo_id: int) -> Optional[SourceRepo]:
        """Get source repository by ID, with its project and commits loaded."""
        if self.backend == "memory":
            row = self.source_repos.get(repo_id)
            if row is None:
                return None
            row = copy.deepcopy(row)
        else:
            rows = self._query("""
                SELECT repo_id, repo_type, url, local_path, default_branch, project_id, language_stats
                FROM source_repos WHERE repo_id = %s
            """, (repo_id,))
            if not rows:
                return None
            values = rows[0]
            stats = values[6]
            row = {
                'repo_id': values[0],
                'repo_type': values[1],
                'url': values[2],
                'local_path': values[3],
                'default_branch': values[4],
                'project_id': values[5],
                'language_stats': json.loads(stats) if isinstance(stats, str) else (stats or {})
            }

        project_id = row.pop('project_id')
        repo = SourceRepo(**row)
        if project_id is not None:
            repo.project = self.get_project(project_id)
        repo.commits = self.list_commits(repo)
        return repo

    def close(self):
        if self.backend == "postgres":
            self.conn.close()

    def _query(self, sql: str, params: tuple) -> List[tuple]:
        try:
            with self.conn.cursor() as cur:
                cur.execute(sql, params)
                return cur.fetchall()
        except self._db_error as e:
            self.conn.rollback()
            raise StoreError(f"Query failed: {e}") from e


def _source_repo_row(repo: SourceRepo) -> Dict[str, Any]:
    return {
        'repo_id': repo.repo_id,
        'repo_type': repo.repo_type,
        'url': repo.url,
        'local_path': repo.local_path,
        'default_branch': repo.default_branch,
        'project_id': repo.project.project_id if repo.project else None,
        'language_stats': {lang: dict(stats) for lang, stats in repo.language_stats.items()}
    }


def _commit_from_row(row: tuple) -> Commit:
    return Commit(**dict(zip(_COMMIT_COLUMNS, row)))
