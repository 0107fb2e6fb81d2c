"""
Domain records synchronized by the crawlers.

A SourceRepo is a tracked repository, a Project is the user-facing record
whose texts may be filled from it, and a Commit is one history entry.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class RepoType(str, Enum):
    """Known repository types."""
    GIT = "git"
    SVN = "svn"


class Project(BaseModel):
    """Project record owning description and license texts."""
    project_id: int
    parent_name: str
    name: str
    description_text: Optional[str] = None
    license_text: Optional[str] = None
    description_text_auto_update: bool = Field(True, description="Allow crawlers to overwrite description_text")
    license_text_auto_update: bool = Field(True, description="Allow crawlers to overwrite license_text")

    @property
    def fqname(self) -> str:
        """Fully qualified name, e.g. 'openrisc/mor1kx'."""
        return f"{self.parent_name}/{self.name}"


class Commit(BaseModel):
    """Immutable record of one repository history entry."""
    commit_id: str
    repo_id: int
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    date_committed: Optional[datetime] = None
    message: str = ""
    files_modified: int = 0
    lines_added: int = 0
    lines_removed: int = 0

    model_config = ConfigDict(frozen=True)


class SourceRepo(BaseModel):
    """Tracked source code repository."""
    repo_id: int
    repo_type: str = Field(..., description="git, svn")
    url: str
    local_path: Optional[str] = Field(None, description="Path of the local working copy")
    default_branch: Optional[str] = None
    project: Optional[Project] = None
    commits: List[Commit] = Field(default_factory=list)
    language_stats: Dict[str, Dict[str, int]] = Field(default_factory=dict)
