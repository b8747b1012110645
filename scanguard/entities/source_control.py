"""
Source-control entities - commits, branch ranges and pull requests as read
from Gitea.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .enums import PullRequestState


class Commit(BaseModel):
    sha: str = Field(..., description="Full commit SHA")
    message: Optional[str] = None
    files: List[str] = Field(
        default_factory=list,
        description="Repository-relative paths touched by the commit (filled on demand)",
    )


class BranchCommitRange(BaseModel):
    """First and last commit of the slice of branch history to consider."""

    first_commit: Optional[Commit] = None
    last_commit: Optional[Commit] = None


class PullRequest(BaseModel):
    number: int
    state: str = Field(..., description="Gitea PR state: open or closed")
    title: str = ""
    head_branch: str
    head_sha: str
    base_branch: str

    @property
    def is_open(self) -> bool:
        return self.state == PullRequestState.OPEN.value


class ProjectStructure(BaseModel):
    """
    Top-level layout of a repository: one main project directory plus optional
    extension directories named ``<main>.<ext>``.
    """

    main: Optional[str] = None
    extensions: List[str] = Field(default_factory=list)

    def subtree_names(self) -> List[str]:
        if not self.main:
            return []
        return [self.main, *self.extensions]
