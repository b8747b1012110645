from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from scanguard.core.retry import with_retry
from scanguard.entities import BranchCommitRange, Commit, ProjectStructure, PullRequest
from scanguard.services.gitea.exceptions import (
    GiteaAuthError,
    GiteaConfigurationError,
    GiteaError,
    GiteaNotFoundError,
    GiteaProjectStructureError,
    GiteaRetryableError,
)

logger = logging.getLogger(__name__)

MAIN_BRANCHES = ("main", "master")
COMMITS_PAGE_SIZE = 50
MAX_COMMIT_PAGES = 200


def analyze_project_structure(directories: List[str]) -> ProjectStructure:
    """
    Work out the main project directory and its extensions from top-level
    directory names (dot-prefixed names already removed).

    The first name without a dot is the main project; ``<main>.<ext>`` names
    are its extensions. Several dot-less names with no extensions is ambiguous.
    """
    plain = [name for name in directories if "." not in name]
    if not plain:
        return ProjectStructure()

    main = plain[0]
    prefix = f"{main}."
    extensions = [
        name[len(prefix) :] for name in directories if name.startswith(prefix) and name != prefix
    ]

    if not extensions and len(plain) > 1:
        raise GiteaProjectStructureError(
            f"Ambiguous project layout: several top-level directories {plain} "
            f"and no '<project>.<ext>' extensions"
        )
    return ProjectStructure(main=main, extensions=extensions)


def _parse_commit(payload: Dict[str, Any]) -> Commit:
    details = payload.get("commit") or {}
    files = [f.get("filename", "") for f in payload.get("files") or [] if f.get("filename")]
    return Commit(sha=payload.get("sha", ""), message=details.get("message"), files=files)


class GiteaClient:
    """Read-only access to one Gitea repository."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        api_url: str,
        api_version: str = "v1",
        base_branch: str = "main",
        start_tag: str = "sq-start",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not owner or not repo:
            raise GiteaConfigurationError("Repository owner and name are required")
        if not api_url:
            raise GiteaConfigurationError("Gitea URL is required to call the API")

        self.owner = owner
        self.repo = repo
        self.base_branch = base_branch or "main"
        self.start_tag = start_tag
        self._token = token

        base_url = f"{api_url.rstrip('/')}/api/{api_version}/repos/{owner}/{repo}"
        self._rest = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport or httpx.HTTPTransport(retries=3),
            headers=self._headers(),
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"token {self._token}"
        return headers

    def close(self) -> None:
        self._rest.close()

    def __enter__(self) -> "GiteaClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        status = response.status_code
        if status < 400:
            return response

        url = str(response.request.url) if response.request else ""
        message = f"Gitea returned {status} for {url}"
        if status == 404:
            raise GiteaNotFoundError(message, status_code=status)
        if status in (401, 403):
            raise GiteaAuthError(message, status_code=status)
        if status == 429 or status >= 500:
            raise GiteaRetryableError(message, status_code=status)
        raise GiteaError(message, status_code=status)

    @with_retry((GiteaRetryableError,), max_attempts=3)
    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self._rest.get(path, params=params)
        except httpx.TransportError as exc:
            raise GiteaRetryableError(f"Gitea request {path} failed: {exc}") from exc
        self._handle_response(response)
        try:
            return response.json()
        except ValueError as exc:
            raise GiteaError(f"Gitea returned invalid JSON for {path}") from exc

    # ------------------------------------------------------------------
    # Commits
    # ------------------------------------------------------------------

    def get_latest_commit(self, branch: str) -> Commit:
        commits = self._get("/commits", params={"sha": branch, "limit": 1})
        if not commits:
            raise GiteaNotFoundError(f"No commits found on branch {branch}")
        return _parse_commit(commits[0])

    def list_commits(self, ref: str) -> List[Commit]:
        """All commits reachable from ``ref``, newest first."""
        commits: List[Commit] = []
        for page in range(1, MAX_COMMIT_PAGES + 1):
            batch = self._get(
                "/commits",
                params={
                    "sha": ref,
                    "page": page,
                    "limit": COMMITS_PAGE_SIZE,
                    "stat": "false",
                    "verification": "false",
                    "files": "false",
                },
            )
            commits.extend(_parse_commit(item) for item in batch or [])
            if not batch or len(batch) < COMMITS_PAGE_SIZE:
                break
        else:
            logger.warning(
                f"Stopped listing {ref} after {MAX_COMMIT_PAGES} pages; history is truncated"
            )
        return commits

    def get_first_commit_in_history(self, branch: str) -> Commit:
        commits = self.list_commits(branch)
        if not commits:
            raise GiteaNotFoundError(f"No commits found on branch {branch}")
        return commits[-1]

    def get_commit(self, sha: str) -> Commit:
        return _parse_commit(self._get(f"/git/commits/{sha}"))

    def get_commit_changed_files(self, sha: str) -> List[str]:
        return self.get_commit(sha).files

    def find_commit_with_tag(self, tag: str) -> Optional[Commit]:
        for item in self._get("/tags") or []:
            if item.get("name") == tag:
                sha = (item.get("commit") or {}).get("sha")
                if sha:
                    return Commit(sha=sha)
        return None

    # ------------------------------------------------------------------
    # Branch commit range
    # ------------------------------------------------------------------

    def get_branch_commit_range(self, branch: str) -> BranchCommitRange:
        """
        First and last commit to consider for ``branch``.

        main/master: from the commit tagged ``start_tag`` (or the root commit)
        to the tip. Other branches: from the merge base with ``base_branch`` to
        the tip.
        """
        if branch in MAIN_BRANCHES:
            return self._main_branch_commit_range(branch)
        return self._feature_branch_commit_range(branch)

    def _main_branch_commit_range(self, branch: str) -> BranchCommitRange:
        last_commit = self.get_latest_commit(branch)
        first_commit = self.find_commit_with_tag(self.start_tag) if self.start_tag else None
        if first_commit is None:
            logger.debug(f"Tag {self.start_tag} not found; using first commit of {branch}")
            first_commit = self.get_first_commit_in_history(branch)
        return BranchCommitRange(first_commit=first_commit, last_commit=last_commit)

    def _feature_branch_commit_range(self, branch: str) -> BranchCommitRange:
        last_commit = self.get_latest_commit(branch)

        first_commit = self._find_merge_base(self.base_branch, branch)
        if first_commit is None:
            logger.info(
                f"No merge base between {self.base_branch} and {branch}; "
                f"using first commit of {self.base_branch}"
            )
            first_commit = self.get_first_commit_in_history(self.base_branch)

        return BranchCommitRange(first_commit=first_commit, last_commit=last_commit)

    def _find_merge_base(self, base: str, head: str) -> Optional[Commit]:
        compare = self._get(f"/compare/{base}...{head}") or {}
        merge_base = compare.get("merge_base_commit")
        if merge_base and merge_base.get("sha"):
            return _parse_commit(merge_base)
        return self._merge_base_from_history(base, head)

    def _merge_base_from_history(self, base: str, head: str) -> Optional[Commit]:
        """
        The base-branch commit just before the oldest commit of ``head``.

        Used when the compare endpoint does not report a merge base.
        """
        head_commits = self.list_commits(head)
        base_commits = self.list_commits(base)
        if not head_commits or not base_commits:
            return None

        oldest_head_sha = head_commits[-1].sha
        for index, commit in enumerate(base_commits):
            if commit.sha == oldest_head_sha:
                if index + 1 < len(base_commits):
                    return base_commits[index + 1]
                return None
        # Unrelated histories: the base tip is the closest thing to a fork point
        return base_commits[0]

    # ------------------------------------------------------------------
    # Repository layout
    # ------------------------------------------------------------------

    def get_repository_contents(self, branch: str, path: str = "") -> List[Dict[str, Any]]:
        suffix = f"/{path.strip('/')}" if path.strip("/") else ""
        return self._get(f"/contents{suffix}", params={"ref": branch}) or []

    def get_project_structure(self, branch: str) -> ProjectStructure:
        entries = self.get_repository_contents(branch)
        directories = [
            entry.get("name", "")
            for entry in entries
            if entry.get("type") == "dir" and not entry.get("name", "").startswith(".")
        ]
        return analyze_project_structure(directories)

    def get_project_subtree_names(self, branch: str) -> List[str]:
        return self.get_project_structure(branch).subtree_names()

    # ------------------------------------------------------------------
    # Pull requests
    # ------------------------------------------------------------------

    def get_pull_request(self, number: int) -> PullRequest:
        data = self._get(f"/pulls/{number}")
        head = data.get("head") or {}
        base = data.get("base") or {}
        return PullRequest(
            number=data.get("number", number),
            state=data.get("state", ""),
            title=data.get("title", ""),
            head_branch=head.get("ref") or head.get("label") or "",
            head_sha=head.get("sha", ""),
            base_branch=base.get("ref") or base.get("label") or "",
        )
