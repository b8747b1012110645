"""Input validation and project-key derivation shared by both workflows."""

import re
from typing import Optional

from scanguard.scanning.exceptions import ValidationFailedError

MAIN_BRANCH = "main"
# "t" followed by 6 or 7 ASCII digits; [0-9] rather than \d to reject non-ASCII digits
TASK_BRANCH_PATTERN = re.compile(r"t[0-9]{6,7}")


def is_valid_branch_for_scanning(branch: str) -> bool:
    """``main`` or a task branch like ``t123456``. Case-sensitive, full match."""
    if branch == MAIN_BRANCH:
        return True
    return TASK_BRANCH_PATTERN.fullmatch(branch) is not None


def validate_branch(branch: Optional[str]) -> str:
    if not branch:
        raise ValidationFailedError("Branch name is required", code="BRANCH.MISSING")
    if not is_valid_branch_for_scanning(branch):
        raise ValidationFailedError(
            f"Branch '{branch}' is not eligible for scanning: expected 'main' "
            f"or 't' followed by 6-7 digits",
            code="BRANCH.INVALID_FORMAT",
        )
    return branch


def validate_pr_number(pr_number: Optional[int]) -> int:
    if not pr_number:
        raise ValidationFailedError("Pull request number is required", code="PR.MISSING")
    if pr_number < 0:
        raise ValidationFailedError(
            f"Pull request number must be positive, got {pr_number}", code="PR.INVALID"
        )
    return pr_number


def build_project_key(owner: str, repo: str, branch: str) -> str:
    return f"{owner}_{repo}_{branch}"


def build_project_name(owner: str, repo: str, branch: str) -> str:
    return f"{owner}/{repo} ({branch})"
