import logging
from typing import Dict, Iterable, List

from scanguard.core.protocols import SourceControlReader
from scanguard.scanning.exceptions import GITEA_API_FAILED, collaborator_unavailable

logger = logging.getLogger(__name__)


def subtree_prefixes(subtree_names: List[str]) -> List[str]:
    """``[main, ext1, ...]`` -> ``[main, main.ext1, ...]``."""
    if not subtree_names:
        return []
    main, *extensions = subtree_names
    return [main, *(f"{main}.{ext}" for ext in extensions)]


def touches_subtrees(paths: Iterable[str], subtree_names: List[str]) -> bool:
    """
    True when any path lies under one of the project subtrees.

    A path matches only across a directory boundary: ``Cfg/x`` is under
    ``Cfg`` but ``Cfg`` itself and ``CfgOther/x`` are not. No subtrees means
    the layout is flat and everything counts.
    """
    prefixes = subtree_prefixes(subtree_names)
    if not prefixes:
        return True
    boundaries = tuple(f"{prefix}/" for prefix in prefixes)
    return any(path.startswith(boundaries) for path in paths)


class ChangeRelevanceClassifier:
    """Decides whether a commit touches any part of the project worth scanning."""

    def __init__(self, source_control: SourceControlReader):
        self.source_control = source_control
        self._subtrees: Dict[str, List[str]] = {}

    def subtree_names(self, branch: str) -> List[str]:
        if branch not in self._subtrees:
            try:
                self._subtrees[branch] = list(self.source_control.get_project_subtree_names(branch))
            except Exception as exc:
                raise collaborator_unavailable(
                    exc, GITEA_API_FAILED, f"Failed to read project layout of {branch}"
                ) from exc
        return self._subtrees[branch]

    def is_relevant(self, branch: str, sha: str) -> bool:
        subtrees = self.subtree_names(branch)
        if not subtrees:
            return True

        try:
            paths = self.source_control.get_commit_changed_files(sha)
        except Exception as exc:
            raise collaborator_unavailable(
                exc, GITEA_API_FAILED, f"Failed to list files of commit {sha}"
            ) from exc

        relevant = touches_subtrees(paths, subtrees)
        logger.debug(
            f"Commit {sha[:7]}: {len(paths)} changed files, relevant={relevant} "
            f"(subtrees {subtree_prefixes(subtrees)})"
        )
        return relevant
