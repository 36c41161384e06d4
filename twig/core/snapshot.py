"""
Snapshot — Refs captured once at the start of an invocation

HEAD, branches and the main branch are read exactly once, so a query
sees one consistent view even if another git process moves refs while
it runs. Ancestry answers are memoized for the lifetime of the snapshot.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Set, Tuple, TYPE_CHECKING

from ..errors import ConfigError

if TYPE_CHECKING:
    from ..services.git import GitRepository, Branch


@dataclass
class RepositorySnapshot:
    head_oid: Optional[str]
    head_branch: Optional[str]
    branches: List['Branch']
    main_branch: str
    main_tips: List[str]
    repo: 'GitRepository' = field(repr=False, default=None)
    main_branches: List['Branch'] = field(default_factory=list)
    _ancestry: Dict[Tuple[str, str], bool] = field(default_factory=dict, repr=False)

    @classmethod
    def capture(cls, repo: 'GitRepository', main_branch: str) -> 'RepositorySnapshot':
        """
        Read HEAD, branches and main-branch tips.

        The main branch may name a local branch ("master") or a
        remote-tracking one ("origin/master"). A local main branch's
        upstream counts as a main tip too.

        Raises:
            ConfigError: main_branch doesn't exist in a repository that has commits
        """
        head_oid = repo.head_oid()
        branches = repo.branches()

        main = _find_branch(branches, main_branch)
        main_tips: List[str] = []
        main_branches: List['Branch'] = []
        if main is None:
            if head_oid is not None or branches:
                raise ConfigError(
                    f"Main branch '{main_branch}' not found. "
                    f"Set it with: twig config set core.main_branch <name>"
                )
        else:
            main_tips.append(main.target)
            main_branches.append(main)
            if not main.is_remote:
                upstream_name = repo.upstream_of(main.name)
                upstream = _find_branch(branches, upstream_name) if upstream_name else None
                if upstream is not None:
                    main_branches.append(upstream)
                    if upstream.target not in main_tips:
                        main_tips.append(upstream.target)

        return cls(
            head_oid=head_oid,
            head_branch=repo.head_branch() if head_oid else None,
            branches=branches,
            main_branch=main_branch,
            main_tips=main_tips,
            repo=repo,
            main_branches=main_branches,
        )

    @property
    def branch_tips(self) -> Set[str]:
        return {branch.target for branch in self.branches}

    @property
    def other_branch_tips(self) -> Set[str]:
        """Tips of every branch except the main branch and its upstream."""
        return {branch.target for branch in self.branches if branch not in self.main_branches}

    def branches_at(self, oid: str) -> List['Branch']:
        return [branch for branch in self.branches if branch.target == oid]

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """Memoized repo.is_ancestor."""
        if ancestor == descendant:
            return True
        key = (ancestor, descendant)
        if key not in self._ancestry:
            self._ancestry[key] = self.repo.is_ancestor(ancestor, descendant)
        return self._ancestry[key]


def _find_branch(branches: List['Branch'], name: str) -> Optional['Branch']:
    """Local branch with this name, else remote-tracking branch with it."""
    for branch in branches:
        if branch.name == name and not branch.is_remote:
            return branch
    for branch in branches:
        if branch.name == name and branch.is_remote:
            return branch
    return None
