"""
Git Integration — Read-only view of the repository plus hook installation

Everything twig knows about commits, branches and HEAD comes through
GitRepository. It shells out to git rather than reading the object store
directly, so any repository git understands (worktrees, packed refs,
alternates) works unchanged.

Lookups that legitimately find nothing (an unborn HEAD, a missing ref)
return None. Anything else git refuses raises RepositoryError.
"""

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, Dict, Tuple

from ..errors import RepositoryError

logger = logging.getLogger(__name__)


ZERO_OID = "0" * 40
SHORT_ID_LENGTH = 8

# Namespace for refs that keep event-log commits alive across gc
KEEP_REF_PREFIX = "refs/twig/keep/"

HOOK_MARKER_START = "## START TWIG CONFIG"
HOOK_MARKER_END = "## END TWIG CONFIG"

# Hooks fired by one git process share its pid, so their events share a transaction
TRANSACTION_KEY_EXPORT = 'export TWIG_TRANSACTION_KEY="${TWIG_TRANSACTION_KEY:-git-$PPID}"\n'

HOOK_SCRIPTS: Dict[str, str] = {
    "post-commit": TRANSACTION_KEY_EXPORT + 'twig hook-post-commit "$@"\n',
    "post-rewrite": TRANSACTION_KEY_EXPORT + 'twig hook-post-rewrite "$@"\n',
    "post-checkout": TRANSACTION_KEY_EXPORT + 'twig hook-post-checkout "$@"\n',
    "pre-auto-gc": (
        "# A twig failure must not stop garbage collection.\n"
        'twig hook-pre-auto-gc "$@" || (\n'
        "    echo 'twig: Failed to pin commits before garbage collection!'\n"
        "    echo 'twig: Hidden commits may be collected.'\n"
        ")\n"
    ),
    "reference-transaction": TRANSACTION_KEY_EXPORT + (
        "# A twig failure must not cancel the reference transaction.\n"
        'twig hook-reference-transaction "$@" || (\n'
        "    echo 'twig: Failed to process reference transaction!'\n"
        "    echo 'twig: Some events (e.g. branch updates) may have been lost.'\n"
        ")\n"
    ),
}

# git alias -> twig command
ALIASES: Dict[str, str] = {
    "smartlog": "smartlog",
    "sl": "smartlog",
    "hide": "hide",
    "unhide": "unhide",
}


@dataclass
class CommitInfo:
    """Information about a git commit."""
    oid: str
    parents: List[str] = field(default_factory=list)
    message: str = ""
    timestamp: int = 0  # committer time, seconds since epoch

    @property
    def summary(self) -> str:
        """First line of the message."""
        return self.message.split("\n", 1)[0]

    @property
    def short_id(self) -> str:
        return self.oid[:SHORT_ID_LENGTH]


@dataclass(frozen=True)
class Branch:
    """A local or remote-tracking branch."""
    name: str      # "master" or "origin/master"
    target: str
    is_remote: bool = False

    @property
    def ref_name(self) -> str:
        prefix = "refs/remotes/" if self.is_remote else "refs/heads/"
        return prefix + self.name


class GitRepository:
    """Git repository adapter."""

    def __init__(self, repo_path: Optional[Path] = None):
        """
        Initialize the adapter.

        Args:
            repo_path: Path inside a git working tree. If None, uses current directory.
        """
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()
        self._commits: Dict[str, CommitInfo] = {}
        self._common_dir: Optional[Path] = None

    def _run_git(self, args: List[str], check: bool = True,
                 input_text: Optional[str] = None) -> subprocess.CompletedProcess:
        """Run a git command. Raises RepositoryError if check and git fails."""
        try:
            result = subprocess.run(
                ["git"] + args,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                input=input_text,
            )
        except OSError as e:
            raise RepositoryError(f"Could not run git: {e}") from e
        if check and result.returncode != 0:
            raise RepositoryError(f"git {' '.join(args)} failed: {result.stderr.strip()}")
        return result

    def _output(self, args: List[str]) -> str:
        return self._run_git(args).stdout

    def _optional(self, args: List[str]) -> Optional[str]:
        """Output of a query that exits non-zero when there's nothing to report."""
        result = self._run_git(args, check=False)
        value = result.stdout.strip()
        if result.returncode != 0 or not value:
            return None
        return value

    # -------------------------------------------------------------------------
    # Repository layout
    # -------------------------------------------------------------------------

    @property
    def is_git_repo(self) -> bool:
        """Check if repo_path is inside a git repository."""
        try:
            result = self._run_git(["rev-parse", "--git-dir"], check=False)
        except RepositoryError:
            return False
        return result.returncode == 0

    @property
    def common_dir(self) -> Path:
        """The git directory shared by all worktrees."""
        if self._common_dir is None:
            path = Path(self._output(["rev-parse", "--git-common-dir"]).strip())
            self._common_dir = path if path.is_absolute() else (self.repo_path / path).resolve()
        return self._common_dir

    @property
    def twig_dir(self) -> Path:
        """Repository-private storage for twig."""
        return self.common_dir / "twig"

    @property
    def hooks_dir(self) -> Path:
        path = Path(self._output(["rev-parse", "--git-path", "hooks"]).strip())
        return path if path.is_absolute() else (self.repo_path / path).resolve()

    # -------------------------------------------------------------------------
    # Refs
    # -------------------------------------------------------------------------

    def head_oid(self) -> Optional[str]:
        """Commit HEAD points at, or None for an unborn HEAD."""
        return self._optional(["rev-parse", "--verify", "-q", "HEAD^{commit}"])

    def head_branch(self) -> Optional[str]:
        """Short name of the checked-out branch, or None when detached."""
        return self._optional(["symbolic-ref", "-q", "--short", "HEAD"])

    def resolve_ref(self, name: str) -> Optional[str]:
        """Resolve any revision to a commit id, or None if it doesn't exist."""
        return self._optional(["rev-parse", "--verify", "-q", f"{name}^{{commit}}"])

    def branches(self) -> List[Branch]:
        """Local and remote-tracking branches, skipping symbolic refs like origin/HEAD."""
        output = self._output([
            "for-each-ref",
            "--format=%(objectname) %(objecttype) %(refname) %(symref)",
            "refs/heads", "refs/remotes",
        ])
        branches = []
        for line in output.splitlines():
            parts = line.split(" ")
            if len(parts) < 3:
                continue
            oid, object_type, ref_name = parts[:3]
            symref = parts[3] if len(parts) > 3 else ""
            if symref or object_type != "commit":
                continue
            if ref_name.startswith("refs/heads/"):
                branches.append(Branch(ref_name[len("refs/heads/"):], oid))
            elif ref_name.startswith("refs/remotes/"):
                branches.append(Branch(ref_name[len("refs/remotes/"):], oid, is_remote=True))
        return branches

    def upstream_of(self, branch: str) -> Optional[str]:
        """Short name of the remote branch a local branch tracks, if any."""
        return self._optional([
            "for-each-ref", "--format=%(upstream:short)", f"refs/heads/{branch}"
        ])

    def refs_under(self, prefix: str) -> Dict[str, str]:
        """Refs whose name starts with prefix, mapped to their targets."""
        output = self._output(["for-each-ref", "--format=%(refname) %(objectname)", prefix.rstrip("/")])
        refs = {}
        for line in output.splitlines():
            ref_name, _, oid = line.partition(" ")
            if oid and ref_name.startswith(prefix):
                refs[ref_name] = oid
        return refs

    def update_refs(self, updates: Dict[str, Optional[str]]):
        """Apply ref updates in one atomic update-ref batch. None deletes the ref."""
        if not updates:
            return
        lines = "".join(
            f"delete {ref}\n" if oid is None else f"update {ref} {oid}\n"
            for ref, oid in sorted(updates.items())
        )
        self._run_git(["update-ref", "--stdin"], input_text=lines)

    # -------------------------------------------------------------------------
    # Commits
    # -------------------------------------------------------------------------

    def get_commit(self, oid: str) -> CommitInfo:
        """Read a commit. Raises RepositoryError if it doesn't exist."""
        cached = self._commits.get(oid)
        if cached is not None:
            return cached

        output = self._output([
            "show", "-s", "--no-color", "--format=%H%x00%P%x00%ct%x00%B", f"{oid}^{{commit}}"
        ])
        parts = output.split("\x00", 3)
        if len(parts) < 4:
            raise RepositoryError(f"Could not parse commit {oid}")

        full_oid, parents, timestamp, message = parts
        commit = CommitInfo(
            oid=full_oid.strip(),
            parents=parents.split(),
            message=message.rstrip("\n"),
            timestamp=int(timestamp or 0),
        )
        self._commits[commit.oid] = commit
        self._commits[oid] = commit
        return commit

    def has_commit(self, oid: str) -> bool:
        if oid in self._commits:
            return True
        result = self._run_git(["cat-file", "-e", f"{oid}^{{commit}}"], check=False)
        return result.returncode == 0

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """True if ancestor is reachable from descendant (a commit is its own ancestor)."""
        if ancestor == descendant:
            return True
        result = self._run_git(["merge-base", "--is-ancestor", ancestor, descendant], check=False)
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise RepositoryError(
            f"Could not compare {ancestor[:SHORT_ID_LENGTH]} and "
            f"{descendant[:SHORT_ID_LENGTH]}: {result.stderr.strip()}"
        )

    # -------------------------------------------------------------------------
    # Config
    # -------------------------------------------------------------------------

    def get_config(self, key: str) -> Optional[str]:
        return self._optional(["config", "--get", key])

    def set_config(self, key: str, value: str):
        self._run_git(["config", key, value])

    def unset_config(self, key: str):
        # Exit status 5 means the key wasn't set
        result = self._run_git(["config", "--unset", key], check=False)
        if result.returncode not in (0, 5):
            raise RepositoryError(f"git config --unset {key} failed: {result.stderr.strip()}")

    # -------------------------------------------------------------------------
    # Hooks and aliases
    # -------------------------------------------------------------------------

    def install_hooks(self) -> Tuple[bool, str]:
        """
        Install (or refresh) every twig hook.

        Twig's lines live between marker comments, so re-installing replaces
        them in place and any other content of the hook is preserved.

        Returns:
            Tuple of (success, message)
        """
        if not self.is_git_repo:
            return False, "Not a git repository"

        hooks_dir = self.hooks_dir
        hooks_dir.mkdir(parents=True, exist_ok=True)

        for hook_type, script in HOOK_SCRIPTS.items():
            hook_path = hooks_dir / hook_type
            if hook_path.exists():
                content = update_between_markers(hook_path.read_text(), script)
            else:
                content = f"#!/bin/sh\n{HOOK_MARKER_START}\n{script}{HOOK_MARKER_END}\n"
            hook_path.write_text(content)
            mode = os.stat(hook_path).st_mode
            os.chmod(hook_path, mode | 0o111)

        return True, f"Installed {len(HOOK_SCRIPTS)} hooks in {hooks_dir}"

    def uninstall_hooks(self) -> Tuple[bool, str]:
        """
        Remove twig's block from every hook.

        Returns:
            Tuple of (success, message)
        """
        if not self.is_git_repo:
            return False, "Not a git repository"

        removed = 0
        for hook_type in HOOK_SCRIPTS:
            hook_path = self.hooks_dir / hook_type
            if not hook_path.exists():
                continue
            content = hook_path.read_text()
            if HOOK_MARKER_START not in content:
                continue
            remaining = remove_between_markers(content)
            if remaining.strip() in ("", "#!/bin/sh"):
                hook_path.unlink()
            else:
                hook_path.write_text(remaining)
            removed += 1

        if removed == 0:
            return True, "No hooks to remove"
        return True, f"Removed twig from {removed} hook(s)"

    def hooks_status(self) -> str:
        """Get status of git hooks."""
        if not self.is_git_repo:
            return "Not a git repository"

        installed = [
            hook_type for hook_type in HOOK_SCRIPTS
            if (self.hooks_dir / hook_type).exists()
            and HOOK_MARKER_START in (self.hooks_dir / hook_type).read_text()
        ]
        if len(installed) == len(HOOK_SCRIPTS):
            return "Installed"
        if not installed:
            return "Not installed"
        return f"Partially installed ({', '.join(installed)})"

    def install_aliases(self) -> List[str]:
        """Install repository-local git aliases. Returns the alias names."""
        for alias, command in ALIASES.items():
            self.set_config(f"alias.{alias}", f"!twig {command}")
        return list(ALIASES)

    def uninstall_aliases(self):
        for alias in ALIASES:
            self.unset_config(f"alias.{alias}")


def update_between_markers(content: str, block: str) -> str:
    """
    Replace whatever sits between the twig markers with block.

    Content without markers gets the marked block appended.
    """
    if HOOK_MARKER_START not in content:
        if not content.endswith("\n"):
            content += "\n"
        return f"{content}{HOOK_MARKER_START}\n{block}{HOOK_MARKER_END}\n"

    lines = []
    ignoring = False
    for line in content.splitlines():
        if line == HOOK_MARKER_START:
            ignoring = True
            lines.append(HOOK_MARKER_START)
            lines.extend(block.splitlines())
            lines.append(HOOK_MARKER_END)
        elif line == HOOK_MARKER_END:
            ignoring = False
        elif not ignoring:
            lines.append(line)
    if ignoring:
        logger.warning("Unterminated twig block in hook")
    return "\n".join(lines) + "\n"


def remove_between_markers(content: str) -> str:
    """Drop the twig markers and everything between them."""
    lines = []
    ignoring = False
    for line in content.splitlines():
        if line == HOOK_MARKER_START:
            ignoring = True
        elif line == HOOK_MARKER_END:
            ignoring = False
        elif not ignoring:
            lines.append(line)
    return "\n".join(lines) + "\n"


def short_id(oid: Optional[str]) -> str:
    return oid[:SHORT_ID_LENGTH] if oid else ""
