"""Git command execution and commit-graph queries."""

import logging
import os
import subprocess
from typing import Iterable, Optional

from .config import GIT_TIMEOUT
from .errors import ConfigError, GitError
from .models import GitResult
from .refs import require_object_id

logger = logging.getLogger(__name__)


def _base_env() -> dict:
    """Get base environment variables for git and gpg execution."""
    env = os.environ.copy()
    # Status lines and error text are parsed; keep them untranslated.
    env["LC_ALL"] = "C"
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


def run(argv: list[str], cwd: Optional[str] = None) -> GitResult:
    """Run a command and capture its output. Never raises."""
    try:
        result = subprocess.run(
            argv,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
            env=_base_env(),
        )
        return GitResult(
            exit_code=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    except subprocess.TimeoutExpired:
        return GitResult(
            exit_code=1,
            stdout="",
            stderr=f"pushgate: {argv[0]} timed out after {GIT_TIMEOUT} seconds",
        )
    except FileNotFoundError:
        return GitResult(
            exit_code=127,
            stdout="",
            stderr=f"pushgate: {argv[0]} not found",
        )
    except Exception as e:
        return GitResult(
            exit_code=1,
            stdout="",
            stderr=f"pushgate: failed to execute {argv[0]}: {e}",
        )


def execute(args: list[str], cwd: Optional[str] = None) -> GitResult:
    """Execute a git command."""
    return run(["git"] + args, cwd)


class Repository:
    """Read-only view of the repository the hook runs in.

    Every query raises GitError when git fails; callers fail closed.
    """

    def __init__(self, cwd: Optional[str] = None):
        self.cwd = cwd

    def _query(self, args: list[str]) -> str:
        result = execute(args, self.cwd)
        if result.exit_code != 0:
            logger.warning(f"git {' '.join(args)} failed: {result.stderr.strip()}")
            raise GitError(f"git {args[0]} failed: {result.stderr.strip()}")
        return result.stdout

    def rev_list(
        self,
        tip: str,
        exclude: Iterable[str] = (),
        exclude_branches: bool = False,
        first_parent: bool = False,
        merges_only: bool = False,
    ) -> list[str]:
        """
        List commits reachable from tip, oldest first (topological order).

        Commits reachable from any revision in exclude, or from any branch
        tip when exclude_branches is set, are left out.
        """
        args = ["rev-list", "--reverse", "--topo-order"]
        if first_parent:
            args.append("--first-parent")
        if merges_only:
            args.append("--merges")
        args.append(tip)

        excluded = list(exclude)
        if excluded or exclude_branches:
            args.append("--not")
            args.extend(excluded)
            if exclude_branches:
                args.append("--branches")

        output = self._query(args)
        return [require_object_id(line) for line in output.split()]

    def object_type(self, rev: str) -> str:
        """Intrinsic object type: commit, tag, tree or blob."""
        return self._query(["cat-file", "-t", rev]).strip()

    def parents(self, rev: str) -> tuple[str, ...]:
        """Parent ids of a commit, first parent first."""
        fields = self._query(["rev-list", "--parents", "-n", "1", rev]).split()
        return tuple(require_object_id(p) for p in fields[1:])

    def branches_containing(self, rev: str) -> list[str]:
        """Short names of local branches whose tip contains rev."""
        output = self._query([
            "for-each-ref", "--contains", rev,
            "--format=%(refname)", "refs/heads/",
        ])
        prefix = "refs/heads/"
        return [
            line[len(prefix):]
            for line in output.splitlines()
            if line.startswith(prefix)
        ]

    def config_value(self, key: str) -> Optional[str]:
        """A git config value, or None when unset."""
        result = execute(["config", "--get", key], self.cwd)
        if result.exit_code == 1:
            return None
        if result.exit_code != 0:
            raise ConfigError(f"cannot read {key}: {result.stderr.strip()}")
        return result.stdout.strip()

    def config_bool(self, key: str) -> bool:
        """A boolean git config value; unset means False."""
        result = execute(["config", "--bool", "--get", key], self.cwd)
        if result.exit_code == 1:
            return False
        if result.exit_code != 0:
            raise ConfigError(f"{key} is not a boolean: {result.stderr.strip()}")
        return result.stdout.strip() == "true"
