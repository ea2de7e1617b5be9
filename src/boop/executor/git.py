"""GitClient — subprocess-based git operations on the working tree."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from boop.errors import GitError

logger = logging.getLogger(__name__)


class GitClient:
    """Runs git commands in a single repository working tree."""

    def __init__(self, repo_root: Path) -> None:
        self._repo_root = repo_root

    @property
    def repo_root(self) -> Path:
        return self._repo_root

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        """Run ``git <args>`` and return the completed process (never raises on exit code)."""
        try:
            return subprocess.run(
                ["git", *args],
                cwd=self._repo_root,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise GitError(f"git {args[0]} could not be started: {exc}") from exc

    def _check(self, args: list[str]) -> str:
        """Run ``git <args>``, raising GitError on a non-zero exit."""
        result = self._run(args)
        if result.returncode != 0:
            raise GitError(result.stderr.strip() or f"git {args[0]} failed")
        return result.stdout

    def stage_all(self) -> None:
        """Stage every change in the working tree (``git add -A``)."""
        self._check(["add", "-A"])

    def has_staged_changes(self) -> bool:
        """True if the index differs from HEAD.

        ``git diff --cached --quiet`` exits 1 when there is a diff, 0 when
        there is none; anything else is an error.
        """
        result = self._run(["diff", "--cached", "--quiet"])
        if result.returncode == 0:
            return False
        if result.returncode == 1:
            return True
        raise GitError(result.stderr.strip() or "git diff --cached failed")

    def commit(self, message: str) -> str:
        """Commit the index and return the new HEAD SHA."""
        self._check(["commit", "-m", message])
        return self.head_sha()

    def head_sha(self) -> str:
        """Full SHA of HEAD."""
        sha = self._check(["rev-parse", "HEAD"]).strip()
        if not sha:
            raise GitError("git rev-parse HEAD returned no SHA")
        return sha

    def changed_files(self, base_branch: str = "main") -> list[str]:
        """Files added/copied/modified/renamed between ``base_branch`` and HEAD.

        Falls back to every tracked file when the diff cannot be computed
        (e.g. the base branch does not exist yet).
        """
        result = self._run(
            ["diff", "--name-only", "--diff-filter=ACMR", base_branch, "HEAD"]
        )
        if result.returncode != 0:
            logger.info("git diff against %s failed, reviewing all tracked files", base_branch)
            result = self._run(["ls-files", "--cached"])
            if result.returncode != 0:
                raise GitError(result.stderr.strip() or "git ls-files failed")
        return [line for line in result.stdout.splitlines() if line.strip()]
