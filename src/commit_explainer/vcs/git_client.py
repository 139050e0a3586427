"""
Git client implementation for commit_explainer.

This module reads the commit that should be explained. It is
intentionally minimal: the commit text is taken verbatim from
``git show`` and never parsed. All subprocess calls go through a
:class:`~commit_explainer.runner.CommandRunner` so that unit tests can
substitute scripted output.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from commit_explainer.runner import CommandResult, CommandRunner, ExecutionError, SubprocessRunner


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


SHOW_HEAD_ARGS = ["show", "--stat", "--patch", "HEAD"]


class GitClient:
    """Client for reading commits from a Git repository."""

    def __init__(self, runner: Optional[CommandRunner] = None, timeout: float = 30.0) -> None:
        self.runner = runner if runner is not None else SubprocessRunner()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                # reached filesystem root
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str]) -> CommandResult:
        """Run a Git command, forwarding Git's stderr to ours.

        Raises
        ------
        ExecutionError
            If Git cannot be run or exits with a non-zero status.
        """
        full_cmd = ["git"] + args
        result = self.runner.run(full_cmd, timeout=self.timeout, forward_stderr=True)
        if not result.ok:
            logger.error("Git command failed (exit %s): %s", result.returncode, " ".join(full_cmd))
            detail = result.stderr.strip()
            message = f"failed to run git {args[0]}: exit status {result.returncode}"
            raise ExecutionError(f"{message}: {detail}" if detail else message)
        return result

    def get_latest_commit(self) -> str:
        """Return the header, file statistics and full diff of HEAD.

        Returns
        -------
        str
            The output of ``git show --stat --patch HEAD`` with surrounding
            whitespace removed.

        Raises
        ------
        ExecutionError
            If Git fails (e.g. not a repository, or no commits yet) or
            prints nothing.
        """
        result = self._run(SHOW_HEAD_ARGS)
        commit_text = result.stdout.strip()
        if not commit_text:
            raise ExecutionError("empty git show output")
        logger.debug("Read HEAD commit (%d characters)", len(commit_text))
        return commit_text
