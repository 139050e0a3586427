"""
Command execution for commit_explainer.

Every external program the tool talks to (``git`` and the optional
``lms`` management CLI) is invoked through a :class:`CommandRunner`.
The production implementation, :class:`SubprocessRunner`, wraps
:mod:`subprocess`; unit tests substitute a fake runner returning
scripted results instead of patching ``subprocess`` directly.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class ExecutionError(Exception):
    """Raised when an external command cannot be run or fails."""

    pass


@dataclass
class CommandResult:
    """Outcome of a finished command."""

    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, as a user would see it."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part).strip()


class CommandRunner(Protocol):
    """Narrow interface over process execution."""

    def run(
        self,
        args: Sequence[str],
        timeout: Optional[float] = None,
        forward_stderr: bool = False,
    ) -> CommandResult:
        ...

    def spawn(self, args: Sequence[str]) -> None:
        ...

    def which(self, name: str) -> Optional[str]:
        ...


class SubprocessRunner:
    """Run commands with :mod:`subprocess`.

    A non-zero exit status is reported through
    :attr:`CommandResult.returncode`; only a missing executable or an
    expired timeout raises :class:`ExecutionError`.
    """

    def run(
        self,
        args: Sequence[str],
        timeout: Optional[float] = None,
        forward_stderr: bool = False,
    ) -> CommandResult:
        """Run ``args`` and wait for it to finish.

        Parameters
        ----------
        args : Sequence[str]
            The command and its arguments.
        timeout : float, optional
            Seconds to wait before the command is killed.
        forward_stderr : bool, optional
            If True, the command writes its diagnostics straight to our
            stderr instead of having them captured.
        """
        full_cmd = list(args)
        logger.debug("Executing command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                stdout=subprocess.PIPE,
                stderr=None if forward_stderr else subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",  # Replace invalid characters instead of failing
                timeout=timeout,
            )
        except FileNotFoundError as exc:
            logger.debug("Executable not found: %s", full_cmd[0])
            raise ExecutionError(f"Command not found: {full_cmd[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            logger.error("Command timed out after %ss: %s", timeout, " ".join(full_cmd))
            raise ExecutionError(
                f"Command timed out after {timeout}s: {' '.join(full_cmd)}"
            ) from exc
        except OSError as exc:
            logger.error("Failed to execute %s: %s", full_cmd[0], exc)
            raise ExecutionError(f"Failed to execute {full_cmd[0]}: {exc}") from exc

        return CommandResult(
            args=full_cmd,
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )

    def spawn(self, args: Sequence[str]) -> None:
        """Start ``args`` in the background and return immediately.

        The child is detached from our process group so it keeps running
        after this process exits. Its output is discarded.
        """
        full_cmd = list(args)
        logger.debug("Spawning background command: %s", " ".join(full_cmd))
        kwargs = {}
        if sys.platform == "win32":
            kwargs["creationflags"] = getattr(subprocess, "DETACHED_PROCESS", 0) | getattr(
                subprocess, "CREATE_NEW_PROCESS_GROUP", 0
            )
        else:
            kwargs["start_new_session"] = True
        try:
            subprocess.Popen(
                full_cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                **kwargs,
            )
        except OSError as exc:
            logger.error("Failed to launch %s: %s", full_cmd[0], exc)
            raise ExecutionError(f"Failed to launch {full_cmd[0]}: {exc}") from exc

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)
