"""Test doubles shared across the test suite."""

from typing import Dict, List, Optional, Sequence, Tuple, Union

from commit_explainer.runner import CommandResult, ExecutionError


class FakeRunner:
    """Command runner returning scripted results.

    ``responses`` maps an argument tuple to a :class:`CommandResult` or an
    exception to raise. Commands without a response behave as if the
    executable was not installed.
    """

    def __init__(
        self,
        responses: Optional[Dict[Tuple[str, ...], Union[CommandResult, Exception]]] = None,
        executables: Optional[Dict[str, str]] = None,
    ) -> None:
        self.responses = responses or {}
        self.executables = executables or {}
        self.calls: List[Tuple[List[str], Optional[float], bool]] = []
        self.spawned: List[List[str]] = []

    def run(self, args: Sequence[str], timeout: Optional[float] = None, forward_stderr: bool = False) -> CommandResult:
        self.calls.append((list(args), timeout, forward_stderr))
        response = self.responses.get(tuple(args))
        if response is None:
            raise ExecutionError(f"Command not found: {args[0]}")
        if isinstance(response, Exception):
            raise response
        return response

    def spawn(self, args: Sequence[str]) -> None:
        self.spawned.append(list(args))

    def which(self, name: str) -> Optional[str]:
        return self.executables.get(name)

    def commands(self) -> List[List[str]]:
        return [args for args, _, _ in self.calls]


def ok(stdout: str = "", stderr: str = "", args: Sequence[str] = ()) -> CommandResult:
    return CommandResult(args=list(args), returncode=0, stdout=stdout, stderr=stderr)


def failed(returncode: int = 1, stdout: str = "", stderr: str = "", args: Sequence[str] = ()) -> CommandResult:
    return CommandResult(args=list(args), returncode=returncode, stdout=stdout, stderr=stderr)
