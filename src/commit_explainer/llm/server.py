"""
Making sure an LM Studio server is up before a request is sent.

If the API is already reachable, the configured model is loaded through
the ``lms`` command line tool when it is installed and the model is not
loaded yet. Otherwise the server is launched with one of the following,
picked by :func:`select_launcher` in this order:

* ``lms server start`` when the ``lms`` CLI is installed (headless);
* the LM Studio desktop application, on platforms where we know how to
  open it;
* nothing: :class:`ServerNotRunningError` asks the user to start it.

After a launch the API is polled once per second for up to 30 seconds.
Nothing here waits on the launched process itself.
"""

from __future__ import annotations

import logging
import os
import platform
import time
from pathlib import Path
from typing import Callable, List, Optional, Union

import click

from commit_explainer.config.loader import ExplainConfig
from commit_explainer.llm.lmstudio_client import LLMError, is_running, list_models
from commit_explainer.runner import CommandRunner, ExecutionError, SubprocessRunner


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


STARTUP_TIMEOUT = 30.0
POLL_INTERVAL = 1.0

LMS_VERSION_TIMEOUT = 2.0
LMS_PS_TIMEOUT = 3.0
LMS_LOAD_TIMEOUT = 60.0
LMS_START_TIMEOUT = 30.0

MACOS_APP_NAME = "LM Studio"
LINUX_EXECUTABLES = ("lm-studio", "lmstudio")


class ServerNotRunningError(LLMError):
    """The server is not reachable and could not be started for us."""

    pass


class ServerTimeoutError(LLMError, TimeoutError):
    """The server did not become reachable in time."""

    pass


class LMSCli:
    """Thin wrapper around the ``lms`` management tool."""

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    def available(self) -> bool:
        try:
            result = self.runner.run(["lms", "version"], timeout=LMS_VERSION_TIMEOUT)
        except ExecutionError:
            return False
        return result.ok

    def is_model_loaded(self, model: str) -> bool:
        try:
            result = self.runner.run(["lms", "ps"], timeout=LMS_PS_TIMEOUT)
        except ExecutionError:
            return False
        return result.ok and model in result.stdout

    def load_model(self, model: str) -> None:
        click.echo(f"Loading model: {model}...")
        result = self.runner.run(["lms", "load", model], timeout=LMS_LOAD_TIMEOUT)
        if not result.ok:
            raise ExecutionError(f"failed to load model: {result.output}")
        click.echo("Model loaded successfully")

    def start_server(self) -> None:
        click.echo("Starting LM Studio server with `lms server start`...")
        result = self.runner.run(["lms", "server", "start"], timeout=LMS_START_TIMEOUT)
        if not result.ok:
            raise ExecutionError(f"failed to start server: {result.output}")


# ---------------------------------------------------------------------------
# Launch strategies
# ---------------------------------------------------------------------------

class HeadlessCliLauncher:
    """Start the server through ``lms server start``."""

    headless = True

    def __init__(self, cli: LMSCli) -> None:
        self.cli = cli

    def launch(self) -> None:
        self.cli.start_server()


class GuiAppLauncher:
    """Open the LM Studio desktop application in the background."""

    headless = False

    def __init__(self, runner: CommandRunner, command: List[str]) -> None:
        self.runner = runner
        self.command = command

    def launch(self) -> None:
        click.echo("Launching the LM Studio application...")
        self.runner.spawn(self.command)


class UnsupportedLauncher:
    """No way to start the server on this machine."""

    headless = False

    def launch(self) -> None:
        raise ServerNotRunningError(
            "LM Studio is not running and `lms` CLI is not available; "
            "please install LM Studio CLI or start the server manually"
        )


Launcher = Union[HeadlessCliLauncher, GuiAppLauncher, UnsupportedLauncher]


def _gui_command(runner: CommandRunner, system: str) -> Optional[List[str]]:
    if system == "Darwin":
        return ["open", "-a", MACOS_APP_NAME]
    if system == "Windows":
        local_app_data = os.environ.get("LOCALAPPDATA")
        if local_app_data:
            exe = Path(local_app_data) / "Programs" / "LM Studio" / "LM Studio.exe"
            if exe.exists():
                return [str(exe)]
        return None
    if system == "Linux":
        for name in LINUX_EXECUTABLES:
            path = runner.which(name)
            if path:
                return [path]
    return None


def select_launcher(runner: CommandRunner, system: Optional[str] = None) -> Launcher:
    """Pick how to start the server on this machine."""
    if system is None:
        system = platform.system()
    cli = LMSCli(runner)
    if cli.available():
        return HeadlessCliLauncher(cli)
    command = _gui_command(runner, system)
    if command is not None:
        return GuiAppLauncher(runner, command)
    return UnsupportedLauncher()


# ---------------------------------------------------------------------------
# Readiness
# ---------------------------------------------------------------------------

def wait_for_server(
    base_url: str,
    timeout: float = STARTUP_TIMEOUT,
    interval: float = POLL_INTERVAL,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Poll the API until it answers or ``timeout`` seconds have passed.

    Raises
    ------
    ServerTimeoutError
        If the deadline passes first.
    """
    click.echo("Waiting for LM Studio server...")
    deadline = clock() + timeout
    while clock() < deadline:
        if is_running(base_url):
            click.echo("LM Studio server is ready")
            return
        sleep(interval)
    raise ServerTimeoutError(f"timed out waiting for LM Studio server at {base_url}")


def _ensure_model_loaded(cli: LMSCli, model: str) -> None:
    if not cli.is_model_loaded(model):
        click.echo("Model is not loaded")
        cli.load_model(model)


def ensure_server_ready(
    config: ExplainConfig,
    runner: Optional[CommandRunner] = None,
    system: Optional[str] = None,
    startup_timeout: float = STARTUP_TIMEOUT,
) -> None:
    """Make sure the server at ``config.base_url`` can serve ``config.model``.

    Raises
    ------
    ServerNotRunningError
        If the server is down and cannot be started.
    ServerTimeoutError
        If a started server never became reachable.
    ExecutionError
        If an ``lms`` command failed.
    """
    if runner is None:
        runner = SubprocessRunner()
    cli = LMSCli(runner)

    if is_running(config.base_url):
        logger.debug("Server at %s is reachable", config.base_url)
        if cli.available():
            _ensure_model_loaded(cli, config.model)
        return

    click.echo("LM Studio server is not running")
    if not config.auto_start:
        raise ServerNotRunningError(
            f"LM Studio server is not reachable at {config.base_url} and automatic start is disabled"
        )

    launcher = select_launcher(runner, system)
    logger.debug("Starting server with %s", type(launcher).__name__)
    launcher.launch()
    wait_for_server(config.base_url, timeout=startup_timeout)

    if launcher.headless:
        _ensure_model_loaded(cli, config.model)
    else:
        logger.debug("Models available after launch: %s", list_models(config.base_url))
