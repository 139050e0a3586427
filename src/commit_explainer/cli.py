"""
Command line interface for the commit_explainer tool.

This module defines the ``main`` function which is used as the entry
point when executing the ``explain-commit`` command. It reads the HEAD
commit, makes sure the LM Studio server is ready, asks the model for an
explanation and prints it. Every failure is terminal and mapped to one
of the exit codes below.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

import click

from commit_explainer import __version__
from commit_explainer.config.loader import ConfigError, ExplainConfig, load_config
from commit_explainer.llm.explainer import CommitExplainer
from commit_explainer.llm.lmstudio_client import LLMError
from commit_explainer.runner import ExecutionError
from commit_explainer.vcs.git_client import GitClient

# Create a module-level logger. Attach a null handler and disable
# propagation to avoid logging errors when the root logger's stream is
# closed (such as during unit tests). When logging is configured by
# the CLI, root handlers will be added and messages will propagate.
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_LLM_FAILURE = 7


# ---------------------------------------------------------------------------
# Status display utilities
# ---------------------------------------------------------------------------

def print_info(message: str, indent: int = 0):
    """Print an info message."""
    prefix = "  " * indent
    click.echo(f"{prefix}ℹ {message}")


def print_success(message: str, indent: int = 0):
    """Print a success message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✓ {message}")


def print_error(message: str, indent: int = 0):
    """Print an error message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✗ {message}", err=True)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def configure_logging(verbose: bool) -> None:
    """Set up the root logger and, when verbose, route package logs to it.

    Package loggers do not propagate by default (see the module headers),
    so ``--verbose`` switches propagation on for every ``commit_explainer``
    logger created so far.
    """
    # Use force=True to ensure handlers are reconfigured on subsequent
    # invocations (important for tests).
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    if not verbose:
        return
    package = __name__.split(".")[0]
    for name, candidate in list(logging.root.manager.loggerDict.items()):
        if name.split(".")[0] == package and isinstance(candidate, logging.Logger):
            candidate.propagate = True


# ---------------------------------------------------------------------------
# Core functionality
# ---------------------------------------------------------------------------

def read_commit(client: GitClient) -> str:
    """Return the HEAD commit text or exit with ``EXIT_VCS_FAILURE``."""
    try:
        return client.get_latest_commit()
    except ExecutionError as exc:
        logger.error("Reading the latest commit failed: %s", exc)
        print_error(f"error: {exc}")
        if GitClient.find_repo_root(Path.cwd()) is None:
            print_info("The current directory is not inside a Git repository.", indent=1)
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)


def explain(config: ExplainConfig, commit_text: str) -> str:
    """Return the explanation or exit with ``EXIT_LLM_FAILURE``."""
    try:
        return CommitExplainer(config).explain_commit(commit_text)
    except (LLMError, ExecutionError) as exc:
        logger.error("Explaining the commit failed: %s", exc)
        print_error(f"error: {exc}")
        print_info(f"Make sure LM Studio is running and serving {config.model} at {config.base_url}", indent=1)
        raise click.exceptions.Exit(EXIT_LLM_FAILURE)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--raw", is_flag=True, help="Print the raw git show output and exit.")
@click.option("--no-start", "no_start", is_flag=True, help="Do not try to start LM Studio if it is not running.")
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="explain-commit")
def main(raw: bool, no_start: bool, verbose: bool) -> None:
    """Explain the latest Git commit using a local LM Studio model.

    Reads the HEAD commit of the current branch (git show --stat --patch
    HEAD) and asks the model for a short summary of what changed and why.
    """
    configure_logging(verbose)

    try:
        git_client = GitClient()

        if raw:
            # Nothing but the commit itself goes to stdout so it can be piped.
            click.echo(read_commit(git_client))
            raise click.exceptions.Exit(EXIT_SUCCESS)

        try:
            config = load_config()
        except ConfigError as exc:
            logger.error("Configuration error: %s", exc)
            print_error(f"Configuration error: {exc}")
            raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
        if no_start:
            config = replace(config, auto_start=False)

        click.echo("🔍 Reading latest commit (git show HEAD)...")
        commit_text = read_commit(git_client)
        print_success(f"Got commit ({len(commit_text)} characters)")

        click.echo(f"🧠 Asking LM Studio ({config.model}) to explain the commit...")
        explanation = explain(config, commit_text)

        click.echo("\n📄 Explanation:")
        click.echo(explanation)
        raise click.exceptions.Exit(EXIT_SUCCESS)

    except click.exceptions.Exit:
        # Click uses its own Exit exception; re-raise to let Click handle it
        raise
    except Exception as exc:
        # Catch any other unhandled errors
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        raise click.exceptions.Exit(EXIT_GENERIC_ERROR)
