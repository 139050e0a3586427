"""
Commit explanation using an LLM.

This module provides the :class:`CommitExplainer` class, which turns
the text of a commit into a chat conversation for the language model
(via :class:`LMStudioClient`) and returns the model's explanation.

The conversation always consists of exactly two messages:

* a system message describing the expected style of explanation, and
* a user message carrying the commit text verbatim.
"""

from __future__ import annotations

import logging
from textwrap import dedent
from typing import List, Optional

from commit_explainer.config.loader import ExplainConfig
from commit_explainer.llm.lmstudio_client import ChatMessage, LMStudioClient
from commit_explainer.llm.server import ensure_server_ready
from commit_explainer.runner import CommandRunner


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


SYSTEM_PROMPT = dedent(
    """
    You are a senior software engineer explaining a Git commit to a teammate.

    Rules:
    - Give a short high-level summary first (1-3 bullet points).
    - Then describe the main code changes grouped by concern (e.g. "API", "UI", "tests").
    - Explain WHY the changes might have been made (best-effort inference).
    - Keep it concise but clear. No more than about 20 lines total.
    """
).strip()


class CommitExplainer:
    """Explain a commit with the configured model."""

    def __init__(
        self,
        config: ExplainConfig,
        client: Optional[LMStudioClient] = None,
        runner: Optional[CommandRunner] = None,
    ) -> None:
        self.config = config
        self.client = client if client is not None else LMStudioClient(
            base_url=config.base_url,
            model=config.model,
            api_key=config.api_key,
            request_timeout=config.request_timeout,
        )
        self.runner = runner

    def _build_user_prompt(self, commit_text: str) -> str:
        # Not dedent()ed: the commit text may contain indented lines of its own.
        return (
            "Here is the latest commit on the current branch:\n\n"
            f"{commit_text}\n\n"
            "Explain this commit following the rules."
        )

    def build_messages(self, commit_text: str) -> List[ChatMessage]:
        return [
            ChatMessage(role="system", content=SYSTEM_PROMPT),
            ChatMessage(role="user", content=self._build_user_prompt(commit_text)),
        ]

    def explain_commit(self, commit_text: str) -> str:
        """Return the model's explanation of ``commit_text``.

        The server is checked (and started if needed) first; any failure
        there is raised unchanged and no request is sent.

        Raises
        ------
        LLMError
            If the server cannot be made ready or the request fails.
        ExecutionError
            If an ``lms`` command used to prepare the server failed.
        """
        ensure_server_ready(self.config, runner=self.runner)
        messages = self.build_messages(commit_text)
        logger.debug("Requesting explanation for %d characters of commit text", len(commit_text))
        return self.client.chat(messages, temperature=self.config.temperature)
