"""
Language model integration for commit_explainer.

This package contains the :class:`LMStudioClient` for communicating with
an LM Studio server, the server readiness and start-up helpers, and the
:class:`CommitExplainer` which asks the model to explain a commit.
"""

from .lmstudio_client import (  # noqa: F401
    APIError,
    DecodeError,
    EmptyResponseError,
    LLMError,
    LMStudioClient,
    TransportError,
    is_running,
)
from .server import ServerNotRunningError, ServerTimeoutError, ensure_server_ready  # noqa: F401
from .explainer import CommitExplainer  # noqa: F401
