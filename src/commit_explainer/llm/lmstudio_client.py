"""
Client for interacting with an LM Studio server.

LM Studio exposes an OpenAI-compatible REST API. This client covers the
two endpoints the tool needs: ``GET /models`` as a readiness check and
``POST /chat/completions`` for generating text. Failures are raised as
subclasses of :class:`LLMError`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List

import requests


logger = logging.getLogger(__name__)
# Attach a null handler to avoid errors when the root logger is missing a
# stream. Messages will still propagate to the root logger if configured.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


READINESS_TIMEOUT = 5.0

_LEADING_REASONING = re.compile(
    r"\s*<(think|thinking|thought|reasoning)>.*?</\1>",
    re.DOTALL | re.IGNORECASE,
)


class LLMError(Exception):
    """Raised when communication with the LLM server fails."""

    pass


class TransportError(LLMError):
    """The server could not be reached."""

    pass


class APIError(LLMError):
    """The server answered with a non-200 status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"API error: status {status_code}, body: {body}")
        self.status_code = status_code
        self.body = body


class DecodeError(LLMError):
    """The response body was not the JSON document we expected."""

    pass


class EmptyResponseError(LLMError):
    """The response contained no usable completion."""

    pass


@dataclass
class ChatMessage:
    role: str
    content: str


def strip_thinking_tags(text: str) -> str:
    """Remove reasoning blocks such as ``<think>...</think>`` leading a reply.

    Only blocks at the very start are dropped, so an explanation that
    mentions such a tag in its own text is left intact.

    >>> strip_thinking_tags("<think>reasoning...</think>Answer")
    'Answer'
    >>> strip_thinking_tags("Parses <think> tags")
    'Parses <think> tags'
    """
    result = text
    while True:
        match = _LEADING_REASONING.match(result)
        if match is None:
            break
        result = result[match.end():]

    return result.strip()


def _url(base_url: str, path: str) -> str:
    return base_url.rstrip("/") + "/" + path


def is_running(base_url: str, timeout: float = READINESS_TIMEOUT) -> bool:
    """Return True if the API at ``base_url`` answers ``GET /models`` with 200.

    Network errors, timeouts and any other status all yield False.
    """
    url = _url(base_url, "models")
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as exc:
        logger.debug("Readiness check of %s failed: %s", url, exc)
        return False
    logger.debug("Readiness check of %s returned %s", url, response.status_code)
    return response.status_code == 200


def list_models(base_url: str, timeout: float = READINESS_TIMEOUT) -> List[str]:
    """Return the model identifiers reported by ``GET /models``.

    An unreachable server or an unexpected body yields an empty list.
    """
    url = _url(base_url, "models")
    try:
        response = requests.get(url, timeout=timeout)
        if response.status_code != 200:
            return []
        data = response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.debug("Could not list models at %s: %s", url, exc)
        return []
    if not isinstance(data, dict) or not isinstance(data.get("data"), list):
        return []
    return [item["id"] for item in data["data"] if isinstance(item, dict) and isinstance(item.get("id"), str)]


@dataclass
class LMStudioClient:
    """Client for the chat completions endpoint of an LM Studio server.

    Parameters
    ----------
    base_url : str
        Base URL of the API, e.g. ``"http://localhost:1234/v1"``.
    model : str
        Identifier of the model to use, e.g. ``"qwen/qwen3-4b-2507"``.
    api_key : str
        Sent as ``Authorization: Bearer <api_key>``.
    request_timeout : float, optional
        Timeout in seconds for the whole request. Defaults to 60 seconds.
    """

    base_url: str
    model: str
    api_key: str
    request_timeout: float = 60.0

    def _endpoint(self) -> str:
        return _url(self.base_url, "chat/completions")

    def build_payload(self, messages: List[ChatMessage], temperature: float) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [asdict(message) for message in messages],
            "temperature": temperature,
        }

    def chat(self, messages: List[ChatMessage], temperature: float) -> str:
        """Request a chat completion and return the first choice's text.

        Parameters
        ----------
        messages : List[ChatMessage]
            The conversation, in order.
        temperature : float
            Sampling temperature.

        Returns
        -------
        str
            The assistant reply with reasoning blocks and surrounding
            whitespace removed.

        Raises
        ------
        TransportError
            If the server cannot be reached or the request times out.
        APIError
            If the server returns a non-200 status.
        DecodeError
            If the body is not valid JSON of the expected shape.
        EmptyResponseError
            If there is no choice or its content is empty.
        """
        payload = self.build_payload(messages, temperature)
        url = self._endpoint()
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        logger.debug("Sending chat request to %s (model=%s, temperature=%s)", url, self.model, temperature)
        try:
            response = requests.post(
                url,
                json=payload,
                headers=headers,
                timeout=self.request_timeout,
            )
        except requests.RequestException as exc:
            logger.error("Failed to connect to LLM: %s", exc)
            raise TransportError(f"API request failed: {exc}") from exc
        if response.status_code != 200:
            logger.error(
                "LLM returned non-200 status %s: %s", response.status_code, response.text
            )
            raise APIError(response.status_code, response.text)
        try:
            data = response.json()
        except ValueError as exc:
            logger.error("Failed to parse LLM response: %s", exc)
            raise DecodeError(f"failed to decode response: {exc}") from exc
        return self._extract_content(data)

    @staticmethod
    def _extract_content(data: Any) -> str:
        if not isinstance(data, dict):
            raise DecodeError("failed to decode response: expected a JSON object")
        choices = data.get("choices")
        if choices is None:
            choices = []
        if not isinstance(choices, list):
            raise DecodeError("failed to decode response: 'choices' is not a list")
        if not choices:
            raise EmptyResponseError("invalid response: missing choices[0].message.content")

        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        if message is None:
            raise EmptyResponseError("invalid response: missing choices[0].message.content")
        if not isinstance(message, dict):
            raise DecodeError("failed to decode response: 'message' is not an object")
        content = message.get("content")
        if content is not None and not isinstance(content, str):
            raise DecodeError("failed to decode response: 'content' is not a string")

        text = strip_thinking_tags(content or "")
        if not text:
            raise EmptyResponseError("invalid response: missing choices[0].message.content")
        return text
