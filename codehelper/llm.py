"""OpenAI-compatible chat completions client and credential loading."""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any
from urllib import error, request

DEFAULT_MODEL = "gpt-4o"
OPENAI_BASE = "https://api.openai.com/v1"
MAX_TOKENS = 800
TEMPERATURE = 0.7
DEFAULT_TIMEOUT_SECONDS = 60
MIN_API_KEY_LEN = 20
EMPTY_REPLY = "I'm having trouble processing that right now."


class CompletionError(RuntimeError):
    """Raised when the completion service fails or returns an unusable body."""


class CredentialError(RuntimeError):
    """Raised at startup when the completion API key is missing or invalid."""


def read_secret(secrets_dir: Path, filename: str) -> str | None:
    """Read first line of a secret file; return None if missing or empty."""
    path = secrets_dir / filename
    if not path.exists():
        return None
    raw = path.read_text(encoding="utf-8").strip()
    return raw if raw else None


def load_api_key(secrets_dir: Path, env: dict[str, str] | None = None) -> str:
    """
    Resolve the completion API key from openai_api_key.txt, then OPENAI_API_KEY.
    Raises CredentialError when it is absent or obviously malformed.
    """
    environ = os.environ if env is None else env
    api_key = read_secret(secrets_dir, "openai_api_key.txt") or (environ.get("OPENAI_API_KEY") or "").strip()
    if not api_key:
        raise CredentialError(
            "OpenAI API key is required. Set OPENAI_API_KEY or write "
            f"{secrets_dir / 'openai_api_key.txt'}"
        )
    if len(api_key) < MIN_API_KEY_LEN:
        raise CredentialError("OpenAI API key appears to be invalid (too short)")
    return api_key


def _extract_content(data: dict[str, Any]) -> str:
    choices = data.get("choices")
    if not isinstance(choices, list):
        raise CompletionError(f"LLM API unexpected response: {data}")
    for choice in choices:
        msg = (choice or {}).get("message") or {}
        content = msg.get("content")
        if content:
            return str(content)
    return EMPTY_REPLY


class CompletionService(ABC):
    """Remote chat-completions port used by the session manager."""

    @abstractmethod
    def complete(self, messages: list[dict[str, str]]) -> str:
        """Return the reply text for an ordered role/content message list."""


class CompletionClient(CompletionService):
    """Stateless request/response client; one attempt per call."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        model: str = DEFAULT_MODEL,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._api_key = api_key
        self._base_url = (base_url or OPENAI_BASE).rstrip("/")
        self._model = model
        self._timeout_seconds = timeout_seconds

    def complete(self, messages: list[dict[str, str]]) -> str:
        """
        Call the chat completions API with the fixed max_tokens and temperature.
        Returns the reply text; raises CompletionError on HTTP or body failures.
        """
        body = {
            "model": self._model,
            "messages": messages,
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
        }
        encoded = json.dumps(body).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }
        req = request.Request(
            self._base_url + "/chat/completions",
            data=encoded,
            headers=headers,
            method="POST",
        )
        try:
            with request.urlopen(req, timeout=self._timeout_seconds) as response:  # noqa: S310
                data = json.loads(response.read().decode("utf-8"))
        except error.HTTPError as exc:
            body_read = exc.read().decode("utf-8", errors="replace")
            raise CompletionError(f"LLM API HTTP {exc.code}: {body_read}") from exc
        except error.URLError as exc:
            raise CompletionError(f"LLM API unreachable: {exc.reason}") from exc
        except json.JSONDecodeError as exc:
            raise CompletionError(f"LLM API returned invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CompletionError(f"LLM API unexpected response: {data}")
        return _extract_content(data).strip()
