from __future__ import annotations

import io
import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch
from urllib import error

from codehelper.llm import (
    EMPTY_REPLY,
    MAX_TOKENS,
    TEMPERATURE,
    CompletionClient,
    CompletionError,
    CredentialError,
    load_api_key,
)

VALID_KEY = "sk-test-0123456789abcdefghij"


def _response(payload: object) -> MagicMock:
    response = MagicMock()
    response.read.return_value = json.dumps(payload).encode("utf-8")
    response.__enter__.return_value = response
    return response


class CompletionClientTests(unittest.TestCase):
    def test_posts_fixed_parameters_and_returns_content(self) -> None:
        client = CompletionClient(VALID_KEY, base_url="http://localhost:11434/v1/", model="gpt-4o")
        messages = [{"role": "system", "content": "s"}, {"role": "user", "content": "hi"}]
        payload = {"choices": [{"message": {"role": "assistant", "content": " hello \n"}}]}

        with patch("codehelper.llm.request.urlopen", return_value=_response(payload)) as urlopen:
            reply = client.complete(messages)

        self.assertEqual(reply, "hello")
        req = urlopen.call_args[0][0]
        self.assertEqual(req.full_url, "http://localhost:11434/v1/chat/completions")
        self.assertEqual(req.get_header("Authorization"), f"Bearer {VALID_KEY}")
        body = json.loads(req.data.decode("utf-8"))
        self.assertEqual(body["model"], "gpt-4o")
        self.assertEqual(body["messages"], messages)
        self.assertEqual(body["max_tokens"], MAX_TOKENS)
        self.assertEqual(body["temperature"], TEMPERATURE)

    def test_missing_content_falls_back_to_placeholder(self) -> None:
        client = CompletionClient(VALID_KEY)
        payload = {"choices": [{"message": {"role": "assistant", "content": None}}]}
        with patch("codehelper.llm.request.urlopen", return_value=_response(payload)):
            self.assertEqual(client.complete([]), EMPTY_REPLY)

    def test_malformed_body_raises(self) -> None:
        client = CompletionClient(VALID_KEY)
        with patch("codehelper.llm.request.urlopen", return_value=_response({"error": "x"})):
            with self.assertRaises(CompletionError):
                client.complete([])

    def test_http_error_raises_completion_error(self) -> None:
        client = CompletionClient(VALID_KEY)
        http_error = error.HTTPError(
            "https://api.openai.com/v1/chat/completions",
            429,
            "Too Many Requests",
            hdrs=None,
            fp=io.BytesIO(b"rate limited"),
        )
        with patch("codehelper.llm.request.urlopen", side_effect=http_error):
            with self.assertRaises(CompletionError) as ctx:
                client.complete([])
        self.assertIn("429", str(ctx.exception))
        self.assertIn("rate limited", str(ctx.exception))

    def test_transport_error_raises_completion_error(self) -> None:
        client = CompletionClient(VALID_KEY)
        with patch("codehelper.llm.request.urlopen", side_effect=error.URLError("no route")):
            with self.assertRaises(CompletionError):
                client.complete([])


class LoadApiKeyTests(unittest.TestCase):
    def test_secret_file_wins_over_environment(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            secrets_dir = Path(tmpdir)
            (secrets_dir / "openai_api_key.txt").write_text(VALID_KEY + "\n", encoding="utf-8")
            key = load_api_key(secrets_dir, env={"OPENAI_API_KEY": "sk-env-0123456789abcdefghij"})
        self.assertEqual(key, VALID_KEY)

    def test_environment_fallback(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            key = load_api_key(Path(tmpdir), env={"OPENAI_API_KEY": VALID_KEY})
        self.assertEqual(key, VALID_KEY)

    def test_missing_or_short_key_is_fatal(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(CredentialError):
                load_api_key(Path(tmpdir), env={})
            with self.assertRaises(CredentialError):
                load_api_key(Path(tmpdir), env={"OPENAI_API_KEY": "sk-short"})


if __name__ == "__main__":
    unittest.main()
