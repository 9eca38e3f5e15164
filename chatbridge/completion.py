"""Completion API client — one POST per prompt, typed response decoding."""

import asyncio
import json
import sys
from typing import Any, Optional, Union

import aiohttp

from chatbridge.config import (
    DEFAULT_COMPLETION_URL,
    DEFAULT_MODEL,
    MAX_TOKENS,
    REQUEST_TIMEOUT_SECONDS,
    TEMPERATURE,
)
from chatbridge.domain.models import (
    CompletionChoice,
    CompletionRequest,
    CompletionResponse,
    CompletionResult,
    ErrorKind,
)


def _log(msg: str):
    print(msg, file=sys.stderr)


class MalformedResponseError(ValueError):
    """The response body does not match the expected completion schema."""


def parse_completion_response(body: Union[str, bytes]) -> CompletionResponse:
    """Decode a completion response body. Raises MalformedResponseError."""
    try:
        data: Any = json.loads(body)
    except UnicodeDecodeError as e:
        raise MalformedResponseError(f"response body is not valid UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"response body is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponseError("response body is not a JSON object")

    choices = data.get("choices")
    if not isinstance(choices, list):
        raise MalformedResponseError("choices field is not an array")
    if not choices:
        raise MalformedResponseError("choices array is empty")

    first = choices[0]
    if not isinstance(first, dict):
        raise MalformedResponseError("first element of choices array is not an object")

    text = first.get("text")
    if not isinstance(text, str):
        raise MalformedResponseError("text field in first element of choices array is not a string")

    return CompletionResponse(choices=[CompletionChoice(text=text)])


class CompletionClient:
    """Async client for an OpenAI-style /v1/completions endpoint.

    Never raises on request failure: every outcome is a CompletionResult.
    The shared session is safe to use from many handler tasks at once.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        endpoint: str = DEFAULT_COMPLETION_URL,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        max_tokens: int = MAX_TOKENS,
        temperature: float = TEMPERATURE,
    ):
        self._api_key = api_key
        self.model = model
        self.endpoint = endpoint
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    async def complete(self, prompt: str) -> CompletionResult:
        request = CompletionRequest(
            model=self.model,
            prompt=prompt,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        session = self._get_session()
        try:
            async with session.post(
                self.endpoint,
                data=json.dumps(request.to_payload()),
                headers=self._headers(),
            ) as resp:
                status = resp.status
                body = await resp.read()
        except asyncio.TimeoutError:
            _log(f"[Completion] request timed out after {self._timeout.total}s")
            return CompletionResult.fail(ErrorKind.TRANSPORT, "request timed out")
        except aiohttp.ClientError as e:
            _log(f"[Completion] error sending request: {e}")
            return CompletionResult.fail(ErrorKind.TRANSPORT, str(e) or type(e).__name__)

        if not 200 <= status < 300:
            excerpt = body[:200].decode("utf-8", "replace")
            return CompletionResult.fail(
                ErrorKind.HTTP_STATUS, f"completion API returned {status}: {excerpt}"
            )

        try:
            response = parse_completion_response(body)
        except MalformedResponseError as e:
            return CompletionResult.fail(ErrorKind.MALFORMED_RESPONSE, str(e))

        return CompletionResult.ok(response.first_text)

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
