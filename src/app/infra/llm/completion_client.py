from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

import httpx

from src.app.domain.errors import SourceUnavailableError

logger = logging.getLogger(__name__)

SOURCE_NAME = "completion endpoint"


class Model(Enum):
    GPT_35_TURBO = "gpt-3.5-turbo"


class CompletionClient:
    """OpenAI-compatible chat completion endpoint; returns the first choice's text."""

    def __init__(
        self,
        api_url: str = "https://ai.hackclub.com/chat/completions",
        api_key: Optional[str] = None,
        model_name: str = Model.GPT_35_TURBO.value,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.model_name = model_name
        self.http_client = httpx.AsyncClient(timeout=timeout) if http_client is None else http_client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        body = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        try:
            resp = await self.http_client.post(self.api_url, json=body, headers=self._headers())
        except httpx.HTTPError as error:
            raise SourceUnavailableError(SOURCE_NAME, str(error)) from error

        if not resp.is_success:
            logger.warning("Completion request failed: status=%d", resp.status_code)
            raise SourceUnavailableError(
                SOURCE_NAME,
                f"HTTP {resp.status_code}",
                status_code=resp.status_code,
                retryable=resp.status_code >= 500 or resp.status_code == 429,
            )

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as error:
            raise SourceUnavailableError(SOURCE_NAME, f"malformed completion payload: {error}", retryable=False) from error

        text = (content or "").strip()
        if not text:
            raise SourceUnavailableError(SOURCE_NAME, "empty completion", retryable=False)
        return text

    async def aclose(self) -> None:
        await self.http_client.aclose()
