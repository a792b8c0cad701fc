"""
LLM inference service for flashstudy.

Talks to Ollama (http://localhost:11434 by default):
  /api/generate  single prompt -> completion       (TextGenerator)
  /api/chat      running conversation with history (ChatCapability)

Sessions depend only on the TextGenerator / ChatCapability protocols so tests
can substitute in-memory fakes.

Usage:
    llm = OllamaClient.from_settings()
    text = await llm.generate(prompt)
    chat = llm.open_chat()
    reply = await chat.send("hello")
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from flashstudy.config import settings
from flashstudy.errors import LLMUnavailableError

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str: ...


class ChatHandle(Protocol):
    async def send(self, text: str) -> str: ...


class ChatCapability(Protocol):
    def open_chat(self) -> ChatHandle: ...


class OllamaChat:
    """Conversation context; the full history is resent on every turn."""

    def __init__(self, client: OllamaClient) -> None:
        self._client = client
        self.messages: list[dict[str, str]] = []

    async def send(self, text: str) -> str:
        self.messages.append({"role": "user", "content": text})
        try:
            data = await self._client._post(
                "/api/chat",
                {"model": self._client.model, "messages": self.messages, "stream": False},
            )
        except LLMUnavailableError:
            # Drop the unanswered turn so a retry doesn't duplicate it
            self.messages.pop()
            raise
        reply = ((data.get("message") or {}).get("content") or "").strip()
        self.messages.append({"role": "assistant", "content": reply})
        return reply


class OllamaClient:
    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, model: str | None = None) -> OllamaClient:
        return cls(settings.ollama_url, model or settings.llm_model, settings.llm_timeout)

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, transport=self._transport
            ) as client:
                res = await client.post(path, json=payload, timeout=self.timeout)
                res.raise_for_status()
                return res.json()
        except httpx.HTTPError as e:
            logger.warning("Ollama request to %s failed: %s", path, e)
            raise LLMUnavailableError(f"LLM request failed: {e}") from e
        except ValueError as e:
            raise LLMUnavailableError(f"LLM returned a non-JSON body: {e}") from e

    async def generate(self, prompt: str) -> str:
        data = await self._post(
            "/api/generate",
            {"model": self.model, "prompt": prompt, "stream": False},
        )
        return (data.get("response") or "").strip()

    def open_chat(self) -> OllamaChat:
        return OllamaChat(self)

    async def is_available(self) -> bool:
        """True if Ollama answers and has the configured model pulled."""
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, transport=self._transport
            ) as client:
                res = await client.get("/api/tags", timeout=1.5)
                if res.status_code != 200:
                    return False
                names = {m["name"] for m in res.json().get("models", [])}
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.debug("Ollama availability check failed: %s", e)
            return False
        prefix = self.model.split(":")[0]
        return any(name.split(":")[0] == prefix for name in names)
