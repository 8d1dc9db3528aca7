"""bizscout.enrichment.llm: model provider client (OpenRouter chat completions)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Protocol, runtime_checkable

from aiohttp import ClientError, ClientSession, ClientTimeout

from bizscout.config import CrawlerConfig
from bizscout.errors import EnrichmentError

__all__ = ["ModelProvider", "OpenRouterClient"]

logger = logging.getLogger("BizScout")


@runtime_checkable
class ModelProvider(Protocol):
    """Single-turn text completion."""

    model: str

    async def complete(self, prompt: str) -> str: ...


class OpenRouterClient:
    """Sends one user message, returns the assistant text."""

    def __init__(
        self,
        config: CrawlerConfig,
        session: Optional[ClientSession],
        *,
        model: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 1200,
    ) -> None:
        self.config = config
        self.session = session
        self.model = model or config.llm_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.endpoint = f"{str(config.openrouter_base_url).rstrip('/')}/chat/completions"

    @property
    def available(self) -> bool:
        return bool(self.config.openrouter_api_key) and self.session is not None

    async def complete(self, prompt: str) -> str:
        if not self.config.openrouter_api_key:
            raise EnrichmentError("Model provider API key is not configured")
        if self.session is None:
            raise RuntimeError("Session not initialized")

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.config.openrouter_api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with self.session.post(
                self.endpoint,
                json=payload,
                headers=headers,
                timeout=ClientTimeout(total=self.config.llm_timeout),
            ) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    raise EnrichmentError(f"Model provider error {resp.status}: {body[:200]}")
                data = await resp.json(content_type=None)
        except asyncio.TimeoutError as exc:
            raise EnrichmentError(f"Model provider timeout after {self.config.llm_timeout:g}s") from exc
        except (ClientError, ValueError) as exc:
            raise EnrichmentError(f"Model provider request failed: {exc!r}") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise EnrichmentError("Model provider response has no message content") from exc
        logger.debug("Model %s answered with %d chars", self.model, len(content or ""))
        return content or ""
