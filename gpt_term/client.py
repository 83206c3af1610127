"""Async client for the remote assistant's messages API."""

from __future__ import annotations

from collections.abc import Sequence
import logging
import time
from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from .exceptions import AssistantConnectionError, AssistantResponseError
from .models import Message, Role

LOGGER = logging.getLogger(__name__)


class AssistantClient:
    """Request/response wrapper: ``complete(history) -> text``."""

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 1000,
        timeout: int = 120,
        max_retries: int = 2,
        client: Any | None = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        if client is not None:
            self._client = client
        else:
            self._client = AsyncAnthropic(
                api_key=api_key, timeout=timeout, max_retries=max_retries
            )

    @staticmethod
    def build_request(messages: Sequence[Message]) -> tuple[str, list[dict[str, str]]]:
        """Split history into the system instruction and the regular turns."""
        system = ""
        turns: list[dict[str, str]] = []
        for message in messages:
            if message.role is Role.SYSTEM:
                system = message.content
            else:
                turns.append({"role": message.role.value, "content": message.content})
        return system, turns

    async def complete(self, messages: Sequence[Message]) -> str:
        system, turns = self.build_request(messages)
        params: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": turns,
        }
        if system:
            params["system"] = system

        started = time.monotonic()
        LOGGER.info(
            "assistant.request.start",
            extra={
                "event": "assistant.request.start",
                "model": self.model,
                "turns": len(turns),
            },
        )
        try:
            response = await self._client.messages.create(**params)
        except anthropic.APIConnectionError as exc:
            raise AssistantConnectionError(f"Unable to reach the assistant: {exc}") from exc
        except anthropic.APIStatusError as exc:
            raise AssistantResponseError(
                f"API request failed with status {exc.status_code}: {exc.message}"
            ) from exc
        except anthropic.APIError as exc:
            raise AssistantResponseError(f"API request failed: {exc}") from exc

        text = "".join(
            getattr(block, "text", "") or "" for block in (response.content or [])
        )
        if not text:
            raise AssistantResponseError("No content in response.")
        LOGGER.info(
            "assistant.request.complete",
            extra={
                "event": "assistant.request.complete",
                "model": self.model,
                "elapsed_ms": int((time.monotonic() - started) * 1000),
                "chars": len(text),
            },
        )
        return text
