"""Async client for OpenAI-compatible chat-completion endpoints."""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from ai_inference.core.errors import TransportError
from ai_inference.utils.logging import get_logger

log = get_logger(__name__)


class ChatCompletionsClient:
    """POSTs chat-completion requests to ``{endpoint}/chat/completions``.

    The credential, endpoint and custom headers are fixed at construction.
    JSON bodies are returned decoded; anything else comes back as raw text so
    the caller can decide what to make of it.
    """

    def __init__(
        self,
        endpoint: str,
        token: str,
        headers: Mapping[str, str] | None = None,
        timeout: float = 600.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = endpoint.rstrip("/")
        default_headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        default_headers.update(headers or {})
        self._client = httpx.AsyncClient(
            base_url=self._endpoint,
            headers=default_headers,
            timeout=timeout,
            transport=transport,
        )

    async def create(
        self,
        *,
        messages: list[dict[str, Any]],
        model: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
        tools: list[dict[str, Any]] | None = None,
        response_format: dict[str, Any] | None = None,
        extra_body: dict[str, Any] | None = None,
    ) -> dict[str, Any] | str:
        body: dict[str, Any] = {"messages": messages, "model": model}
        optional = {
            "max_tokens": max_tokens,
            "temperature": temperature,
            "top_p": top_p,
            "tools": tools,
            "response_format": response_format,
        }
        body.update({k: v for k, v in optional.items() if v is not None})
        if extra_body:
            body["extra_body"] = extra_body

        try:
            resp = await self._client.post("/chat/completions", json=body)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise TransportError(
                f"Chat completion request failed with HTTP {status}: {e.response.text[:400]}",
                status_code=status,
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(
                f"Chat completion request to {self._endpoint} failed ({type(e).__name__}): {e}"
            ) from e

        content_type = resp.headers.get("content-type", "")
        if "json" in content_type:
            try:
                return resp.json()
            except ValueError:
                log.debug("json_content_type_not_json", content_type=content_type)
        return resp.text

    async def close(self) -> None:
        await self._client.aclose()
