from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from .errors import GenerationError


logger = logging.getLogger(__name__)


class LlmGateway:
    """OpenAI-compatible chat-completions endpoint returning JSON objects."""

    def __init__(
        self,
        url: str,
        *,
        api_key: str,
        model: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._transport = transport

    async def complete_json(self, messages: List[Dict[str, Any]]) -> Dict[str, Any]:
        if not self.api_key:
            raise GenerationError("LLM_API_KEY is not configured")
        payload = {
            "model": self.model,
            "messages": messages,
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise GenerationError(f"AI gateway unreachable: {exc}") from exc
        if resp.is_error:
            logger.error("AI gateway error: %s %s", resp.status_code, resp.text[:500])
            raise GenerationError(f"AI gateway error: {resp.status_code}")
        try:
            content = resp.json()["choices"][0]["message"]["content"]
            data = json.loads(content)
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise GenerationError("AI gateway returned an unreadable completion") from exc
        if not isinstance(data, dict):
            raise GenerationError("AI gateway completion is not a JSON object")
        return data
