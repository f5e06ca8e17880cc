"""
AI insight client.
Sends free-text prompts (note summaries, suggested actions) to the insights
endpoint. Never raises: failures come back as an error string the UI can show.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional
import httpx
from ..core.config import settings

logger = logging.getLogger(__name__)

UNSUCCESSFUL_CONTENT = "Error: AI request was not successful."
UNAVAILABLE_CONTENT = "Error: Could not fetch AI insights."


@dataclass
class AIResponse:
    content: str
    usage: Optional[Dict[str, int]] = None


class AIClient:
    def __init__(
        self,
        api_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_url = api_url or settings.AI_API_URL
        self.model = model or settings.AI_MODEL
        self.timeout = timeout or settings.AI_TIMEOUT
        self.transport = transport

    def ask(
        self,
        prompt: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
    ) -> AIResponse:
        body = {"model": model or self.model, "prompt": prompt}
        if temperature is not None:
            body["temperature"] = temperature
        if max_tokens is not None:
            body["max_tokens"] = max_tokens
        if response_format is not None:
            body["response_format"] = response_format

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(self.api_url, json=body)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Error calling AI endpoint: %s", exc)
            return AIResponse(content=UNAVAILABLE_CONTENT)

        if isinstance(data, dict) and data.get("success") and data.get("result"):
            return AIResponse(content=data["result"], usage=data.get("usage"))
        return AIResponse(content=UNSUCCESSFUL_CONTENT)
