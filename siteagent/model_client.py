"""Gemini generateContent client over httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from siteagent.config import DEFAULT_API_BASE, DEFAULT_MODEL, DEFAULT_MODEL_TIMEOUT
from siteagent.schemas import ConversationTurn, FunctionCall, ModelResponse

logger = logging.getLogger(__name__)


class ModelCallError(Exception):
    """Raised when the model API call fails or rejects the request."""

    pass


def parse_generate_response(payload: dict[str, Any]) -> ModelResponse:
    """Extract free text and function calls from a generateContent payload."""
    candidates = payload.get("candidates") or []
    if not candidates:
        feedback = payload.get("promptFeedback", {})
        reason = feedback.get("blockReason", "no candidates returned")
        raise ModelCallError(f"Model returned no candidates: {reason}")

    parts = (candidates[0].get("content") or {}).get("parts") or []

    texts = []
    calls = []
    for part in parts:
        if "functionCall" in part:
            call = part["functionCall"]
            calls.append(
                FunctionCall(
                    name=call.get("name", ""),
                    args=call.get("args") or {},
                    thought_signature=part.get("thoughtSignature"),
                )
            )
        elif part.get("text") and not part.get("thought"):
            texts.append(part["text"])

    return ModelResponse(text="".join(texts), function_calls=calls)


class GeminiClient:
    """Async client for the Gemini REST API."""

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_MODEL,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = DEFAULT_MODEL_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings) -> GeminiClient:
        return cls(
            api_key=settings.api_key,
            model=settings.model,
            api_base=settings.api_base,
            timeout=settings.model_timeout,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    async def generate_content(
        self,
        history: list[ConversationTurn],
        system_instruction: str,
        tools: list[dict[str, Any]],
    ) -> ModelResponse:
        """Send the full history and return the normalized response.

        Raises:
            ModelCallError: On missing credentials, transport failure,
                HTTP error status or an unusable response body
        """
        if not self.api_key:
            raise ModelCallError("Missing Google API key. Set GOOGLE_API_KEY.")

        body = {
            "contents": [turn.to_api() for turn in history],
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "tools": tools,
        }

        logger.info(f"Calling {self.model} with {len(history)} turns")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.endpoint,
                    json=body,
                    headers={"x-goog-api-key": self.api_key},
                )
                response.raise_for_status()
                payload = response.json()

        except httpx.ConnectError as e:
            logger.error(f"Failed to connect to model API: {e}")
            raise ModelCallError("Model API unavailable") from e

        except httpx.TimeoutException as e:
            logger.error(f"Model API request timed out: {e}")
            raise ModelCallError(f"Model API request timed out after {self.timeout}s") from e

        except httpx.HTTPStatusError as e:
            logger.error(f"Model API HTTP error: {e}")
            raise ModelCallError(f"Model API returned error: {e.response.status_code}") from e

        except httpx.HTTPError as e:
            logger.error(f"Model API request failed: {e}")
            raise ModelCallError(str(e)) from e

        except ValueError as e:
            raise ModelCallError("Model API returned invalid JSON") from e

        return parse_generate_response(payload)
