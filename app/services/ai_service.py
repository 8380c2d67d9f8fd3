"""
app/services/ai_service.py

Purpose: LLM text completion (Groq, OpenAI-compatible API)

- Single-prompt chat completions
- Used for listing review suggestions and newsletter copy
- Never makes decisions on its own; callers store the output as advice
"""

import httpx
from typing import Optional

from app.core.config import settings
from app.core.exceptions import ExternalServiceError, ServiceNotConfiguredError
from app.core.logging import get_logger

logger = get_logger(__name__)


class AIService:
    """
    Thin client for the chat completions endpoint.
    """

    def __init__(self):
        self.api_key = settings.GROQ_API_KEY
        self.base_url = settings.GROQ_BASE_URL.rstrip("/")
        self.model = settings.GROQ_MODEL
        self._timeout = float(settings.AI_TIMEOUT)

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def complete(
        self,
        prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 1500,
        system_prompt: Optional[str] = None
    ) -> str:
        """
        Returns the assistant message content for a single user prompt.

        Raises:
            ServiceNotConfiguredError: If no API key is set
            ExternalServiceError: If the provider fails or times out
        """
        if not self.is_configured():
            raise ServiceNotConfiguredError("AI service not configured. Set GROQ_API_KEY")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"}
                )
        except httpx.TimeoutException:
            logger.error("AI provider timeout")
            raise ExternalServiceError("AI service is taking too long to respond")
        except httpx.RequestError as e:
            logger.error(f"Network error calling AI provider: {e}")
            raise ExternalServiceError("Unable to reach AI service")

        if response.status_code != 200:
            logger.error(f"AI provider error: {response.status_code} - {response.text[:200]}")
            raise ExternalServiceError(
                "AI service returned an error",
                details={"status_code": response.status_code}
            )

        data = response.json()
        choices = data.get("choices") or []
        if not choices:
            raise ExternalServiceError("AI service returned no choices")

        content = (choices[0].get("message") or {}).get("content") or ""
        logger.debug(f"AI completion received ({len(content)} chars)")
        return content


# Singleton instance
ai_service = AIService()
