"""
LLM service for structured calls to OpenAI GPT models.
"""

import json
import logging
from typing import Optional, Dict, Any

from ..config import get_settings, Settings
from ..exceptions import GenerativeBackendError
from .rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)


class LLMService:
    """
    Service for interacting with Large Language Models (OpenAI GPT).

    Every request passes through the injected rate limiter first.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        client=None
    ):
        """
        Args:
            settings: Application settings (defaults to cached settings)
            rate_limiter: Limiter applied before each request
            client: Pre-built OpenAI client (built from settings if omitted)
        """
        self.settings = settings or get_settings()
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter(
            max_requests=self.settings.OPENAI_REQUESTS_PER_MINUTE
        )
        self._client = client
        if self._client is None and self.settings.llm_configured:
            self._init_client()

    def _init_client(self):
        """Initialize OpenAI client."""
        try:
            from openai import OpenAI

            self._client = OpenAI(
                api_key=self.settings.OPENAI_API_KEY,
                timeout=self.settings.OPENAI_TIMEOUT,
            )
            logger.info(f"Initialized OpenAI LLM client with model: {self.settings.OPENAI_MODEL}")

        except ImportError:
            raise ImportError(
                "openai package is required. Install with: pip install openai"
            )

    @property
    def is_configured(self) -> bool:
        """Whether a client is available for requests."""
        return self._client is not None

    def call_function(
        self,
        system_prompt: str,
        user_prompt: str,
        function_schema: Dict[str, Any],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Ask the model to answer by calling a single function.

        Args:
            system_prompt: System prompt
            user_prompt: User prompt
            function_schema: Function definition (name, description, parameters)
            temperature: Sampling temperature (uses settings default if not provided)
            max_tokens: Maximum tokens in response (uses settings default if not provided)
            model: Model to use (uses settings default if not provided)

        Returns:
            Parsed function arguments

        Raises:
            GenerativeBackendError: On request failure or unusable output
        """
        if self._client is None:
            raise GenerativeBackendError("OpenAI client is not configured")

        self.rate_limiter.acquire()

        function_name = function_schema["name"]

        try:
            response = self._client.chat.completions.create(
                model=model or self.settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                tools=[{"type": "function", "function": function_schema}],
                tool_choice={"type": "function", "function": {"name": function_name}},
                temperature=temperature if temperature is not None else self.settings.OPENAI_TEMPERATURE,
                max_tokens=max_tokens or self.settings.OPENAI_MAX_TOKENS,
            )
        except Exception as e:
            raise GenerativeBackendError(f"OpenAI request failed: {e}") from e

        try:
            message = response.choices[0].message
            tool_calls = message.tool_calls or []
        except (AttributeError, IndexError) as e:
            raise GenerativeBackendError(f"Unexpected OpenAI response shape: {e}") from e

        arguments = None
        for call in tool_calls:
            if call.function.name == function_name:
                arguments = call.function.arguments
                break

        if not arguments:
            raise GenerativeBackendError("No function call response received")

        try:
            result = json.loads(arguments)
        except json.JSONDecodeError as e:
            raise GenerativeBackendError(f"Function call arguments are not valid JSON: {e}") from e

        if not isinstance(result, dict):
            raise GenerativeBackendError("Function call arguments are not a JSON object")

        return result


# Singleton instance
_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """
    Get or create the LLM service singleton.

    Returns:
        LLMService instance
    """
    global _llm_service

    if _llm_service is None:
        _llm_service = LLMService()

    return _llm_service
