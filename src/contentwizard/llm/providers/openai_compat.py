"""OpenAI-compatible LLM provider implementation.

Works with any OpenAI-compatible chat completions API (OpenAI, llama.cpp,
vLLM, Ollama's /v1 layer) using httpx and JSON mode. When an Ollama
endpoint is configured with num_ctx, Ollama's native /api/chat endpoint is
used instead so the context size can be set.
"""

import json
from typing import Any, Dict, List, Optional

import httpx

from contentwizard.llm.client import (
    CompletionClient,
    LLMAPIError,
    LLMError,
    LLMResponseError,
    LLMTimeoutError,
)
from contentwizard.llm.prompt_logger import PromptLogger
from contentwizard.models.config import LLMConfig
from contentwizard.utils.logging import get_logger

logger = get_logger(__name__)


class OpenAICompatibleClient(CompletionClient):
    """Synchronous chat-completions client.

    Uses JSON mode (response_format: {type: "json_object"}) so plan
    responses come back as a single JSON object.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        model: str,
        provider_id: str = "openai",
        timeout: float = 60.0,
        temperature: float = 0.7,
        prompt_logger: Optional[PromptLogger] = None,
        num_ctx: Optional[int] = None,
    ):
        """Initialize the client.

        Args:
            endpoint: API endpoint URL
            api_key: API authentication key
            model: Model name to use
            provider_id: Provider label used in errors and logs
            timeout: Request timeout in seconds (default: 60s)
            temperature: Sampling temperature
            prompt_logger: Optional transcript logger
            num_ctx: Context window size for Ollama (optional, controls VRAM usage)
        """
        self.endpoint = endpoint
        self.api_key = api_key
        self.model = model
        self.provider_id = provider_id
        self.timeout = timeout
        self.temperature = temperature
        self.prompt_logger = prompt_logger
        self.num_ctx = num_ctx
        self.client = httpx.Client(timeout=timeout)

    @classmethod
    def from_config(
        cls, config: LLMConfig, prompt_logger: Optional[PromptLogger] = None
    ) -> "OpenAICompatibleClient":
        return cls(
            endpoint=str(config.endpoint),
            api_key=config.api_key,
            model=config.model,
            provider_id=config.provider,
            timeout=config.timeout,
            prompt_logger=prompt_logger,
            num_ctx=config.num_ctx,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "OpenAICompatibleClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def complete(self, messages: List[Dict[str, str]], stage: str = "completion") -> str:
        """Send messages and return the assistant content.

        Raises:
            LLMTimeoutError: If the request times out
            LLMAPIError: On HTTP error status
            LLMResponseError: If the response has no message content
            LLMError: On other network errors
        """
        if self.prompt_logger:
            self.prompt_logger.log_request(stage=stage, messages=messages, model=self.model)

        logger.debug("llm_request", stage=stage, model=self.model, message_count=len(messages))

        try:
            response = self._make_request(messages)
            content = self._extract_content(response)
        except httpx.TimeoutException as e:
            self._log_failure(stage, e)
            raise LLMTimeoutError(f"Request timeout: {e}") from e
        except httpx.HTTPStatusError as e:
            self._log_failure(stage, e)
            raise LLMAPIError(
                f"API error: {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            self._log_failure(stage, e)
            raise LLMError(f"Network error: {e}") from e
        except LLMResponseError as e:
            self._log_failure(stage, e)
            raise

        if self.prompt_logger:
            self.prompt_logger.log_response(stage=stage, content=content)
        logger.debug("llm_response", stage=stage, model=self.model, length=len(content))
        return content

    def _log_failure(self, stage: str, error: Exception) -> None:
        logger.error("llm_request_failed", stage=stage, model=self.model, error=str(error))
        if self.prompt_logger:
            self.prompt_logger.log_response(stage=stage, error=error)

    def _is_ollama(self) -> bool:
        base_endpoint = str(self.endpoint).rstrip("/")
        return base_endpoint.endswith("/v1") or "/v1/" in base_endpoint

    def _make_request(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        """Dispatch to the OpenAI-compatible or Ollama native endpoint."""
        if self._is_ollama() and self.num_ctx is not None:
            return self._make_ollama_request(messages)
        return self._make_openai_request(messages)

    def _make_openai_request(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        endpoint = str(self.endpoint).rstrip("/")
        if not endpoint.endswith("/chat/completions"):
            endpoint = f"{endpoint}/chat/completions"

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
        }

        response = self.client.post(
            endpoint,
            json=payload,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        response.raise_for_status()
        return self._decode_json(response)

    def _make_ollama_request(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        """Call Ollama's native /api/chat and convert the reply to OpenAI shape."""
        base_endpoint = str(self.endpoint).rstrip("/")
        if base_endpoint.endswith("/v1"):
            base_endpoint = base_endpoint[:-3]

        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "format": "json",
            "options": {"temperature": self.temperature, "num_ctx": self.num_ctx},
        }

        response = self.client.post(
            f"{base_endpoint}/api/chat",
            json=payload,
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()

        ollama_response = self._decode_json(response)
        return {"choices": [{"message": ollama_response.get("message", {}), "index": 0}]}

    def _decode_json(self, response: httpx.Response) -> Dict[str, Any]:
        """Parse a response body that must be a JSON object.

        Raises:
            LLMResponseError: If the body is not a JSON object
        """
        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise LLMResponseError(f"Invalid JSON in API response: {e}") from e
        if not isinstance(data, dict):
            raise LLMResponseError("API response is not a JSON object")
        return data

    def _extract_content(self, response: Dict[str, Any]) -> str:
        """Pull the assistant text out of a chat-completions response.

        Raises:
            LLMResponseError: If the response structure is invalid
        """
        try:
            content = response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMResponseError(f"Invalid response structure: {e}") from e
        if not isinstance(content, str):
            raise LLMResponseError("Response message content is not text")
        return content
