"""AI text-generation collaborator interface.

The wizard owns prompt assembly and response parsing; a CompletionClient
only moves chat messages to a model and returns the raw text it produced.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional


class CompletionClient(ABC):
    """Abstract interface for LLM providers.

    Attributes:
        provider_id: Provider label (e.g. "openai", "ollama") reported in errors
        model: Model identifier reported in errors
    """

    provider_id: str = "unknown"
    model: str = "unknown"

    @abstractmethod
    def complete(self, messages: List[Dict[str, str]], stage: str = "completion") -> str:
        """Send chat messages and return the assistant's text.

        Args:
            messages: Chat messages ({"role": ..., "content": ...})
            stage: Label for prompt logging (e.g. "plan_generation")

        Returns:
            Raw response text (expected to be JSON for wizard prompts)

        Raises:
            LLMError: If the request fails
        """
        pass


class LLMError(Exception):
    """Base exception for LLM client errors.

    This includes network errors, API authentication failures, rate limits,
    malformed responses, and timeout errors.
    """

    pass


class LLMAPIError(LLMError):
    """API-level error (authentication, rate limit, etc.)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LLMResponseError(LLMError):
    """Invalid or malformed response from LLM."""

    pass


class LLMTimeoutError(LLMError):
    """Request timeout error."""

    pass
