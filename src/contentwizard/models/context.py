"""AI context: named facts injected into generation and refinement prompts."""

from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from contentwizard.utils.ids import generate_id
from contentwizard.utils.text import truncate


class AIContext(BaseModel):
    """An immutable piece of guidance (brand voice, audience notes, glossary...)."""

    id: str = Field(..., description="Context identifier")
    type: str = Field(..., description="Context category, e.g. 'brand_voice'")
    label: str = Field(..., description="Human-readable name")
    content: str = Field(..., description="Text injected into prompts")
    priority: int = Field(default=0, description="Higher priority contexts come first")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Free-form extra data")
    enabled: bool = Field(default=True, description="Disabled contexts are never sent")

    model_config = {"frozen": True}

    @classmethod
    def create(
        cls,
        type: str,
        label: str,
        content: str,
        priority: int = 0,
        metadata: Optional[dict[str, Any]] = None,
    ) -> "AIContext":
        return cls(
            id=generate_id("context"),
            type=type,
            label=label,
            content=content,
            priority=priority,
            metadata=metadata or {},
        )

    def with_enabled(self, enabled: bool) -> "AIContext":
        return self.model_copy(update={"enabled": enabled})

    def with_content(self, content: str) -> "AIContext":
        return self.model_copy(update={"content": content})

    def with_metadata(self, key: str, value: Any) -> "AIContext":
        return self.model_copy(update={"metadata": {**self.metadata, key: value}})

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    @property
    def content_length(self) -> int:
        return len(self.content)

    def content_preview(self, max_length: int = 200) -> str:
        return truncate(self.content, max_length)

    def format_for_prompt(self) -> str:
        return f"### {self.label} ({self.type})\n{self.content}\n"

    @staticmethod
    def sort_by_priority(contexts: Iterable["AIContext"]) -> list["AIContext"]:
        """Highest priority first; equal priorities keep their given order."""
        return sorted(contexts, key=lambda context: -context.priority)

    @staticmethod
    def combine_for_prompt(contexts: Iterable["AIContext"], sort: bool = True) -> str:
        """Concatenate enabled contexts into a single prompt block."""
        enabled = [context for context in contexts if context.enabled]
        if sort:
            enabled = AIContext.sort_by_priority(enabled)
        return "\n".join(context.format_for_prompt() for context in enabled)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AIContext":
        return cls.model_validate(data)
