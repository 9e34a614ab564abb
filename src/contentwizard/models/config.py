"""Configuration models for the content wizard."""

from pydantic import BaseModel, Field, HttpUrl, field_validator
from pathlib import Path
from typing import Literal, Optional
import yaml
import os
import stat


DEFAULT_CONFIG_PATH = Path.home() / ".config" / "contentwizard" / "config.yaml"


class LLMConfig(BaseModel):
    """Configuration for the AI text-generation API."""

    endpoint: HttpUrl = Field(
        ...,
        description="LLM API endpoint URL (OpenAI or Ollama compatible)"
    )

    api_key: str = Field(
        ...,
        description="API key for authentication"
    )

    model: str = Field(
        ...,
        description="Model identifier (e.g., 'gpt-4o-mini', 'llama3')"
    )

    provider: str = Field(
        default="openai",
        description="Provider label reported in errors and logs"
    )

    timeout: float = Field(
        default=60.0,
        ge=1.0,
        description="Request timeout in seconds"
    )

    num_ctx: Optional[int] = Field(
        default=None,
        ge=1024,
        description="Context window size (Ollama-specific, controls VRAM usage)"
    )

    model_config = {"frozen": True}


class WizardConfig(BaseModel):
    """Behavior of plan generation, refinement and template mapping."""

    enable_refinement: bool = Field(
        default=True,
        description="Allow users to refine a generated plan"
    )

    max_refinement_iterations: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum refinement rounds per plan"
    )

    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts when the AI returns unparseable JSON"
    )

    session_timeout: int = Field(
        default=3600,
        ge=60,
        description="Seconds of inactivity before a session expires"
    )

    words_per_minute: int = Field(
        default=200,
        ge=50,
        description="Reading speed used for read-time estimates"
    )

    mismatch_policy: Literal["warn", "skip"] = Field(
        default="warn",
        description="On component type mismatch: 'warn' fills anyway, 'skip' leaves the component untouched"
    )

    max_file_size: int = Field(
        default=52428800,
        ge=1,
        description="Largest accepted source file in bytes"
    )

    allowed_extensions: list[str] = Field(
        default_factory=lambda: ["txt", "md", "markdown"],
        description="Accepted source file extensions"
    )

    @field_validator("allowed_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Lowercase extensions and drop leading dots."""
        return [ext.lower().lstrip(".") for ext in v if ext.strip()]

    model_config = {"frozen": True}


class StorageConfig(BaseModel):
    """Where sessions, templates and created pages are kept."""

    data_dir: str = Field(
        default="~/.local/share/contentwizard",
        description="Root directory for JSON session and page storage"
    )

    @property
    def path(self) -> Path:
        return Path(self.data_dir).expanduser()

    model_config = {"frozen": True}


class Config(BaseModel):
    """Root configuration for the content wizard."""

    llm: LLMConfig = Field(..., description="LLM API settings")
    wizard: WizardConfig = Field(default_factory=WizardConfig, description="Wizard behavior")
    storage: StorageConfig = Field(default_factory=StorageConfig, description="Storage location")

    @classmethod
    def load(cls, path: Path) -> "Config":
        """
        Load configuration from YAML file.

        Validates file permissions before loading.
        Raises PermissionError if file is group/world readable.

        Args:
            path: Path to config.yaml file

        Returns:
            Validated Config instance

        Raises:
            PermissionError: If file permissions are too open
            FileNotFoundError: If config file doesn't exist
            ValueError: If YAML is invalid or validation fails
        """
        if not path.exists():
            raise FileNotFoundError(
                f"Configuration file not found at {path}\n\n"
                f"Please create the file with the following format:\n\n"
                f"llm:\n"
                f"  endpoint: https://api.openai.com/v1\n"
                f"  api_key: YOUR_API_KEY_HERE\n"
                f"  model: gpt-4o-mini\n\n"
                f"wizard:\n"
                f"  max_refinement_iterations: 5\n"
                f"  mismatch_policy: warn\n"
            )

        # The file holds an API key, so it must be 600
        mode = os.stat(path).st_mode
        if mode & (stat.S_IRWXG | stat.S_IRWXO):
            raise PermissionError(
                f"Config file has overly permissive permissions: {oct(mode)}\n"
                f"Run: chmod 600 {path}"
            )

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    model_config = {"frozen": True}
