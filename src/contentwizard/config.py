"""Configuration management with lazy validation and environment overrides.

Environment variables (applied on top of config.yaml):
- CONTENTWIZARD_LLM_ENDPOINT: Override llm.endpoint
- CONTENTWIZARD_LLM_API_KEY: Override llm.api_key
- CONTENTWIZARD_LLM_MODEL: Override llm.model
- CONTENTWIZARD_MAX_REFINEMENT_ITERATIONS: Override wizard.max_refinement_iterations
- CONTENTWIZARD_DATA_DIR: Override storage.data_dir
"""

import os
from pathlib import Path
from functools import cached_property
from typing import Any, Dict, Mapping, Optional

from contentwizard.models.config import (
    DEFAULT_CONFIG_PATH,
    Config,
    LLMConfig,
    StorageConfig,
    WizardConfig,
)
from contentwizard.utils.logging import get_logger


logger = get_logger(__name__)


def apply_env_overrides(
    data: Dict[str, Any], environ: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """Apply CONTENTWIZARD_* environment overrides to raw configuration data.

    Args:
        data: Configuration dictionary (as loaded from YAML)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Configuration dictionary with environment overrides applied
    """
    env = os.environ if environ is None else environ
    data = {key: dict(value) if isinstance(value, dict) else value for key, value in data.items()}
    for section in ("llm", "wizard", "storage"):
        data.setdefault(section, {})

    if env_endpoint := env.get("CONTENTWIZARD_LLM_ENDPOINT"):
        data["llm"]["endpoint"] = env_endpoint

    if env_api_key := env.get("CONTENTWIZARD_LLM_API_KEY"):
        data["llm"]["api_key"] = env_api_key

    if env_model := env.get("CONTENTWIZARD_LLM_MODEL"):
        data["llm"]["model"] = env_model

    if env_iterations := env.get("CONTENTWIZARD_MAX_REFINEMENT_ITERATIONS"):
        try:
            data["wizard"]["max_refinement_iterations"] = int(env_iterations)
        except ValueError:
            logger.warning("config_env_override_ignored", variable="CONTENTWIZARD_MAX_REFINEMENT_ITERATIONS")

    if env_data_dir := env.get("CONTENTWIZARD_DATA_DIR"):
        data["storage"]["data_dir"] = env_data_dir

    return data


class ConfigManager:
    """
    Configuration manager with lazy validation.

    Loads the config file and hands out sections on first access.

    Example:
        >>> config_mgr = ConfigManager.load_default()
        >>> llm_config = config_mgr.llm
        >>> policy = config_mgr.wizard.mismatch_policy
    """

    def __init__(self, config: Config):
        self._config = config

    @classmethod
    def load_default(cls) -> "ConfigManager":
        """
        Load configuration from ~/.config/contentwizard/config.yaml.

        Raises:
            FileNotFoundError: If config file doesn't exist
            PermissionError: If config file has wrong permissions
            ValueError: If config is invalid
        """
        return cls.load_from_path(DEFAULT_CONFIG_PATH)

    @classmethod
    def load_from_path(
        cls, path: Path, environ: Optional[Mapping[str, str]] = None
    ) -> "ConfigManager":
        """
        Load configuration from a specific path, then apply environment overrides.

        Raises:
            FileNotFoundError: If config file doesn't exist
            PermissionError: If config file has wrong permissions
            ValueError: If config is invalid
        """
        logger.info("config_loading", path=str(path))

        try:
            config = Config.load(path)
            data = apply_env_overrides(config.model_dump(mode="json"), environ)
            config = Config(**data)
            logger.info("config_loaded", path=str(path))
            return cls(config)

        except FileNotFoundError as e:
            logger.error("config_not_found", path=str(path), error=str(e))
            raise

        except PermissionError as e:
            logger.error("config_permission_error", path=str(path), error=str(e))
            raise

        except Exception as e:
            logger.error("config_validation_error", path=str(path), error=str(e))
            raise ValueError(f"Configuration validation failed: {e}") from e

    @property
    def config(self) -> Config:
        return self._config

    @cached_property
    def llm(self) -> LLMConfig:
        """
        Get LLM configuration.

        Raises:
            ValueError: If LLM config is invalid
        """
        try:
            return self._config.llm
        except Exception as e:
            logger.error("llm_config_invalid", error=str(e))
            raise ValueError(f"LLM configuration invalid: {e}") from e

    @cached_property
    def wizard(self) -> WizardConfig:
        """Get wizard behavior settings (defaults apply when not specified)."""
        return self._config.wizard

    @cached_property
    def storage(self) -> StorageConfig:
        """Get storage settings (defaults apply when not specified)."""
        return self._config.storage
