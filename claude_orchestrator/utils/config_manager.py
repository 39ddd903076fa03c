"""Configuration management utilities."""

import json
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ..core.constants import CONFIG_FILE_NAME
from ..models.config import OrchestratorConfig, default_home_dir
from ..services.exceptions import ConfigError


class ConfigManager:
    """Manages the orchestrator configuration stored in the home directory."""

    def __init__(self, home_dir: Optional[Path] = None):
        """Initialize config manager."""
        self.home_dir = Path(home_dir) if home_dir is not None else default_home_dir()
        self.config_file = self.home_dir / CONFIG_FILE_NAME

    def load_config(self) -> OrchestratorConfig:
        """Load configuration, falling back to defaults when no file exists.

        Raises:
            ConfigError: If the file exists but cannot be read or validated
        """
        if not self.config_file.exists():
            return OrchestratorConfig(home_dir=self.home_dir)
        try:
            data = json.loads(self.config_file.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read {self.config_file}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{self.config_file} must contain a JSON object")

        data["home_dir"] = str(self.home_dir)
        try:
            return OrchestratorConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {self.config_file}: {e}") from e
