from typing import Optional

from wirechain.config.models import ClientConfig


class ConfigurationService:
    """Configuration service that manages config loading without global state."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path
        self._config = self._load_config()

    def _load_config(self) -> ClientConfig:
        return ClientConfig.load(self.config_path)

    def get_config(self) -> ClientConfig:
        """Get the configuration instance."""
        return self._config

    def reload_config(self) -> ClientConfig:
        """Reload configuration from file."""
        self._config = self._load_config()
        return self._config
