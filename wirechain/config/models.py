from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from wirechain import __version__
from wirechain.common.utils import get_app_dir


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default='INFO', description='Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)')
    console_enabled: bool = Field(default=True, description='Enable console logging')
    file_enabled: bool = Field(default=False, description='Enable file logging')
    log_file_dir: Optional[str] = Field(default=None, description='Log directory (defaults to ~/.wirechain/logs)')
    max_file_size: str = Field(default='10MB', description='Maximum log file size before rotation')
    backup_count: int = Field(default=4, description='Number of backup files to keep')


class ClientConfig(BaseModel):
    """Client configuration model with validation.

    Timeouts are expressed in seconds; the interceptor chain carries them as
    milliseconds.
    """

    model_config = ConfigDict(extra='allow')

    version: str = Field(default='1', description='Config version')
    connect_timeout: float = Field(default=10.0, ge=0, allow_inf_nan=False, description='Connect timeout in seconds, 0 for none')
    read_timeout: float = Field(default=10.0, ge=0, allow_inf_nan=False, description='Read timeout in seconds, 0 for none')
    write_timeout: float = Field(default=10.0, ge=0, allow_inf_nan=False, description='Write timeout in seconds, 0 for none')
    user_agent: str = Field(default=f'wirechain/{__version__}', description='Default User-Agent header')
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description='Logging configuration')

    @classmethod
    def load(cls, config_path: str | None = None) -> 'ClientConfig':
        """Load configuration from YAML file.

        Tries multiple locations in order:
        1. Explicit config_path if provided
        2. ~/.wirechain/config.yaml in user home directory
        3. ./config.yaml in current directory
        """
        config_paths = []
        if config_path:
            config_paths.append(config_path)
        else:
            home_config = get_app_dir() / 'config.yaml'
            if home_config.exists():
                config_paths.append(str(home_config))
            config_paths.append('config.yaml')

        data = {}
        for path in config_paths:
            try:
                with open(path, 'r') as f:
                    file_data = yaml.safe_load(f) or {}
                    # Later files override earlier ones
                    data.update(file_data)
            except FileNotFoundError:
                continue
            except yaml.YAMLError as e:
                raise ValueError(f'Invalid YAML in config file {path}: {e}')
            except OSError as e:
                raise ValueError(f'Error reading config file {path}: {e}')

        return cls(**data)

    def save(self, config_path: str) -> None:
        """Save configuration to YAML file."""
        with open(config_path, 'w') as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False, sort_keys=False, indent=2)
