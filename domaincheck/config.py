"""Application settings loaded from YAML."""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .exceptions import DomainCheckError

DEFAULT_CONFIG_PATH = "config/config.yaml"


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> dict:
    """Load configuration from YAML file."""
    config_file = Path(config_path)
    if config_file.exists():
        with open(config_file) as f:
            return yaml.safe_load(f) or {}
    return {}


@dataclass
class Settings:
    """Tunables for the checker stack."""
    tld_config: Optional[str] = "config/tld-config.json"

    window_size: int = 3
    window_delay: float = 0.5

    dns_timeout: float = 5.0
    connect_timeout: float = 5.0
    first_byte_timeout: float = 5.0
    idle_timeout: float = 1.0
    port: int = 43

    retry_attempts: int = 3
    retry_delay: float = 1.0

    def __post_init__(self):
        if self.window_size < 1:
            raise DomainCheckError("checker.window_size must be at least 1")
        if self.retry_attempts < 1:
            raise DomainCheckError("retry.max_attempts must be at least 1")
        for name in ('window_delay', 'retry_delay'):
            if getattr(self, name) < 0:
                raise DomainCheckError(f"{name} must not be negative")
        for name in ('dns_timeout', 'connect_timeout', 'first_byte_timeout', 'idle_timeout'):
            if getattr(self, name) <= 0:
                raise DomainCheckError(f"{name} must be positive")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Settings':
        """Build settings from the nested layout of config.yaml."""
        if not isinstance(data, dict):
            raise DomainCheckError("configuration must be a mapping")
        checker = data.get('checker') or {}
        retry = data.get('retry') or {}
        for section, value in (('checker', checker), ('retry', retry)):
            if not isinstance(value, dict):
                raise DomainCheckError(f"'{section}' section must be a mapping")

        values: Dict[str, Any] = {}
        if 'tld_config' in data:
            values['tld_config'] = data['tld_config']

        known = {f.name for f in fields(cls)}
        for key, value in checker.items():
            if key in known:
                values[key] = value
        if 'max_attempts' in retry:
            values['retry_attempts'] = retry['max_attempts']
        if 'delay' in retry:
            values['retry_delay'] = retry['delay']

        return cls(**values)

    @classmethod
    def load(cls, config_path: str = DEFAULT_CONFIG_PATH) -> 'Settings':
        try:
            data = load_config(config_path)
        except yaml.YAMLError as e:
            raise DomainCheckError(f"invalid YAML: {e}") from e
        return cls.from_dict(data)
