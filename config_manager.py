#!/usr/bin/env python3
"""
Configuration management for the IMAP copy system.

The config file is JSON (any YAML superset is accepted too)::

    {
      "source": {"host": "imap.old.example", "user": "me", "password": "..."},
      "dest":   {"host": "imap.new.example", "user": "me"}
    }
"""

import getpass
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import yaml

from errors import ConfigError

ACCOUNT_SECTIONS = ('source', 'dest')


@dataclass
class AccountConfig:
    """Connection settings for one side of the copy."""

    host: str
    user: str
    password: Optional[str] = None
    port: Optional[int] = None
    use_ssl: bool = True
    timeout: Optional[float] = None

    @classmethod
    def from_dict(cls, section: str, data: Dict[str, Any]) -> "AccountConfig":
        port = data.get('port')
        if port is not None and not isinstance(port, int):
            raise ConfigError(f"'{section}.port' must be an integer, got {port!r}")
        return cls(
            host=data['host'],
            user=data['user'],
            password=data.get('password') or None,
            port=port,
            use_ssl=bool(data.get('ssl', True)),
            timeout=data.get('timeout'),
        )


class ConfigManager:
    """Handles configuration loading, validation and password resolution."""

    def __init__(self, config_file: str = "config.json",
                 prompt: Callable[[str], str] = getpass.getpass,
                 logger: Optional[logging.Logger] = None):
        self.config_file = config_file
        self.prompt = prompt
        self.logger = logger or logging.getLogger(__name__)
        self.config = self.load_config()
        self.accounts = {section: AccountConfig.from_dict(section, self.config[section])
                         for section in ACCOUNT_SECTIONS}

    def load_config(self) -> Dict[str, Any]:
        """Load configuration from the config file."""
        self.logger.info(f"Loading config file '{self.config_file}'")
        try:
            with open(self.config_file, 'r', encoding='utf-8') as file:
                config = yaml.safe_load(file)
        except FileNotFoundError:
            raise ConfigError(f"Configuration file '{self.config_file}' not found")
        except OSError as e:
            raise ConfigError(f"Could not read configuration file '{self.config_file}': {e}")
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid configuration file '{self.config_file}': {e}")
        self.validate_config(config)
        return config

    def validate_config(self, config: Any) -> None:
        """Validate configuration structure."""
        if not isinstance(config, dict):
            raise ConfigError(f"Configuration file '{self.config_file}' must contain an object")

        for section in ACCOUNT_SECTIONS:
            if section not in config:
                raise ConfigError(f"Missing required configuration section: {section}")
            if not isinstance(config[section], dict):
                raise ConfigError(f"Configuration section '{section}' must be an object")
            for field in ('host', 'user'):
                if not config[section].get(field):
                    raise ConfigError(f"Missing required field '{field}' in '{section}' configuration")

    def resolve_passwords(self) -> None:
        """Prompt for passwords the config file leaves out."""
        for section in ACCOUNT_SECTIONS:
            account = self.accounts[section]
            if account.password:
                continue
            try:
                account.password = self.prompt(f"Enter password for {account.host}: ")
            except (EOFError, KeyboardInterrupt) as e:
                raise ConfigError(f"Password prompt for {account.host} aborted") from e

    def account(self, section: str) -> AccountConfig:
        return self.accounts[section]
