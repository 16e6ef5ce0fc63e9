"""
Configuration Management

Handles loading configuration from environment variables and config files.
"""

import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional
import json

from dotenv import load_dotenv

# Wire defaults shared by every peer on the group
DEFAULT_GROUP = "224.0.0.236"
BROADCAST_ADDRESS = "255.255.255.255"
DEFAULT_PORT = 60540
DEFAULT_TTL = 1  # Stay on the local network

# Config field -> environment variable
ENV_VARS = {
    'broadcast': 'LANBEACON_BROADCAST',
    'group_address': 'LANBEACON_GROUP',
    'port': 'LANBEACON_PORT',
    'ttl': 'LANBEACON_TTL',
    'log_level': 'LANBEACON_LOG_LEVEL',
}


@dataclass
class Config:
    """
    Discovery engine configuration.

    Configuration priority (highest to lowest):
    1. Environment variables (LANBEACON_*)
    2. Config file (JSON)
    3. Default values
    """
    # Send to 255.255.255.255 instead of the multicast group
    broadcast: bool = False
    group_address: str = DEFAULT_GROUP
    port: int = DEFAULT_PORT
    ttl: int = DEFAULT_TTL

    # Logging
    log_level: str = 'INFO'

    @property
    def send_address(self) -> str:
        """Destination address for outgoing beacons."""
        return BROADCAST_ADDRESS if self.broadcast else self.group_address

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        load_dotenv()

        config = cls()

        config.broadcast = os.getenv('LANBEACON_BROADCAST', 'false').lower() == 'true'
        config.group_address = os.getenv('LANBEACON_GROUP', config.group_address)
        config.port = int(os.getenv('LANBEACON_PORT', config.port))
        config.ttl = int(os.getenv('LANBEACON_TTL', config.ttl))

        config.log_level = os.getenv('LANBEACON_LOG_LEVEL', config.log_level)

        return config

    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """Load configuration from a JSON file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()

        config.broadcast = bool(data.get('broadcast', config.broadcast))
        config.group_address = data.get('group_address', config.group_address)
        config.port = int(data.get('port', config.port))
        config.ttl = int(data.get('ttl', config.ttl))

        config.log_level = data.get('log_level', config.log_level)

        return config

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'broadcast': self.broadcast,
            'group_address': self.group_address,
            'port': self.port,
            'ttl': self.ttl,
            'log_level': self.log_level,
        }

    def save(self, path: Path):
        """Save configuration to a JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment.

    Environment variables override file settings.
    """
    # Start with defaults
    config = Config()

    # Load from file if provided
    if config_path and config_path.exists():
        config = Config.from_file(config_path)

    # Override with environment variables (from_env also loads .env)
    env_config = Config.from_env()

    # Any variable that is set wins, even if it equals the default
    for key, var in ENV_VARS.items():
        if var in os.environ:
            setattr(config, key, getattr(env_config, key))

    return config
