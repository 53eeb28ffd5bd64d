"""Configuration management for nfpair."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml


DEFAULT_REQUIRED_VERSION = "1.0"
DEFAULT_APP_NAME = "NotifyForwarders"


@dataclass
class ServerConfig:
    """Notification server compatibility and HTTP settings."""

    required_version: str = DEFAULT_REQUIRED_VERSION
    connect_timeout: float = 5.0  # seconds
    read_timeout: float = 5.0  # seconds


@dataclass
class PairingConfig:
    """Pairing handshake settings."""

    app_name: str = DEFAULT_APP_NAME
    device_name: str | None = None  # Override detected device model
    confirm_delay: float = 1.5  # seconds the success message stays up
    challenge_ttl: float | None = None  # No expiry unless configured


@dataclass
class Config:
    """nfpair configuration."""

    log_level: str = "INFO"
    log_file: str | None = None
    store_file: str | None = None
    server: ServerConfig = field(default_factory=ServerConfig)
    pairing: PairingConfig = field(default_factory=PairingConfig)


def get_config_path(custom_path: Path | None = None) -> Path:
    """Get the configuration file path.

    Args:
        custom_path: Override path. If None, returns default.

    Returns:
        Path to config file.
    """
    if custom_path is not None:
        return custom_path
    return Path.home() / ".config" / "nfpair" / "config.yaml"


def get_store_path(config: Config) -> Path:
    """Get the path of the confirmed server address file."""
    if config.store_file:
        return Path(config.store_file).expanduser()
    return Path.home() / ".config" / "nfpair" / "server.json"


def _default_file_reader(path: Path) -> dict[str, Any] | None:
    """Default file reader that loads YAML from disk."""
    if not path.exists():
        return None
    try:
        content = path.read_text()
        if not content.strip():
            return None
        return yaml.safe_load(content)
    except yaml.YAMLError:
        return None


def load_config(
    path: Path | None = None,
    file_reader: Callable[[Path], dict[str, Any] | None] | None = None,
) -> Config:
    """Load configuration from file.

    Args:
        path: Path to config file. If None, uses default path.
        file_reader: Injectable file reader for testing.

    Returns:
        Config object with values from file or defaults.
    """
    config_path = get_config_path(path)
    reader = file_reader or _default_file_reader

    data = reader(config_path)

    if not isinstance(data, dict):
        return Config()

    # Parse server config section
    server_data = data.get("server") or {}
    server_config = ServerConfig(
        required_version=str(
            server_data.get("required_version", ServerConfig.required_version)
        ),
        connect_timeout=float(
            server_data.get("connect_timeout", ServerConfig.connect_timeout)
        ),
        read_timeout=float(server_data.get("read_timeout", ServerConfig.read_timeout)),
    )

    # Parse pairing config section
    pairing_data = data.get("pairing") or {}
    challenge_ttl = pairing_data.get("challenge_ttl", PairingConfig.challenge_ttl)
    pairing_config = PairingConfig(
        app_name=pairing_data.get("app_name", PairingConfig.app_name),
        device_name=pairing_data.get("device_name", PairingConfig.device_name),
        confirm_delay=float(
            pairing_data.get("confirm_delay", PairingConfig.confirm_delay)
        ),
        challenge_ttl=float(challenge_ttl) if challenge_ttl is not None else None,
    )

    return Config(
        log_level=data.get("log_level", Config.log_level),
        log_file=data.get("log_file", Config.log_file),
        store_file=data.get("store_file", Config.store_file),
        server=server_config,
        pairing=pairing_config,
    )
