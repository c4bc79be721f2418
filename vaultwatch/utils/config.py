# vaultwatch/utils/config.py

"""
Configuration management for VaultWatch
"""
import json
import sys
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union
from dataclasses import dataclass, field, asdict, fields, is_dataclass
from datetime import datetime, date
import logging

logger = logging.getLogger(__name__)


@dataclass
class PathConfig:
    """Path configuration"""
    vault: Path = Path.home() / "Notes"
    export_dir: str = ""  # vault-relative; empty means vault root

    def __post_init__(self):
        if isinstance(self.vault, str):
            self.vault = Path(self.vault)


@dataclass
class TrackingConfig:
    """Activity tracking configuration (intervals in seconds)"""
    enabled: bool = True
    track_create: bool = True
    track_modify: bool = True
    track_delete: bool = True
    track_rename: bool = True

    include_paths: list = field(default_factory=list)
    exclude_paths: list = field(default_factory=list)
    transient_patterns: list = field(default_factory=lambda: [
        r"^Untitled( \d+)?\.md$",
    ])
    ignore_patterns: list = field(default_factory=lambda: [
        ".*", "*/.*",  # Hidden files and folders (.obsidian, .git, .trash)
        "*.tmp", "*.temp", "*.swp", "*.swo", "*~",
    ])

    # Two-level debounce
    content_debounce_interval: float = 10.0
    db_write_debounce_interval: float = 60.0

    # Inactivity batching
    batching_enabled: bool = False
    inactivity_threshold: float = 15.0
    max_batch_duration: float = 300.0

    initial_load_batch_size: int = 100
    flush_on_shutdown: bool = True


@dataclass
class RetryConfig:
    """Failed operation retry configuration (seconds)"""
    interval: float = 30.0
    min_age: float = 5.0
    max_age: float = 3600.0
    max_entries: int = 100
    skip_prefixes: list = field(default_factory=lambda: ["activity-export-"])


@dataclass
class DashboardConfig:
    """Dashboard output location (never tracked)"""
    path: str = "activity_dashboard"


@dataclass
class DatabaseConfig:
    """Database configuration"""
    url: str = "sqlite:///./data/vaultwatch.db"
    pool_size: int = 5
    max_overflow: int = 10
    echo: bool = False


@dataclass
class WatchdogConfig:
    """File watchdog configuration"""
    enabled: bool = True
    recursive: bool = True
    queue_size: int = 10000
    extensions: list = field(default_factory=lambda: [".md"])


@dataclass
class Config:
    """Main configuration class"""
    system_name: str = "VaultWatch"
    version: str = "1.0.0"

    paths: PathConfig = field(default_factory=PathConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    watchdog: WatchdogConfig = field(default_factory=WatchdogConfig)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = "./logs/vaultwatch.log"
    log_format: str = "text"  # text, json, or color

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        def serialize(obj):
            if isinstance(obj, Path):
                return str(obj)
            elif isinstance(obj, (datetime, date)):
                return obj.isoformat()
            elif isinstance(obj, dict):
                return {k: serialize(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [serialize(v) for v in obj]
            else:
                return obj

        return serialize(asdict(self))

    def to_json(self, indent: int = 2) -> str:
        """Convert config to JSON string"""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def to_yaml(self) -> str:
        """Convert config to YAML string"""
        return yaml.dump(self.to_dict(), default_flow_style=False)

    def save(self, path: Union[str, Path]):
        """Save config to file"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.suffix.lower() in ['.yaml', '.yml']:
            with open(path, 'w', encoding='utf-8') as f:
                yaml.dump(self.to_dict(), f, default_flow_style=False)
        else:  # default to JSON
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, indent=2, default=str)

        logger.info(f"Configuration saved to {path}")

    def update_from_dict(self, data: Dict[str, Any]):
        """
        Update config from dictionary

        Nested sections are merged key by key; unknown keys are logged and skipped.
        """
        for key, value in (data or {}).items():
            if not hasattr(self, key):
                logger.warning(f"Unknown configuration key: {key}")
                continue

            current = getattr(self, key)
            if is_dataclass(current) and isinstance(value, dict):
                known = {f.name for f in fields(current)}
                for sub_key, sub_value in value.items():
                    if sub_key in known:
                        setattr(current, sub_key, sub_value)
                    else:
                        logger.warning(f"Unknown configuration key: {key}.{sub_key}")
                # Re-run coercions (str -> Path)
                if hasattr(current, '__post_init__'):
                    current.__post_init__()
            else:
                setattr(self, key, value)


def get_default_config_path() -> Path:
    """Get default configuration path based on platform"""
    if sys.platform == "win32":
        import os
        appdata = Path(os.environ.get('LOCALAPPDATA', Path.home()))
        return appdata / "VaultWatch" / "config.yaml"
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "VaultWatch" / "config.yaml"
    else:  # linux
        return Path.home() / ".config" / "vaultwatch" / "config.yaml"


def load_config(path: Union[str, Path] = None) -> Config:
    """
    Load configuration from file or create default
    """
    config_paths = []

    if path:
        config_paths.append(Path(path))

    config_paths.extend([
        Path("config.yaml"),
        Path("config.json"),
        get_default_config_path(),
    ])

    for config_path in config_paths:
        if config_path.exists():
            try:
                logger.info(f"Loading configuration from {config_path}")

                if config_path.suffix.lower() in ['.yaml', '.yml']:
                    with open(config_path, 'r', encoding='utf-8') as f:
                        data = yaml.safe_load(f)
                else:  # JSON
                    with open(config_path, 'r', encoding='utf-8') as f:
                        data = json.load(f)

                config = Config()
                config.update_from_dict(data)

                logger.info("Configuration loaded successfully")
                return config

            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.error(f"Error loading configuration from {config_path}: {e}")

    logger.info("No configuration file found, using default configuration")
    return Config()


def save_config(config: Config, path: Union[str, Path] = None):
    """Save configuration to file"""
    if path is None:
        path = get_default_config_path()

    config.save(path)
