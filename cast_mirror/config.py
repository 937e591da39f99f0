"""Configuration handling for the cast mirror."""

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

STORE_BACKENDS = ("memory", "sqlalchemy")
MAX_PAGE_SIZE = 100


@dataclass
class RateLimitConfig:
    """Sliding-window limits for calls to the upstream feed API."""

    limit: int = 5
    window_sec: int = 60


@dataclass
class FeedConfig:
    """Upstream feed (Neynar channel feed) configuration."""

    api_key: str = ""
    base_url: str = "https://api.neynar.com/v2/farcaster"
    channel_ids: str = "base"
    page_size: int = 25
    with_recasts: bool = True
    with_replies: bool = False
    should_moderate: bool = False
    timeout_sec: float = 30.0


@dataclass
class StoreConfig:
    """Key-value store configuration."""

    backend: str = "sqlalchemy"
    url: str = "sqlite:///data/casts.db"


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""

    enable_prometheus: bool = True
    prometheus_port: int = 8000


@dataclass
class ApiConfig:
    """HTTP API configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    run_scheduler: bool = False
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


def _merge_section(section: Any, values: Dict[str, Any]) -> None:
    """Copy known keys from a YAML mapping onto a config dataclass."""
    known = {f.name for f in fields(section)}
    for key, value in values.items():
        if key in known:
            setattr(section, key, value)


@dataclass
class Config:
    """Application configuration combining environment variables and YAML config."""

    sync_interval_sec: int = 600
    feed: FeedConfig = field(default_factory=FeedConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    api: ApiConfig = field(default_factory=ApiConfig)

    @classmethod
    def from_files(cls, config_path: str, env_path: Optional[str] = None) -> "Config":
        """
        Load configuration from YAML file and environment variables.

        Environment variables win over YAML for the values they cover, so the API
        key never has to live in a config file.

        Args:
            config_path: Path to YAML configuration file
            env_path: Optional path to .env file (defaults to .env in current directory)

        Returns:
            Config instance with merged configuration
        """
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        config = cls()

        if os.path.exists(config_path):
            with open(config_path, "r", encoding="utf-8") as file:
                yaml_config = yaml.safe_load(file)

            if yaml_config:
                if "sync_interval_sec" in yaml_config:
                    config.sync_interval_sec = int(yaml_config["sync_interval_sec"])

                sections = {
                    "feed": config.feed,
                    "rate_limit": config.rate_limit,
                    "store": config.store,
                    "monitoring": config.monitoring,
                    "api": config.api,
                }
                for name, section in sections.items():
                    if isinstance(yaml_config.get(name), dict):
                        _merge_section(section, yaml_config[name])

        config.feed.api_key = os.getenv("NEYNAR_API_KEY", config.feed.api_key)
        config.feed.base_url = os.getenv("NEYNAR_BASE_URL", config.feed.base_url)
        config.store.backend = os.getenv("CAST_STORE_BACKEND", config.store.backend)
        config.store.url = os.getenv("CAST_STORE_URL", config.store.url)

        if config.store.backend == "sqlalchemy" and config.store.url.startswith("sqlite:///"):
            db_dir = os.path.dirname(config.store.url[len("sqlite:///"):])
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)

        return config

    def validate(self) -> List[str]:
        """
        Validate configuration and return a list of validation errors.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.feed.api_key:
            errors.append("Missing NEYNAR_API_KEY in environment")
        if not 1 <= self.feed.page_size <= MAX_PAGE_SIZE:
            errors.append(f"feed.page_size must be between 1 and {MAX_PAGE_SIZE}")
        if self.feed.timeout_sec <= 0:
            errors.append("feed.timeout_sec must be greater than 0")

        if self.rate_limit.limit <= 0:
            errors.append("rate_limit.limit must be greater than 0")
        if self.rate_limit.window_sec <= 0:
            errors.append("rate_limit.window_sec must be greater than 0")

        if self.store.backend not in STORE_BACKENDS:
            errors.append(f"store.backend must be one of: {', '.join(STORE_BACKENDS)}")
        if self.store.backend == "sqlalchemy" and not self.store.url:
            errors.append("CAST_STORE_URL must be specified for the sqlalchemy backend")

        if self.sync_interval_sec < 60:
            errors.append("sync_interval_sec must be at least 60 seconds")

        return errors
