"""Configuration handling for the Reddit fetch client."""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_USER_AGENT = "reddit_fetcher/0.1"


@dataclass
class RateLimitConfig:
    """Rate limiting configuration."""

    max_requests_per_minute: int = 100
    min_remaining_calls: int = 5
    sleep_buffer_sec: int = 2


@dataclass
class RetryConfig:
    """Transport retry configuration."""

    max_retries: int = 5
    initial_backoff: float = 1.0
    max_backoff: float = 32.0
    backoff_factor: float = 2.0
    failure_threshold: int = 5  # consecutive 5xx responses before giving up


@dataclass
class FetchConfig:
    """Multi-fetch and parsing configuration."""

    max_concurrency: int = 10
    max_comment_depth: int = 50
    fail_fast: bool = False
    timeout_sec: Optional[float] = None


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""

    enable_prometheus: bool = False
    prometheus_port: int = 8000


_SECTIONS = {
    "rate_limit": RateLimitConfig,
    "retry": RetryConfig,
    "fetch": FetchConfig,
    "monitoring": MonitoringConfig,
}


@dataclass
class Config:
    """Client configuration combining environment variables and YAML config."""

    # Reddit API credentials from environment
    client_id: str = ""
    client_secret: str = ""
    username: str = ""
    password: str = ""
    user_agent: str = DEFAULT_USER_AGENT
    access_token: str = ""

    # YAML config values with defaults
    base_url: str = "https://oauth.reddit.com"
    request_timeout_sec: float = 30.0
    logging_config_path: Optional[str] = None
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    @classmethod
    def from_files(cls, config_path: str, env_path: Optional[str] = None) -> "Config":
        """
        Load configuration from YAML file and environment variables.

        Args:
            config_path: Path to YAML configuration file
            env_path: Optional path to .env file (defaults to .env in current directory)

        Returns:
            Config instance with merged configuration
        """
        # Load environment variables
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        config = cls()
        config.client_id = os.getenv("REDDIT_CLIENT_ID", "")
        config.client_secret = os.getenv("REDDIT_CLIENT_SECRET", "")
        config.username = os.getenv("REDDIT_USERNAME", "")
        config.password = os.getenv("REDDIT_PASSWORD", "")
        config.user_agent = os.getenv("REDDIT_USER_AGENT", DEFAULT_USER_AGENT)
        config.access_token = os.getenv("REDDIT_ACCESS_TOKEN", "")

        # Load and merge YAML config
        if os.path.exists(config_path):
            with open(config_path, "r", encoding="utf-8") as file:
                yaml_config = yaml.safe_load(file)

            if yaml_config:
                config.apply(yaml_config)

        return config

    def apply(self, values: Dict[str, Any]) -> None:
        """
        Merge a mapping shaped like the YAML file into this config.

        Unknown keys are ignored; nested sections are merged key by key onto
        their defaults.
        """
        for key, value in values.items():
            if key in _SECTIONS:
                if isinstance(value, dict):
                    section = _SECTIONS[key]()
                    for name, item in value.items():
                        if hasattr(section, name):
                            setattr(section, name, item)
                    setattr(self, key, section)
            elif hasattr(self, key):
                setattr(self, key, value)

    def validate(self, require_token: bool = True) -> List[str]:
        """
        Validate configuration and return a list of validation errors.

        Args:
            require_token: Whether REDDIT_ACCESS_TOKEN must be set (false when
                the caller supplies its own token provider)

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if require_token and not self.access_token:
            errors.append("Missing REDDIT_ACCESS_TOKEN in environment")
        if not self.user_agent:
            errors.append("REDDIT_USER_AGENT must not be empty")
        if not self.base_url.startswith(("http://", "https://")):
            errors.append("base_url must be an http(s) URL")
        if self.request_timeout_sec <= 0:
            errors.append("request_timeout_sec must be greater than 0")

        if self.rate_limit.max_requests_per_minute <= 0:
            errors.append("rate_limit.max_requests_per_minute must be greater than 0")
        if self.rate_limit.min_remaining_calls < 0:
            errors.append("rate_limit.min_remaining_calls cannot be negative")
        if self.rate_limit.sleep_buffer_sec < 0:
            errors.append("rate_limit.sleep_buffer_sec cannot be negative")

        if self.retry.max_retries < 0:
            errors.append("retry.max_retries cannot be negative")
        if self.retry.initial_backoff <= 0 or self.retry.max_backoff < self.retry.initial_backoff:
            errors.append("retry backoff must satisfy 0 < initial_backoff <= max_backoff")
        if self.retry.backoff_factor < 1:
            errors.append("retry.backoff_factor must be at least 1")
        if self.retry.failure_threshold <= 0:
            errors.append("retry.failure_threshold must be greater than 0")

        if self.fetch.max_concurrency < 1:
            errors.append("fetch.max_concurrency must be at least 1")
        if self.fetch.max_comment_depth < 0:
            errors.append("fetch.max_comment_depth cannot be negative")
        if self.fetch.timeout_sec is not None and self.fetch.timeout_sec <= 0:
            errors.append("fetch.timeout_sec must be greater than 0 when set")

        if not 0 < self.monitoring.prometheus_port < 65536:
            errors.append("monitoring.prometheus_port must be a valid TCP port")

        return errors
