"""Application settings — Pydantic-based configuration with YAML and env var support.

Configuration is loaded from (in order of precedence):
  1. Environment variables (SEARCHPOLL_ prefix)
  2. YAML config file (if specified)
  3. Default values
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


class TransportSettings(BaseModel):
    """Poll backend connection configuration."""

    base_url: str = Field(default="https://staging.plane.lascade.com/api", description="Poll API base URL")
    timeout: float = Field(default=30.0, gt=0, description="HTTP request timeout in seconds")
    language: str = Field(default="en", description="Language sent with every poll")
    currency: str = Field(default="USD", description="Currency sent with every poll")
    country: str = Field(default="US", description="Country header sent with every poll")


class PollBudget(BaseModel):
    """Retry and poll budgets that guarantee every search terminates.

    Delay schedule:
      - empty result while the cache is incomplete: fixed ``empty_retry_delay``
      - transport failure number ``n``: ``min(backoff_step * n, backoff_cap)``
      - cache-completion checks: fixed ``cache_check_interval``
    """

    max_retries: int = Field(default=10, ge=0, description="Retries allowed per failure mode")
    max_total_polls: int = Field(default=50, ge=1, description="Polls allowed per generation, all strategies")
    empty_retry_delay: float = Field(default=2.0, ge=0, description="Delay before retrying an empty batch")
    backoff_step: float = Field(default=2.0, ge=0, description="Backoff increment per transport failure")
    backoff_cap: float = Field(default=10.0, ge=0, description="Upper bound of the transport backoff")
    cache_check_interval: float = Field(default=3.0, ge=0, description="Cadence of cache-completion checks")

    def failure_delay(self, failures: int) -> float:
        """Backoff delay after the given number of consecutive transport failures."""
        return min(self.backoff_step * failures, self.backoff_cap)


class PollSettings(BaseModel):
    """Polling behavior configuration."""

    initial_page_size: int = Field(default=30, ge=1, description="Limit used by initial polls and cache checks")
    reconciliation_min_limit: int = Field(default=100, ge=1, description="Minimum limit of the reconciliation poll")
    continuous_polling: bool = Field(default=True, description="Run cache checks for unfiltered searches")
    budget: PollBudget = Field(default_factory=PollBudget)


class AdSettings(BaseModel):
    """Side-channel advertisement service configuration."""

    enabled: bool = Field(default=False, description="Whether ads are fetched alongside results")
    base_url: str = Field(default="https://devconnect.hoteldisc.com/api", description="Ad service base URL")
    bearer_token: str = Field(default="", description="Ad service bearer token")
    country_code: str = Field(default="us", description="Country code passed to the ad service")
    label: str = Field(default="flight.dev", description="Session label passed to the ad service")
    impression_base_url: str = Field(
        default="https://www.kayak.com",
        description="Host prepended to relative impression URLs",
    )
    timeout: float = Field(default=30.0, gt=0, description="HTTP request timeout in seconds")


class ObservabilitySettings(BaseModel):
    """Observability configuration."""

    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str = Field(default="json", description="Log format: json, console")

    @field_validator("log_format")
    @classmethod
    def _check_format(cls, v: str) -> str:
        if v not in ("json", "console"):
            raise ValueError(f"Unsupported log format: {v}")
        return v


class Settings(BaseSettings):
    """Root application settings.

    Configuration is loaded from environment variables with the SEARCHPOLL_ prefix.
    Nested settings use double underscores: SEARCHPOLL_POLLING__BUDGET__MAX_RETRIES=5

    Example:
        SEARCHPOLL_TRANSPORT__BASE_URL=https://api.example.com
        SEARCHPOLL_POLLING__INITIAL_PAGE_SIZE=50
        SEARCHPOLL_ADS__ENABLED=true
    """

    model_config = {
        "env_prefix": "SEARCHPOLL_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    app_name: str = Field(default="searchpoll", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    transport: TransportSettings = Field(default_factory=TransportSettings)
    polling: PollSettings = Field(default_factory=PollSettings)
    ads: AdSettings = Field(default_factory=AdSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML configuration file.

        Values from the YAML file are used as defaults; environment variables
        still take precedence.

        Args:
            path: Path to the YAML config file.

        Returns:
            Populated Settings instance.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)
