"""Configuration for the HTTP client.

This module provides the ClientConfig class, an immutable value describing
how a Client builds its requests and which policies it applies to them.
There is no global configuration: every Client receives its own.

Example:
    Basic usage with defaults:

        >>> config = ClientConfig(base_url="https://api.example.com")
        >>> config.timeout_seconds
        30.0

    Enabling policies:

        >>> config = ClientConfig(
        ...     base_url="https://api.example.com",
        ...     cache_ttl_seconds=5,
        ...     max_retries=2,
        ...     retry_delay_seconds=0.5,
        ...     backoff_factor=2,
        ... )

    Loading from environment:

        >>> import os
        >>> os.environ['HTTP_PIPELINE_BASE_URL'] = 'https://api.example.com'
        >>> os.environ['HTTP_PIPELINE_MAX_RETRIES'] = '3'
        >>> config = ClientConfig.from_env()

    Loading from dictionary:

        >>> config = ClientConfig.from_dict({'base_url': 'https://api.example.com'})
"""

import os
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from http_pipeline.models import CacheStrategy


class ClientConfig(BaseModel):
    """Configuration for a Client.

    Attributes:
        base_url: Prefix for relative endpoints. Absolute ``http(s)://``
            endpoints ignore it.
        default_headers: Headers sent with every request; per-call headers
            override them case-insensitively.
        timeout_seconds: Deadline for one attempt, up to the response
            headers. Must be positive. Default is 30 seconds.
        cache_strategy: How cache keys are derived: "full_url" or
            "url_without_query". Default is "full_url".
        cache_ttl_seconds: Lifetime of cached results. 0 disables caching.
        debounce_seconds: Quiet period before the last of a burst of calls
            to one URL runs. 0 disables debouncing.
        throttle_seconds: Cooldown between calls to one URL. 0 disables
            throttling.
        max_retries: Retries after the first attempt. 0 disables retrying.
        retry_delay_seconds: Delay before the first retry. Default is 1 second.
        backoff_factor: Multiplier applied to the delay for every later
            retry. Must be at least 1. Default is 1 (constant delay).
        error_if: Predicate marking results as HTTP errors. Defaults to
            rejecting non-2xx statuses.
        retry_if: Predicate ``(error, attempt_number)`` deciding retries.
            Defaults to network errors and 5xx statuses.
        can_cache: Predicate vetoing storage of a result. Defaults to
            caching successful results only.

    Note:
        This class is immutable (frozen=True). Create a new instance, or use
        ``model_copy(update=...)``, for different settings.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    base_url: str = Field(default="", description="Prefix for relative endpoints")
    default_headers: dict[str, str] = Field(
        default_factory=dict,
        description="Headers sent with every request",
    )
    timeout_seconds: float = Field(default=30.0, description="Per-attempt deadline (> 0)")
    cache_strategy: CacheStrategy = Field(
        default=CacheStrategy.FULL_URL,
        description="Cache key strategy",
    )
    cache_ttl_seconds: float = Field(default=0.0, description="Cache TTL (0 = disabled)")
    debounce_seconds: float = Field(default=0.0, description="Debounce window (0 = disabled)")
    throttle_seconds: float = Field(default=0.0, description="Throttle cooldown (0 = disabled)")
    max_retries: int = Field(default=0, description="Retries after the first attempt")
    retry_delay_seconds: float = Field(default=1.0, description="Delay before the first retry")
    backoff_factor: float = Field(default=1.0, description="Delay multiplier per retry (>= 1)")
    error_if: Callable[..., bool] | None = Field(default=None, exclude=True)
    retry_if: Callable[..., bool] | None = Field(default=None, exclude=True)
    can_cache: Callable[..., bool] | None = Field(default=None, exclude=True)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate the base URL is empty or an absolute http(s) URL.

        Raises:
            ValueError: If the URL has another scheme or no scheme.

        Example:
            >>> ClientConfig(base_url="https://api.example.com/v1").base_url
            'https://api.example.com/v1'
        """
        v = v.strip()
        if v and not v.lower().startswith(("http://", "https://")):
            raise ValueError(f"base_url must start with http:// or https://, got {v!r}")
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout_seconds(cls, v: float) -> float:
        """Validate the timeout is positive."""
        if v <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {v}")
        return v

    @field_validator(
        "cache_ttl_seconds",
        "debounce_seconds",
        "throttle_seconds",
        "retry_delay_seconds",
    )
    @classmethod
    def validate_non_negative_duration(cls, v: float) -> float:
        """Validate durations are non-negative; zero disables the policy.

        Example:
            >>> ClientConfig(cache_ttl_seconds=0).cache_ttl_seconds
            0.0
        """
        if v < 0:
            raise ValueError(f"duration must be >= 0, got {v}")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        """Validate the retry count is non-negative."""
        if v < 0:
            raise ValueError(f"max_retries must be >= 0, got {v}")
        return v

    @field_validator("backoff_factor")
    @classmethod
    def validate_backoff_factor(cls, v: float) -> float:
        """Validate the backoff factor does not shrink delays."""
        if v < 1:
            raise ValueError(f"backoff_factor must be >= 1, got {v}")
        return v

    @field_validator("default_headers", mode="before")
    @classmethod
    def validate_default_headers(cls, v: Any) -> dict[str, str]:
        """Accept a mapping or a comma-separated ``name:value`` string.

        Example:
            >>> ClientConfig(default_headers="Accept: application/json").default_headers
            {'Accept': 'application/json'}
        """
        if isinstance(v, str):
            # Handle comma-separated string (from environment variables)
            headers: dict[str, str] = {}
            for item in v.split(","):
                if not item.strip():
                    continue
                name, sep, value = item.partition(":")
                if not sep or not name.strip():
                    raise ValueError(f"Invalid header entry {item!r}; expected 'name: value'")
                headers[name.strip()] = value.strip()
            return headers
        return v

    @classmethod
    def from_env(cls, prefix: str = "HTTP_PIPELINE_") -> "ClientConfig":
        """Create configuration from environment variables.

        Variable names are upper-case field names with the prefix. The
        predicate fields cannot be set from the environment.

        Args:
            prefix: Prefix for environment variable names.

        Example:
            >>> import os
            >>> os.environ['HTTP_PIPELINE_CACHE_TTL_SECONDS'] = '5'
            >>> os.environ['HTTP_PIPELINE_CACHE_STRATEGY'] = 'url_without_query'
            >>> config = ClientConfig.from_env()
            >>> config.cache_ttl_seconds
            5.0
        """
        config_dict: dict[str, Any] = {}

        # Map of field names to their types for proper conversion
        field_types = {
            "base_url": str,
            "default_headers": str,
            "timeout_seconds": float,
            "cache_strategy": str,
            "cache_ttl_seconds": float,
            "debounce_seconds": float,
            "throttle_seconds": float,
            "max_retries": int,
            "retry_delay_seconds": float,
            "backoff_factor": float,
        }

        for field_name, field_type in field_types.items():
            env_var = f"{prefix}{field_name.upper()}"
            env_value = os.environ.get(env_var)

            if env_value is not None:
                if field_type is int:
                    config_dict[field_name] = int(env_value)
                elif field_type is float:
                    config_dict[field_name] = float(env_value)
                else:
                    config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "ClientConfig":
        """Create configuration from a dictionary.

        Raises:
            ValidationError: If the dictionary contains invalid values.
        """
        return cls(**config_dict)
