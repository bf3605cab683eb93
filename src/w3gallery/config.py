"""Configuration management for w3gallery.

Values come from environment variables first, with Streamlit secrets as a
fallback when the app runs inside Streamlit.
"""

import os
from typing import Any

try:
    import streamlit as st

    STREAMLIT_AVAILABLE = True
except ImportError:
    STREAMLIT_AVAILABLE = False

from .logging_config import get_logger

logger = get_logger(__name__)

STORAGE_BACKENDS = ("gcs", "memory")


class Config:
    """Centralized configuration management using environment variables."""

    def __init__(self):
        """Initialize configuration."""
        self._cache = {}

    def get(self, key: str, default: Any = None, cast_type: type = str) -> Any:
        """Get configuration value from environment variables or Streamlit secrets.

        Args:
            key: Configuration key
            default: Default value if not found
            cast_type: Type to cast the value to (str, int, bool, float)

        Returns:
            Configuration value cast to the specified type
        """
        cache_key = f"{key}:{cast_type.__name__}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        value = os.getenv(key)

        if value is None and STREAMLIT_AVAILABLE:
            try:
                value = st.secrets.get(key)
            except Exception:  # nosec B110
                # No secrets file, or not running under Streamlit
                pass

        if value is None:
            value = default

        if value is not None:
            try:
                if cast_type is bool:
                    if isinstance(value, str):
                        value = value.lower() in ("true", "1", "yes", "on")  # type: ignore[assignment]
                    else:
                        value = bool(value)  # type: ignore[assignment]
                elif cast_type is not str:
                    value = cast_type(value)
            except (ValueError, TypeError) as e:
                logger.warning(f"Failed to cast config value '{key}' to {cast_type.__name__}: {e}")
                value = default

        self._cache[cache_key] = value
        return value

    def get_required(self, key: str, cast_type: type = str) -> Any:
        """Get required configuration value.

        Raises:
            ValueError: If the required configuration is not found
        """
        value = self.get(key, cast_type=cast_type)
        if value is None:
            raise ValueError(f"Required configuration '{key}' not found")
        return value

    def is_development(self) -> bool:
        """Check if running in development mode."""
        environment = self.get("ENVIRONMENT", "development").lower()
        return environment in ["development", "dev", "local"]

    def clear_cache(self):
        """Clear configuration cache."""
        self._cache.clear()


_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_env(key: str, default: Any = None, cast_type: type = str) -> Any:
    """Get environment variable with type casting."""
    return get_config().get(key, default, cast_type)


def get_required_env(key: str, cast_type: type = str) -> Any:
    """Get required environment variable.

    Raises:
        ValueError: If the required environment variable is not found
    """
    return get_config().get_required(key, cast_type)


def is_development() -> bool:
    """Check if running in development mode."""
    return get_config().is_development()


def get_gallery_bucket() -> str:
    """Get the bucket holding all gallery objects."""
    return str(get_required_env("GALLERY_BUCKET"))


def get_gallery_project() -> str | None:
    """Get the Google Cloud project used for authorized storage access."""
    return get_env("GALLERY_PROJECT")


def get_storage_backend() -> str:
    """
    Get the storage backend name.

    Development setups without a project fall back to the in-memory backend.
    """
    default = "memory" if is_development() and not get_gallery_project() else "gcs"
    backend = str(get_env("GALLERY_STORAGE_BACKEND", default)).lower()
    if backend not in STORAGE_BACKENDS:
        raise ValueError(f"Unknown storage backend '{backend}'. Expected one of: {', '.join(STORAGE_BACKENDS)}")
    return backend


def get_public_endpoint() -> str:
    """Get the public base URL under which bucket objects are readable."""
    endpoint = get_env("GALLERY_PUBLIC_ENDPOINT")
    if endpoint:
        return str(endpoint).rstrip("/")
    return f"https://storage.googleapis.com/{get_gallery_bucket()}"


def get_fragment_base_url() -> str | None:
    """Get the base URL page fragments are fetched from (None means packaged fragments)."""
    base_url = get_env("GALLERY_FRAGMENT_BASE_URL")
    return str(base_url).rstrip("/") if base_url else None


def get_public_read() -> bool:
    """Whether uploaded objects are marked world-readable."""
    return bool(get_env("GALLERY_PUBLIC_READ", True, bool))
