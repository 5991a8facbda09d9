"""Configuration loading and validation."""

from .models import (
    AppConfig,
    DatabaseConfig,
    LoggingConfig,
    LoginSelectors,
    PatientSelectors,
    PortalConfig,
    PortalSelectors,
    RetryPolicyConfig,
    SearchSelectors,
)
from .loader import (
    ConfigError,
    Credentials,
    load_app_config,
    load_credentials,
    start_position_from_env,
)

__all__ = [
    # Config models
    "AppConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "LoginSelectors",
    "PatientSelectors",
    "PortalConfig",
    "PortalSelectors",
    "RetryPolicyConfig",
    "SearchSelectors",
    # Loaders
    "ConfigError",
    "Credentials",
    "load_app_config",
    "load_credentials",
    "start_position_from_env",
]
