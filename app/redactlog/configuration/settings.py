"""Logging configuration settings."""

from typing import Optional

from pydantic import Field

from redactlog.configuration.base import EnvironmentSettings


class LoggingSettings(EnvironmentSettings):
    """Runtime configuration consumed by the logger factories.

    Environment Variables:
        LOG_LEVEL: Default minimum severity (debug, info, warning, error,
            critical; bunyan names trace, warn and fatal are accepted too)
        GAE_SERVICE: App Engine service name, set by the App Engine runtime
        K_SERVICE: Cloud Functions / Cloud Run service name, set by the runtime

    Example:
        ```python
        from redactlog.configuration import load_settings

        settings = load_settings()
        if settings.is_managed_host:
            # Structured JSON output for the Cloud Logging agent
            ...
        ```
    """

    LOG_LEVEL: str = Field(default="info", alias="LOG_LEVEL")
    GAE_SERVICE: Optional[str] = Field(default=None, alias="GAE_SERVICE")
    K_SERVICE: Optional[str] = Field(default=None, alias="K_SERVICE")

    @property
    def google_service_name(self) -> Optional[str]:
        """Name of the managed Google service this process runs as.

        Returns:
            GAE_SERVICE when running on App Engine, K_SERVICE when running
            as a Cloud Function or Cloud Run service, None otherwise.
        """
        return self.GAE_SERVICE or self.K_SERVICE or None

    @property
    def cloud_function_name(self) -> Optional[str]:
        """Function (or Cloud Run service) name, None outside those hosts."""
        return self.K_SERVICE or None

    @property
    def is_managed_host(self) -> bool:
        return self.google_service_name is not None


def load_settings(**overrides) -> LoggingSettings:
    """Read logging settings from the environment.

    This is the only place redactlog looks at environment variables; the
    factories accept an explicit settings object and fall back to this.

    Args:
        **overrides: Values that take precedence over the environment.

    Returns:
        A fresh LoggingSettings instance.
    """
    return LoggingSettings(**overrides)
