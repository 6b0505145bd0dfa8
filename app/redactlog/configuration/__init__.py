"""Configuration module - public API.

Exports:
    LoggingSettings: Settings class (for testing/overrides)
    load_settings: Environment adapter used by the factories

Example:
    ```python
    from redactlog.configuration import load_settings

    settings = load_settings()
    print(settings.LOG_LEVEL)
    ```
"""

from redactlog.configuration.settings import LoggingSettings, load_settings

__all__ = ["LoggingSettings", "load_settings"]
