from .config_manager import (
    AppConfig,
    ConfigManager,
    get_config,
    init_config,
    ConfigValidationError,
    Environment,
)

__all__ = [
    "AppConfig",
    "ConfigManager",
    "get_config",
    "init_config",
    "ConfigValidationError",
    "Environment",
]
