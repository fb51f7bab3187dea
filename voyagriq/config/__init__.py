from .loader import DEFAULT_CONFIG_PATH, ConfigError, load_settings, settings_from_dict

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "load_settings",
    "settings_from_dict",
]
