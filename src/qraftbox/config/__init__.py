"""Configuration loading, schema, and defaults."""

from qraftbox.config.loader import ConfigError, load_config
from qraftbox.config.schema import OutputFormat, QraftboxConfig

__all__ = [
    "ConfigError",
    "OutputFormat",
    "QraftboxConfig",
    "load_config",
]
