"""Environment registry configuration."""

from .config_utils import substitute_env_vars
from .models import EnvironmentConfig, RegistryConfig, RolloutSettings
from .registry import (
    ALL_ENVIRONMENTS,
    DEFAULT_REGISTRY_PATH,
    REGISTRY_ENV_VAR,
    Registry,
    load_registry,
    resolve_registry_path,
)

__all__ = [
    "ALL_ENVIRONMENTS",
    "DEFAULT_REGISTRY_PATH",
    "REGISTRY_ENV_VAR",
    "EnvironmentConfig",
    "Registry",
    "RegistryConfig",
    "RolloutSettings",
    "load_registry",
    "resolve_registry_path",
    "substitute_env_vars",
]
