"""Environment registry loading.

The registry is the static, ordered list of environments envdeploy manages,
read from a YAML file (environments.yaml by default). When no file exists
the built-in registry mirrors the classic two-environment kind setup:
``dev`` on ``nur-dev`` and ``prd`` on ``nur-prd``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import ValidationError

from envdeploy.deployment.models import Environment
from envdeploy.errors import ConfigurationError

from .config_utils import substitute_env_vars
from .models import RegistryConfig, RolloutSettings

REGISTRY_ENV_VAR = "ENVDEPLOY_REGISTRY"
DEFAULT_REGISTRY_PATH = Path("environments.yaml")
ALL_ENVIRONMENTS = "all"

DEFAULT_REGISTRY: dict[str, Any] = {
    "app": "echo-server",
    "chart": ".",
    "environments": [
        {"name": "dev", "cluster": "nur-dev", "namespace": "dev", "values": "values-dev.yaml"},
        {"name": "prd", "cluster": "nur-prd", "namespace": "prd", "values": "values-prd.yaml"},
    ],
}


@dataclass(frozen=True)
class Registry:
    """Loaded, validated environment registry.

    Attributes:
        app_name: Application name (release names are "<app>-<env>")
        chart_path: Absolute path of the Helm chart
        environments: Environments in declaration order
        settings: Execution settings
        source: File the registry was read from, None for the built-in one
    """

    app_name: str
    chart_path: Path
    environments: tuple[Environment, ...]
    settings: RolloutSettings
    source: Path | None = None

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(env.name for env in self.environments)

    def get(self, name: str) -> Environment:
        for env in self.environments:
            if env.name == name:
                return env
        raise ConfigurationError(
            f"Unknown environment '{name}'",
            details=f"Known environments: {', '.join(self.names)}",
        )

    def select(self, target: str = ALL_ENVIRONMENTS) -> tuple[Environment, ...]:
        """Resolve a CLI target ("all" or an environment name)."""
        if target == ALL_ENVIRONMENTS:
            return self.environments
        return (self.get(target),)


def resolve_registry_path(path: Path | None = None) -> Path:
    """Pick the registry file: explicit path, then $ENVDEPLOY_REGISTRY, then default."""
    if path is not None:
        return path
    env_path = os.getenv(REGISTRY_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_REGISTRY_PATH


def load_registry(path: Path | None = None, *, base_dir: Path | None = None) -> Registry:
    """Load the environment registry.

    Environment variable placeholders (${VAR}, ${VAR:-default},
    ${VAR:?message}) are substituted before the YAML is parsed.

    Args:
        path: Registry file. Falls back to $ENVDEPLOY_REGISTRY, then
              ./environments.yaml. A missing default file selects the
              built-in registry; a missing explicit file is an error.
        base_dir: Directory the built-in registry's relative paths resolve
                  against (defaults to the current directory)

    Returns:
        The validated registry

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid
    """
    explicit = path is not None or bool(os.getenv(REGISTRY_ENV_VAR))
    registry_path = resolve_registry_path(path)

    if not registry_path.exists():
        if explicit:
            raise ConfigurationError(f"Registry file not found: {registry_path}")
        logger.info(f"{registry_path} not found, using the built-in registry")
        return _build_registry(DEFAULT_REGISTRY, base_dir or Path.cwd(), source=None)

    logger.info(f"Loading environment registry from {registry_path}")
    try:
        content = substitute_env_vars(registry_path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise ConfigurationError(f"Invalid registry {registry_path}", details=str(e)) from e

    try:
        loaded = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Error parsing YAML in {registry_path}", details=str(e)
        ) from e
    if not isinstance(loaded, dict):
        raise ConfigurationError(
            f"Invalid registry {registry_path}",
            details="Expected a mapping with an 'environments' list",
        )

    return _build_registry(loaded, registry_path.resolve().parent, source=registry_path)


def _build_registry(data: dict[str, Any], base_dir: Path, *, source: Path | None) -> Registry:
    try:
        config = RegistryConfig(**data)
    except ValidationError as e:
        where = str(source) if source else "built-in registry"
        raise ConfigurationError(f"Invalid configuration in {where}", details=str(e)) from e

    environments = tuple(
        Environment(
            name=env.name,
            cluster_name=env.cluster,
            namespace=env.namespace,
            values_ref=str(_resolve(base_dir, env.values)),
            app_name=config.app,
        )
        for env in config.environments
    )
    logger.debug(f"Registry environments: {[env.name for env in environments]}")

    return Registry(
        app_name=config.app,
        chart_path=_resolve(base_dir, config.chart),
        environments=environments,
        settings=config.settings,
        source=source,
    )


def _resolve(base_dir: Path, value: str) -> Path:
    candidate = Path(value).expanduser()
    return candidate if candidate.is_absolute() else (base_dir / candidate).resolve()
