"""Pydantic models for the environment registry file."""

from __future__ import annotations

import re

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

# DNS-1123 label: namespaces, release names and kind clusters all need it
_DNS_LABEL = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
# helm accepts Go durations such as 300s, 5m, 1h30m
_DURATION = re.compile(r"^(\d+(\.\d+)?(ms|s|m|h))+$")


def _check_dns_label(value: str, what: str) -> str:
    if len(value) > 63 or not _DNS_LABEL.match(value):
        raise ValueError(
            f"{what} '{value}' must be a lowercase DNS label "
            "(letters, digits and '-', at most 63 characters)"
        )
    return value


class EnvironmentConfig(BaseModel):
    """One entry of the `environments:` list."""

    model_config = ConfigDict(extra="forbid")

    name: str
    cluster: str
    namespace: str
    values: str

    @field_validator("name", "cluster", "namespace")
    @classmethod
    def _dns_label(cls, value: str, info: ValidationInfo) -> str:
        return _check_dns_label(value, info.field_name)


class RolloutSettings(BaseModel):
    """Execution settings shared by every environment."""

    model_config = ConfigDict(extra="forbid")

    helm_timeout: str = "5m"
    wait: bool = True
    parallel: bool = False
    max_workers: int = Field(default=2, ge=1)
    isolated_contexts: bool = False
    deadline_seconds: float | None = Field(default=None, gt=0)

    @field_validator("helm_timeout")
    @classmethod
    def _valid_duration(cls, value: str) -> str:
        if not _DURATION.match(value):
            raise ValueError(f"helm_timeout '{value}' is not a duration like 300s or 5m")
        return value

    @model_validator(mode="after")
    def _parallel_needs_isolation(self) -> RolloutSettings:
        if self.parallel and not self.isolated_contexts:
            raise ValueError(
                "parallel: true requires isolated_contexts: true "
                "(environments would race on the shared kubeconfig context)"
            )
        return self

    @property
    def effective_workers(self) -> int:
        return self.max_workers if self.parallel else 1


class RegistryConfig(BaseModel):
    """Top level of environments.yaml."""

    model_config = ConfigDict(extra="forbid")

    app: str = "echo-server"
    chart: str = "."
    environments: list[EnvironmentConfig] = Field(min_length=1)
    settings: RolloutSettings = Field(default_factory=RolloutSettings)

    @field_validator("app")
    @classmethod
    def _app_label(cls, value: str) -> str:
        return _check_dns_label(value, "app")

    @model_validator(mode="after")
    def _unique_names(self) -> RegistryConfig:
        names = [env.name for env in self.environments]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate environment names: {', '.join(duplicates)}")
        return self
