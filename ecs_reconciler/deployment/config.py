from __future__ import annotations

__all__ = [
    "CONFIG_FILE",
    "DeploymentConfig",
    "StabilityConfig",
    "TaskDefaults",
]

from typing import Any

from pydantic import model_validator

from ecs_reconciler.core import DataModel, YamlLoader
from ecs_reconciler.core.exceptions import MissingConfigurationError

from ._converter import RequestConverter
from ._models import (
    NetworkConfiguration,
    ServiceSpec,
    to_cpu_units,
    to_memory_mib,
)

CONFIG_FILE = "ecs.yaml"

REQUIRED_KEYS = ("cluster", "launch_type", "desired_count")


class TaskDefaults(DataModel):
    cpu: int = 256
    memory: int = 512
    requires_compatibilities: list[str] = ["FARGATE"]
    network_mode: str = "awsvpc"

    @model_validator(mode="before")
    @classmethod
    def _normalize_units(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            if data.get("cpu") is not None:
                data["cpu"] = to_cpu_units(data["cpu"])
            if data.get("memory") is not None:
                data["memory"] = to_memory_mib(data["memory"])
        return data


class StabilityConfig(DataModel):
    timeout_seconds: float = 600
    delay_seconds: float = 15


class DeploymentConfig(DataModel):
    """Deployment settings shared by every run.

    ``cluster``, ``launch_type`` and ``desired_count`` are required and
    checked together so a single error names all that are missing.
    """

    region: str | None = None
    cluster: str
    launch_type: str
    desired_count: int
    platform_version: str | None = None
    network_configuration: NetworkConfiguration | None = None
    task_defaults: TaskDefaults = TaskDefaults()
    stability: StabilityConfig = StabilityConfig()
    endpoint_workers: int = 8
    spec_dir: str = ".ecs"

    @model_validator(mode="before")
    @classmethod
    def _check_required(cls, data: Any) -> Any:
        if isinstance(data, dict):
            missing = [k for k in REQUIRED_KEYS if data.get(k) is None]
            if missing:
                raise MissingConfigurationError(missing)
        return data

    @staticmethod
    def load(path: str = CONFIG_FILE) -> DeploymentConfig:
        obj = YamlLoader.load(path=path)
        return DeploymentConfig.from_dict(obj)

    def service_defaults(self) -> dict[str, Any]:
        """Service fields the configuration supplies, in request shape."""
        return RequestConverter().convert_create_service(
            ServiceSpec(
                cluster=self.cluster,
                launch_type=self.launch_type,
                desired_count=self.desired_count,
                network_configuration=self.network_configuration,
                platform_version=self.platform_version,
            )
        )
