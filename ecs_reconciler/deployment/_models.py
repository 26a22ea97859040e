import re
from typing import Any, Literal

from pydantic import field_validator

from ecs_reconciler.core import DataModel, FrozenDataModel

_UNIT_PATTERN = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*([a-zA-Z]*)\s*$")


def to_cpu_units(value: int | float | str | None) -> int | None:
    """Normalize a CPU value to integer CPU units.

    Accepts ``256``, ``"256"`` and ``"0.25 vCPU"`` (1 vCPU = 1024 units).
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = _UNIT_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid cpu value: {value!r}")
    number, unit = float(match.group(1)), match.group(2).lower()
    if unit in ("", "units"):
        return int(number)
    if unit == "vcpu":
        return int(number * 1024)
    raise ValueError(f"Invalid cpu unit: {value!r}")


def to_memory_mib(value: int | float | str | None) -> int | None:
    """Normalize a memory value to integer MiB.

    Accepts ``512``, ``"512"``, ``"512 MiB"`` and ``"2 GB"``.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = _UNIT_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid memory value: {value!r}")
    number, unit = float(match.group(1)), match.group(2).lower()
    if unit in ("", "mb", "mib"):
        return int(number)
    if unit in ("gb", "gib"):
        return int(number * 1024)
    raise ValueError(f"Invalid memory unit: {value!r}")


class PortMapping(DataModel):
    """Port mapping of a container."""

    container_port: int
    host_port: int | None = None
    protocol: str | None = None
    config: dict[str, Any] | None = None


class HealthCheck(DataModel):
    """Container health check."""

    command: list[str]
    interval: int | None = None
    timeout: int | None = None
    retries: int | None = None
    start_period: int | None = None


class ContainerDefinition(DataModel):
    """Container definition within a task definition."""

    name: str
    image: str | None = None
    port_mappings: list[PortMapping] = []
    cpu: int | None = None
    memory: int | None = None
    health_check: HealthCheck | None = None

    # Platform fields not modeled above, in request shape
    config: dict[str, Any] | None = None

    @field_validator("cpu", mode="before")
    @classmethod
    def _normalize_cpu(cls, v):
        return to_cpu_units(v)

    @field_validator("memory", mode="before")
    @classmethod
    def _normalize_memory(cls, v):
        return to_memory_mib(v)


class TaskDefinitionSpec(DataModel):
    """Task definition. ``family`` is always set once merged."""

    family: str | None = None
    container_definitions: list[ContainerDefinition] = []
    cpu: int | None = None
    memory: int | None = None
    network_mode: str | None = None
    requires_compatibilities: list[str] = []
    task_role_arn: str | None = None
    execution_role_arn: str | None = None

    # Platform fields not modeled above, in request shape
    config: dict[str, Any] | None = None

    @field_validator("cpu", mode="before")
    @classmethod
    def _normalize_cpu(cls, v):
        return to_cpu_units(v)

    @field_validator("memory", mode="before")
    @classmethod
    def _normalize_memory(cls, v):
        return to_memory_mib(v)


class TaskDefinitionRevision(DataModel):
    """A registered, immutable task definition revision."""

    family: str
    revision: int
    arn: str | None = None
    task_definition: TaskDefinitionSpec | None = None
    native: dict[str, Any] | None = None

    @property
    def reference(self) -> str:
        return f"{self.family}:{self.revision}"


class AwsVpcConfiguration(DataModel):
    subnets: list[str] = []
    security_groups: list[str] | None = None
    assign_public_ip: str | None = None


class NetworkConfiguration(DataModel):
    awsvpc_configuration: AwsVpcConfiguration | None = None


class DeploymentConfiguration(DataModel):
    maximum_percent: int | None = None
    minimum_healthy_percent: int | None = None

    # Platform fields not modeled above, in request shape
    config: dict[str, Any] | None = None


class ServiceSpec(DataModel):
    """Desired state of a service.

    ``name`` and ``description`` are caller metadata and are never sent
    to the platform.
    """

    service_name: str | None = None
    cluster: str | None = None
    launch_type: str | None = None
    desired_count: int | None = None
    network_configuration: NetworkConfiguration | None = None
    deployment_configuration: DeploymentConfiguration | None = None
    platform_version: str | None = None
    health_check_grace_period_seconds: int | None = None
    task_definition: str | None = None

    name: str | None = None
    description: str | None = None

    # Platform fields not modeled above, in request shape
    config: dict[str, Any] | None = None


class RoleAssumption(DataModel):
    """Role to assume before talking to the platform."""

    role_arn: str
    session_name: str = "ecs-reconciler"
    external_id: str | None = None
    duration_seconds: int | None = None


class DeploymentRegistration(DataModel):
    """Configuration of one deployment invocation."""

    region: str | None = None
    role: RoleAssumption | None = None
    service: ServiceSpec | None = None
    task_definition: TaskDefinitionSpec | None = None
    task_definition_ref: str | None = None
    external_urls: list[str] | None = None


class RepoRef(DataModel):
    owner: str
    name: str


class Artifact(DataModel):
    """Build output to deploy."""

    image_name: str
    """Full image reference, ``<registry>/<author>/<image>:<tag>``."""

    version: str | None = None
    repo: RepoRef

    @property
    def image_string(self) -> str:
        """Image name with registry, author and tag stripped."""
        name = self.image_name.rstrip("/").split("/")[-1]
        return name.split("@")[0].split(":")[0]


class ExposedPort(DataModel):
    port: int
    protocol: str | None = None


class RepositoryOverrides(DataModel):
    """Request-shaped override documents read from the repository."""

    task_definition: dict[str, Any] | None = None
    service: dict[str, Any] | None = None


class ReconcileOutcome(DataModel):
    action: Literal["created", "updated"]
    service: dict[str, Any]


class ExternalUrl(FrozenDataModel):
    url: str


class DeploymentResult(FrozenDataModel):
    """Outcome of one deployment."""

    code: int = 0
    message: str | None = None
    action: Literal["created", "updated"] | None = None
    external_urls: list[ExternalUrl] = []
    error: str | None = None
    registration: DeploymentRegistration | None = None

    def to_goal_result(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": self.code}
        if self.message:
            result["message"] = self.message
        if self.external_urls:
            result["externalUrls"] = [
                {"url": u.url} for u in self.external_urls
            ]
        return result
