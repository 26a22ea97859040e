from __future__ import annotations

from ecs_reconciler.core import get_logger
from ecs_reconciler.core.exceptions import (
    AmbiguousPortError,
    BadRequestError,
    MissingBuildContextError,
)

from ._converter import RequestConverter, ResultConverter
from ._merge import deep_merge
from ._models import (
    Artifact,
    ContainerDefinition,
    ExposedPort,
    HealthCheck,
    PortMapping,
    RepositoryOverrides,
    ServiceSpec,
    TaskDefinitionSpec,
)
from ._project import Project, load_overrides, read_exposed_ports
from .config import DeploymentConfig

logger = get_logger(__name__)

HEALTH_CHECK_START_PERIOD = 30


class SpecMerger:
    """Builds the desired task definition and service of a deployment.

    Sources, lowest precedence first: the skeleton derived from the
    artifact and configuration, the caller's partial specs, the
    repository's override files.
    """

    def __init__(self, config: DeploymentConfig):
        self.config = config
        self._request_converter = RequestConverter()
        self._result_converter = ResultConverter()

    def merge_project(
        self,
        artifact: Artifact,
        project: Project,
        task_definition: TaskDefinitionSpec | None = None,
        service: ServiceSpec | None = None,
    ) -> tuple[TaskDefinitionSpec, ServiceSpec]:
        return self.merge(
            artifact=artifact,
            task_definition=task_definition,
            service=service,
            overrides=load_overrides(project, self.config.spec_dir),
            exposed_ports=read_exposed_ports(project),
        )

    def merge(
        self,
        artifact: Artifact,
        task_definition: TaskDefinitionSpec | None = None,
        service: ServiceSpec | None = None,
        overrides: RepositoryOverrides | None = None,
        exposed_ports: list[ExposedPort] | None = None,
    ) -> tuple[TaskDefinitionSpec, ServiceSpec]:
        overrides = overrides or RepositoryOverrides()
        merged_task_definition = self._merge_task_definition(
            artifact, task_definition, overrides, exposed_ports
        )
        merged_service = self._merge_service(artifact, service, overrides)
        return merged_task_definition, merged_service

    def _merge_task_definition(
        self,
        artifact: Artifact,
        task_definition: TaskDefinitionSpec | None,
        overrides: RepositoryOverrides,
        exposed_ports: list[ExposedPort] | None,
    ) -> TaskDefinitionSpec:
        supplied = (
            task_definition is not None
            or overrides.task_definition is not None
        )
        if exposed_ports is None and not supplied:
            raise MissingBuildContextError(
                "No Dockerfile or task definition found for "
                f"{artifact.repo.owner}/{artifact.repo.name}."
            )
        ports = exposed_ports or []
        if len(ports) != 1 and not supplied:
            raise AmbiguousPortError(
                "Unable to determine the container port: the Dockerfile "
                f"exposes {len(ports)} ports and no task definition "
                "was supplied."
            )

        skeleton = self._request_converter.convert_task_definition(
            self._skeleton(artifact, ports[0] if ports else None)
        )
        merged = deep_merge(
            skeleton,
            self._request_converter.convert_task_definition(task_definition)
            if task_definition
            else None,
        )
        merged = deep_merge(merged, overrides.task_definition)
        try:
            result = self._result_converter.convert_task_definition(merged)
        except ValueError as e:
            raise BadRequestError(f"Invalid task definition: {e}") from e

        defaults = self.config.task_defaults
        for container in result.container_definitions:
            if container.name == artifact.image_string:
                container.image = artifact.image_name
            if container.cpu is None:
                container.cpu = defaults.cpu
            if container.memory is None:
                container.memory = defaults.memory
        logger.debug("Merged task definition: %s", merged)
        return result

    def _skeleton(
        self, artifact: Artifact, port: ExposedPort | None
    ) -> TaskDefinitionSpec:
        defaults = self.config.task_defaults
        url = "http://localhost"
        port_mappings: list[PortMapping] = []
        if port is not None:
            url = f"{url}:{port.port}"
            port_mappings.append(
                PortMapping(
                    container_port=port.port,
                    host_port=port.port,
                    protocol=port.protocol,
                )
            )
        return TaskDefinitionSpec(
            family=artifact.image_string,
            cpu=defaults.cpu,
            memory=defaults.memory,
            network_mode=defaults.network_mode,
            requires_compatibilities=list(defaults.requires_compatibilities),
            container_definitions=[
                ContainerDefinition(
                    name=artifact.image_string,
                    image=artifact.image_name,
                    port_mappings=port_mappings,
                    cpu=defaults.cpu,
                    memory=defaults.memory,
                    health_check=HealthCheck(
                        command=[
                            "CMD-SHELL",
                            f"wget -O /dev/null {url} || exit 1",
                        ],
                        start_period=HEALTH_CHECK_START_PERIOD,
                    ),
                )
            ],
        )

    def _merge_service(
        self,
        artifact: Artifact,
        service: ServiceSpec | None,
        overrides: RepositoryOverrides,
    ) -> ServiceSpec:
        merged = deep_merge(
            self.config.service_defaults(),
            self._request_converter.convert_create_service(service)
            if service
            else None,
        )
        merged = deep_merge(merged, overrides.service)
        try:
            result = self._result_converter.convert_service(merged)
        except ValueError as e:
            raise BadRequestError(f"Invalid service: {e}") from e
        if service is not None:
            result.name = result.name or service.name
            result.description = result.description or service.description
        if not result.service_name:
            result.service_name = artifact.repo.name.lower()
        return result
