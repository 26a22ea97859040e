"""
Conversion between the snake_case models and the platform's request and
response shapes. Task-level cpu/memory become strings only here.
"""

from __future__ import annotations

__all__ = ["RequestConverter", "ResultConverter"]

import copy
from typing import Any

from ._models import (
    AwsVpcConfiguration,
    ContainerDefinition,
    DeploymentConfiguration,
    HealthCheck,
    NetworkConfiguration,
    PortMapping,
    ServiceSpec,
    TaskDefinitionRevision,
    TaskDefinitionSpec,
)

# Fields the platform adds to a registered revision. They are not valid
# in a register request.
READ_ONLY_TASK_FIELDS = (
    "taskDefinitionArn",
    "revision",
    "status",
    "requiresAttributes",
    "compatibilities",
    "registeredAt",
    "registeredBy",
    "deregisteredAt",
)

# Caller metadata that the platform rejects.
SERVICE_METADATA_FIELDS = ("name", "description")


def _set(target: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        target[key] = value


def _extras(obj: dict[str, Any], known: tuple[str, ...]) -> dict | None:
    extras = {
        k: copy.deepcopy(v)
        for k, v in obj.items()
        if k not in known and v is not None
    }
    return extras or None


class RequestConverter:
    def convert_task_definition(
        self, task_def: TaskDefinitionSpec
    ) -> dict[str, Any]:
        request: dict[str, Any] = copy.deepcopy(task_def.config or {})
        _set(request, "family", task_def.family)
        if task_def.container_definitions:
            request["containerDefinitions"] = [
                self._convert_container(c)
                for c in task_def.container_definitions
            ]
        if task_def.cpu is not None:
            request["cpu"] = str(task_def.cpu)
        if task_def.memory is not None:
            request["memory"] = str(task_def.memory)
        _set(request, "networkMode", task_def.network_mode)
        if task_def.requires_compatibilities:
            request["requiresCompatibilities"] = list(
                task_def.requires_compatibilities
            )
        _set(request, "taskRoleArn", task_def.task_role_arn)
        _set(request, "executionRoleArn", task_def.execution_role_arn)
        return request

    def _convert_container(
        self, container: ContainerDefinition
    ) -> dict[str, Any]:
        request: dict[str, Any] = copy.deepcopy(container.config or {})
        request["name"] = container.name
        _set(request, "image", container.image)
        request["portMappings"] = [
            self._convert_port_mapping(p) for p in container.port_mappings
        ]
        _set(request, "cpu", container.cpu)
        _set(request, "memory", container.memory)
        if container.health_check:
            request["healthCheck"] = self._convert_health_check(
                container.health_check
            )
        return request

    def _convert_port_mapping(self, port: PortMapping) -> dict[str, Any]:
        request: dict[str, Any] = copy.deepcopy(port.config or {})
        request["containerPort"] = port.container_port
        _set(request, "hostPort", port.host_port)
        _set(request, "protocol", port.protocol)
        return request

    def _convert_health_check(self, check: HealthCheck) -> dict[str, Any]:
        request: dict[str, Any] = {"command": list(check.command)}
        _set(request, "interval", check.interval)
        _set(request, "timeout", check.timeout)
        _set(request, "retries", check.retries)
        _set(request, "startPeriod", check.start_period)
        return request

    def convert_create_service(self, service: ServiceSpec) -> dict[str, Any]:
        request: dict[str, Any] = copy.deepcopy(service.config or {})
        for field in SERVICE_METADATA_FIELDS:
            request.pop(field, None)
        _set(request, "serviceName", service.service_name)
        _set(request, "cluster", service.cluster)
        _set(request, "launchType", service.launch_type)
        _set(request, "desiredCount", service.desired_count)
        _set(request, "taskDefinition", service.task_definition)
        if service.network_configuration:
            request["networkConfiguration"] = (
                self.convert_network_configuration(
                    service.network_configuration
                )
            )
        if service.deployment_configuration:
            request["deploymentConfiguration"] = (
                self._convert_deployment_configuration(
                    service.deployment_configuration
                )
            )
        _set(request, "platformVersion", service.platform_version)
        _set(
            request,
            "healthCheckGracePeriodSeconds",
            service.health_check_grace_period_seconds,
        )
        return request

    def convert_update_service(self, service: ServiceSpec) -> dict[str, Any]:
        """Build an update request from a create-shaped service.

        Only fields meaningful to an update are carried over and unset
        ones are left out entirely; the platform treats an explicit null
        differently from an absent field.
        """
        create = self.convert_create_service(service)
        request: dict[str, Any] = {
            "service": service.service_name,
            "taskDefinition": service.task_definition,
            "forceNewDeployment": True,
        }
        for key in (
            "cluster",
            "desiredCount",
            "deploymentConfiguration",
            "networkConfiguration",
            "platformVersion",
            "healthCheckGracePeriodSeconds",
        ):
            _set(request, key, create.get(key))
        return request

    def convert_network_configuration(
        self, network: NetworkConfiguration
    ) -> dict[str, Any]:
        request: dict[str, Any] = {}
        vpc = network.awsvpc_configuration
        if vpc:
            awsvpc: dict[str, Any] = {"subnets": list(vpc.subnets)}
            if vpc.security_groups is not None:
                awsvpc["securityGroups"] = list(vpc.security_groups)
            _set(awsvpc, "assignPublicIp", vpc.assign_public_ip)
            request["awsvpcConfiguration"] = awsvpc
        return request

    def _convert_deployment_configuration(
        self, deployment: DeploymentConfiguration
    ) -> dict[str, Any]:
        request: dict[str, Any] = copy.deepcopy(deployment.config or {})
        _set(request, "maximumPercent", deployment.maximum_percent)
        _set(
            request,
            "minimumHealthyPercent",
            deployment.minimum_healthy_percent,
        )
        return request


class ResultConverter:
    def convert_task_definition(
        self, task_def: dict[str, Any]
    ) -> TaskDefinitionSpec:
        known = (
            "family",
            "containerDefinitions",
            "cpu",
            "memory",
            "networkMode",
            "requiresCompatibilities",
            "taskRoleArn",
            "executionRoleArn",
        ) + READ_ONLY_TASK_FIELDS
        return TaskDefinitionSpec(
            family=task_def.get("family"),
            container_definitions=[
                self.convert_container(c)
                for c in task_def.get("containerDefinitions") or []
            ],
            cpu=task_def.get("cpu"),
            memory=task_def.get("memory"),
            network_mode=task_def.get("networkMode"),
            requires_compatibilities=list(
                task_def.get("requiresCompatibilities") or []
            ),
            task_role_arn=task_def.get("taskRoleArn"),
            execution_role_arn=task_def.get("executionRoleArn"),
            config=_extras(task_def, known),
        )

    def convert_container(
        self, container: dict[str, Any]
    ) -> ContainerDefinition:
        known = (
            "name",
            "image",
            "portMappings",
            "cpu",
            "memory",
            "healthCheck",
        )
        health_check = container.get("healthCheck")
        return ContainerDefinition(
            name=container.get("name"),
            image=container.get("image"),
            port_mappings=[
                self._convert_port_mapping(p)
                for p in container.get("portMappings") or []
            ],
            cpu=container.get("cpu"),
            memory=container.get("memory"),
            health_check=(
                HealthCheck(
                    command=list(health_check.get("command") or []),
                    interval=health_check.get("interval"),
                    timeout=health_check.get("timeout"),
                    retries=health_check.get("retries"),
                    start_period=health_check.get("startPeriod"),
                )
                if health_check
                else None
            ),
            config=_extras(container, known),
        )

    def _convert_port_mapping(self, port: dict[str, Any]) -> PortMapping:
        return PortMapping(
            container_port=port.get("containerPort"),
            host_port=port.get("hostPort"),
            protocol=port.get("protocol"),
            config=_extras(port, ("containerPort", "hostPort", "protocol")),
        )

    def convert_revision(
        self, task_def: dict[str, Any]
    ) -> TaskDefinitionRevision:
        return TaskDefinitionRevision(
            family=task_def["family"],
            revision=task_def["revision"],
            arn=task_def.get("taskDefinitionArn"),
            task_definition=self.convert_task_definition(task_def),
            native=task_def,
        )

    def convert_service(self, service: dict[str, Any]) -> ServiceSpec:
        known = (
            "serviceName",
            "cluster",
            "launchType",
            "desiredCount",
            "networkConfiguration",
            "deploymentConfiguration",
            "platformVersion",
            "healthCheckGracePeriodSeconds",
            "taskDefinition",
        ) + SERVICE_METADATA_FIELDS
        network = service.get("networkConfiguration")
        deployment = service.get("deploymentConfiguration")
        return ServiceSpec(
            service_name=service.get("serviceName"),
            cluster=service.get("cluster"),
            launch_type=service.get("launchType"),
            desired_count=service.get("desiredCount"),
            network_configuration=(
                self.convert_network_configuration(network)
                if network
                else None
            ),
            deployment_configuration=(
                DeploymentConfiguration(
                    maximum_percent=deployment.get("maximumPercent"),
                    minimum_healthy_percent=deployment.get(
                        "minimumHealthyPercent"
                    ),
                    config=_extras(
                        deployment,
                        ("maximumPercent", "minimumHealthyPercent"),
                    ),
                )
                if deployment
                else None
            ),
            platform_version=service.get("platformVersion"),
            health_check_grace_period_seconds=service.get(
                "healthCheckGracePeriodSeconds"
            ),
            task_definition=service.get("taskDefinition"),
            name=service.get("name"),
            description=service.get("description"),
            config=_extras(service, known),
        )

    def convert_network_configuration(
        self, network: dict[str, Any]
    ) -> NetworkConfiguration:
        vpc = network.get("awsvpcConfiguration")
        if not vpc:
            return NetworkConfiguration()
        return NetworkConfiguration(
            awsvpc_configuration=AwsVpcConfiguration(
                subnets=list(vpc.get("subnets") or []),
                security_groups=vpc.get("securityGroups"),
                assign_public_ip=vpc.get("assignPublicIp"),
            )
        )
