"""
AWS ECS deployment.
"""

from __future__ import annotations

__all__ = [
    "AmazonECS",
    "EndpointResolver",
    "RevisionRegistrar",
    "ServiceReconciler",
    "StabilityWaiter",
]

import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Literal

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ecs_reconciler.core import Context, Response, get_logger
from ecs_reconciler.core._async_helper import run_async
from ecs_reconciler.core.exceptions import (
    BadRequestError,
    BaseError,
    DeploymentCancelledError,
    PlatformError,
    ServiceNotStableError,
    StabilityTimeoutError,
)

from .._converter import RequestConverter, ResultConverter
from .._differ import is_reusable
from .._models import (
    DeploymentRegistration,
    ReconcileOutcome,
    ServiceSpec,
    TaskDefinitionRevision,
    TaskDefinitionSpec,
)
from ..config import DeploymentConfig
from ._base import BaseDeploymentProvider

logger = get_logger(__name__)

DESCRIBE_TASKS_BATCH_SIZE = 100
NETWORK_INTERFACE_DETAIL = "networkInterfaceId"


def _call(client: Any, operation: str, **kwargs: Any) -> dict[str, Any]:
    logger.debug("%s request: %s", operation, kwargs)
    try:
        response = getattr(client, operation)(**kwargs)
    except ClientError as e:
        raise PlatformError.from_client_error(e, operation) from e
    logger.debug("%s response: %s", operation, response)
    return response


def _paginate(
    client: Any, operation: str, key: str, **kwargs: Any
) -> list[Any]:
    items: list[Any] = []
    try:
        paginator = client.get_paginator(operation)
        for page in paginator.paginate(**kwargs):
            items.extend(page.get(key, []))
    except ClientError as e:
        raise PlatformError.from_client_error(e, operation) from e
    return items


def _with_cluster(cluster: str | None, **kwargs: Any) -> dict[str, Any]:
    if cluster:
        kwargs["cluster"] = cluster
    return kwargs


class RevisionRegistrar:
    """Reuses the latest revision of a family or registers a new one."""

    def __init__(self, ecs_client: Any):
        self._ecs_client = ecs_client
        self._op_converter = RequestConverter()
        self._result_converter = ResultConverter()

    def resolve(self, candidate: TaskDefinitionSpec) -> TaskDefinitionRevision:
        request = self._op_converter.convert_task_definition(candidate)
        family = candidate.family
        if not family:
            raise BadRequestError("Task definition family is required.")

        families = _paginate(
            self._ecs_client,
            "list_task_definition_families",
            "families",
            familyPrefix=family,
            status="ACTIVE",
        )
        if family not in families:
            logger.info(
                "Task definition family %s not found, registering.", family
            )
            return self.register(request)

        latest = self.latest(family)
        if latest is not None and is_reusable(request, latest):
            revision = self._result_converter.convert_revision(latest)
            logger.info(
                "Reusing task definition revision %s.", revision.reference
            )
            return revision
        return self.register(request)

    def latest(self, family: str) -> dict[str, Any] | None:
        response = _call(
            self._ecs_client,
            "list_task_definitions",
            familyPrefix=family,
            status="ACTIVE",
            sort="DESC",
            maxResults=1,
        )
        arns = response.get("taskDefinitionArns") or []
        if not arns:
            return None
        return _call(
            self._ecs_client,
            "describe_task_definition",
            taskDefinition=arns[0],
        )["taskDefinition"]

    def register(self, request: dict[str, Any]) -> TaskDefinitionRevision:
        response = _call(
            self._ecs_client, "register_task_definition", **request
        )
        revision = self._result_converter.convert_revision(
            response["taskDefinition"]
        )
        logger.info(
            "Registered task definition revision %s.", revision.reference
        )
        return revision


class ServiceReconciler:
    """Creates the service, or updates it in place when it exists."""

    def __init__(self, ecs_client: Any):
        self._ecs_client = ecs_client
        self._op_converter = RequestConverter()

    def reconcile(self, service: ServiceSpec) -> ReconcileOutcome:
        if not service.task_definition:
            raise BadRequestError(
                "Service must reference a registered task definition."
            )
        if self.exists(service.service_name, service.cluster):
            logger.info(
                "Service %s already exists, attempting to apply update...",
                service.service_name,
            )
            response = _call(
                self._ecs_client,
                "update_service",
                **self._op_converter.convert_update_service(service),
            )
            return ReconcileOutcome(
                action="updated", service=response["service"]
            )

        logger.info("Creating service %s.", service.service_name)
        response = _call(
            self._ecs_client,
            "create_service",
            **self._op_converter.convert_create_service(service),
        )
        return ReconcileOutcome(action="created", service=response["service"])

    def exists(self, service_name: str | None, cluster: str | None) -> bool:
        arns = _paginate(
            self._ecs_client,
            "list_services",
            "serviceArns",
            **_with_cluster(cluster),
        )
        # Service ARNs end in either service/<name> or
        # service/<cluster>/<name>.
        return any(arn.rsplit("/", 1)[-1] == service_name for arn in arns)


class StabilityWaiter:
    """Polls a service until it reaches steady state.

    A service is stable when it is ACTIVE, has a single deployment and
    runs as many tasks as it desires.
    """

    def __init__(
        self,
        ecs_client: Any,
        timeout: float = 600,
        delay: float = 15,
    ):
        self._ecs_client = ecs_client
        self.timeout = timeout
        self.delay = delay

    def await_stable(
        self,
        service_name: str,
        cluster: str | None = None,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> dict[str, Any]:
        timeout = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout
        logger.info("Waiting for service %s to be stable.", service_name)
        while True:
            self._check_cancelled(service_name, cancel_event)
            service = self._describe(service_name, cluster)
            if self._is_stable(service):
                logger.info("Service %s is stable.", service_name)
                return service
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise StabilityTimeoutError(service_name, timeout)
            delay = min(self.delay, remaining)
            if cancel_event is not None:
                cancel_event.wait(delay)
            else:
                time.sleep(delay)

    async def aawait_stable(
        self,
        service_name: str,
        cluster: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        timeout = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout
        logger.info("Waiting for service %s to be stable.", service_name)
        while True:
            service = await run_async(self._describe, service_name, cluster)
            if self._is_stable(service):
                logger.info("Service %s is stable.", service_name)
                return service
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise StabilityTimeoutError(service_name, timeout)
            await asyncio.sleep(min(self.delay, remaining))

    def _check_cancelled(
        self, service_name: str, cancel_event: threading.Event | None
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise DeploymentCancelledError(
                f"Waiting for service {service_name} was cancelled."
            )

    def _describe(
        self, service_name: str, cluster: str | None
    ) -> dict[str, Any]:
        response = _call(
            self._ecs_client,
            "describe_services",
            **_with_cluster(cluster, services=[service_name]),
        )
        services = response.get("services") or []
        if not services:
            reasons = [
                f.get("reason", "UNKNOWN")
                for f in response.get("failures", [])
            ]
            raise ServiceNotStableError(
                f"Service {service_name} not found: "
                f"{', '.join(reasons) or 'MISSING'}"
            )
        service = services[0]
        if service.get("status") != "ACTIVE":
            raise ServiceNotStableError(
                f"Service {service_name} is {service.get('status')}."
            )
        for deployment in service.get("deployments", []):
            if (
                deployment.get("status") == "PRIMARY"
                and deployment.get("rolloutState") == "FAILED"
            ):
                raise ServiceNotStableError(
                    f"Deployment of service {service_name} failed: "
                    f"{deployment.get('rolloutStateReason')}"
                )
        return service

    def _is_stable(self, service: dict[str, Any]) -> bool:
        return len(service.get("deployments", [])) == 1 and service.get(
            "runningCount"
        ) == service.get("desiredCount")


class EndpointResolver:
    """Builds ``protocol://public-ip:port`` endpoints of running tasks."""

    def __init__(self, ecs_client: Any, ec2_client: Any, workers: int = 8):
        self._ecs_client = ecs_client
        self._ec2_client = ec2_client
        self.workers = workers

    def resolve(self, service: ServiceSpec) -> list[str]:
        task_arns = _paginate(
            self._ecs_client,
            "list_tasks",
            "taskArns",
            **_with_cluster(
                service.cluster,
                serviceName=service.service_name,
                desiredStatus="RUNNING",
            ),
        )
        if not task_arns:
            logger.info("No running tasks for %s.", service.service_name)
            return []

        task_def = _call(
            self._ecs_client,
            "describe_task_definition",
            taskDefinition=service.task_definition,
        )["taskDefinition"]
        port_mapping = self._get_port_mapping(task_def)
        if port_mapping is None:
            logger.info(
                "Task definition of %s has no port mappings.",
                service.service_name,
            )
            return []
        protocol = port_mapping.get("protocol") or "tcp"
        port = port_mapping.get("hostPort") or port_mapping["containerPort"]

        tasks: list[dict[str, Any]] = []
        for i in range(0, len(task_arns), DESCRIBE_TASKS_BATCH_SIZE):
            response = _call(
                self._ecs_client,
                "describe_tasks",
                **_with_cluster(
                    service.cluster,
                    tasks=task_arns[i : i + DESCRIBE_TASKS_BATCH_SIZE],
                ),
            )
            tasks.extend(response.get("tasks", []))

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            public_ips = list(executor.map(self._get_public_ip, tasks))
        return [f"{protocol}://{ip}:{port}" for ip in public_ips if ip]

    def _get_port_mapping(
        self, task_def: dict[str, Any]
    ) -> dict[str, Any] | None:
        containers = task_def.get("containerDefinitions") or []
        if not containers:
            return None
        mappings = containers[0].get("portMappings") or []
        return mappings[0] if mappings else None

    def _get_public_ip(self, task: dict[str, Any]) -> str | None:
        task_arn = task.get("taskArn")
        eni_id = self._get_network_interface_id(task)
        if not eni_id:
            logger.debug("Task %s has no network interface.", task_arn)
            return None
        try:
            response = _call(
                self._ec2_client,
                "describe_network_interfaces",
                NetworkInterfaceIds=[eni_id],
            )
        except (BaseError, BotoCoreError) as e:
            logger.warning(
                "Failed to look up network interface %s of task %s: %s",
                eni_id,
                task_arn,
                e,
            )
            return None
        interfaces = response.get("NetworkInterfaces") or []
        if not interfaces:
            return None
        return (interfaces[0].get("Association") or {}).get("PublicIp")

    def _get_network_interface_id(self, task: dict[str, Any]) -> str | None:
        attachments = task.get("attachments") or []
        for attachment in attachments:
            for detail in attachment.get("details") or []:
                if detail.get("name") == NETWORK_INTERFACE_DETAIL:
                    return detail.get("value")
        # Positional fallback
        if attachments:
            details = attachments[0].get("details") or []
            if len(details) > 1:
                return details[1].get("value")
        return None


class AmazonECS(BaseDeploymentProvider):
    region: str | None
    launch_type: Literal["FARGATE", "EC2"] | None
    network_mode: Literal["awsvpc", "bridge", "host"] | None

    aws_access_key_id: str | None
    aws_secret_access_key: str | None
    aws_session_token: str | None
    profile_name: str | None
    session: Any
    nparams: dict[str, Any]

    _init: bool = False

    def __init__(
        self,
        region: str | None = None,
        config: DeploymentConfig | None = None,
        config_path: str | None = None,
        launch_type: Literal["FARGATE", "EC2"] | None = None,
        network_mode: Literal["awsvpc", "bridge", "host"] | None = None,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        aws_session_token: str | None = None,
        profile_name: str | None = None,
        session: Any = None,
        nparams: dict[str, Any] = {},
        **kwargs: Any,
    ):
        """Initialize AWS ECS deployment provider.

        Args:
            region:
                AWS region. Falls back to the registration's region,
                then to the configured one.
            config: Deployment configuration.
            config_path:
                Path of the YAML configuration,
                used when no configuration is given.
            launch_type:
                Launch type forced onto every deployment,
                either "FARGATE" or "EC2".
            network_mode:
                Network mode forced onto every task definition,
                either "awsvpc", "bridge", or "host".
            aws_access_key_id: AWS access key ID.
            aws_secret_access_key: AWS secret access key.
            aws_session_token: AWS session token.
            profile_name: AWS profile name to use.
            session: Ready boto3 session to use instead of credentials.
            nparams: Native params to AWS clients.
        """
        self.region = region
        self.config = config
        self.config_path = config_path
        self.launch_type = launch_type
        self.network_mode = network_mode
        self.aws_access_key_id = aws_access_key_id
        self.aws_secret_access_key = aws_secret_access_key
        self.aws_session_token = aws_session_token
        self.profile_name = profile_name
        self.session = session
        self.nparams = nparams
        super().__init__(**kwargs)

    def __setup__(self, context: Context | None = None) -> None:
        if self._init:
            return
        config = self._get_config()
        if self.launch_type == "FARGATE" and self.network_mode not in (
            None,
            "awsvpc",
        ):
            raise BadRequestError(
                "Fargate only supports 'awsvpc' network_mode."
            )
        if self.launch_type or self.network_mode:
            self.config = self._apply_launch_settings(config)
        self._init = True

    def resolve_revision(
        self,
        task_definition: TaskDefinitionSpec,
        registration: DeploymentRegistration | None = None,
        **kwargs: Any,
    ) -> Response[TaskDefinitionRevision]:
        self.__setup__()
        clients = self._create_clients(registration)
        revision = RevisionRegistrar(clients["ecs"]).resolve(task_definition)
        return Response(result=revision, native=revision.native)

    def reconcile_service(
        self,
        service: ServiceSpec,
        registration: DeploymentRegistration | None = None,
        **kwargs: Any,
    ) -> Response[ReconcileOutcome]:
        self.__setup__()
        clients = self._create_clients(registration)
        outcome = ServiceReconciler(clients["ecs"]).reconcile(service)
        return Response(result=outcome, native=outcome.service)

    def wait_for_stable(
        self,
        service_name: str,
        cluster: str | None = None,
        timeout: float | None = None,
        registration: DeploymentRegistration | None = None,
        cancel_event: threading.Event | None = None,
        **kwargs: Any,
    ) -> Response[dict[str, Any]]:
        self.__setup__()
        clients = self._create_clients(registration)
        service = self._create_waiter(clients["ecs"]).await_stable(
            service_name=service_name,
            cluster=cluster or self._get_config().cluster,
            timeout=timeout,
            cancel_event=cancel_event,
        )
        return Response(result=service, native=service)

    async def await_for_stable(
        self,
        service_name: str,
        cluster: str | None = None,
        timeout: float | None = None,
        registration: DeploymentRegistration | None = None,
        **kwargs: Any,
    ) -> Response[dict[str, Any]]:
        self.__setup__()
        clients = await run_async(self._create_clients, registration)
        service = await self._create_waiter(clients["ecs"]).aawait_stable(
            service_name=service_name,
            cluster=cluster or self._get_config().cluster,
            timeout=timeout,
        )
        return Response(result=service, native=service)

    def resolve_endpoints(
        self,
        service: ServiceSpec,
        registration: DeploymentRegistration | None = None,
        **kwargs: Any,
    ) -> Response[list[str]]:
        self.__setup__()
        clients = self._create_clients(registration)
        urls = self._create_endpoint_resolver(clients).resolve(service)
        return Response(result=urls)

    def _converge(
        self,
        registration: DeploymentRegistration,
        cancel_event: threading.Event | None,
    ) -> tuple[ReconcileOutcome, list[str]]:
        self.__setup__()
        clients = self._create_clients(registration)
        if registration.service is None:
            raise BadRequestError("Service definition is required.")

        reference = registration.task_definition_ref
        if not reference:
            if registration.task_definition is None:
                raise BadRequestError("Task definition is required.")
            revision = RevisionRegistrar(clients["ecs"]).resolve(
                registration.task_definition
            )
            reference = revision.reference
        service = registration.service.copy(
            update={"task_definition": reference}
        )

        outcome = ServiceReconciler(clients["ecs"]).reconcile(service)
        logger.info("Awaiting services stable...")
        self._create_waiter(clients["ecs"]).await_stable(
            service_name=service.service_name,
            cluster=service.cluster,
            cancel_event=cancel_event,
        )

        if registration.external_urls is not None:
            return outcome, list(registration.external_urls)
        urls = self._create_endpoint_resolver(clients).resolve(service)
        for url in urls:
            logger.info(
                "Service %s available at %s", service.service_name, url
            )
        return outcome, urls

    def _create_waiter(self, ecs_client: Any) -> StabilityWaiter:
        stability = self._get_config().stability
        return StabilityWaiter(
            ecs_client,
            timeout=stability.timeout_seconds,
            delay=stability.delay_seconds,
        )

    def _create_endpoint_resolver(
        self, clients: dict[str, Any]
    ) -> EndpointResolver:
        return EndpointResolver(
            clients["ecs"],
            clients["ec2"],
            workers=self._get_config().endpoint_workers,
        )

    def _create_clients(
        self, registration: DeploymentRegistration | None
    ) -> dict[str, Any]:
        region = (
            (registration.region if registration else None)
            or self.region
            or self._get_config().region
        )
        session = self._create_session(registration, region)
        return {
            "ecs": session.client("ecs", region_name=region, **self.nparams),
            "ec2": session.client("ec2", region_name=region, **self.nparams),
        }

    def _create_session(
        self,
        registration: DeploymentRegistration | None,
        region: str | None,
    ) -> Any:
        session = self.session
        if session is None:
            session_kwargs = {}
            if self.aws_access_key_id:
                session_kwargs["aws_access_key_id"] = self.aws_access_key_id
            if self.aws_secret_access_key:
                session_kwargs["aws_secret_access_key"] = (
                    self.aws_secret_access_key
                )
            if self.aws_session_token:
                session_kwargs["aws_session_token"] = self.aws_session_token
            if self.profile_name:
                session_kwargs["profile_name"] = self.profile_name
            session = boto3.Session(**session_kwargs)

        role = registration.role if registration else None
        if role is None:
            return session

        params: dict[str, Any] = {
            "RoleArn": role.role_arn,
            "RoleSessionName": role.session_name,
        }
        if role.external_id:
            params["ExternalId"] = role.external_id
        if role.duration_seconds:
            params["DurationSeconds"] = role.duration_seconds
        sts_client = session.client("sts", region_name=region, **self.nparams)
        credentials = _call(sts_client, "assume_role", **params)["Credentials"]
        logger.info("Assumed role %s.", role.role_arn)
        return boto3.Session(
            aws_access_key_id=credentials["AccessKeyId"],
            aws_secret_access_key=credentials["SecretAccessKey"],
            aws_session_token=credentials["SessionToken"],
        )

    def _apply_launch_settings(
        self, config: DeploymentConfig
    ) -> DeploymentConfig:
        task_defaults = config.task_defaults
        update: dict[str, Any] = {}
        if self.launch_type:
            update["launch_type"] = self.launch_type
            task_defaults = task_defaults.copy(
                update={"requires_compatibilities": [self.launch_type]}
            )
        if self.network_mode:
            task_defaults = task_defaults.copy(
                update={"network_mode": self.network_mode}
            )
        update["task_defaults"] = task_defaults
        return config.copy(update=update)
