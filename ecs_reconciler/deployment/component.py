import threading
from typing import Any

from ecs_reconciler.core import Component, Response, RunContext, operation

from ._listeners import ListenerRegistration
from ._models import (
    Artifact,
    DeploymentRegistration,
    DeploymentResult,
    ReconcileOutcome,
    ServiceSpec,
    TaskDefinitionRevision,
    TaskDefinitionSpec,
)
from .config import DeploymentConfig


class EcsDeployment(Component):
    config: DeploymentConfig | None = None

    def __init__(
        self,
        config: DeploymentConfig | None = None,
        **kwargs,
    ):
        """Initialize.

        Args:
            config:
                Deployment configuration shared by the providers.
                Providers load ``ecs.yaml`` when neither they nor the
                component have one.
        """
        self.config = config
        super().__init__(**kwargs)

    @operation()
    def deploy(
        self,
        artifact: Artifact,
        registration: DeploymentRegistration | None = None,
        listeners: list[ListenerRegistration] | None = None,
        run_context: RunContext = RunContext(),
        cancel_event: threading.Event | None = None,
        **kwargs: Any,
    ) -> Response[DeploymentResult]:
        """Deploy the artifact and converge the service.

        Failures are reported in the result, not raised.
        """
        ...

    @operation()
    def merge_specs(
        self,
        artifact: Artifact,
        registration: DeploymentRegistration | None = None,
        run_context: RunContext = RunContext(),
        **kwargs: Any,
    ) -> Response[DeploymentRegistration]:
        """Merge defaults, caller specs and repository overrides."""
        ...

    @operation()
    def resolve_revision(
        self,
        task_definition: TaskDefinitionSpec,
        registration: DeploymentRegistration | None = None,
        **kwargs: Any,
    ) -> Response[TaskDefinitionRevision]:
        """Reuse the latest matching revision or register a new one."""
        ...

    @operation()
    def reconcile_service(
        self,
        service: ServiceSpec,
        registration: DeploymentRegistration | None = None,
        **kwargs: Any,
    ) -> Response[ReconcileOutcome]:
        """Create the service or update it in place."""
        ...

    @operation()
    def wait_for_stable(
        self,
        service_name: str,
        cluster: str | None = None,
        timeout: float | None = None,
        registration: DeploymentRegistration | None = None,
        cancel_event: threading.Event | None = None,
        **kwargs: Any,
    ) -> Response[dict[str, Any]]:
        """Wait until the service reaches steady state."""
        ...

    @operation()
    def resolve_endpoints(
        self,
        service: ServiceSpec,
        registration: DeploymentRegistration | None = None,
        **kwargs: Any,
    ) -> Response[list[str]]:
        """Get the public endpoints of the running tasks."""
        ...

    @operation()
    async def adeploy(
        self,
        artifact: Artifact,
        registration: DeploymentRegistration | None = None,
        listeners: list[ListenerRegistration] | None = None,
        run_context: RunContext = RunContext(),
        cancel_event: threading.Event | None = None,
        **kwargs: Any,
    ) -> Response[DeploymentResult]:
        """Deploy the artifact and converge the service.

        Cancelling the awaiting task cancels the stability wait.
        """
        ...

    @operation()
    async def amerge_specs(
        self,
        artifact: Artifact,
        registration: DeploymentRegistration | None = None,
        run_context: RunContext = RunContext(),
        **kwargs: Any,
    ) -> Response[DeploymentRegistration]:
        """Merge defaults, caller specs and repository overrides."""
        ...

    @operation()
    async def aresolve_revision(
        self,
        task_definition: TaskDefinitionSpec,
        registration: DeploymentRegistration | None = None,
        **kwargs: Any,
    ) -> Response[TaskDefinitionRevision]:
        """Reuse the latest matching revision or register a new one."""
        ...

    @operation()
    async def areconcile_service(
        self,
        service: ServiceSpec,
        registration: DeploymentRegistration | None = None,
        **kwargs: Any,
    ) -> Response[ReconcileOutcome]:
        """Create the service or update it in place."""
        ...

    @operation()
    async def await_for_stable(
        self,
        service_name: str,
        cluster: str | None = None,
        timeout: float | None = None,
        registration: DeploymentRegistration | None = None,
        **kwargs: Any,
    ) -> Response[dict[str, Any]]:
        """Wait until the service reaches steady state."""
        ...

    @operation()
    async def aresolve_endpoints(
        self,
        service: ServiceSpec,
        registration: DeploymentRegistration | None = None,
        **kwargs: Any,
    ) -> Response[list[str]]:
        """Get the public endpoints of the running tasks."""
        ...
