from __future__ import annotations

import asyncio
import threading
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ecs_reconciler.core import Provider, Response, RunContext, get_logger
from ecs_reconciler.core._async_helper import run_async
from ecs_reconciler.core.exceptions import BaseError, PlatformError

from .._listeners import Abort, ListenerRegistration, invoke_listeners
from .._models import (
    Artifact,
    DeploymentRegistration,
    DeploymentResult,
    ExternalUrl,
    ReconcileOutcome,
)
from .._project import LocalProject
from .._spec_merger import SpecMerger
from ..config import CONFIG_FILE, DeploymentConfig

logger = get_logger(__name__)


class BaseDeploymentProvider(Provider):
    config: DeploymentConfig | None
    config_path: str | None

    def deploy(
        self,
        artifact: Artifact,
        registration: DeploymentRegistration | None = None,
        listeners: list[ListenerRegistration] | None = None,
        run_context: RunContext = RunContext(),
        cancel_event: threading.Event | None = None,
        **kwargs: Any,
    ) -> Response[DeploymentResult]:
        registration = registration or DeploymentRegistration()
        try:
            result = self._run_deployment(
                artifact=artifact,
                registration=registration,
                listeners=listeners,
                run_context=run_context,
                cancel_event=cancel_event,
            )
        except ClientError as e:
            result = self._failed(
                PlatformError.from_client_error(e, e.operation_name),
                registration,
            )
        except BotoCoreError as e:
            result = self._failed(PlatformError(str(e)), registration)
        except BaseError as e:
            result = self._failed(e, registration)
        return Response(result=result)

    async def adeploy(
        self,
        artifact: Artifact,
        registration: DeploymentRegistration | None = None,
        listeners: list[ListenerRegistration] | None = None,
        run_context: RunContext = RunContext(),
        cancel_event: threading.Event | None = None,
        **kwargs: Any,
    ) -> Response[DeploymentResult]:
        # The pipeline runs on a worker thread; cancelling the task
        # signals the stability wait through the event.
        cancel_event = cancel_event or threading.Event()
        try:
            return await run_async(
                self.deploy,
                artifact=artifact,
                registration=registration,
                listeners=listeners,
                run_context=run_context,
                cancel_event=cancel_event,
            )
        except asyncio.CancelledError:
            cancel_event.set()
            raise

    def merge_specs(
        self,
        artifact: Artifact,
        registration: DeploymentRegistration | None = None,
        run_context: RunContext = RunContext(),
        **kwargs: Any,
    ) -> Response[DeploymentRegistration]:
        registration = registration or DeploymentRegistration()
        merger = SpecMerger(self._get_config())
        task_definition, service = merger.merge_project(
            artifact=artifact,
            project=LocalProject(run_context.path),
            task_definition=registration.task_definition,
            service=registration.service,
        )
        return Response(
            result=registration.copy(
                update={
                    "task_definition": task_definition,
                    "service": service,
                }
            )
        )

    def _run_deployment(
        self,
        artifact: Artifact,
        registration: DeploymentRegistration,
        listeners: list[ListenerRegistration] | None,
        run_context: RunContext,
        cancel_event: threading.Event | None,
    ) -> DeploymentResult:
        if not artifact.image_name:
            return DeploymentResult(
                code=1,
                message="No image found to deploy",
                registration=registration,
            )

        registration = self.merge_specs(
            artifact=artifact,
            registration=registration,
            run_context=run_context,
        ).result

        before = invoke_listeners(listeners, "before", registration)
        if isinstance(before, Abort):
            return DeploymentResult(
                code=before.code,
                message=before.message,
                registration=registration,
            )
        registration = before.registration or registration

        outcome, external_urls = self._converge(registration, cancel_event)
        service_name = registration.service.service_name
        result = DeploymentResult(
            code=0,
            message=f"Service {service_name} {outcome.action}.",
            action=outcome.action,
            external_urls=[ExternalUrl(url=url) for url in external_urls],
            registration=registration,
        )

        after = invoke_listeners(listeners, "after", registration, result)
        if isinstance(after, Abort):
            return result.copy(
                update={
                    "code": after.code,
                    "message": after.message,
                    "external_urls": [],
                }
            )
        if after.external_urls is not None:
            result = result.copy(
                update={
                    "external_urls": [
                        ExternalUrl(url=url) for url in after.external_urls
                    ]
                }
            )
        return result

    def _converge(
        self,
        registration: DeploymentRegistration,
        cancel_event: threading.Event | None,
    ) -> tuple[ReconcileOutcome, list[str]]:
        raise NotImplementedError(
            "Converge method must be implemented by provider."
        )

    def _failed(
        self, error: BaseError, registration: DeploymentRegistration
    ) -> DeploymentResult:
        logger.error("Deployment failed: %s", error)
        return DeploymentResult(
            code=1,
            message=str(error),
            error=type(error).__name__,
            registration=registration,
        )

    def _get_config(self) -> DeploymentConfig:
        config = self.config
        if config is None:
            component = getattr(self, "__component__", None)
            config = getattr(component, "config", None)
        if config is None:
            config = DeploymentConfig.load(self.config_path or CONFIG_FILE)
            self.config = config
        return config
