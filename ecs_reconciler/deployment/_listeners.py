from __future__ import annotations

__all__ = [
    "Abort",
    "Continue",
    "DeploymentEvent",
    "Listener",
    "ListenerRegistration",
    "ListenerResult",
    "invoke_listeners",
]

from typing import Callable, Literal, Union

from ecs_reconciler.core import FrozenDataModel, get_logger

from ._models import DeploymentRegistration, DeploymentResult

logger = get_logger(__name__)

DeploymentEvent = Literal["before", "after"]


class Continue(FrozenDataModel):
    """Proceed, optionally replacing the registration or the URLs."""

    kind: Literal["continue"] = "continue"
    registration: DeploymentRegistration | None = None
    external_urls: list[str] | None = None


class Abort(FrozenDataModel):
    """Stop the deployment; becomes its final result."""

    kind: Literal["abort"] = "abort"
    code: int = 1
    message: str | None = None


ListenerResult = Union[Continue, Abort]

Listener = Callable[
    [DeploymentRegistration, DeploymentEvent, DeploymentResult | None],
    ListenerResult | None,
]


class ListenerRegistration(FrozenDataModel):
    name: str
    listener: Listener
    events: tuple[DeploymentEvent, ...] = ("before", "after")


def invoke_listeners(
    listeners: list[ListenerRegistration] | None,
    event: DeploymentEvent,
    registration: DeploymentRegistration,
    result: DeploymentResult | None = None,
) -> ListenerResult:
    """Run the listeners subscribed to ``event`` in order.

    Each listener sees the registration as left by the ones before it.
    A listener returning None continues unchanged. The first ``Abort``
    is returned and later listeners are skipped. A listener that raises
    aborts the deployment with code 1.
    """
    external_urls: list[str] | None = None
    for registered in listeners or []:
        if event not in registered.events:
            continue
        logger.debug("Invoking %s listener %s", event, registered.name)
        try:
            outcome = registered.listener(registration, event, result)
        except Exception as e:
            logger.exception("Listener %s failed", registered.name)
            return Abort(message=f"Listener {registered.name} failed: {e}")
        if outcome is None:
            continue
        if isinstance(outcome, Abort):
            logger.info(
                "Listener %s aborted the deployment: %s",
                registered.name,
                outcome.message,
            )
            return outcome
        if outcome.registration is not None:
            registration = outcome.registration
        if outcome.external_urls is not None:
            external_urls = outcome.external_urls
    return Continue(registration=registration, external_urls=external_urls)
