from __future__ import annotations

from typing import Any

from ._context import Context
from ._log_helper import get_logger
from ._operation import Operation
from ._provider import Provider
from ._response import Response
from .exceptions import NotSupportedError

logger = get_logger(__name__)


class Component:
    """Front of a capability; every operation runs on the bound provider.

    Pass ``__provider__`` as a ``Provider`` instance, a provider name, or
    a dict with ``type`` and ``parameters``. Names resolve to the module
    ``<component package>.providers.<name>``. Raw platform responses are
    stripped from results unless ``__native__`` is set.
    """

    __provider__: Provider
    __native__: bool

    def __init__(self, **kwargs):
        self.__native__ = kwargs.pop("__native__", False)
        if "__provider__" in kwargs:
            self.__bind__(kwargs.pop("__provider__"))

    def __bind__(self, provider: Provider | dict | str) -> None:
        if not isinstance(provider, Provider):
            provider = self._load_provider(provider)
        provider.__component__ = self
        self.__provider__ = provider

    def __run__(
        self,
        operation: Operation,
        context: Context | dict | None = None,
    ) -> Any:
        provider = self._get_provider()
        context = Context.create(context)
        logger.debug("Running %s [%s]", operation, context.id)
        return self._finalize(provider.__run__(operation, context))

    async def __arun__(
        self,
        operation: Operation,
        context: Context | dict | None = None,
    ) -> Any:
        provider = self._get_provider()
        context = Context.create(context)
        logger.debug("Running async %s [%s]", operation, context.id)
        return self._finalize(await provider.__arun__(operation, context))

    def _get_provider(self) -> Provider:
        provider = getattr(self, "__provider__", None)
        if provider is None:
            raise NotSupportedError(
                f"No provider bound to {type(self).__name__}."
            )
        return provider

    def _load_provider(self, provider: dict | str) -> Provider:
        from ._loader import Loader

        if isinstance(provider, dict):
            name = provider["type"]
            parameters = provider.get("parameters") or {}
        else:
            name, parameters = provider, {}
        package = self.__class__.__module__.rsplit(".", 1)[0]
        return Loader.load_provider_instance(
            path=f"{package}.providers.{name}",
            parameters=parameters,
        )

    def _finalize(self, response: Any) -> Any:
        if not self.__native__ and isinstance(response, Response):
            response.native = None
        return response
