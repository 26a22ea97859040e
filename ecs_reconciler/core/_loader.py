from __future__ import annotations

import importlib
import inspect
from typing import Any

from ._provider import Provider
from ._type_converter import TypeConverter
from .exceptions import NotFoundError


class Loader:
    @staticmethod
    def load_provider_instance(
        path: str,
        parameters: dict[str, Any] | None = None,
    ) -> Provider:
        provider = Loader.load_class(path, Provider)
        converted_parameters = TypeConverter.convert_args(
            provider.__init__, dict(parameters or {})
        )
        return provider(**converted_parameters)

    @staticmethod
    def load_class(module_name: str, type: Any) -> Any:
        """Return the first subclass of ``type`` defined in the module."""
        try:
            module = importlib.import_module(module_name)
        except ModuleNotFoundError as e:
            raise NotFoundError(
                f"Provider module {module_name} not found."
            ) from e
        for _, cls in inspect.getmembers(module, inspect.isclass):
            if issubclass(cls, type) and cls.__module__ == module_name:
                return cls
        raise NotFoundError(f"{type.__name__} not found in {module_name}")
