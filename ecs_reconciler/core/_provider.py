from typing import Any

from ._async_helper import run_async
from ._context import Context
from ._operation import Operation
from ._type_converter import TypeConverter
from .exceptions import NotSupportedError


class Provider:
    """Platform implementation behind a component.

    Operations are plain methods named after the component operation;
    async variants carry an ``a`` prefix. A provider without the async
    variant runs the sync one on a worker thread.
    """

    __component__: Any

    def __init__(self, **kwargs):
        for key, value in kwargs.items():
            setattr(self, key, value)

    def __setup__(self, context: Context | None = None) -> None:
        pass

    async def __asetup__(self, context: Context | None = None) -> None:
        await run_async(self.__setup__, context=context)

    def __run__(
        self,
        operation: Operation | None = None,
        context: Context | None = None,
        **kwargs,
    ) -> Any:
        func = self._resolve(operation, prefix="")
        self.__setup__(context=context)
        args = TypeConverter.convert_args(func, operation.args or {})
        return func(**args)

    async def __arun__(
        self,
        operation: Operation | None = None,
        context: Context | None = None,
        **kwargs,
    ) -> Any:
        try:
            afunc = self._resolve(operation, prefix="a")
        except NotSupportedError:
            return await run_async(
                self.__run__, operation=operation, context=context
            )
        await self.__asetup__(context=context)
        args = TypeConverter.convert_args(afunc, operation.args or {})
        return await afunc(**args)

    def _resolve(self, operation: Operation | None, prefix: str) -> Any:
        if operation is None or not operation.name:
            raise NotSupportedError("No operation given.")
        func = getattr(self, f"{prefix}{operation.name}", None)
        if func is None or not callable(func):
            raise NotSupportedError(
                f"{type(self).__name__} does not support {operation}"
            )
        return func
