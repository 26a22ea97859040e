import inspect
from functools import wraps
from typing import Any, Callable, TypeVar, cast

from ._operation import Operation

T = TypeVar("T", bound=Callable[..., Any])


def operation() -> Callable[[T], T]:
    """Route a component method to its bound provider.

    The decorated body is a stub. Async methods carry an ``a`` prefix,
    which is dropped from the dispatched operation name.
    """

    def decorator(func: T) -> T:
        setattr(func, "__operation__", True)
        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def awrapper(self, *args, **kwargs) -> Any:
                context = kwargs.pop("__context__", None)
                op = Operation.from_call(
                    func, func.__name__[1:], self, *args, **kwargs
                )
                return await self.__arun__(op, context)

            return cast(T, awrapper)

        @wraps(func)
        def wrapper(self, *args, **kwargs) -> Any:
            context = kwargs.pop("__context__", None)
            op = Operation.from_call(func, func.__name__, self, *args, **kwargs)
            return self.__run__(op, context)

        return cast(T, wrapper)

    return decorator
