from __future__ import annotations

import inspect
from typing import Any, Callable

from .data_model import DataModel


class Operation(DataModel):
    """A component method call, ready to be dispatched to a provider."""

    name: str | None = None
    args: dict[str, Any] | None = None

    @staticmethod
    def from_call(
        func: Callable[..., Any],
        name: str,
        *args,
        **kwargs,
    ) -> Operation:
        """Bind a call to ``func``'s signature.

        ``self`` is dropped, ``**kwargs`` are flattened into the
        arguments and arguments left at ``None`` are omitted.
        """
        bound = inspect.signature(func).bind(*args, **kwargs)
        bound.apply_defaults()
        arguments: dict[str, Any] = {}
        for key, value in bound.arguments.items():
            if key == "self":
                continue
            if key == "kwargs":
                arguments.update(value)
            elif value is not None:
                arguments[key] = value
        return Operation(name=name, args=arguments)

    def __str__(self) -> str:
        args = ", ".join(sorted((self.args or {}).keys()))
        return f"{self.name or ''}({args})"
