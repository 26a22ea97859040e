from typing import Any, Generic, TypeVar

from .data_model import DataModel

T = TypeVar("T")


class Response(DataModel, Generic[T]):
    result: T
    """Result of the provider operation."""

    native: Any = None
    """Raw platform response behind the result, if any."""
