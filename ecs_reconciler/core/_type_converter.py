import inspect
import json
from typing import Any, get_args, get_origin, get_type_hints


class TypeConverter:
    """Converts loosely typed operation arguments (dicts, JSON strings,
    numeric strings) to the types declared on the provider method."""

    @staticmethod
    def convert_value(value: Any, expected_type: Any) -> Any:
        if expected_type is None or expected_type is Any:
            return value

        origin = get_origin(expected_type)

        # Optional[T] and T | None
        if origin is not None and type(None) in get_args(expected_type):
            if value is None:
                return None
            candidates = [
                t for t in get_args(expected_type) if t is not type(None)
            ]
            if len(candidates) != 1:
                return value
            expected_type = candidates[0]
            origin = get_origin(expected_type)

        if isinstance(value, list) and origin in (list, tuple):
            elem_type = (
                get_args(expected_type)[0] if get_args(expected_type) else Any
            )
            return [TypeConverter.convert_value(v, elem_type) for v in value]

        if isinstance(value, dict) and origin is dict:
            return value

        if hasattr(expected_type, "from_dict") and callable(
            getattr(expected_type, "from_dict")
        ):
            if isinstance(value, dict):
                return expected_type.from_dict(value)
            if isinstance(value, str):
                return expected_type.from_dict(json.loads(value))
            return value

        try:
            if expected_type is int and isinstance(value, (str, float)):
                return int(value)
            if expected_type is float and isinstance(value, (str, int)):
                return float(value)
            if expected_type is str and isinstance(value, (int, float)):
                return str(value)
            if expected_type is bool and isinstance(value, str):
                return value.strip().lower() in ("1", "true", "yes", "on")
            if expected_type is dict and isinstance(value, str):
                return json.loads(value)
        except (ValueError, TypeError):
            pass

        return value

    @staticmethod
    def convert_args(method, args: dict) -> dict:
        sig = inspect.signature(method)
        hints = get_type_hints(method)
        converted_args: dict = {}
        for param_name in sig.parameters:
            if param_name in args:
                converted_args[param_name] = TypeConverter.convert_value(
                    args[param_name], hints.get(param_name)
                )
        return args | converted_args
