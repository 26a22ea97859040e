from typing import Any

import yaml

from .exceptions import InvalidSpecFileError, NotFoundError


class YamlLoader:
    @staticmethod
    def load(path: str) -> dict[str, Any]:
        """Load a YAML mapping. An empty file loads as ``{}``."""
        try:
            with open(path, "r") as file:
                obj = yaml.safe_load(file)
        except FileNotFoundError as e:
            raise NotFoundError(f"Configuration file {path} not found.") from e
        except yaml.YAMLError as e:
            raise InvalidSpecFileError(path, str(e)) from e
        if obj is None:
            return {}
        if not isinstance(obj, dict):
            raise InvalidSpecFileError(path, "expected a mapping")
        return obj
