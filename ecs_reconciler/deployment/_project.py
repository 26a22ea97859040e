from __future__ import annotations

import json
import posixpath
import re
from pathlib import Path
from typing import Protocol

from ecs_reconciler.core import get_logger
from ecs_reconciler.core.exceptions import InvalidSpecFileError

from ._models import ExposedPort, RepositoryOverrides

logger = get_logger(__name__)

TASK_DEFINITION_FILE = "task-definition.json"
SERVICE_FILE = "service.json"
DOCKERFILE = "Dockerfile"

_EXPOSE_PATTERN = re.compile(r"^\s*EXPOSE\s+(.*)$", re.IGNORECASE)
_PORT_PATTERN = re.compile(r"^(\d+)(?:/(tcp|udp))?$", re.IGNORECASE)


class Project(Protocol):
    """Read access to a repository checkout."""

    def read_file(self, path: str) -> str | None: ...

    def find_dockerfile(self) -> str | None: ...


class LocalProject:
    def __init__(self, root: str = "."):
        self.root = Path(root)

    def read_file(self, path: str) -> str | None:
        file = self.root / path
        if not file.is_file():
            return None
        return file.read_text(encoding="utf-8")

    def find_dockerfile(self) -> str | None:
        if (self.root / DOCKERFILE).is_file():
            return DOCKERFILE
        matches = sorted(
            p for p in self.root.rglob(DOCKERFILE) if p.is_file()
        )
        if not matches:
            return None
        return matches[0].relative_to(self.root).as_posix()


def _logical_lines(content: str):
    buffer = ""
    for raw in content.splitlines():
        line = raw.strip()
        if line.startswith("#"):
            continue
        if line.endswith("\\"):
            buffer += line[:-1] + " "
            continue
        yield buffer + line
        buffer = ""
    if buffer:
        yield buffer


def parse_exposed_ports(content: str) -> list[ExposedPort]:
    """Return the ports of every ``EXPOSE`` instruction, in order.

    Variable references (``EXPOSE $PORT``) cannot be resolved here and
    are skipped.
    """
    ports: list[ExposedPort] = []
    for line in _logical_lines(content):
        match = _EXPOSE_PATTERN.match(line)
        if not match:
            continue
        for token in match.group(1).split():
            port = _PORT_PATTERN.match(token)
            if not port:
                logger.debug("Skipping unresolved EXPOSE value %s", token)
                continue
            protocol = port.group(2)
            ports.append(
                ExposedPort(
                    port=int(port.group(1)),
                    protocol=protocol.lower() if protocol else None,
                )
            )
    return ports


def read_exposed_ports(project: Project) -> list[ExposedPort] | None:
    """Exposed ports of the project's Dockerfile, None without one."""
    path = project.find_dockerfile()
    if path is None:
        return None
    content = project.read_file(path)
    if content is None:
        return None
    logger.debug("Reading exposed ports from %s", path)
    return parse_exposed_ports(content)


def _load_json(project: Project, path: str) -> dict | None:
    content = project.read_file(path)
    if content is None:
        return None
    try:
        document = json.loads(content)
    except json.JSONDecodeError as e:
        raise InvalidSpecFileError(path, str(e)) from e
    if not isinstance(document, dict):
        raise InvalidSpecFileError(path, "expected a JSON object")
    return document


def load_overrides(project: Project, spec_dir: str) -> RepositoryOverrides:
    task_path = posixpath.join(spec_dir, TASK_DEFINITION_FILE)
    service_path = posixpath.join(spec_dir, SERVICE_FILE)
    return RepositoryOverrides(
        task_definition=_load_json(project, task_path),
        service=_load_json(project, service_path),
    )
