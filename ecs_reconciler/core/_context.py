from __future__ import annotations

import uuid

from .data_model import DataModel


class Context(DataModel):
    """Per-call context handed to provider setup."""

    id: str | None = None

    @staticmethod
    def create(context: Context | dict | None = None) -> Context:
        if isinstance(context, dict):
            context = Context.from_dict(context)
        if context is not None and context.id:
            return context
        return Context(id=uuid.uuid4().hex)


class RunContext(DataModel):
    path: str = "."
    """Checkout of the repository being deployed."""
