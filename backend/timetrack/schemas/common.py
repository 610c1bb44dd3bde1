"""
Shared schema helpers.

Patch requests need to tell "field omitted" apart from "field explicitly set
to null". Pydantic records which fields the client actually sent in
``model_fields_set``; ``patch_value`` turns that into a three-state value.
"""
from typing import Any

from pydantic import BaseModel


class _NotProvided:
    """Sentinel for a patch field absent from the request payload."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "NOT_PROVIDED"


NOT_PROVIDED = _NotProvided()


def patch_value(request: BaseModel, field: str) -> Any:
    """
    Read a patch field.

    Returns:
        NOT_PROVIDED if the field was omitted, ``None`` if it was sent as
        null, otherwise the supplied value.
    """
    if field not in request.model_fields_set:
        return NOT_PROVIDED
    return getattr(request, field)


def is_provided(value: Any) -> bool:
    return value is not NOT_PROVIDED
