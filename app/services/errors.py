"""
Error taxonomy for the location registry.

The HTTP layer maps these to status codes; nothing below the service
knows about HTTP.
"""

from __future__ import annotations

from typing import Optional


class LocationError(Exception):
    """Base class for all registry errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LocationError):
    """Detected before any write; storage is left untouched."""


class DuplicateName(ValidationError):
    def __init__(self, kind, name: str, scope_name: Optional[str] = None):
        self.kind = kind
        self.name = name
        self.scope_name = scope_name
        if scope_name:
            message = (
                f"A {kind.value} with this name already exists in {scope_name}: {name}"
            )
        else:
            message = f"A {kind.value} with this name already exists: {name}"
        super().__init__(message)


class ParentNotFound(ValidationError):
    def __init__(self, kind, parent_id: Optional[int]):
        self.kind = kind
        self.parent_id = parent_id
        super().__init__(f"{kind.label} not found or inactive: {parent_id}")


class NotFound(LocationError):
    def __init__(self, kind, node_id: int):
        self.kind = kind
        self.node_id = node_id
        super().__init__(f"{kind.label} not found")


class StorageError(LocationError):
    """Lower-level failure; the open transaction is always rolled back."""
