# app/db/models/__init__.py
"""
Import all model modules so SQLModel registers their tables
when init_db() calls SQLModel.metadata.create_all(engine).
"""

from .barangay import Barangay  # noqa: F401
from .city import City  # noqa: F401
from .region import Region  # noqa: F401

__all__ = [
    "Region",
    "City",
    "Barangay",
]
