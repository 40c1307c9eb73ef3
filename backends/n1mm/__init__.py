# backends/n1mm/__init__.py
"""
N1MM Logger+ UDP/XML package.

Exports:
- N1MMLogger (contactreplace / contactdelete over UDP)
- build_contact_replace / build_contact_delete / map_mode / generate_contact_id
"""

from .logger import N1MMLogger
from .messages import (
    MODE_MAP,
    build_contact_delete,
    build_contact_replace,
    generate_contact_id,
    map_mode,
    n1mm_timestamp,
)

__all__ = [
    "N1MMLogger",
    "MODE_MAP",
    "build_contact_delete",
    "build_contact_replace",
    "generate_contact_id",
    "map_mode",
    "n1mm_timestamp",
]
