"""
Earprint — ORM model registry.

Importing every model here ensures that ``Base.metadata.create_all`` (and any
other tool that inspects ``Base.metadata``) discovers all tables.
"""

from earprint.models.kv_entry import KeyValueEntry

__all__ = [
    "KeyValueEntry",
]
