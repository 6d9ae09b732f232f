"""I/O helpers for toyunfold artifacts."""

from toyunfold.io.artifacts import (
    RESPONSE_OBJECT,
    FileObjectStore,
    MemoryObjectStore,
    ObjectStore,
    read_artifact,
    read_response,
    write_artifact,
    write_response,
)

__all__ = [
    "RESPONSE_OBJECT",
    "FileObjectStore",
    "MemoryObjectStore",
    "ObjectStore",
    "read_artifact",
    "read_response",
    "write_artifact",
    "write_response",
]
