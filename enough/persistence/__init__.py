"""Persistence write policies."""

from enough.persistence.writer import (
    BestEffortWriter,
    PersistenceError,
    PersistenceWriter,
    RetryingWriter,
    create_writer,
)

__all__ = [
    "BestEffortWriter",
    "PersistenceError",
    "PersistenceWriter",
    "RetryingWriter",
    "create_writer",
]
