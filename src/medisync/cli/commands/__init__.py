"""CLI command modules."""

from . import activity, db, patients, sync

__all__ = [
    "activity",
    "db",
    "patients",
    "sync",
]
