"""
Field-by-field change detection between a stored record and a fresh snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable


@dataclass
class FieldChange:
    """A single field change."""

    field: str
    old_value: Any
    new_value: Any


@dataclass
class DiffResult:
    """Result of comparing a stored record with a fresh snapshot."""

    changes: list[FieldChange] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return len(self.changes) > 0

    @property
    def summary(self) -> str:
        if not self.changes:
            return "No changes"
        parts = [f"{c.field}: {c.old_value!r} -> {c.new_value!r}" for c in self.changes[:3]]
        if len(self.changes) > 3:
            parts.append(f"+{len(self.changes) - 3} more")
        return "; ".join(parts)


def values_differ(old: Any, new: Any) -> bool:
    """NULL-aware comparison.

    None equals only None. Numbers compare by value (a stored Decimal('12.50')
    equals a fresh Decimal('12.5') or 12.5). Datetimes compare to the minute.
    """
    if old is None and new is None:
        return False
    if old is None or new is None:
        return True

    if isinstance(old, bool) or isinstance(new, bool):
        return bool(old) != bool(new)

    if isinstance(old, (int, float, Decimal)) and isinstance(new, (int, float, Decimal)):
        try:
            return Decimal(str(old)) != Decimal(str(new))
        except InvalidOperation:
            return True

    if isinstance(old, datetime) and isinstance(new, datetime):
        return old.replace(second=0, microsecond=0) != new.replace(second=0, microsecond=0)

    if isinstance(old, date) and isinstance(new, date):
        return old != new

    return old != new


def compute_diff(stored: Any, fresh: Any, field_names: Iterable[str]) -> DiffResult:
    """Compare ``field_names`` of a stored record against a fresh snapshot.

    Args:
        stored: ORM row (or any object) exposing the fields as attributes
        fresh: Snapshot exposing the same attributes
        field_names: Mapped fields to compare

    Returns:
        DiffResult listing every differing field
    """
    result = DiffResult()
    for name in field_names:
        old_value = getattr(stored, name, None)
        new_value = getattr(fresh, name, None)
        if values_differ(old_value, new_value):
            result.changes.append(FieldChange(field=name, old_value=old_value, new_value=new_value))
    return result
