"""
Appointment identity inference.

Appointments have no key on the portal, so stored and fresh entries are
paired by date:

1. Both sides are split into past (calendar date before today) and future.
   Nothing is ever paired across the split.
2. Past entries pair on identical date-time only. Stored past entries that
   find no partner are left alone.
3. Future entries first pair on identical date-time, then whatever is left
   on either side is sorted by date (stable) and paired by index. Stored
   future entries still unpaired are to be tombstoned.
4. Fresh entries never paired are to be inserted.

Within the fresh list only the first entry for a given date-time takes
part; later ones with the same date-time are reported as duplicates.

The positional pass can misattribute identity when several appointments
share a day or two dates swap between scrapes. That is accepted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Generic, Sequence, TypeVar

from ..normalize.snapshots import AppointmentSnapshot

S = TypeVar("S")


@dataclass
class AppointmentMatch(Generic[S]):
    """A stored appointment paired with its fresh counterpart."""

    stored: S
    fresh: AppointmentSnapshot
    kind: str  # "exact" or "positional"


@dataclass
class AppointmentPlan(Generic[S]):
    """Outcome of matching, before any write happens."""

    matches: list[AppointmentMatch[S]] = field(default_factory=list)
    inserts: list[AppointmentSnapshot] = field(default_factory=list)
    deletions: list[S] = field(default_factory=list)
    duplicates: list[AppointmentSnapshot] = field(default_factory=list)


def is_past(scheduled_at: datetime | None, today: date) -> bool:
    """Undated entries count as future."""
    return scheduled_at is not None and scheduled_at.date() < today


def _sort_key(scheduled_at: datetime | None) -> tuple[bool, datetime]:
    return (scheduled_at is None, scheduled_at or datetime.min)


def _exact_pass(
    stored: list[S],
    fresh: Sequence[AppointmentSnapshot],
    plan: AppointmentPlan[S],
) -> tuple[list[S], list[AppointmentSnapshot]]:
    """Pair entries with identical date-time.

    Returns:
        The stored and fresh entries left unpaired, in their original order
    """
    remaining = list(stored)
    unmatched: list[AppointmentSnapshot] = []
    seen: set[datetime | None] = set()

    for entry in fresh:
        key = _minute(entry.scheduled_at)
        if key is None:
            # Undated rows have no date to repeat or pair on
            unmatched.append(entry)
            continue
        if key in seen:
            plan.duplicates.append(entry)
            continue
        seen.add(key)

        partner_index = next(
            (i for i, candidate in enumerate(remaining) if _scheduled_at(candidate) == key),
            None,
        )
        if partner_index is None:
            unmatched.append(entry)
        else:
            plan.matches.append(AppointmentMatch(remaining.pop(partner_index), entry, "exact"))

    return remaining, unmatched


def _minute(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value.replace(second=0, microsecond=0)


def _scheduled_at(record: Any) -> datetime | None:
    return _minute(getattr(record, "scheduled_at", None))


def plan_appointments(
    stored: Sequence[S],
    fresh: Sequence[AppointmentSnapshot],
    today: date,
) -> AppointmentPlan[S]:
    """Decide which stored appointment each fresh one corresponds to.

    Args:
        stored: Non-tombstoned stored appointments of one patient
        fresh: Appointments just scraped for that patient
        today: Boundary between past and future

    Returns:
        AppointmentPlan with matches, inserts, deletions and duplicates
    """
    plan: AppointmentPlan[S] = AppointmentPlan()

    stored_past = [s for s in stored if is_past(_scheduled_at(s), today)]
    stored_future = [s for s in stored if not is_past(_scheduled_at(s), today)]
    fresh_past = [f for f in fresh if is_past(f.scheduled_at, today)]
    fresh_future = [f for f in fresh if not is_past(f.scheduled_at, today)]

    # Past: exact only; leftover stored entries are history and stay untouched
    _, unmatched_past = _exact_pass(stored_past, fresh_past, plan)
    plan.inserts.extend(unmatched_past)

    # Future pass 1: exact
    left_stored, left_fresh = _exact_pass(stored_future, fresh_future, plan)

    # Future pass 2: positional
    left_stored.sort(key=lambda s: _sort_key(_scheduled_at(s)))
    left_fresh.sort(key=lambda f: _sort_key(f.scheduled_at))
    paired = min(len(left_stored), len(left_fresh))
    for stored_entry, fresh_entry in zip(left_stored[:paired], left_fresh[:paired]):
        plan.matches.append(AppointmentMatch(stored_entry, fresh_entry, "positional"))

    plan.deletions.extend(left_stored[paired:])
    plan.inserts.extend(left_fresh[paired:])

    return plan
