"""Reconciliation of fresh portal snapshots against stored state."""

from .diff import DiffResult, FieldChange, compute_diff, values_differ
from .engine import (
    PatientUpsert,
    ReconcileCounts,
    ReconciliationEngine,
    SyncAction,
    SyncResult,
)
from .matching import AppointmentMatch, AppointmentPlan, is_past, plan_appointments
from .repository import SyncRepository

__all__ = [
    "AppointmentMatch",
    "AppointmentPlan",
    "DiffResult",
    "FieldChange",
    "PatientUpsert",
    "ReconcileCounts",
    "ReconciliationEngine",
    "SyncAction",
    "SyncRepository",
    "SyncResult",
    "compute_diff",
    "is_past",
    "plan_appointments",
    "values_differ",
]
