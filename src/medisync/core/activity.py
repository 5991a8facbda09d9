"""
Activity tracking.

One append-only ScraperActivity row per processed patient. The rows double
as the only durable record of traversal progress.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .reconcile.engine import SyncAction, SyncResult

if TYPE_CHECKING:
    from .orchestrator.context import RunContext
    from .reconcile.repository import SyncRepository


def classify_action(result: SyncResult) -> SyncAction:
    """Collapse a patient's sync result into one action type.

    ``created`` when the patient itself is new; otherwise ``updated`` if any
    appointment was created, updated or deleted or any invoice created or
    updated; otherwise ``skipped``. A patient row that changed while all its
    collections were untouched counts as ``skipped``.
    """
    if result.patient.created:
        return SyncAction.CREATED

    appointments = result.appointments
    invoices = result.invoices
    if (
        appointments.created
        or appointments.updated
        or appointments.deleted
        or invoices.created
        or invoices.updated
    ):
        return SyncAction.UPDATED

    return SyncAction.SKIPPED


class ActivityTracker:
    """Writes activity rows for a single run."""

    def __init__(self, repository: "SyncRepository", context: "RunContext"):
        self.repository = repository
        self.context = context
        self.logger = context.logger("activity")

    async def record(
        self,
        result: SyncResult,
        page_index: int,
        patient_index: int,
    ) -> SyncAction:
        """Append the activity row for one processed patient.

        Returns:
            The action type written
        """
        action = classify_action(result)
        await self.repository.insert_activity_record(
            run_id=self.context.run_id,
            patient_id=result.patient_id,
            page_index=page_index,
            patient_index=patient_index,
            action_type=action.value,
        )
        self.logger.with_position(page_index, patient_index).info(
            f"Patient {action.value}: appointments {result.appointments.to_dict()}, "
            f"invoices {result.invoices.to_dict()}",
            extra={"action": action.value},
        )
        return action
