"""
Traversal driver.

Walks the search results position by position, (page_index, patient_index),
and hands every real patient to the reconciliation engine. Any unexpected
failure is wrapped in a TraversalError carrying the exact failing position
so the supervisor can resume from there.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..errors import NotAPatientRow, PortalError, RepositoryError, RowAbsent, TraversalError
from ..normalize.snapshots import PatientFilter

if TYPE_CHECKING:
    from ..activity import ActivityTracker
    from ..portals.base import PortalAutomation
    from ..reconcile.engine import ReconciliationEngine, SyncResult
    from ..session import SessionController
    from .context import RunContext


class TraversalDriver:
    """Resumable walk over a paginated, position-indexed result grid."""

    def __init__(
        self,
        session: "SessionController",
        engine: "ReconciliationEngine",
        tracker: "ActivityTracker",
        context: "RunContext",
        criteria: PatientFilter | None = None,
    ):
        """Initialize the driver.

        Args:
            session: Controller owning the connected portal
            engine: Reconciliation engine
            tracker: Activity tracker, called once per processed patient
            context: Run id and statistics
            criteria: Search applied before walking (default: all patients)
        """
        self.session = session
        self.engine = engine
        self.tracker = tracker
        self.context = context
        self.criteria = criteria or PatientFilter()
        self.logger = context.logger("traversal")

        self.page_index = 1
        self.patient_index = 0

    @property
    def position(self) -> tuple[int, int]:
        return (self.page_index, self.patient_index)

    async def run(self, page_index: int = 1, patient_index: int = 0) -> tuple[int, int]:
        """Traverse from the given position until no row is left.

        Args:
            page_index: Result page to start on (1-based)
            patient_index: Row to start at (0-based)

        Returns:
            Position at which the traversal ended

        Raises:
            TraversalError: A step failed; carries the failing position
            RepositoryError: Storage failed; not retryable
        """
        self.page_index = page_index
        self.patient_index = patient_index

        portal = self.session.portal
        await self._guard(portal.apply_filter(self.criteria))
        self.logger.info(f"Starting traversal at page {page_index}, patient index {patient_index}")

        loaded_page: int | None = None

        while True:
            self.context.position = self.position
            log = self.logger.with_position(self.page_index, self.patient_index)
            try:
                if not await portal.goto_result_page(self.page_index):
                    raise PortalError(f"Result page {self.page_index} is not available")
                if loaded_page != self.page_index:
                    loaded_page = self.page_index
                    self.context.stats.pages_visited += 1

                try:
                    is_last_row = await portal.goto_patient_row(self.patient_index)
                except NotAPatientRow:
                    log.info("Skipping non-patient row")
                    self.context.stats.non_patient_rows += 1
                    self.patient_index += 1
                    continue
                except RowAbsent:
                    log.info("No more rows; traversal finished")
                    return self.position

                await self._process_patient(portal)

                if is_last_row:
                    if not await self._next_page(portal):
                        log.info("No further result page; traversal finished")
                        return self.position
                else:
                    self.patient_index += 1

            except (RepositoryError, TraversalError):
                raise
            except Exception as e:
                raise TraversalError(self.page_index, self.patient_index, e) from e

    async def _guard(self, step) -> None:
        try:
            await step
        except RepositoryError:
            raise
        except Exception as e:
            raise TraversalError(self.page_index, self.patient_index, e) from e

    async def _process_patient(self, portal: "PortalAutomation") -> None:
        """Scrape the open patient and reconcile it."""
        page_index, patient_index = self.position

        patient = await portal.scrape_patient()
        appointments = await portal.scrape_appointments()
        invoices = await portal.scrape_invoices(patient.insurance_number)
        await portal.go_back()

        async def record_activity(result: "SyncResult") -> None:
            action = await self.tracker.record(result, page_index, patient_index)
            self.context.stats.record_action(action.value)

        await self.engine.synchronize(
            patient,
            appointments,
            invoices,
            on_synced=record_activity,
        )
        self.context.stats.last_position = (page_index, patient_index)

    async def _next_page(self, portal: "PortalAutomation") -> bool:
        """Move to the next result page, resetting the row.

        Returns:
            False when there is no next page
        """
        next_page = self.page_index + 1
        try:
            reached = await portal.goto_result_page(next_page)
        except PortalError as e:
            self.logger.with_position(next_page, 0).info(f"Result page {next_page} unreachable: {e}")
            return False
        if not reached:
            return False

        self.page_index = next_page
        self.patient_index = 0
        self.logger.with_position(self.page_index, 0).info(f"Moving to result page {next_page}")
        return True
