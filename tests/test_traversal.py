"""Tests for the traversal driver."""

import pytest

from medisync.core.activity import ActivityTracker
from medisync.core.config.loader import Credentials
from medisync.core.errors import RepositoryError, TraversalError
from medisync.core.orchestrator import RunContext, TraversalDriver
from medisync.core.reconcile import ReconciliationEngine
from medisync.core.session import SessionController

from conftest import TODAY, FakePortal, FakeRow, days_from_today, make_appointment, make_patient

CREDENTIALS = Credentials(username="physio", password="secret")


def row(last_name: str, **kwargs) -> FakeRow:
    return FakeRow(patient=make_patient(last_name=last_name), **kwargs)


async def build_driver(script, repository, context=None):
    context = context or RunContext(run_id="run-1")
    session = SessionController(lambda: FakePortal(script), "https://portal.test")
    await session.connect(CREDENTIALS)
    driver = TraversalDriver(
        session,
        ReconciliationEngine(repository, today=lambda: TODAY),
        ActivityTracker(repository, context),
        context,
    )
    return driver, context


def visited(script) -> list[tuple[int, int]]:
    return [(page, r) for name, page, r in (c for c in script.calls if c[0] == "go_back")]


class TestAdvancement:
    async def test_walks_every_page(self, make_script, repository):
        script = make_script([
            [row("Aebi"), row("Blanc")],
            [row("Chappuis")],
        ])
        driver, context = await build_driver(script, repository)

        end = await driver.run()

        assert visited(script) == [(1, 0), (1, 1), (2, 0)]
        assert end == (2, 0)
        assert context.stats.patients_processed == 3
        assert context.stats.pages_visited == 2
        assert await repository.count_patients() == 3

    async def test_starts_at_given_position(self, make_script, repository):
        script = make_script([
            [row("Aebi"), row("Blanc")],
            [row("Chappuis"), row("Droz")],
        ])
        driver, _ = await build_driver(script, repository)

        await driver.run(page_index=2, patient_index=1)

        assert visited(script) == [(2, 1)]

    async def test_row_absent_ends_cleanly(self, make_script, repository):
        script = make_script([[row("Aebi")]])
        driver, _ = await build_driver(script, repository)

        end = await driver.run(page_index=1, patient_index=5)

        assert end == (1, 5)
        assert visited(script) == []

    async def test_empty_result_grid(self, make_script, repository):
        script = make_script([[]])
        driver, context = await build_driver(script, repository)

        await driver.run()

        assert context.stats.patients_processed == 0

    async def test_filter_applied_before_walking(self, make_script, repository):
        script = make_script([[row("Aebi")]])
        driver, _ = await build_driver(script, repository)

        await driver.run()

        names = [c[0] for c in script.calls]
        assert names.index("apply_filter") < names.index("goto_result_page")


class TestClassification:
    async def test_non_patient_rows_skipped(self, make_script, repository):
        script = make_script([[row("Aebi"), None, row("Blanc")]])
        driver, context = await build_driver(script, repository)

        await driver.run()

        assert visited(script) == [(1, 0), (1, 2)]
        assert context.stats.non_patient_rows == 1

        activities = await repository.list_activities(run_id="run-1")
        assert sorted(a.patient_index for a in activities) == [0, 2]

    async def test_activity_row_per_patient(self, make_script, repository):
        script = make_script([
            [row("Aebi", appointments=[make_appointment(days_from_today(3))])],
        ])
        driver, context = await build_driver(script, repository)

        await driver.run()
        await driver.run()

        actions = [a.action_type for a in await repository.list_activities(run_id="run-1")]
        assert actions == ["skipped", "created"]
        assert context.stats.patients_created == 1
        assert context.stats.patients_skipped == 1


class TestFailures:
    async def test_failure_carries_position(self, make_script, repository):
        script = make_script(
            [[row("Aebi"), row("Blanc")]],
            failures={("scrape_appointments", 1, 1): 1},
        )
        driver, context = await build_driver(script, repository)

        with pytest.raises(TraversalError) as exc_info:
            await driver.run()

        assert exc_info.value.position == (1, 1)
        assert context.position == (1, 1)
        assert await repository.count_patients() == 1

    async def test_unreachable_current_page_is_failure(self, make_script, repository):
        script = make_script([[row("Aebi")]])
        driver, _ = await build_driver(script, repository)

        with pytest.raises(TraversalError) as exc_info:
            await driver.run(page_index=4)

        assert exc_info.value.position == (4, 0)

    async def test_unreachable_next_page_ends_cleanly(self, make_script, repository):
        script = make_script(
            [[row("Aebi")], [row("Blanc")]],
            failures={("goto_result_page", 2, None): 1},
        )
        driver, _ = await build_driver(script, repository)

        end = await driver.run()

        assert end == (1, 0)
        assert visited(script) == [(1, 0)]

    async def test_repository_error_not_wrapped(self, make_script, repository):
        script = make_script([[row("Aebi")]])
        driver, _ = await build_driver(script, repository)

        async def broken(*args, **kwargs):
            raise RepositoryError("Failed to insert activity record: disk full")

        driver.tracker.repository = type(
            "BrokenActivity", (), {"insert_activity_record": staticmethod(broken)}
        )()

        with pytest.raises(RepositoryError):
            await driver.run()

        # Compensation removed the patient created in that iteration
        assert await repository.count_patients() == 0
