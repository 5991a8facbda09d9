"""Tests for appointment identity inference."""

from dataclasses import dataclass
from datetime import datetime

from medisync.core.reconcile.matching import is_past, plan_appointments

from conftest import TODAY, days_from_today, make_appointment


@dataclass
class Stored:
    id: str
    scheduled_at: datetime | None
    status: str | None = "Confirmé"


class TestIsPast:
    def test_yesterday_is_past(self):
        assert is_past(days_from_today(-1), TODAY)

    def test_today_is_future(self):
        assert not is_past(days_from_today(0, hour=0), TODAY)

    def test_undated_is_future(self):
        assert not is_past(None, TODAY)


class TestPastPartition:
    def test_exact_date_pairs(self):
        stored = [Stored("a", days_from_today(-10))]
        fresh = [make_appointment(days_from_today(-10), status="Annulé")]

        plan = plan_appointments(stored, fresh, TODAY)

        assert [(m.stored.id, m.kind) for m in plan.matches] == [("a", "exact")]
        assert plan.inserts == []
        assert plan.deletions == []

    def test_unmatched_stored_past_left_alone(self):
        stored = [Stored("a", days_from_today(-10))]

        plan = plan_appointments(stored, [], TODAY)

        assert plan.matches == []
        assert plan.deletions == []

    def test_unmatched_fresh_past_inserted(self):
        stored = [Stored("a", days_from_today(-10))]
        fresh = [make_appointment(days_from_today(-9))]

        plan = plan_appointments(stored, fresh, TODAY)

        assert plan.matches == []
        assert plan.inserts == fresh

    def test_past_never_positional(self):
        stored = [Stored("a", days_from_today(-10)), Stored("b", days_from_today(-5))]
        fresh = [make_appointment(days_from_today(-11)), make_appointment(days_from_today(-6))]

        plan = plan_appointments(stored, fresh, TODAY)

        assert plan.matches == []
        assert len(plan.inserts) == 2


class TestFuturePartition:
    def test_positional_fallback_pairs_in_date_order(self):
        stored = [Stored("late", days_from_today(8)), Stored("early", days_from_today(3))]
        fresh = [make_appointment(days_from_today(9)), make_appointment(days_from_today(4))]

        plan = plan_appointments(stored, fresh, TODAY)

        pairs = {m.stored.id: m.fresh.scheduled_at for m in plan.matches}
        assert pairs == {"early": days_from_today(4), "late": days_from_today(9)}
        assert all(m.kind == "positional" for m in plan.matches)
        assert plan.deletions == []

    def test_exact_before_positional(self):
        stored = [Stored("a", days_from_today(2)), Stored("b", days_from_today(5))]
        fresh = [make_appointment(days_from_today(5)), make_appointment(days_from_today(7))]

        plan = plan_appointments(stored, fresh, TODAY)

        kinds = {m.stored.id: m.kind for m in plan.matches}
        assert kinds == {"b": "exact", "a": "positional"}

    def test_extra_stored_future_deleted(self):
        stored = [Stored("a", days_from_today(2)), Stored("b", days_from_today(5))]
        fresh = [make_appointment(days_from_today(2))]

        plan = plan_appointments(stored, fresh, TODAY)

        assert [s.id for s in plan.deletions] == ["b"]

    def test_extra_fresh_future_inserted(self):
        stored = [Stored("a", days_from_today(2))]
        fresh = [make_appointment(days_from_today(3)), make_appointment(days_from_today(6))]

        plan = plan_appointments(stored, fresh, TODAY)

        assert len(plan.matches) == 1
        assert [f.scheduled_at for f in plan.inserts] == [days_from_today(6)]


class TestPartitionBoundary:
    def test_never_pairs_across_today(self):
        stored = [Stored("past", days_from_today(-1))]
        fresh = [make_appointment(days_from_today(1))]

        plan = plan_appointments(stored, fresh, TODAY)

        assert plan.matches == []
        assert plan.deletions == []
        assert plan.inserts == fresh

    def test_future_stored_not_paired_with_past_fresh(self):
        stored = [Stored("future", days_from_today(1))]
        fresh = [make_appointment(days_from_today(-1))]

        plan = plan_appointments(stored, fresh, TODAY)

        assert plan.matches == []
        assert [s.id for s in plan.deletions] == ["future"]
        assert plan.inserts == fresh


class TestDuplicates:
    def test_repeated_fresh_date_counted_once(self):
        when = days_from_today(4)
        stored = [Stored("a", when)]
        fresh = [make_appointment(when), make_appointment(when, status="Doublon")]

        plan = plan_appointments(stored, fresh, TODAY)

        assert len(plan.matches) == 1
        assert plan.matches[0].fresh.status == "Confirmé"
        assert [d.status for d in plan.duplicates] == ["Doublon"]
        assert plan.inserts == []

    def test_undated_fresh_rows_all_kept(self):
        fresh = [make_appointment(None, status="a"), make_appointment(None, status="b")]

        plan = plan_appointments([], fresh, TODAY)

        assert plan.duplicates == []
        assert [f.status for f in plan.inserts] == ["a", "b"]

    def test_undated_rows_pair_positionally(self):
        stored = [Stored("x", None), Stored("y", None)]
        fresh = [make_appointment(None, status="a"), make_appointment(None, status="b")]

        plan = plan_appointments(stored, fresh, TODAY)

        assert [(m.stored.id, m.fresh.status, m.kind) for m in plan.matches] == [
            ("x", "a", "positional"),
            ("y", "b", "positional"),
        ]
        assert plan.inserts == []
        assert plan.deletions == []
