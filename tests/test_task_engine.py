"""Tests for todoeveryday.core.task_engine — CRUD, ordering, completion, persistence."""

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from todoeveryday.core.task_engine import TaskEngine
from todoeveryday.ports.storage_port import StorageError


def _reload(task_db, clock):
    fresh = TaskEngine(task_db, clock=clock)
    fresh.start()
    return fresh


# ---------------------------------------------------------------------------
# Adding tasks
# ---------------------------------------------------------------------------


class TestAddTask:
    def test_sort_order_increments(self, engine):
        day = engine.todays_day
        a = engine.add_task(day, "A")
        b = engine.add_task(day, "B")
        assert (a.sort_order, b.sort_order) == (0, 1)

    def test_title_is_stripped(self, engine):
        task = engine.add_task(engine.todays_day, "  Call mom  ")
        assert task.title == "Call mom"

    def test_empty_title_is_ignored(self, engine):
        assert engine.add_task(engine.todays_day, "   ") is None
        assert len(engine.arena) == 0

    def test_deadline_and_persistence(self, engine, task_db, clock):
        deadline = datetime(2026, 1, 6, 17, 0)
        task = engine.add_task(engine.todays_day, "Submit", deadline=deadline)
        fresh = _reload(task_db, clock)
        assert fresh.find_task(task.id).deadline == deadline

    def test_created_at_uses_clock(self, engine, clock):
        task = engine.add_task(engine.todays_day, "A")
        assert task.created_at == clock()


class TestAddSubtask:
    def test_new_subtask_goes_first(self, engine):
        parent = engine.add_task(engine.todays_day, "Parent")
        first = engine.add_subtask(parent, "First")
        second = engine.add_subtask(parent, "Second")
        assert [c.title for c in engine.children(parent)] == ["Second", "First"]
        assert (second.sort_order, first.sort_order) == (0, 1)

    def test_subtask_inherits_day(self, engine):
        parent = engine.add_task(engine.todays_day, "Parent")
        child = engine.add_subtask(parent, "Child")
        assert child.day_id == parent.day_id
        assert child.parent_id == parent.id
        # A new sub-task starts its own group
        assert child.task_group_id != parent.task_group_id

    def test_empty_title_is_ignored(self, engine):
        parent = engine.add_task(engine.todays_day, "Parent")
        assert engine.add_subtask(parent, "") is None
        assert engine.children(parent) == []

    def test_shifted_siblings_are_persisted(self, engine, task_db, clock):
        parent = engine.add_task(engine.todays_day, "Parent")
        engine.add_subtask(parent, "Old")
        engine.add_subtask(parent, "New")
        fresh = _reload(task_db, clock)
        kids = fresh.children(fresh.find_task(parent.id))
        assert [(k.title, k.sort_order) for k in kids] == [("New", 0), ("Old", 1)]


# ---------------------------------------------------------------------------
# Moving
# ---------------------------------------------------------------------------


class TestMoveSubtask:
    @pytest.fixture
    def family(self, engine):
        parent = engine.add_task(engine.todays_day, "Parent")
        for name in "DCBA":
            engine.add_subtask(parent, name)
        return parent

    def test_move_last_to_first(self, engine, family):
        d = engine.children(family)[3]
        assert engine.move_subtask(d, 3, 0) is True
        kids = engine.children(family)
        assert [k.title for k in kids] == ["D", "A", "B", "C"]
        assert {k.title: k.sort_order for k in kids} == {"D": 0, "A": 1, "B": 2, "C": 3}

    def test_move_persists(self, engine, family, task_db, clock):
        a = engine.children(family)[0]
        engine.move_subtask(a, 0, 2)
        fresh = _reload(task_db, clock)
        assert [k.title for k in fresh.children(fresh.find_task(family.id))] == ["B", "C", "A", "D"]

    def test_out_of_range(self, engine, family):
        a = engine.children(family)[0]
        assert engine.move_subtask(a, 0, 4) is False
        assert [k.title for k in engine.children(family)] == ["A", "B", "C", "D"]

    def test_stale_index_is_rejected(self, engine, family):
        a = engine.children(family)[0]
        assert engine.move_subtask(a, 1, 2) is False

    def test_top_level_cannot_move(self, engine, family):
        assert engine.move_subtask(family, 0, 0) is False


# ---------------------------------------------------------------------------
# Field updates
# ---------------------------------------------------------------------------


class TestUpdates:
    def test_field_updates_persist(self, engine, task_db, clock):
        task = engine.add_task(engine.todays_day, "Draft")
        engine.update_title(task, "Final")
        engine.update_description(task, "With numbers")
        engine.update_deadline(task, datetime(2026, 1, 8, 12, 0))
        engine.toggle_expansion(task)

        stored = _reload(task_db, clock).find_task(task.id)
        assert stored.title == "Final"
        assert stored.description == "With numbers"
        assert stored.deadline == datetime(2026, 1, 8, 12, 0)
        assert stored.is_expanded is False

    def test_clear_deadline(self, engine):
        task = engine.add_task(engine.todays_day, "A", deadline=datetime(2026, 1, 8))
        engine.update_deadline(task, None)
        assert task.deadline is None

    def test_update_summary(self, engine, task_db, clock):
        engine.update_summary(engine.todays_day, "Good day")
        assert _reload(task_db, clock).todays_day.summary == "Good day"


# ---------------------------------------------------------------------------
# Deleting
# ---------------------------------------------------------------------------


class TestDelete:
    def test_delete_task_cascades(self, engine, task_db, clock):
        parent = engine.add_task(engine.todays_day, "Parent")
        child = engine.add_subtask(parent, "Child")
        engine.add_subtask(child, "Grandchild")
        engine.add_task(engine.todays_day, "Other")

        engine.delete_task(parent)
        assert [t.title for t in engine.tasks_for_day(engine.todays_day)] == ["Other"]
        assert task_db.count_tasks() == 1

    def test_delete_task_keeps_other_instances(self, engine, clock):
        task = engine.add_task(engine.todays_day, "Carry me")
        clock.set(datetime(2026, 1, 7, 9, 0))
        today = engine.ensure_todays_day()
        [copy] = engine.tasks_for_day(today)

        engine.delete_task(copy)
        assert engine.find_task(task.id) is task
        assert engine.linked_instance_count(task) == 1

    def test_delete_subtask(self, engine):
        parent = engine.add_task(engine.todays_day, "Parent")
        child = engine.add_subtask(parent, "Child")
        engine.delete_task(child)
        assert engine.children(parent) == []

    def test_delete_day(self, engine, task_db):
        old = engine.create_previous_debug_day()
        engine.delete_day(old)
        assert old not in engine.days
        assert len(task_db.load_days()) == 1

    def test_delete_active_day_recreates_today(self, engine, task_db):
        first = engine.todays_day
        engine.add_task(first, "Gone")
        engine.delete_day(first)

        assert engine.todays_day is not None
        assert engine.todays_day.id != first.id
        assert engine.todays_day.date == date(2026, 1, 6)
        assert len(engine.arena) == 0
        assert task_db.count_tasks() == 0
        assert engine.statistics.total_task_groups == 0


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------


class TestToggleCompletion:
    @pytest.fixture
    def linked(self, engine, clock):
        """One logical task on three consecutive days."""
        engine.add_task(engine.todays_day, "Report")
        for day in (7, 8):
            clock.set(datetime(2026, 1, day, 9, 0))
            engine.ensure_todays_day()
        group = engine.arena.group(engine.tasks_for_day(engine.todays_day)[0].task_group_id)
        assert len(group) == 3
        return group

    def test_mark_all_linked(self, engine, linked, clock):
        latest = next(t for t in linked if t.day_id == engine.todays_day.id)
        assert engine.toggle_completion(latest, mark_all_linked=True) is True
        assert all(t.is_completed for t in linked)
        assert {t.completed_at for t in linked} == {clock()}

    def test_only_this_instance(self, engine, linked):
        latest = next(t for t in linked if t.day_id == engine.todays_day.id)
        engine.toggle_completion(latest, mark_all_linked=False)
        assert [t.is_completed for t in linked].count(True) == 1
        assert latest.is_completed is True

    def test_uncomplete_clears_timestamps(self, engine, linked):
        task = linked[0]
        engine.toggle_completion(task)
        assert engine.toggle_completion(task) is False
        assert all(not t.is_completed and t.completed_at is None for t in linked)

    def test_feedback_only_on_completion(self, engine, feedback):
        task = engine.add_task(engine.todays_day, "A")
        engine.toggle_completion(task)
        engine.toggle_completion(task)
        assert feedback.completed == [task]

    def test_feedback_once_for_linked_group(self, engine, linked, feedback):
        engine.toggle_completion(linked[0], mark_all_linked=True)
        assert len(feedback.completed) == 1

    def test_completion_persists(self, engine, linked, task_db, clock):
        engine.toggle_completion(linked[0])
        fresh = _reload(task_db, clock)
        assert all(fresh.find_task(t.id).is_completed for t in linked)


# ---------------------------------------------------------------------------
# Outline & refs
# ---------------------------------------------------------------------------


class TestOutline:
    def test_refs_follow_display_order(self, engine):
        day = engine.todays_day
        plain = engine.add_task(day, "Plain")
        urgent = engine.add_task(day, "Urgent", deadline=datetime(2026, 1, 6, 12, 0))
        child = engine.add_subtask(plain, "Child")

        entries = engine.outline(day)
        assert [(e.ref, e.depth, e.task) for e in entries] == [
            ("1", 0, urgent), ("2", 0, plain), ("2.1", 1, child),
        ]
        assert engine.resolve_ref(day, "2.1") is child
        assert engine.resolve_ref(day, "9") is None

    def test_collapsed_children_hidden_on_request(self, engine):
        day = engine.todays_day
        parent = engine.add_task(day, "Parent")
        engine.add_subtask(parent, "Child")
        engine.toggle_expansion(parent)
        assert len(engine.outline(day)) == 2
        assert len(engine.outline(day, include_collapsed=False)) == 1

    def test_completed_sink_to_bottom(self, engine):
        day = engine.todays_day
        a = engine.add_task(day, "A")
        b = engine.add_task(day, "B")
        engine.toggle_completion(a)
        assert engine.top_level_tasks(day) == [b, a]


# ---------------------------------------------------------------------------
# Persistence failures
# ---------------------------------------------------------------------------


@pytest.fixture
def failing_store():
    store = MagicMock()
    store.purge_ephemeral_days.return_value = 0
    store.load_days.return_value = []
    store.load_tasks.return_value = []
    return store


class TestPersistenceFailure:
    def test_failed_save_keeps_memory_and_reports(self, failing_store, clock):
        engine = TaskEngine(failing_store, clock=clock)
        engine.start()
        failing_store.save_tasks.side_effect = StorageError("disk full")

        task = engine.add_task(engine.todays_day, "Unsaved")
        assert task is not None
        assert engine.find_task(task.id) is task
        assert isinstance(engine.last_error, StorageError)
        # Statistics still reflect the in-memory change
        assert engine.statistics.total_task_groups == 1

    def test_next_success_clears_error(self, failing_store, clock):
        engine = TaskEngine(failing_store, clock=clock)
        engine.start()
        failing_store.save_tasks.side_effect = StorageError("disk full")
        task = engine.add_task(engine.todays_day, "A")
        failing_store.save_tasks.side_effect = None
        assert engine.update_title(task, "B") is True
        assert engine.last_error is None

    def test_failed_day_creation_still_selects_today(self, failing_store, clock):
        failing_store.add_day.side_effect = StorageError("read-only")
        engine = TaskEngine(failing_store, clock=clock)
        engine.start()
        assert engine.todays_day is not None
        assert engine.last_error is not None

    def test_failed_load_starts_empty(self, failing_store, clock):
        failing_store.load_days.side_effect = StorageError("corrupt")
        engine = TaskEngine(failing_store, clock=clock)
        engine.start()
        assert engine.todays_day.date == date(2026, 1, 6)
        assert len(engine.days) == 1


# ---------------------------------------------------------------------------
# Statistics cache
# ---------------------------------------------------------------------------


class TestStatisticsCache:
    def test_recomputed_after_each_mutation(self, engine):
        day = engine.todays_day
        a = engine.add_task(day, "A")
        engine.add_task(day, "B")
        assert engine.statistics.today_pending == 2

        engine.toggle_completion(a)
        stats = engine.statistics
        assert stats.today_completed == 1
        assert stats.today_completion_rate == 50.0
        assert stats.total_completed_task_groups == 1

        engine.delete_task(a)
        assert engine.statistics.total_task_groups == 1

    def test_group_totals_add_up(self, engine, clock):
        day = engine.todays_day
        engine.add_task(day, "A")
        done = engine.add_task(day, "B")
        engine.toggle_completion(done)
        clock.set(datetime(2026, 1, 7, 9, 0))
        engine.ensure_todays_day()
        stats = engine.statistics
        assert stats.total_task_groups == 2
        assert stats.total_completed_task_groups + stats.total_pending_task_groups == stats.total_task_groups
