"""Tests for todoeveryday.core.arena — TaskArena."""

from datetime import datetime

import pytest

from todoeveryday.core.arena import TaskArena
from todoeveryday.data.models import Task


def _task(title, day_id="d1", parent=None, sort_order=0):
    return Task(
        title=title,
        day_id=day_id,
        parent_id=parent.id if parent else None,
        created_at=datetime(2026, 1, 6, 9, 0),
        sort_order=sort_order,
    )


@pytest.fixture
def tree():
    """d1: root -> (b[1], a[0] -> leaf), other; d2: elsewhere."""
    root = _task("root")
    a = _task("a", parent=root, sort_order=0)
    b = _task("b", parent=root, sort_order=1)
    leaf = _task("leaf", parent=a)
    other = _task("other", sort_order=1)
    elsewhere = _task("elsewhere", day_id="d2")
    arena = TaskArena([root, b, a, leaf, other, elsewhere])
    return arena, root, a, b, leaf, other, elsewhere


def test_add_requires_parent():
    arena = TaskArena()
    parent = _task("parent")
    with pytest.raises(KeyError):
        arena.add(_task("child", parent=parent))


def test_len_contains_get(tree):
    arena, root, *_ = tree
    assert len(arena) == 6
    assert root.id in arena
    assert "missing" not in arena
    assert arena.get(root.id) is root
    assert arena.get("missing") is None


def test_parent(tree):
    arena, root, a, *_ = tree
    assert arena.parent(a) is root
    assert arena.parent(root) is None


def test_children_follow_sort_order(tree):
    arena, root, a, b, *_ = tree
    assert arena.children(root) == [a, b]


def test_top_level_is_per_day_in_insertion_order(tree):
    arena, root, *_, other, elsewhere = tree
    assert arena.top_level("d1") == [root, other]
    assert arena.top_level("d2") == [elsewhere]
    assert arena.top_level("nope") == []


def test_walk_is_preorder_with_depth(tree):
    arena, root, a, b, leaf, *_ = tree
    assert [(t.title, depth) for t, depth in arena.walk(root)] == [
        ("root", 0), ("a", 1), ("leaf", 2), ("b", 1),
    ]


def test_tasks_for_day(tree):
    arena, *_ = tree
    assert [t.title for t in arena.tasks_for_day("d1")] == ["root", "a", "leaf", "b", "other"]


def test_group(tree):
    arena, root, *_ = tree
    copy = Task(title="root", day_id="d2", created_at=datetime(2026, 1, 7), task_group_id=root.task_group_id)
    arena.add(copy)
    assert {t.id for t in arena.group(root.task_group_id)} == {root.id, copy.id}


def test_remove_subtree(tree):
    arena, root, a, b, leaf, other, _ = tree
    removed = arena.remove_subtree(a)
    assert set(removed) == {a.id, leaf.id}
    assert arena.children(root) == [b]
    assert leaf.id not in arena


def test_remove_top_level_subtree(tree):
    arena, root, *_, other, _ = tree
    arena.remove_subtree(root)
    assert arena.top_level("d1") == [other]
    assert len(arena) == 2


def test_remove_day(tree):
    arena, *_, elsewhere = tree
    removed = arena.remove_day("d1")
    assert len(removed) == 5
    assert list(arena) == [elsewhere]
    assert arena.top_level("d1") == []
