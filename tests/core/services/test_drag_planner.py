import pytest
from conftest import node

from taskpad.core.flatten import flatten
from taskpad.core.mutations import move_tasks
from taskpad.core.services.drag_planner import (
    DragGesture,
    DragSession,
    DropPlan,
    plan_drop,
    projected_depth,
)


def _plan(tree, active, over, dx=0.0, selected=()):
    return plan_drop(flatten(tree), DragGesture(active, over, dx), selected, indent_width=24)


def test_scenario_d_drop_onto_next_root_with_one_indent():
    tree = (node("a"), node("b"))
    plan = _plan(tree, "a", "b", dx=24)
    assert plan == DropPlan(("a",), "b", 0, 1)
    moved = move_tasks(tree, plan.ids, plan.parent_id, plan.index)
    assert [n.id for n in moved] == ["b"]
    assert moved[0].children[0].id == "a"


def test_flat_drag_down_reorders_roots():
    tree = (node("a"), node("b"), node("c"))
    plan = _plan(tree, "a", "b")
    assert plan == DropPlan(("a",), None, 1, 0)
    assert [n.id for n in move_tasks(tree, plan.ids, None, plan.index)] == ["b", "a", "c"]


def test_flat_drag_up_inserts_before_over():
    tree = (node("a"), node("b"), node("c"))
    plan = _plan(tree, "c", "a")
    assert plan == DropPlan(("c",), None, 0, 0)
    plan = _plan(tree, "c", "b")
    assert [n.id for n in move_tasks(tree, plan.ids, None, plan.index)] == ["a", "c", "b"]


def test_drag_left_outdents_to_root(sample_tree):
    # a2x (depth 2) dropped on b, two indents to the left
    plan = _plan(sample_tree, "a2x", "b", dx=-48)
    assert plan.parent_id is None
    assert plan.projected_depth == 0
    result = move_tasks(sample_tree, plan.ids, plan.parent_id, plan.index)
    assert [n.id for n in result] == ["a", "b", "a2x", "c"]


def test_drag_into_nested_list_counts_siblings(sample_tree):
    # b dragged up onto a2x at depth 2: lands under a2 before a2x
    plan = _plan(sample_tree, "b", "a2x", dx=48)
    assert plan.parent_id == "a2"
    assert plan.index == 0

    # dropped on a2 at depth 1: between a1 and a2 under a
    plan = _plan(sample_tree, "b", "a2", dx=24)
    assert (plan.parent_id, plan.index) == ("a", 1)


def test_noop_gestures_return_none(sample_tree):
    assert _plan(sample_tree, "a", None) is None
    assert _plan(sample_tree, "a", "a") is None
    assert _plan(sample_tree, "a", "c1") is None  # hidden under collapsed c
    assert _plan(sample_tree, "ghost", "b") is None


def test_parent_inside_moved_subtree_is_rejected(sample_tree):
    # a dragged onto its own grandchild with a deep projection
    assert _plan(sample_tree, "a", "a2x", dx=72) is None


def test_multi_drag_moves_selection_in_visible_order():
    tree = (node("a"), node("b"), node("c"), node("d"))
    plan = _plan(tree, "c", "d", selected={"c", "a"})
    assert plan.ids == ("a", "c")
    result = move_tasks(tree, plan.ids, plan.parent_id, plan.index)
    assert [n.id for n in result] == ["b", "d", "a", "c"]


def test_unselected_active_drags_alone():
    tree = (node("a"), node("b"), node("c"))
    plan = _plan(tree, "c", "a", selected={"a", "b"})
    assert plan.ids == ("c",)


@pytest.mark.parametrize("depth, dx, expected", [
    (0, 0, 0), (0, 11, 0), (0, 13, 1), (2, -100, 0), (1, 48, 3),
])
def test_projected_depth(depth, dx, expected):
    assert projected_depth(depth, dx, 24) == expected


def test_drag_session_tracks_indicator_depth(sample_tree):
    flat = flatten(sample_tree)
    session = DragSession(indent_width=24)
    assert session.end(flat, "b") is None

    session.start("b")
    session.move(30)
    assert session.active
    assert session.indicator_depth(flat) == 1
    plan = session.end(flat, "c")
    assert plan is not None and plan.parent_id == "c"
    assert not session.active
