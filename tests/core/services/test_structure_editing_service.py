import random

import pytest
from conftest import node, shape

from taskpad.core.models import TaskNode
from taskpad.core.services.structure_editing_service import OperationResult, StructureEditingService
from taskpad.core.tree import collect_ids, count_nodes, find_node, forest_problems


@pytest.fixture
def service():
    return StructureEditingService()


def _two_roots():
    return (TaskNode(id="1", text="A"), TaskNode(id="2", text="B"))


# ---------------------------
# Scenarios
# ---------------------------

def test_scenario_a_indent_second_root(service):
    res = service.indent(_two_roots(), "2")
    assert isinstance(res, OperationResult)
    assert res.success
    assert res.tree == (TaskNode(id="1", text="A", children=(TaskNode(id="2", text="B"),)),)


def test_scenario_b_unindent_restores_roots(service):
    nested = service.indent(_two_roots(), "2").tree
    res = service.unindent(nested, "2")
    assert res.success
    assert res.tree == _two_roots()


def test_scenario_c_move_to_front(service):
    tree = (node("a"), node("b"), node("c"))
    res = service.move(tree, "c", None, 0)
    assert [n.id for n in res.tree] == ["c", "a", "b"]


def test_scenario_e_delete_parent_removes_subtree(service, sample_tree):
    res = service.delete_many(sample_tree, ["a"])
    assert res.success
    assert count_nodes(res.tree) == count_nodes(sample_tree) - 4
    assert res.details["removed_nodes"] == 4
    assert collect_ids(res.tree) == ["b", "c", "c1"]


# ---------------------------
# Insert / update
# ---------------------------

def test_insert_root_sibling_after_nested_node(service, sample_tree):
    res = service.insert(sample_tree, "new", after_id="a1", now=5.0)
    new_id = res.details["new_id"]
    assert res.success and new_id
    a = res.tree[0]
    assert [c.id for c in a.children] == ["a1", new_id, "a2"]
    created = find_node(res.tree, new_id)
    assert created.text == "new" and created.created_at == 5.0


def test_insert_appends_root_when_anchor_unknown(service, sample_tree):
    res = service.insert(sample_tree, after_id="nope")
    assert res.tree[-1].id == res.details["new_id"]


def test_insert_under_parent_positions(service, sample_tree):
    first = service.insert(sample_tree, "x", parent_id="c", after_id="c")
    c = first.tree[2]
    assert c.children[0].id == first.details["new_id"]
    assert c.is_collapsed is False

    last = service.insert(sample_tree, "y", parent_id="a")
    assert last.tree[0].children[-1].id == last.details["new_id"]

    after = service.insert(sample_tree, "z", parent_id="a", after_id="a1")
    assert [ch.id for ch in after.tree[0].children][1] == after.details["new_id"]


def test_insert_with_unknown_parent_is_noop(service, sample_tree):
    res = service.insert(sample_tree, "x", parent_id="ghost")
    assert not res.success
    assert res.tree is sample_tree
    assert res.details["new_id"] is None


def test_update_is_shallow_and_shares_siblings(service, sample_tree):
    res = service.update(sample_tree, "a2", text="renamed", completed=True)
    a2 = find_node(res.tree, "a2")
    assert a2.text == "renamed" and a2.completed
    assert a2.children is find_node(sample_tree, "a2").children
    # Untouched subtrees are the same objects
    assert res.tree[1] is sample_tree[1]
    assert res.tree[2] is sample_tree[2]
    assert res.tree[0].children[0] is sample_tree[0].children[0]


def test_update_rejects_unknown_fields(service, sample_tree):
    with pytest.raises(TypeError):
        service.update(sample_tree, "a", children=())


def test_update_with_same_values_is_noop(service, sample_tree):
    res = service.update(sample_tree, "b", text="B")
    assert not res.success and res.tree is sample_tree


def test_toggles(service, sample_tree):
    done = service.toggle_completed(sample_tree, "b")
    assert find_node(done.tree, "b").completed
    opened = service.toggle_collapsed(sample_tree, "c")
    assert not find_node(opened.tree, "c").is_collapsed
    assert not service.toggle_completed(sample_tree, "ghost").success


def test_clear_untitled(service):
    tree = (node("a", node("x", text=" ")), node("y", text=""), node("b"))
    res = service.clear_untitled(tree)
    assert shape(res.tree) == ["a", "b"]
    assert not service.clear_untitled(res.tree).success


def test_replace_keeps_identity_when_equal(service, sample_tree):
    copy = tuple(TaskNode(**{**n.__dict__}) for n in sample_tree)
    assert not service.replace(sample_tree, copy).success
    res = service.replace(sample_tree, (node("z"),))
    assert res.success and shape(res.tree) == ["z"]


# ---------------------------
# Reparenting
# ---------------------------

def test_indent_first_sibling_is_noop(service, sample_tree):
    res = service.indent(sample_tree, "a")
    assert not res.success and res.tree is sample_tree
    assert not service.indent(sample_tree, "a1").success


def test_indent_into_collapsed_sibling_expands_it(service, sample_tree):
    tree = sample_tree + (node("d"),)
    res = service.indent(tree, "d")
    c = res.tree[2]
    assert [ch.id for ch in c.children] == ["c1", "d"]
    assert c.is_collapsed is False


def test_unindent_root_is_noop(service, sample_tree):
    assert not service.unindent(sample_tree, "b").success


def test_unindent_places_node_after_parent(service, sample_tree):
    res = service.unindent(sample_tree, "a2x")
    assert shape(res.tree) == [["a", ["a1", "a2", "a2x"]], "b", ["c", ["c1"]]]
    a = res.tree[0]
    assert not a.children[1].children


@pytest.mark.parametrize("target", ["a2", "b", "c"])
def test_unindent_after_indent_is_identity(service, sample_tree, target):
    indented = service.indent(sample_tree, target)
    assert indented.success
    back = service.unindent(indented.tree, target)
    # Indent expands the new parent; compare structure and text only
    assert shape(back.tree) == shape(sample_tree)


def test_move_many_keeps_preorder_and_drops_nested_duplicates(service, sample_tree):
    res = service.move_many(sample_tree, ["b", "a2x", "a2", "a1"], "c", 1)
    c = find_node(res.tree, "c")
    assert [ch.id for ch in c.children] == ["c1", "a1", "a2", "b"]
    assert find_node(res.tree, "a2").children[0].id == "a2x"
    assert c.is_collapsed is False
    assert count_nodes(res.tree) == count_nodes(sample_tree)


def test_move_into_own_subtree_is_rejected(service, sample_tree):
    res = service.move(sample_tree, "a", "a2x", 0)
    assert not res.success and res.tree is sample_tree


def test_move_clamps_index(service, sample_tree):
    res = service.move(sample_tree, "a", None, 99)
    assert [n.id for n in res.tree] == ["b", "c", "a"]
    res = service.move(sample_tree, "c", None, -5)
    assert [n.id for n in res.tree] == ["c", "a", "b"]


def test_move_back_to_same_place_is_noop(service, sample_tree):
    res = service.move(sample_tree, "b", None, 1)
    assert not res.success
    assert res.tree is sample_tree


def test_stale_ids_never_raise(service, sample_tree):
    for result in (
        service.delete(sample_tree, "ghost"),
        service.indent(sample_tree, "ghost"),
        service.unindent(sample_tree, "ghost"),
        service.move(sample_tree, "ghost", None, 0),
        service.move_many(sample_tree, ["ghost"], "a", 0),
        service.update(sample_tree, "ghost", text="x"),
    ):
        assert not result.success
        assert result.tree is sample_tree


# ---------------------------
# Forest invariant under random edits
# ---------------------------

def test_random_edits_keep_a_valid_forest(service):
    rng = random.Random(1234)
    tree = (node("seed"),)
    for step in range(600):
        ids = collect_ids(tree)
        pick = lambda: rng.choice(ids + ["ghost"])  # noqa: E731
        op = rng.randrange(6)
        before = count_nodes(tree)
        if op == 0:
            res = service.insert(tree, f"t{step}", after_id=pick())
        elif op == 1:
            res = service.insert(tree, f"t{step}", parent_id=pick(), after_id=pick())
        elif op == 2 and len(ids) > 3:
            res = service.delete(tree, pick())
        elif op == 3:
            res = service.indent(tree, pick())
        elif op == 4:
            res = service.unindent(tree, pick())
        else:
            parent = rng.choice([None, pick()])
            chosen = rng.sample(ids, k=min(len(ids), rng.randint(1, 3)))
            res = service.move_many(tree, chosen, parent, rng.randint(0, 4))
            assert count_nodes(res.tree) == before
        if op in (3, 4):
            assert count_nodes(res.tree) == before
        tree = res.tree
        assert forest_problems(tree) == [], f"step {step}: {forest_problems(tree)}"
