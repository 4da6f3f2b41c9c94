import pytest
from conftest import node

from taskpad.core.services.undo_service import TEXT_EDIT, UndoService


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(clock):
    return UndoService(coalesce_window=1.0, clock=clock)


T0 = (node("a"),)
T1 = (node("a"), node("b"))
T2 = (node("a"), node("b"), node("c"))


def test_undo_redo_round_trip(service):
    assert not service.can_undo() and not service.can_redo()
    service.record(T0, "insert")
    service.record(T1, "insert")

    assert service.undo(T2) is T1
    assert service.undo(T1) is T0
    assert service.undo(T0) is None
    assert service.redo(T0) is T1
    assert service.redo(T1) is T2
    assert service.redo(T2) is None


def test_record_clears_redo(service):
    service.record(T0, "insert")
    service.undo(T1)
    assert service.can_redo()
    service.record(T0, "indent")
    assert not service.can_redo()


def test_text_burst_on_same_node_coalesces(service, clock):
    assert service.record(T0, TEXT_EDIT, "a") is True
    clock.now = 0.5
    assert service.record(T1, TEXT_EDIT, "a") is False
    clock.now = 1.4  # window restarts with each merged edit
    assert service.record(T2, TEXT_EDIT, "a") is False
    assert service.undo_depth == 1
    assert service.undo((node("z"),)) is T0


def test_text_burst_breaks_on_timeout_target_and_focus(service, clock):
    service.record(T0, TEXT_EDIT, "a")
    clock.now = 2.5
    assert service.record(T1, TEXT_EDIT, "a") is True

    clock.now = 2.6
    assert service.record(T1, TEXT_EDIT, "b") is True

    clock.now = 2.7
    service.break_coalescing()
    assert service.record(T2, TEXT_EDIT, "b") is True
    assert service.undo_depth == 4


def test_structural_edit_between_text_edits_opens_new_entry(service, clock):
    service.record(T0, TEXT_EDIT, "a")
    service.record(T1, "indent", "a")
    assert service.record(T2, TEXT_EDIT, "a") is True
    assert service.undo_depth == 3


def test_undo_breaks_coalescing(service, clock):
    service.record(T0, TEXT_EDIT, "a")
    service.undo(T1)
    service.redo(T0)
    assert service.record(T1, TEXT_EDIT, "a") is True


def test_max_history_trims_oldest(clock):
    svc = UndoService(max_history=2, clock=clock)
    svc.record(T0, "insert")
    svc.record(T1, "insert")
    svc.record(T2, "insert")
    assert svc.undo_depth == 2
    assert svc.undo(()) is T2
    assert svc.undo(T2) is T1
    assert svc.undo(T1) is None


def test_clear(service):
    service.record(T0, "insert")
    service.undo(T1)
    service.clear()
    assert service.undo_depth == 0 and service.redo_depth == 0
