from __future__ import annotations

from pysimrail.models.train import TrainEntity
from pysimrail.state.selection import SelectionManager
from pysimrail.state.store import EntityStore


def _store(*ids: str) -> EntityStore:
    store = EntityStore()
    store.apply_full_list([TrainEntity(id=i, latitude=50.0, longitude=20.0) for i in ids])
    return store


class _Recorder:
    def __init__(self) -> None:
        self.events: list[str] = []

    def selected(self, train_id: str) -> None:
        self.events.append(f"select:{train_id}")

    def cleared(self) -> None:
        self.events.append("clear")


def _manager(store: EntityStore) -> tuple[SelectionManager, _Recorder]:
    recorder = _Recorder()
    return SelectionManager(store, on_selected=recorder.selected, on_cleared=recorder.cleared), recorder


def test_initial_state_is_none() -> None:
    manager, recorder = _manager(_store("1"))
    assert manager.selected_id is None
    assert manager.selected_train is None
    assert recorder.events == []


def test_select_enters_selected_and_resolves_live_train() -> None:
    store = _store("1")
    manager, recorder = _manager(store)

    assert manager.select("1") is True

    assert manager.selected_id == "1"
    assert manager.selected_train is store.get("1")
    assert recorder.events == ["select:1"]


def test_reselect_same_id_runs_side_effects_again() -> None:
    manager, recorder = _manager(_store("1"))

    manager.select("1")
    manager.select("1")

    assert recorder.events == ["select:1", "select:1"]


def test_select_unknown_id_is_refused() -> None:
    manager, recorder = _manager(_store("1"))
    manager.select("1")

    assert manager.select("nope") is False

    assert manager.selected_id == "1"
    assert recorder.events == ["select:1"]


def test_deselect_returns_to_none_once() -> None:
    manager, recorder = _manager(_store("1"))
    manager.select("1")

    manager.deselect()
    manager.deselect()

    assert manager.selected_id is None
    assert recorder.events == ["select:1", "clear"]


def test_store_change_drops_vanished_selection() -> None:
    store = _store("1", "2")
    manager, recorder = _manager(store)
    manager.select("1")

    store.apply_position_snapshot([])
    manager.on_store_changed()

    assert manager.selected_id is None
    assert recorder.events == ["select:1", "clear"]


def test_store_change_keeps_present_selection() -> None:
    store = _store("1", "2")
    manager, recorder = _manager(store)
    manager.select("2")

    store.apply_full_list([TrainEntity(id="2", number="new", latitude=1.0, longitude=2.0)])
    manager.on_store_changed()

    assert manager.selected_id == "2"
    assert manager.selected_train.number == "new"
    assert recorder.events == ["select:2"]
