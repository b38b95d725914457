from __future__ import annotations

from pysimrail.models.train import TrainEntity, TrainPosition
from pysimrail.state.store import EntityStore


def _train(train_id: str, number: str = "100", lat: float = 50.0, lon: float = 20.0, v: float = 0.0) -> TrainEntity:
    return TrainEntity(id=train_id, number=number, latitude=lat, longitude=lon, velocity=v)


def _pos(train_id: str, lat: float, lon: float, v: float = 0.0) -> TrainPosition:
    return TrainPosition(id=train_id, latitude=lat, longitude=lon, velocity=v)


def test_full_list_replaces_mapping() -> None:
    store = EntityStore()
    store.apply_full_list([_train("1"), _train("2")])

    change = store.apply_full_list([_train("2", number="200"), _train("3")])

    assert store.ids() == {"2", "3"}
    assert change.added == {"3"}
    assert change.removed == {"1"}
    assert change.updated == {"2"}
    assert store.get("2").number == "200"


def test_full_list_duplicate_ids_keep_last_record() -> None:
    store = EntityStore()
    store.apply_full_list([_train("1", number="A"), _train("1", number="B")])

    assert len(store) == 1
    assert store.get("1").number == "B"


def test_full_list_keeps_payload_order() -> None:
    store = EntityStore()
    store.apply_full_list([_train("b"), _train("a"), _train("c")])

    assert [train.id for train in store.trains()] == ["b", "a", "c"]


def test_position_snapshot_merges_volatile_fields() -> None:
    store = EntityStore()
    store.apply_full_list([_train("1", number="42100")])

    change = store.apply_position_snapshot([_pos("1", 52.0, 21.0, 80.0)])

    train = store.get("1")
    assert train is not None
    assert (train.latitude, train.longitude, train.velocity) == (52.0, 21.0, 80.0)
    assert train.number == "42100"
    assert change.updated == {"1"}
    assert not change.removed


def test_position_snapshot_prunes_absent_trains() -> None:
    store = EntityStore()
    store.apply_full_list([_train("1"), _train("2")])

    change = store.apply_position_snapshot([_pos("2", 50.0, 20.0)])

    assert store.ids() == {"2"}
    assert change.removed == {"1"}


def test_empty_position_snapshot_empties_store() -> None:
    store = EntityStore()
    store.apply_full_list([_train("1")])

    change = store.apply_position_snapshot([])

    assert len(store) == 0
    assert change.removed == {"1"}


def test_unmatched_position_is_ignored() -> None:
    store = EntityStore()
    store.apply_full_list([_train("1")])

    change = store.apply_position_snapshot([_pos("1", 50.0, 20.0), _pos("ghost", 10.0, 10.0)])

    assert "ghost" not in store
    assert store.ids() == {"1"}
    assert change.ignored == 1
    assert not change.added


def test_identical_snapshot_reports_no_change() -> None:
    store = EntityStore()
    store.apply_full_list([_train("1")])
    snapshot = [_pos("1", 52.0, 21.0, 80.0)]

    first = store.apply_position_snapshot(snapshot)
    second = store.apply_position_snapshot(snapshot)

    assert first.changed
    assert not second.changed


def test_iteration_is_a_snapshot() -> None:
    store = EntityStore()
    store.apply_full_list([_train("1"), _train("2")])

    seen = []
    for train in store:
        seen.append(train.id)
        store.apply_position_snapshot([])

    assert seen == ["1", "2"]
