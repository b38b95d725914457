from __future__ import annotations

import math

from pysimrail.ingestion.normalize import hub_minutes, hub_number, hub_text, is_meaningful, pascal_key


def test_placeholders_map_to_none() -> None:
    for placeholder in (None, "", " ", "--", math.nan):
        assert hub_number(placeholder) is None
        assert hub_text(placeholder) is None
        assert not is_meaningful(placeholder)


def test_hub_number_accepts_numeric_strings_but_not_booleans() -> None:
    assert hub_number("52.25") == 52.25
    assert hub_number(80) == 80.0
    assert hub_number(True) is None
    assert hub_number("fast") is None


def test_hub_minutes_truncates() -> None:
    assert hub_minutes("3.9") == 3
    assert hub_minutes(-2) == -2
    assert hub_minutes("--") is None


def test_hub_text_strips_and_stringifies() -> None:
    assert hub_text("  42100 ") == "42100"
    assert hub_text(42100) == "42100"


def test_zero_and_false_are_meaningful() -> None:
    assert is_meaningful(0)
    assert is_meaningful(False)


def test_pascal_key() -> None:
    assert pascal_key("driverName") == "DriverName"
    assert pascal_key("Id") == "Id"
    assert pascal_key("train_id") == "train_id"
    assert pascal_key("") == ""
