from __future__ import annotations

from pysimrail._logsafe import summarize_for_log


def test_redacts_connection_tokens() -> None:
    payload = {"connectionId": "c1", "connectionToken": "secret", "nested": {"accessToken": "jwt"}}

    summarized = summarize_for_log(payload)

    assert summarized["connectionId"] == "c1"
    assert summarized["connectionToken"] == "<redacted>"
    assert summarized["nested"]["accessToken"] == "<redacted>"


def test_truncates_long_strings() -> None:
    summarized = summarize_for_log({"value": "x" * 600}, max_string=10)

    assert summarized["value"].startswith("x" * 10)
    assert "<truncated>" in summarized["value"]


def test_shortens_long_lists() -> None:
    summarized = summarize_for_log(list(range(40)), max_items=3)

    assert summarized == [0, 1, 2, "<+37 more>"]
