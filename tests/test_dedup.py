"""Tests for in-batch item deduplication."""

from conftest import make_item

from trendpress.core.dedup import dedup_items


def test_dedup_drops_same_url():
    first = make_item("a", title="Central bank holds rates steady")
    second = make_item("a", title="Completely unrelated headline here")
    assert dedup_items([first, second]) == [first]


def test_dedup_drops_near_identical_titles():
    first = make_item("a", title="Central bank holds rates steady in March")
    second = make_item("b", title="Central Bank holds rates steady in March.")
    third = make_item("c", title="Oil prices slide on supply glut")
    assert dedup_items([first, second, third]) == [first, third]


def test_dedup_threshold_controls_fuzzy_match():
    first = make_item("a", title="Central bank holds rates steady")
    second = make_item("b", title="Central bank keeps rates steady")
    assert len(dedup_items([first, second], threshold=99)) == 2
    assert len(dedup_items([first, second], threshold=70)) == 1


def test_dedup_preserves_order():
    items = [make_item(key, title=f"{key} distinct story about {key * 3}") for key in ("x", "y", "z")]
    assert dedup_items(items) == items
