from datetime import datetime, timedelta, timezone

from todo_tray.aggregator import find_item, group_items, merge_single_section, non_empty, sort_items
from todo_tray.models import Item, Notification, NotificationSection, SourceKind

UTC = timezone.utc
BASE = datetime(2026, 2, 24, 12, 0, tzinfo=UTC)


def _task(item_id, due_offset_hours=None, overdue=False, today=False, tomorrow=False):
    due = BASE + timedelta(hours=due_offset_hours) if due_offset_hours is not None else None
    return Item(
        id=item_id,
        content=f"Task {item_id}",
        source=SourceKind.TASK_TRACKER,
        actionable=True,
        due=due,
        is_overdue=overdue,
        is_today=today,
        is_tomorrow=tomorrow,
    )


def _issue(item_id, overdue=False):
    return Item(
        id=item_id,
        content=f"ENG-{item_id}",
        source=SourceKind.ISSUE_TRACKER,
        actionable=False,
        due=BASE - timedelta(days=1) if overdue else None,
        is_overdue=overdue,
    )


def _section(name, *thread_ids):
    return NotificationSection(
        account_name=name,
        notifications=tuple(
            Notification(thread_id=t, title=t, repository="o/r", reason="Mention", web_url="https://github.com")
            for t in thread_ids
        ),
    )


def test_sort_overdue_first_then_due_then_undated():
    items = [
        _task("undated"),
        _task("later", 5, today=True),
        _task("old", -48, overdue=True),
        _task("sooner", 1, today=True),
        _task("recent", -1, overdue=True),
    ]

    ordered = [i.id for i in sort_items(items)]

    assert ordered == ["old", "recent", "sooner", "later", "undated"]


def test_sort_is_stable_for_equal_keys():
    items = [_task("a"), _task("b"), _task("c")]
    assert [i.id for i in sort_items(items)] == ["a", "b", "c"]


def test_overdue_never_after_non_overdue():
    items = [_task(str(n), n - 5, overdue=n < 5, today=n >= 5) for n in range(10)]
    ordered = sort_items(reversed(items))
    flags = [i.is_overdue for i in ordered]
    assert flags == sorted(flags, reverse=True)
    overdue_dues = [i.due for i in ordered if i.is_overdue]
    assert overdue_dues == sorted(overdue_dues)


def test_group_items_buckets():
    tasks = group_items([
        _task("t1", 2, today=True),
        _task("t2", 26, tomorrow=True),
        _task("t3", -3, overdue=True),
        _task("t4"),  # no bucket, dropped
        _issue("i1", overdue=True),
        _issue("i2"),
    ])

    assert [i.id for i in tasks.overdue] == ["t3"]
    assert [i.id for i in tasks.today] == ["t1"]
    assert [i.id for i in tasks.tomorrow] == ["t2"]
    assert [i.id for i in tasks.in_progress] == ["i1", "i2"]


def test_non_empty_drops_empty_sections():
    sections = [_section("work", "1"), _section("personal")]
    assert [s.name for s in non_empty(sections)] == ["work"]


def test_merge_single_section_replaces_in_place():
    existing = (_section("a", "1"), _section("b", "2"), _section("c", "3"))

    merged = merge_single_section(existing, _section("b", "4", "5"))

    assert [s.name for s in merged] == ["a", "b", "c"]
    assert [n.thread_id for n in merged[1].notifications] == ["4", "5"]


def test_merge_single_section_appends_new_and_drops_empty():
    existing = (_section("a", "1"), _section("b", "2"))

    assert [s.name for s in merge_single_section(existing, _section("z", "9"))] == ["a", "b", "z"]
    assert [s.name for s in merge_single_section(existing, _section("a"))] == ["b"]


def test_merge_single_section_is_idempotent():
    existing = (_section("a", "1"), _section("b", "2"), _section("c", "3"))
    for updated in (_section("b", "7"), _section("b"), _section("new", "8")):
        once = merge_single_section(existing, updated)
        assert merge_single_section(once, updated) == once


def test_find_item():
    tasks = group_items([_task("t1", 2, today=True), _issue("i1")])
    assert find_item(tasks, "i1").source is SourceKind.ISSUE_TRACKER
    assert find_item(tasks, "missing") is None
